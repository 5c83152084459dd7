# clinic_scheduler/services/locking.py
"""
Serialización de escrituras por doctor.

En Postgres se toma `pg_advisory_xact_lock` (se libera solo al hacer commit o
rollback). En otros dialectos (SQLite local/pruebas) se usa un lock de proceso por
doctor que se mantiene hasta después del commit.
"""
from __future__ import annotations
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import ServerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Primer entero de la llave de advisory lock (espacio de nombres de citas)
ADVISORY_NAMESPACE = 4711

# SQLSTATE de abortos transitorios en Postgres: serialization_failure, deadlock_detected
_TRANSIENT_PGCODES = {"40001", "40P01"}

_local_locks: Dict[int, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock(doctor_id: int) -> threading.Lock:
    with _local_locks_guard:
        return _local_locks.setdefault(doctor_id, threading.Lock())


@contextmanager
def doctor_lock(db: Session, doctor_id: int):
    if db.get_bind().dialect.name == "postgresql":
        db.execute(
            text("SELECT pg_advisory_xact_lock(:ns, :key)"),
            {"ns": ADVISORY_NAMESPACE, "key": doctor_id},
        )
        yield
        return
    with _local_lock(doctor_id):
        yield


def is_transient(exc: DBAPIError) -> bool:
    if exc.connection_invalidated:
        return True
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if code in _TRANSIENT_PGCODES:
        return True
    message = str(exc.orig or exc).lower()
    return "deadlock detected" in message or "database is locked" in message


def run_locked(db: Session, doctor_id: int, work: Callable[[], T], label: str = "booking") -> T:
    """
    Ejecuta `work` y el commit dentro del lock del doctor, como una sola unidad.

    Los abortos transitorios se reintentan hasta BOOKING_MAX_RETRIES veces y luego
    se reportan como ServerError. Cualquier otro error (p.ej. de dominio) hace
    rollback y se propaga tal cual.
    """
    attempts = max(1, settings.BOOKING_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            with doctor_lock(db, doctor_id):
                result = work()
                db.commit()
            return result
        except DBAPIError as exc:
            db.rollback()
            if not is_transient(exc):
                raise
            logger.warning("%s: aborto transitorio doctor=%s intento=%s/%s err=%s",
                           label, doctor_id, attempt, attempts, exc.orig)
        except Exception:
            db.rollback()
            raise
    raise ServerError(f"No se pudo completar la operación ({label}) tras {attempts} intentos")
