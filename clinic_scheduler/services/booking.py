# clinic_scheduler/services/booking.py
"""
Alta, cancelación y reprogramación de citas.

Las validaciones (duplicado el mismo día, traslape) y la escritura corren como una
sola unidad bajo el lock del doctor, así dos pacientes no pueden quedarse con el
mismo horario. No hay llave de idempotencia: un reintento del cliente tras un
timeout puede chocar con su propia cita (duplicate_booking) y debe deduplicar él.
"""
from __future__ import annotations
import logging
from datetime import datetime, date, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..exceptions import (
    ConflictError, NotFoundError, ValidationError,
    DUPLICATE_BOOKING, SLOT_TAKEN, APPOINTMENT_NOT_ACTIVE,
)
from ..principal import Principal
from .billing import cancel_pending_invoice, issue_invoice
from .conflicts import find_overlapping
from .locking import run_locked
from .timeutils import parse_datetime

logger = logging.getLogger(__name__)

# Ventana hacia atrás para buscar citas que aún sigan en curso al inicio del intervalo
_LOOKBACK = timedelta(days=1)
LIST_LIMIT = 100


def _require_fields(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise ValidationError(f"Faltan campos requeridos: {', '.join(missing)}")


def _scheduled():
    return select(models.Appointment).where(models.Appointment.status == models.AppointmentStatus.SCHEDULED)


def _same_day_duplicate(
    db: Session, doctor_id: int, patient_id: int, day: date, exclude_id: Optional[int] = None,
) -> Optional[models.Appointment]:
    stmt = (
        _scheduled()
        .where(models.Appointment.doctor_id == doctor_id)
        .where(models.Appointment.patient_id == patient_id)
        .where(models.Appointment.appointment_day == day)
    )
    if exclude_id is not None:
        stmt = stmt.where(models.Appointment.id != exclude_id)
    return db.scalars(stmt.limit(1)).first()


def _overlapping(
    db: Session, doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None,
) -> List[models.Appointment]:
    stmt = (
        _scheduled()
        .where(models.Appointment.doctor_id == doctor_id)
        .where(models.Appointment.appointment_date < end)
        .where(models.Appointment.appointment_date >= start - _LOOKBACK)
    )
    if exclude_id is not None:
        stmt = stmt.where(models.Appointment.id != exclude_id)
    return find_overlapping(start, end, db.scalars(stmt))


def _assert_bookable(
    db: Session, doctor_id: int, patient_id: int, start: datetime, duration: int,
    exclude_id: Optional[int] = None,
) -> None:
    if _same_day_duplicate(db, doctor_id, patient_id, start.date(), exclude_id) is not None:
        raise ConflictError("El paciente ya tiene una cita con este doctor ese día", reason=DUPLICATE_BOOKING)
    clashes = _overlapping(db, doctor_id, start, start + timedelta(minutes=duration), exclude_id)
    if clashes:
        taken = clashes[0]
        raise ConflictError(
            f"Horario no disponible: traslapa con la cita de las {taken.appointment_date:%H:%M} "
            f"({taken.duration} min)",
            reason=SLOT_TAKEN,
        )


def _is_same_day_violation(exc: IntegrityError) -> bool:
    """El choque viene del índice único parcial de citas activas (no de otra restricción)."""
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == models.ACTIVE_DAY_INDEX
    # SQLite no da el nombre del índice, sólo las columnas
    message = str(exc.orig)
    return models.ACTIVE_DAY_INDEX in message or "appointments.appointment_day" in message


def _load_for(db: Session, appointment_id: int, principal: Optional[Principal]) -> models.Appointment:
    appt = db.get(models.Appointment, appointment_id)
    # Una cita ajena se reporta como inexistente
    if appt is None or (principal is not None and principal.is_patient and appt.patient_id != principal.id):
        raise NotFoundError("Cita no encontrada")
    return appt


def create_appointment(
    db: Session,
    doctor_id: Optional[int],
    patient_id: Optional[int],
    service_id: Optional[int],
    start: Optional[datetime | str],
    notes: Optional[str] = None,
    issue_invoice_for_service: bool = False,
) -> models.Appointment:
    _require_fields(doctorId=doctor_id, patientId=patient_id, serviceId=service_id, appointmentDate=start)
    start_at = parse_datetime(start)

    service = db.get(models.Service, service_id)
    if service is None:
        raise NotFoundError("Servicio no encontrado")
    if db.get(models.Doctor, doctor_id) is None:
        raise NotFoundError("Doctor no encontrado")
    if db.get(models.Patient, patient_id) is None:
        raise NotFoundError("Paciente no encontrado")

    def work() -> models.Appointment:
        _assert_bookable(db, doctor_id, patient_id, start_at, service.duration)
        appt = models.Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            service_id=service_id,
            duration=service.duration,
            notes=notes or None,
            status=models.AppointmentStatus.SCHEDULED,
        )
        appt.move_to(start_at)
        db.add(appt)
        db.flush()
        if issue_invoice_for_service:
            issue_invoice(db, appt, service)
        return appt

    try:
        appt = run_locked(db, doctor_id, work, label="create_appointment")
    except IntegrityError as exc:
        if not _is_same_day_violation(exc):
            raise
        # El índice único parcial atrapó un duplicado que se coló por otro proceso
        raise ConflictError("El paciente ya tiene una cita con este doctor ese día", reason=DUPLICATE_BOOKING)
    db.refresh(appt)
    logger.info("Cita creada id=%s doctor=%s patient=%s start=%s", appt.id, doctor_id, patient_id,
                appt.appointment_date.isoformat())
    return appt


def cancel_appointment(db: Session, appointment_id: int, principal: Optional[Principal] = None) -> models.Appointment:
    appt = _load_for(db, appointment_id, principal)

    def work() -> models.Appointment:
        db.refresh(appt)
        if appt.status != models.AppointmentStatus.SCHEDULED:
            raise ConflictError(f"La cita ya está {appt.status.value}", reason=APPOINTMENT_NOT_ACTIVE)
        appt.status = models.AppointmentStatus.CANCELLED
        cancel_pending_invoice(db, appt.id)
        db.flush()
        return appt

    run_locked(db, appt.doctor_id, work, label="cancel_appointment")
    db.refresh(appt)
    logger.info("Cita cancelada id=%s doctor=%s", appt.id, appt.doctor_id)
    return appt


def reschedule_appointment(
    db: Session,
    appointment_id: int,
    new_start: Optional[datetime | str] = None,
    notes: Optional[str] = None,
    principal: Optional[Principal] = None,
) -> models.Appointment:
    appt = _load_for(db, appointment_id, principal)
    start_at = parse_datetime(new_start) if new_start else None

    def work() -> models.Appointment:
        db.refresh(appt)
        if appt.status != models.AppointmentStatus.SCHEDULED:
            raise ConflictError(f"La cita ya está {appt.status.value}", reason=APPOINTMENT_NOT_ACTIVE)
        if start_at is not None:
            _assert_bookable(db, appt.doctor_id, appt.patient_id, start_at, appt.duration, exclude_id=appt.id)
            appt.move_to(start_at)
        if notes is not None:
            appt.notes = notes
        db.flush()
        return appt

    try:
        run_locked(db, appt.doctor_id, work, label="reschedule_appointment")
    except IntegrityError as exc:
        if not _is_same_day_violation(exc):
            raise
        raise ConflictError("El paciente ya tiene una cita con este doctor ese día", reason=DUPLICATE_BOOKING)
    db.refresh(appt)
    logger.info("Cita reprogramada id=%s start=%s", appt.id, appt.appointment_date.isoformat())
    return appt


def list_appointments(
    db: Session,
    doctor_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    principal: Optional[Principal] = None,
) -> List[models.Appointment]:
    if principal is not None and principal.is_patient:
        patient_id = principal.id
    stmt = select(models.Appointment)
    if doctor_id is not None:
        stmt = stmt.where(models.Appointment.doctor_id == doctor_id)
    if patient_id is not None:
        stmt = stmt.where(models.Appointment.patient_id == patient_id)
    if start is not None:
        stmt = stmt.where(models.Appointment.appointment_date >= start)
    if end is not None:
        stmt = stmt.where(models.Appointment.appointment_date <= end)
    stmt = stmt.order_by(models.Appointment.appointment_date).limit(LIST_LIMIT)
    return list(db.scalars(stmt))
