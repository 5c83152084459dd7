# clinic_scheduler/services/timeutils.py
from __future__ import annotations
from datetime import datetime, date, time, timedelta
from typing import Optional

import pytz
from dateutil import parser as dtparser

from ..config import settings
from ..exceptions import ValidationError


def local_tz():
    return pytz.timezone(settings.TIMEZONE)


def to_local_naive(dt: datetime) -> datetime:
    """
    Normaliza a hora local naive de la clínica (así se guarda en BD).
    Un datetime naive se asume ya local.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(local_tz()).replace(tzinfo=None)


def clinic_now(now: Optional[datetime] = None) -> datetime:
    """Instante actual en hora local naive; `now` permite fijar el reloj en pruebas."""
    if now is not None:
        return to_local_naive(now)
    return datetime.now(local_tz()).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0))
    return start, start + timedelta(days=1)


def parse_day(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError("Formato de fecha inválido. Usa YYYY-MM-DD.")


def parse_month(value: str) -> tuple[int, int]:
    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m")
    except (AttributeError, ValueError):
        raise ValidationError("Formato de mes inválido. Usa YYYY-MM.")
    return parsed.year, parsed.month


def parse_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return to_local_naive(value)
    try:
        return to_local_naive(dtparser.isoparse(value))
    except (TypeError, ValueError):
        raise ValidationError("Formato de fecha/hora inválido. Usa ISO 8601.")


def hhmm(t: time | datetime) -> str:
    return t.strftime("%H:%M")
