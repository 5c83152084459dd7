# clinic_scheduler/services/calendar.py
from __future__ import annotations
import calendar as _cal
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, date, time, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..config import settings
from ..exceptions import ValidationError
from .availability import WorkingHours, load_doctor_and_service, working_hours
from .timeutils import clinic_now

logger = logging.getLogger(__name__)


@dataclass
class CalendarDay:
    date: date
    weekday: models.Weekday
    is_doctor_available: bool
    is_past: bool
    total_slots: int
    booked_count: int
    available_slots: int
    fully_booked: bool


@dataclass
class MonthAvailability:
    year: int
    month: int
    doctor_id: int
    service_id: int
    hours: WorkingHours
    lunch_break: tuple[time, time]
    days: List[CalendarDay] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def daily_capacity(work_start: time, work_end: time, duration: int, lunch_break: tuple[time, time]) -> int:
    """
    Capacidad aproximada: minutos de trabajo antes y después de la comida, entre la
    duración del servicio.

    No recorre los slots uno a uno, así que puede diferir del conteo exacto de
    `get_day_availability` (p.ej. duraciones que no dividen la mañana o la tarde).
    Quien necesite la lista exacta debe pedir la disponibilidad del día.
    """
    if duration <= 0:
        raise ValidationError("La duración del servicio debe ser positiva")
    start, end = _minutes(work_start), _minutes(work_end)
    lunch_start, lunch_end = (_minutes(t) for t in lunch_break)
    # Sin recortar las ventanas: un horario que no cruza la comida puede quedar
    # por debajo del real o incluso en negativo
    return ((lunch_start - start) + (end - lunch_end)) // duration


def bookings_per_day(db: Session, doctor_id: int, start: datetime, end: datetime) -> Counter:
    stmt = (
        select(models.Appointment.appointment_day)
        .where(models.Appointment.doctor_id == doctor_id)
        .where(models.Appointment.status == models.AppointmentStatus.SCHEDULED)
        .where(models.Appointment.appointment_date >= start)
        .where(models.Appointment.appointment_date < end)
    )
    return Counter(db.scalars(stmt))


def get_month_availability(
    db: Session,
    doctor_id: int,
    service_id: int,
    year: int,
    month: int,
    now: Optional[datetime] = None,
) -> MonthAvailability:
    if not 1 <= month <= 12:
        raise ValidationError("Mes fuera de rango")
    doctor, service = load_doctor_and_service(db, doctor_id, service_id)
    hours = working_hours(doctor)
    lunch = settings.lunch_break
    capacity = daily_capacity(hours.start, hours.end, service.duration, lunch)

    days_in_month = _cal.monthrange(year, month)[1]
    first = date(year, month, 1)
    month_start = datetime.combine(first, time(0, 0))
    month_end = month_start + timedelta(days=days_in_month)
    booked = bookings_per_day(db, doctor_id, month_start, month_end)
    today = clinic_now(now).date()

    result = MonthAvailability(
        year=year, month=month, doctor_id=doctor_id, service_id=service_id, hours=hours, lunch_break=lunch,
    )
    for offset in range(days_in_month):
        day = first + timedelta(days=offset)
        is_available = doctor.works_on(day)
        is_past = day < today
        booked_count = booked.get(day, 0)
        free = max(0, capacity - booked_count) if is_available and not is_past else 0
        result.days.append(CalendarDay(
            date=day,
            weekday=models.Weekday.of(day),
            is_doctor_available=is_available,
            is_past=is_past,
            total_slots=capacity,
            booked_count=booked_count,
            available_slots=free,
            fully_booked=free <= 0 or not is_available,
        ))
    logger.debug("doctor=%s month=%s capacity=%s booked_days=%s", doctor_id, result.label, capacity, len(booked))
    return result
