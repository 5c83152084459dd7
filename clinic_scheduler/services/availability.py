# clinic_scheduler/services/availability.py
"""
Disponibilidad diaria de un doctor para un servicio.

El día se parte en pasos fijos de `duration` minutos desde la hora de entrada;
cada slot se marca no disponible por cita existente, por estar en el pasado o por
caer (aunque sea parcialmente) en la comida fija. Nada se cachea: cada consulta
refleja las reservas vigentes.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, date, time, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..config import settings, parse_hhmm
from ..exceptions import NotFoundError, ValidationError
from .conflicts import overlaps
from .timeutils import clinic_now, day_bounds, hhmm

logger = logging.getLogger(__name__)


class SlotReason(str, enum.Enum):
    NONE = "none"
    BOOKED = "booked"
    PAST = "past"
    LUNCH = "lunch"
    DOCTOR_UNAVAILABLE = "doctorUnavailable"


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    is_booked: bool = False
    is_past: bool = False
    is_lunch_break: bool = False

    @property
    def available(self) -> bool:
        return not (self.is_booked or self.is_past or self.is_lunch_break)

    @property
    def reason(self) -> SlotReason:
        # Una sola razón por slot: booked > past > lunch
        if self.is_booked:
            return SlotReason.BOOKED
        if self.is_past:
            return SlotReason.PAST
        if self.is_lunch_break:
            return SlotReason.LUNCH
        return SlotReason.NONE

    @property
    def time(self) -> str:
        return hhmm(self.start)


@dataclass
class WorkingHours:
    start: time
    end: time
    days: List[models.Weekday]


@dataclass
class DayAvailability:
    date: date
    doctor_id: int
    service_id: int
    hours: WorkingHours
    service_duration: int
    lunch_break: tuple[time, time]
    slots: List[TimeSlot] = field(default_factory=list)
    fully_booked: bool = True
    reason: SlotReason = SlotReason.NONE
    message: Optional[str] = None


def working_hours(doctor: models.Doctor) -> WorkingHours:
    start = doctor.available_from or parse_hhmm(settings.DEFAULT_AVAILABLE_FROM)
    end = doctor.available_to or parse_hhmm(settings.DEFAULT_AVAILABLE_TO)
    if start >= end:
        raise ValidationError(f"Horario inválido para el doctor {doctor.id}: {hhmm(start)}-{hhmm(end)}")
    return WorkingHours(start=start, end=end, days=doctor.available_days)


def load_doctor_and_service(db: Session, doctor_id: int, service_id: int):
    doctor = db.get(models.Doctor, doctor_id)
    service = db.get(models.Service, service_id)
    if doctor is None or service is None:
        raise NotFoundError("Doctor o servicio no encontrado")
    return doctor, service


def booked_intervals(db: Session, doctor_id: int, start: datetime, end: datetime) -> List[models.Appointment]:
    """Citas SCHEDULED del doctor que empiezan en [start, end)."""
    stmt = (
        select(models.Appointment)
        .where(models.Appointment.doctor_id == doctor_id)
        .where(models.Appointment.status == models.AppointmentStatus.SCHEDULED)
        .where(models.Appointment.appointment_date >= start)
        .where(models.Appointment.appointment_date < end)
        .order_by(models.Appointment.appointment_date)
    )
    return list(db.scalars(stmt))


def build_day_slots(
    day: date,
    work_start: time,
    work_end: time,
    duration: int,
    booked: Sequence[tuple[datetime, datetime]],
    now: datetime,
    lunch_break: Optional[tuple[time, time]] = None,
) -> List[TimeSlot]:
    """
    Genera los slots del día en pasos fijos de `duration` minutos.

    Un slot sólo se emite si termina a más tardar en `work_end` (el último slot
    puede terminar exactamente a esa hora); los parciales se descartan.
    """
    if duration <= 0:
        raise ValidationError("La duración del servicio debe ser positiva")

    lunch_start_t, lunch_end_t = lunch_break or settings.lunch_break
    lunch_start = datetime.combine(day, lunch_start_t)
    lunch_end = datetime.combine(day, lunch_end_t)

    step = timedelta(minutes=duration)
    cur = datetime.combine(day, work_start)
    end_of_work = datetime.combine(day, work_end)

    slots: List[TimeSlot] = []
    while cur + step <= end_of_work:
        slot_end = cur + step
        slots.append(TimeSlot(
            start=cur,
            end=slot_end,
            is_booked=any(overlaps(cur, slot_end, b0, b1) for (b0, b1) in booked),
            is_past=cur < now,
            is_lunch_break=overlaps(cur, slot_end, lunch_start, lunch_end),
        ))
        cur = slot_end
    return slots


def get_day_availability(
    db: Session,
    doctor_id: int,
    service_id: int,
    day: date,
    now: Optional[datetime] = None,
) -> DayAvailability:
    doctor, service = load_doctor_and_service(db, doctor_id, service_id)
    hours = working_hours(doctor)
    result = DayAvailability(
        date=day,
        doctor_id=doctor_id,
        service_id=service_id,
        hours=hours,
        service_duration=service.duration,
        lunch_break=settings.lunch_break,
    )

    if not doctor.works_on(day):
        weekday = models.Weekday.of(day)
        result.reason = SlotReason.DOCTOR_UNAVAILABLE
        result.message = f"El doctor no atiende los {weekday.value}"
        return result

    day_start, day_end = day_bounds(day)
    busy = [(ap.appointment_date, ap.ends_at) for ap in booked_intervals(db, doctor_id, day_start, day_end)]
    logger.debug("doctor=%s day=%s busy_windows=%s", doctor_id, day, [(a.isoformat(), b.isoformat()) for a, b in busy])

    result.slots = build_day_slots(
        day, hours.start, hours.end, service.duration, busy, clinic_now(now), result.lunch_break,
    )
    result.fully_booked = all(not s.available for s in result.slots)
    return result
