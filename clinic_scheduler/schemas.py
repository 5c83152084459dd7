from __future__ import annotations
import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import AppointmentStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ===== Disponibilidad =====

class TimeSlotOut(CamelModel):
    time: str
    available: bool
    is_booked: bool
    is_past: bool
    is_lunch_break: bool
    reason: str


class DayAvailabilityOut(CamelModel):
    date: dt.date
    doctor_id: int
    service_id: int
    available_from: str
    available_to: str
    available_days: list[str]
    service_duration: int
    lunch_break: str
    time_slots: list[TimeSlotOut]
    fully_booked: bool
    message: Optional[str] = None


class CalendarDayOut(CamelModel):
    date: dt.date
    day: int
    day_name: str
    fully_booked: bool
    available_slots: int
    total_slots: int
    booked_count: int
    is_past: bool
    is_doctor_available: bool


class MonthAvailabilityOut(CamelModel):
    month: str
    doctor_id: int
    service_id: int
    available_from: str
    available_to: str
    available_days: list[str]
    lunch_break: str
    days: list[CalendarDayOut]


# ===== Citas =====

class BookRequest(CamelModel):
    doctor_id: Optional[int] = None
    service_id: Optional[int] = None
    appointment_date: Optional[dt.datetime] = None
    notes: Optional[str] = None


class StaffBookRequest(BookRequest):
    patient_id: Optional[int] = None


class PatientUpdateRequest(CamelModel):
    appointment_id: int
    action: Optional[Literal["cancel", "reschedule"]] = None
    appointment_date: Optional[dt.datetime] = None
    notes: Optional[str] = None


class StaffUpdateRequest(CamelModel):
    id: int
    action: Optional[Literal["cancel", "reschedule"]] = None
    appointment_date: Optional[dt.datetime] = None
    notes: Optional[str] = None


class AppointmentOut(CamelModel):
    id: int
    doctor_id: int
    patient_id: int
    service_id: int
    appointment_date: dt.datetime
    duration: int
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class BusyWindowOut(CamelModel):
    appointment_id: int
    start: dt.datetime
    end: dt.datetime
