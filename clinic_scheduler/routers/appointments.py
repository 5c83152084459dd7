from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Role
from ..principal import Principal, get_principal
from .. import schemas
from ..services import booking
from ..services.availability import DayAvailability, get_day_availability
from ..services.calendar import MonthAvailability, get_month_availability
from ..services.timeutils import hhmm, parse_day, parse_month

router = APIRouter(prefix="", tags=["appointments"])


def _lunch_label(lunch) -> str:
    return f"{hhmm(lunch[0])}-{hhmm(lunch[1])}"


def _day_out(result: DayAvailability) -> schemas.DayAvailabilityOut:
    return schemas.DayAvailabilityOut(
        date=result.date,
        doctor_id=result.doctor_id,
        service_id=result.service_id,
        available_from=hhmm(result.hours.start),
        available_to=hhmm(result.hours.end),
        available_days=[d.value for d in result.hours.days],
        service_duration=result.service_duration,
        lunch_break=_lunch_label(result.lunch_break),
        time_slots=[
            schemas.TimeSlotOut(
                time=s.time,
                available=s.available,
                is_booked=s.is_booked,
                is_past=s.is_past,
                is_lunch_break=s.is_lunch_break,
                reason=s.reason.value,
            )
            for s in result.slots
        ],
        fully_booked=result.fully_booked,
        message=result.message,
    )


def _month_out(result: MonthAvailability) -> schemas.MonthAvailabilityOut:
    return schemas.MonthAvailabilityOut(
        month=result.label,
        doctor_id=result.doctor_id,
        service_id=result.service_id,
        available_from=hhmm(result.hours.start),
        available_to=hhmm(result.hours.end),
        available_days=[d.value for d in result.hours.days],
        lunch_break=_lunch_label(result.lunch_break),
        days=[
            schemas.CalendarDayOut(
                date=d.date,
                day=d.date.day,
                day_name=d.weekday.value,
                fully_booked=d.fully_booked,
                available_slots=d.available_slots,
                total_slots=d.total_slots,
                booked_count=d.booked_count,
                is_past=d.is_past,
                is_doctor_available=d.is_doctor_available,
            )
            for d in result.days
        ],
    )


# ──────────────────────────────────────────────────────────────────────────────
# Disponibilidad (lectura, sin caché)
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/appointments/availability", response_model=schemas.DayAvailabilityOut)
def day_availability(
    doctor_id: int = Query(..., alias="doctorId"),
    service_id: int = Query(..., alias="serviceId"),
    date: str = Query(..., description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    return _day_out(get_day_availability(db, doctor_id, service_id, parse_day(date)))


@router.get("/appointments/calendar-availability", response_model=schemas.MonthAvailabilityOut)
def month_availability(
    doctor_id: int = Query(..., alias="doctorId"),
    service_id: int = Query(..., alias="serviceId"),
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    year, month_num = parse_month(month)
    return _month_out(get_month_availability(db, doctor_id, service_id, year, month_num))


# ──────────────────────────────────────────────────────────────────────────────
# Listados
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/appointments", response_model=list[schemas.AppointmentOut])
def list_all(
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    patient_id: Optional[int] = Query(None, alias="patientId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    principal.require(Role.ADMIN, Role.RECEPTIONIST, Role.DOCTOR)
    return booking.list_appointments(db, doctor_id, patient_id, start_date, end_date)


@router.get("/patient/appointments", response_model=list[schemas.AppointmentOut])
def list_mine(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    principal.require(Role.PATIENT)
    return booking.list_appointments(db, principal=principal)


# ──────────────────────────────────────────────────────────────────────────────
# Paciente: reservar / cancelar / reprogramar
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/patient/appointments", response_model=schemas.AppointmentOut, status_code=201)
def patient_book(
    req: schemas.BookRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    principal.require(Role.PATIENT)
    return booking.create_appointment(
        db, req.doctor_id, principal.id, req.service_id, req.appointment_date, req.notes,
    )


@router.put("/patient/appointments", response_model=schemas.AppointmentOut)
def patient_update(
    req: schemas.PatientUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    principal.require(Role.PATIENT)
    if req.action == "cancel":
        return booking.cancel_appointment(db, req.appointment_id, principal)
    return booking.reschedule_appointment(db, req.appointment_id, req.appointment_date, req.notes, principal)


# ──────────────────────────────────────────────────────────────────────────────
# Recepción / admin: reserva con factura, cancelar / reprogramar
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/receptionist/appointments", response_model=schemas.AppointmentOut, status_code=201)
def staff_book(
    req: schemas.StaffBookRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    principal.require(Role.ADMIN, Role.RECEPTIONIST)
    return booking.create_appointment(
        db, req.doctor_id, req.patient_id, req.service_id, req.appointment_date, req.notes,
        issue_invoice_for_service=True,
    )


@router.put("/receptionist/appointments", response_model=schemas.AppointmentOut)
def staff_update(
    req: schemas.StaffUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    principal.require(Role.ADMIN, Role.RECEPTIONIST)
    if req.action == "cancel":
        return booking.cancel_appointment(db, req.id, principal)
    return booking.reschedule_appointment(db, req.id, req.appointment_date, req.notes, principal)
