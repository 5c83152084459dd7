# clinic_scheduler/models.py
from typing import Optional, Iterable
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    Integer, String, DateTime, Date, Time, Enum, ForeignKey, Text, Numeric, Index, UniqueConstraint, text,
)
from datetime import datetime, date, time, timedelta
import enum
from .database import Base


class Weekday(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def bit(self) -> int:
        return 1 << WEEKDAYS.index(self)

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday(): lunes = 0
        return WEEKDAYS[day.weekday()]


# Orden canónico (lunes primero), coincide con date.weekday()
WEEKDAYS: list[Weekday] = list(Weekday)


def days_to_mask(days: Iterable[Weekday | str]) -> int:
    mask = 0
    for d in days:
        mask |= Weekday(d).bit
    return mask


def mask_to_days(mask: int) -> list[Weekday]:
    return [d for d in WEEKDAYS if mask & d.bit]


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    PATIENT = "PATIENT"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class InvoiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class Doctor(Base):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Horario de trabajo; None = usar el default de settings
    available_from: Mapped[Optional[time]] = mapped_column(Time, nullable=True, default=None)
    available_to: Mapped[Optional[time]] = mapped_column(Time, nullable=True, default=None)
    # Días disponibles como bitset de 7 bits (lunes = bit 0)
    available_days_mask: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    appointments = relationship("Appointment", back_populates="doctor")

    @property
    def available_days(self) -> list[Weekday]:
        return mask_to_days(self.available_days_mask or 0)

    @available_days.setter
    def available_days(self, days: Iterable[Weekday | str]) -> None:
        self.available_days_mask = days_to_mask(days)

    def works_on(self, day: date) -> bool:
        return bool((self.available_days_mask or 0) & Weekday.of(day).bit)


class Service(Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)  # minutos
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)

    appointments = relationship("Appointment", back_populates="patient")


ACTIVE_DAY_INDEX = "uq_appointments_active_day"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Una sola cita SCHEDULED por (doctor, paciente, día)
        Index(
            ACTIVE_DAY_INDEX,
            "doctor_id", "patient_id", "appointment_day",
            unique=True,
            sqlite_where=text("status = 'SCHEDULED'"),
            postgresql_where=text("status = 'SCHEDULED'"),
        ),
        Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    doctor_id: Mapped[int] = mapped_column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patients.id"), nullable=False)
    service_id: Mapped[int] = mapped_column(Integer, ForeignKey("services.id"), nullable=False)
    # Hora local naive de la clínica
    appointment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    appointment_day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutos
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")
    service = relationship("Service")

    @property
    def ends_at(self) -> datetime:
        return self.appointment_date + timedelta(minutes=self.duration)

    def move_to(self, start: datetime) -> None:
        self.appointment_date = start
        self.appointment_day = start.date()


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patients.id"), nullable=False)
    # Referencia explícita a la cita (antes era un tag dentro de description)
    appointment_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("appointments.id"), nullable=True, index=True
    )
    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status"),
        default=InvoiceStatus.PENDING,
        nullable=False,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    description: Mapped[str] = mapped_column(String(300), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    appointment = relationship("Appointment")
