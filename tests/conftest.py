"""Shared fixtures: in-memory database, seeded clinic, API client."""
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_scheduler import models
from clinic_scheduler.database import get_db, init_db

WEEKDAYS_ONLY = [
    models.Weekday.MONDAY,
    models.Weekday.TUESDAY,
    models.Weekday.WEDNESDAY,
    models.Weekday.THURSDAY,
    models.Weekday.FRIDAY,
]


def future_weekday(weekday: int, weeks_ahead: int = 3) -> date:
    """A date with the given weekday (Monday = 0) at least `weeks_ahead` weeks from today."""
    base = date.today() + timedelta(weeks=weeks_ahead)
    return base + timedelta(days=(weekday - base.weekday()) % 7)


def at(day: date, hh: int, mm: int = 0) -> datetime:
    return datetime.combine(day, time(hh, mm))


def seed_clinic(session):
    doctor = models.Doctor(name="Ana Ruiz", available_from=time(9, 0), available_to=time(17, 0))
    doctor.available_days = WEEKDAYS_ONLY
    other_doctor = models.Doctor(name="Luis Paz", available_from=time(9, 0), available_to=time(17, 0))
    other_doctor.available_days = WEEKDAYS_ONLY
    service = models.Service(name="Consulta general", duration=30, price=Decimal("100.00"))
    long_service = models.Service(name="Revisión completa", duration=60, price=Decimal("250.00"))
    patients = [models.Patient(name="Paciente Uno"), models.Patient(name="Paciente Dos"), models.Patient(name="Paciente Tres")]
    session.add_all([doctor, other_doctor, service, long_service, *patients])
    session.commit()
    return {
        "doctor": doctor.id,
        "other_doctor": other_doctor.id,
        "service": service.id,
        "long_service": long_service.id,
        "patients": [p.id for p in patients],
    }


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clinic(db):
    return seed_clinic(db)


@pytest.fixture
def book(db):
    """Insert a SCHEDULED appointment directly, bypassing the booking checks."""
    def _book(doctor_id, patient_id, service_id, start, duration=30, status=models.AppointmentStatus.SCHEDULED):
        appt = models.Appointment(
            doctor_id=doctor_id, patient_id=patient_id, service_id=service_id,
            duration=duration, status=status,
        )
        appt.move_to(start)
        db.add(appt)
        db.commit()
        return appt
    return _book


@pytest.fixture
def client(session_factory, clinic):
    from clinic_scheduler.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def patient_headers(patient_id):
    return {"X-User-Id": str(patient_id), "X-User-Role": "PATIENT"}


def staff_headers(user_id=900, role="RECEPTIONIST"):
    return {"X-User-Id": str(user_id), "X-User-Role": role}
