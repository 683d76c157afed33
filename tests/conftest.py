import os
from datetime import date, datetime, time

import pytest

# Set testing environment before the application reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.core.database import Base, SessionLocal, engine  # noqa: E402
from app.core.security import UserRole, get_password_hash  # noqa: E402
from app.models import Appointment, AppointmentStatus, Doctor, Patient, User  # noqa: E402
from app.services.appointment_rules import Actor  # noqa: E402

# A fixed "current time" well before every date used in the tests
NOW = datetime(2025, 2, 1, 9, 0)
DAY = date(2025, 3, 1)


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


def _make_user(db, email, role, password_hash="not-a-real-hash"):
    user = User(email=email, password_hash=password_hash, role=role, is_active=True)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def make_patient(db):
    def factory(email="patient@example.com", first_name="Pat", last_name="Ient"):
        user = _make_user(db, email, UserRole.PATIENT)
        user.patient = Patient(first_name=first_name, last_name=last_name)
        db.commit()
        return Actor(user_id=user.id, role=UserRole.PATIENT, profile_id=user.patient.id)
    return factory


@pytest.fixture
def make_doctor(db):
    def factory(email="doctor@example.com", work_start=None, work_end=None, slot_duration_minutes=30):
        user = _make_user(db, email, UserRole.DOCTOR)
        user.doctor = Doctor(
            first_name="Doc",
            last_name=email.split("@")[0].title(),
            specialization="General Medicine",
            work_start=work_start,
            work_end=work_end,
            slot_duration_minutes=slot_duration_minutes
        )
        db.commit()
        return Actor(user_id=user.id, role=UserRole.DOCTOR, profile_id=user.doctor.id)
    return factory


@pytest.fixture
def admin(db):
    user = _make_user(db, "admin@example.com", UserRole.ADMIN, get_password_hash("AdminPassword123"))
    db.commit()
    return Actor(user_id=user.id, role=UserRole.ADMIN)


@pytest.fixture
def insert_appointment(db):
    """Write an appointment row directly, bypassing the booking checks."""
    def factory(patient, doctor, appointment_time=time(10, 0), status=AppointmentStatus.PENDING, day=DAY):
        appointment = Appointment(
            patient_id=patient.profile_id,
            doctor_id=doctor.profile_id,
            appointment_date=day,
            appointment_time=appointment_time,
            reason="Routine check-up",
            status=status
        )
        db.add(appointment)
        db.commit()
        return appointment.id
    return factory
