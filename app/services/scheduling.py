"""Slot generation, conflict detection and availability lookup.

The generator is pure. The conflict checks and availability lookup read
appointments through the session handed in by the caller and never write.
"""
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Set
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED = frozenset({AppointmentStatus.CANCELLED})


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def validate_schedule(
    window_start: Optional[time],
    window_end: Optional[time],
    duration_minutes: int
) -> tuple:
    """Fill in default window bounds and check the schedule is usable."""
    start = settings.DEFAULT_WORK_START if window_start is None else window_start
    end = settings.DEFAULT_WORK_END if window_end is None else window_end

    if start >= end:
        raise ValidationError("Working window start must be earlier than its end")

    if not (settings.MIN_SLOT_DURATION_MINUTES <= duration_minutes <= settings.MAX_SLOT_DURATION_MINUTES):
        raise ValidationError(
            f"Slot duration must be between {settings.MIN_SLOT_DURATION_MINUTES} "
            f"and {settings.MAX_SLOT_DURATION_MINUTES} minutes"
        )

    return start, end


def generate_slots(
    window_start: Optional[time],
    window_end: Optional[time],
    duration_minutes: int
) -> List[time]:
    """Return the bookable slot start times inside a working window.

    Slots start at ``window_start`` and are spaced ``duration_minutes``
    apart. A trailing slot that would run past ``window_end`` is dropped, and
    a window no longer than one slot yields no slots at all.
    """
    start, end = validate_schedule(window_start, window_end, duration_minutes)

    start_minute = _minutes(start)
    end_minute = _minutes(end)
    if duration_minutes >= end_minute - start_minute:
        return []

    slots = []
    current = start_minute
    while current + duration_minutes <= end_minute:
        slots.append(time(current // 60, current % 60))
        current += duration_minutes

    return slots


def _active_appointments(db: Session, excluding_statuses: Iterable[AppointmentStatus]):
    query = db.query(Appointment)
    excluded = list(excluding_statuses)
    if excluded:
        query = query.filter(Appointment.status.notin_(excluded))
    return query


def has_conflict(
    db: Session,
    doctor_id: int,
    appointment_date: date,
    appointment_time: time,
    excluding_statuses: Iterable[AppointmentStatus] = DEFAULT_EXCLUDED
) -> bool:
    """True if the doctor already holds an appointment at this date and time."""
    try:
        existing = _active_appointments(db, excluding_statuses).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.appointment_time == appointment_time
        ).first()
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return existing is not None


def has_patient_conflict(
    db: Session,
    patient_id: int,
    appointment_date: date,
    appointment_time: time,
    excluding_statuses: Iterable[AppointmentStatus] = DEFAULT_EXCLUDED
) -> bool:
    """True if the patient already holds an appointment at this date and time, with any doctor."""
    try:
        existing = _active_appointments(db, excluding_statuses).filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date == appointment_date,
            Appointment.appointment_time == appointment_time
        ).first()
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return existing is not None


def taken_times(
    db: Session,
    doctor_id: int,
    appointment_date: date,
    excluding_statuses: Iterable[AppointmentStatus] = DEFAULT_EXCLUDED
) -> Set[time]:
    """Times on the given day for which has_conflict() would be true."""
    try:
        rows = _active_appointments(db, excluding_statuses).with_entities(
            Appointment.appointment_time
        ).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date
        ).all()
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {row.appointment_time.replace(second=0, microsecond=0) for row in rows}


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    try:
        doctor = db.get(Doctor, doctor_id)
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    if doctor is None:
        raise NotFoundError("Doctor not found")
    return doctor


def available_slots(
    db: Session,
    doctor_id: int,
    appointment_date: date,
    now: Optional[datetime] = None
) -> List[time]:
    """Slots of the doctor's day that are free and still in the future."""
    doctor = get_doctor(db, doctor_id)
    now = now or datetime.now()

    slots = generate_slots(doctor.work_start, doctor.work_end, doctor.slot_duration_minutes)
    taken = taken_times(db, doctor_id, appointment_date)

    free = [
        slot for slot in slots
        if slot not in taken and datetime.combine(appointment_date, slot) > now
    ]

    logger.info(
        f"Doctor {doctor_id} on {appointment_date}: "
        f"{len(free)} of {len(slots)} slots available"
    )
    return free
