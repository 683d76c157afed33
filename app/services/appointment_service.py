from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import func
from datetime import date, datetime, time
from typing import List, Optional
import logging

from ..core.config import settings
from ..core.database import transaction
from ..core.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, StorageError, ValidationError
)
from ..core.security import UserRole
from ..models.appointment import Appointment, AppointmentStatus
from .appointment_rules import Actor, allowed_sources
from .scheduling import generate_slots, get_doctor, has_conflict, has_patient_conflict

logger = logging.getLogger(__name__)

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def book(
        self,
        actor: Actor,
        doctor_id: int,
        appointment_date: Optional[date],
        appointment_time: Optional[time],
        reason: Optional[str],
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Appointment:
        """Create a pending appointment for the calling patient."""
        if actor.role != UserRole.PATIENT or actor.profile_id is None:
            raise AuthorizationError("Only patients can book appointments")

        if appointment_date is None or appointment_time is None or reason is None:
            raise ValidationError("Doctor, date, time and reason are required")

        reason = reason.strip()
        if len(reason) < settings.MIN_REASON_LENGTH:
            raise ValidationError(
                f"Reason must be at least {settings.MIN_REASON_LENGTH} characters long"
            )

        appointment_time = appointment_time.replace(second=0, microsecond=0, tzinfo=None)
        now = now or datetime.now()
        if datetime.combine(appointment_date, appointment_time) <= now:
            raise ValidationError("Appointments must be scheduled in the future")

        with transaction(self.db):
            doctor = get_doctor(self.db, doctor_id)

            slots = generate_slots(
                doctor.work_start, doctor.work_end, doctor.slot_duration_minutes
            )
            if appointment_time not in slots:
                raise ValidationError(
                    f"{appointment_time:%H:%M} is not one of the doctor's "
                    f"{doctor.slot_duration_minutes} minute slots"
                )

            if has_conflict(self.db, doctor_id, appointment_date, appointment_time):
                logger.warning(
                    f"Booking rejected: doctor {doctor_id} already booked at "
                    f"{appointment_date} {appointment_time}"
                )
                raise ConflictError("The doctor already has an appointment at that time")

            if has_patient_conflict(self.db, actor.profile_id, appointment_date, appointment_time):
                logger.warning(
                    f"Booking rejected: patient {actor.profile_id} already booked at "
                    f"{appointment_date} {appointment_time}"
                )
                raise ConflictError("You already have an appointment at that time")

            appointment = Appointment(
                patient_id=actor.profile_id,
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                reason=reason,
                notes=notes.strip() if notes and notes.strip() else None,
                status=AppointmentStatus.PENDING
            )
            self.db.add(appointment)

            try:
                self.db.flush()
            except IntegrityError as exc:
                # A concurrent booking took the slot between check and insert
                raise ConflictError("That time slot was just taken") from exc

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} booked: patient {actor.profile_id} with doctor "
            f"{doctor_id} at {appointment_date} {appointment_time}"
        )
        return appointment

    def change_status(
        self,
        actor: Actor,
        appointment_id: int,
        new_status: AppointmentStatus,
        reason: Optional[str] = None
    ) -> Appointment:
        """Apply one transition from the table in appointment_rules.

        The update only touches the row if its stored status is still one of
        the allowed source statuses and, for non-admins, the actor owns it.
        """
        try:
            new_status = AppointmentStatus(new_status)
        except ValueError:
            raise ValidationError(
                f"Invalid status. Use one of: {', '.join(s.value for s in AppointmentStatus)}"
            )

        sources = allowed_sources(actor, new_status)

        values = {
            Appointment.status: new_status,
            Appointment.updated_at: func.now(),
        }
        if new_status == AppointmentStatus.CANCELLED and reason:
            values[Appointment.cancelled_reason] = reason.strip()[:255]

        with transaction(self.db):
            query = self.db.query(Appointment).filter(
                Appointment.id == appointment_id,
                Appointment.status.in_(list(sources))
            )
            if actor.role == UserRole.PATIENT:
                query = query.filter(Appointment.patient_id == actor.profile_id)
            elif actor.role == UserRole.DOCTOR:
                query = query.filter(Appointment.doctor_id == actor.profile_id)

            try:
                updated = query.update(values, synchronize_session=False)
            except IntegrityError as exc:
                raise ConflictError("That time slot has been booked again in the meantime") from exc

        if updated == 0:
            self._explain_rejection(actor, appointment_id)

        appointment = self._get(appointment_id)
        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment_id} set to '{new_status.value}' by "
            f"{actor.role.value} {actor.user_id}"
        )
        return appointment

    def list_for(self, actor: Actor) -> List[Appointment]:
        """Appointments visible to the actor, earliest first."""
        query = self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor)
        )
        if actor.role == UserRole.PATIENT:
            query = query.filter(Appointment.patient_id == actor.profile_id)
        elif actor.role == UserRole.DOCTOR:
            query = query.filter(Appointment.doctor_id == actor.profile_id)

        try:
            return query.order_by(
                Appointment.appointment_date.asc(),
                Appointment.appointment_time.asc()
            ).all()
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def get_for(self, actor: Actor, appointment_id: int) -> Appointment:
        """Single appointment, if the actor is allowed to see it."""
        appointment = self._get(appointment_id)
        if not self._owns(actor, appointment):
            raise AuthorizationError("You do not have access to this appointment")
        return appointment

    def _get(self, appointment_id: int) -> Appointment:
        try:
            appointment = self.db.get(Appointment, appointment_id)
        except SQLAlchemyError as exc:
            raise StorageError() from exc

        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def _owns(actor: Actor, appointment: Appointment) -> bool:
        if actor.is_admin:
            return True
        if actor.role == UserRole.PATIENT:
            return appointment.patient_id == actor.profile_id
        if actor.role == UserRole.DOCTOR:
            return appointment.doctor_id == actor.profile_id
        return False

    def _explain_rejection(self, actor: Actor, appointment_id: int) -> None:
        """Raise the error matching a transition that touched no row."""
        appointment = self._get(appointment_id)
        if not self._owns(actor, appointment):
            raise AuthorizationError("You do not have access to this appointment")

        logger.info(
            f"Transition on appointment {appointment_id} ignored: "
            f"status is already '{appointment.status.value}'"
        )
        raise NotFoundError(
            f"No eligible appointment: it is already '{appointment.status.value}'"
        )
