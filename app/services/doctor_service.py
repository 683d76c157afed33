from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import time
from typing import List
import logging

from ..core.database import transaction
from ..core.exceptions import AuthorizationError, StorageError
from ..core.security import UserRole
from ..models.doctor import Doctor
from .appointment_rules import Actor
from .scheduling import get_doctor, validate_schedule

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def list_doctors(self) -> List[Doctor]:
        """All doctors, ordered by name."""
        try:
            return self.db.query(Doctor).order_by(
                Doctor.last_name.asc(), Doctor.first_name.asc()
            ).all()
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def update_schedule(
        self,
        actor: Actor,
        work_start: time,
        work_end: time,
        slot_duration_minutes: int
    ) -> Doctor:
        """Replace the calling doctor's working window and slot length."""
        if actor.role != UserRole.DOCTOR or actor.profile_id is None:
            raise AuthorizationError("Only doctors can change their schedule")

        work_start = work_start.replace(second=0, microsecond=0, tzinfo=None)
        work_end = work_end.replace(second=0, microsecond=0, tzinfo=None)
        validate_schedule(work_start, work_end, slot_duration_minutes)

        with transaction(self.db):
            doctor = get_doctor(self.db, actor.profile_id)
            doctor.work_start = work_start
            doctor.work_end = work_end
            doctor.slot_duration_minutes = slot_duration_minutes

        self.db.refresh(doctor)
        logger.info(
            f"Doctor {doctor.id} schedule set to {work_start:%H:%M}-{work_end:%H:%M}, "
            f"{slot_duration_minutes} min slots"
        )
        return doctor
