from sqlalchemy.orm import Session
from sqlalchemy import or_, select
import logging

from ..core.database import transaction
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.security import UserRole
from ..models.appointment import Appointment
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from .appointment_rules import Actor

logger = logging.getLogger(__name__)

class AccountService:
    def __init__(self, db: Session):
        self.db = db

    def delete_user(self, actor: Actor, user_id: int) -> int:
        """Delete an account together with its profile and appointments.

        Runs as one transaction: either the user, its profile and every
        appointment that references the profile are gone, or nothing is.
        Returns the number of appointments removed.
        """
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        if actor.user_id == user_id:
            raise ValidationError("You cannot delete your own account")

        with transaction(self.db):
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")

            if user.role == UserRole.ADMIN:
                raise AuthorizationError("Administrators cannot be deleted")

            patient_ids = select(Patient.id).where(Patient.user_id == user_id)
            doctor_ids = select(Doctor.id).where(Doctor.user_id == user_id)

            removed = self.db.query(Appointment).filter(
                or_(
                    Appointment.patient_id.in_(patient_ids),
                    Appointment.doctor_id.in_(doctor_ids)
                )
            ).delete(synchronize_session=False)

            self.db.query(Patient).filter(Patient.user_id == user_id).delete(synchronize_session=False)
            self.db.query(Doctor).filter(Doctor.user_id == user_id).delete(synchronize_session=False)
            self._delete_user_row(user_id)

        logger.info(f"User {user_id} deleted by admin {actor.user_id}; {removed} appointments removed")
        return removed

    def _delete_user_row(self, user_id: int) -> None:
        self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
