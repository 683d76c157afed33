"""Who may move an appointment into which status, and from where."""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..core.exceptions import AuthorizationError
from ..core.security import UserRole
from ..models.appointment import AppointmentStatus

PENDING = AppointmentStatus.PENDING
CONFIRMED = AppointmentStatus.CONFIRMED
COMPLETED = AppointmentStatus.COMPLETED
CANCELLED = AppointmentStatus.CANCELLED

ALL_STATUSES = frozenset(AppointmentStatus)
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# role -> target status -> statuses the appointment may currently be in
TRANSITIONS: Dict[UserRole, Dict[AppointmentStatus, FrozenSet[AppointmentStatus]]] = {
    UserRole.DOCTOR: {
        CONFIRMED: frozenset({PENDING}),
        CANCELLED: frozenset({PENDING}),
        COMPLETED: frozenset({PENDING, CONFIRMED}),
    },
    UserRole.PATIENT: {
        CANCELLED: frozenset({PENDING, CONFIRMED}),
    },
    # Administrators override any status, terminal ones included
    UserRole.ADMIN: {target: ALL_STATUSES for target in AppointmentStatus},
}


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as seen by the scheduling services."""
    user_id: int
    role: UserRole
    profile_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def allowed_sources(actor: Actor, target: AppointmentStatus) -> FrozenSet[AppointmentStatus]:
    """Statuses from which ``actor`` may move an appointment to ``target``.

    Raises AuthorizationError when the role has no rule for ``target``.
    """
    sources = TRANSITIONS.get(actor.role, {}).get(target)
    if not sources:
        raise AuthorizationError(
            f"Role '{actor.role.value}' cannot set appointments to '{target.value}'"
        )
    if not actor.is_admin and actor.profile_id is None:
        raise AuthorizationError("Account has no patient or doctor profile")
    return sources
