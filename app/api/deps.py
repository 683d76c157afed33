from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List

from ..core.database import get_db
from ..core.exceptions import AuthenticationError, AuthorizationError
from ..core.security import security, verify_token, UserRole, TokenPayload
from ..models.user import User
from ..services.appointment_rules import Actor

async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    token = credentials.credentials

    # Verify token
    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub:
        raise AuthenticationError("Invalid token payload")

    user = db.get(User, token_payload.sub)
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user

def get_current_actor(
    current_user: User = Depends(get_current_user)
) -> Actor:
    """The caller in the form the scheduling services expect."""
    return Actor(
        user_id=current_user.id,
        role=current_user.role,
        profile_id=current_user.profile_id
    )

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    async def role_checker(
        actor: Actor = Depends(get_current_actor)
    ) -> Actor:
        if actor.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return actor

    return role_checker

# Specific role dependencies
async def get_admin_actor(
    actor: Actor = Depends(require_role([UserRole.ADMIN]))
) -> Actor:
    """Require admin role."""
    return actor

async def get_doctor_actor(
    actor: Actor = Depends(require_role([UserRole.DOCTOR]))
) -> Actor:
    """Require doctor role."""
    return actor

async def get_patient_actor(
    actor: Actor = Depends(require_role([UserRole.PATIENT]))
) -> Actor:
    """Require patient role."""
    return actor
