from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
import logging

from ..core.config import settings
from ..core.database import transaction
from ..models.user import User
from ..models.patient import Patient
from ..models.doctor import Doctor
from ..core.security import (
    verify_password, get_password_hash, create_user_token, UserRole
)
from ..schemas.auth import UserLogin, UserRegister, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new user together with its patient or doctor profile."""
        # Check if user already exists
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        with transaction(self.db):
            new_user = User(
                email=user_data.email,
                password_hash=get_password_hash(user_data.password),
                role=user_data.role,
                is_active=True
            )
            self.db.add(new_user)

            if user_data.role == UserRole.DOCTOR:
                new_user.doctor = Doctor(
                    first_name=user_data.first_name,
                    last_name=user_data.last_name,
                    specialization=user_data.specialization or "General Medicine",
                    slot_duration_minutes=settings.DEFAULT_SLOT_DURATION_MINUTES
                )
            else:
                new_user.patient = Patient(
                    first_name=user_data.first_name,
                    last_name=user_data.last_name
                )

            try:
                self.db.flush()
            except IntegrityError as exc:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered"
                ) from exc

        self.db.refresh(new_user)
        logger.info(f"Registered {new_user.role.value} account {new_user.id}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return an access token."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        # Verify password
        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login for {login_data.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        with transaction(self.db):
            user.last_login = datetime.utcnow()

        token = create_user_token(user.id, user.email, user.role)

        return TokenResponse(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            user=UserResponse.model_validate(user)
        )
