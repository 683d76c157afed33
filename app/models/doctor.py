from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Time, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"
    __table_args__ = (
        CheckConstraint(
            "work_start IS NULL OR work_end IS NULL OR work_start < work_end",
            name="ck_doctors_work_window"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Personal information
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    specialization = Column(String(100), nullable=False)
    license_number = Column(String(50), nullable=True, unique=True)

    # Professional information
    bio = Column(Text, nullable=True)
    phone_number = Column(String(20), nullable=True)

    # Schedule; unset window bounds fall back to the configured defaults
    work_start = Column(Time, nullable=True)
    work_end = Column(Time, nullable=True)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    appointments = relationship("Appointment", back_populates="doctor")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.first_name} {self.last_name}', specialization='{self.specialization}')>"
