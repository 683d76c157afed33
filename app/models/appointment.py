from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Time, Text, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Rows matching this predicate hold their slot
_HOLDS_SLOT = text("status <> 'cancelled'")

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_doctor_slot",
            "doctor_id", "appointment_date", "appointment_time",
            unique=True,
            postgresql_where=_HOLDS_SLOT,
            sqlite_where=_HOLDS_SLOT,
        ),
        Index(
            "uq_appointments_patient_slot",
            "patient_id", "appointment_date", "appointment_time",
            unique=True,
            postgresql_where=_HOLDS_SLOT,
            sqlite_where=_HOLDS_SLOT,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    status = Column(
        SQLEnum(
            AppointmentStatus,
            name="appointment_status",
            values_callable=lambda statuses: [s.value for s in statuses]
        ),
        nullable=False,
        default=AppointmentStatus.PENDING
    )
    reason = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    cancelled_reason = Column(String(255), nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")

    @property
    def patient_name(self):
        return self.patient.full_name if self.patient else None

    @property
    def doctor_name(self):
        return self.doctor.full_name if self.doctor else None

    @property
    def doctor_specialization(self):
        return self.doctor.specialization if self.doctor else None

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, "
            f"date='{self.appointment_date}', time='{self.appointment_time}', status='{self.status}')>"
        )
