from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date as date_type, time as time_type, datetime

from ..models.appointment import AppointmentStatus

class AppointmentCreate(BaseModel):
    doctor_id: int
    date: date_type
    time: time_type
    reason: str = Field(..., max_length=2000)
    notes: Optional[str] = Field(None, max_length=2000)

class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = Field(None, max_length=255)

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialization: Optional[str] = None
    appointment_date: date_type
    appointment_time: time_type
    status: AppointmentStatus
    reason: str
    notes: Optional[str] = None
    cancelled_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
