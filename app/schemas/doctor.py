from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date as date_type, time as time_type

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    specialization: str
    bio: Optional[str] = None
    work_start: Optional[time_type] = None
    work_end: Optional[time_type] = None
    slot_duration_minutes: int

class ScheduleUpdate(BaseModel):
    work_start: time_type
    work_end: time_type
    slot_duration_minutes: int = 30

class AvailabilityResponse(BaseModel):
    doctor_id: int
    date: date_type
    slot_duration_minutes: int
    slots: List[time_type]
    total: int
