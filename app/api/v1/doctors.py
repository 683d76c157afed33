from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_actor, get_doctor_actor
from ...services.appointment_rules import Actor
from ...services.doctor_service import DoctorService
from ...services.scheduling import available_slots, get_doctor
from ...schemas.doctor import AvailabilityResponse, DoctorResponse, ScheduleUpdate

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
def list_doctors(
    db: Session = Depends(get_db),
    _: Actor = Depends(get_current_actor)
):
    """Doctors patients can book with."""
    return [DoctorResponse.model_validate(d) for d in DoctorService(db).list_doctors()]

@router.get("/{doctor_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    _: Actor = Depends(get_current_actor)
):
    """Free slot start times for one doctor on one day."""
    doctor = get_doctor(db, doctor_id)
    slots = available_slots(db, doctor_id, day)
    return AvailabilityResponse(
        doctor_id=doctor_id,
        date=day,
        slot_duration_minutes=doctor.slot_duration_minutes,
        slots=slots,
        total=len(slots)
    )

@router.put("/me/schedule", response_model=DoctorResponse)
def update_my_schedule(
    data: ScheduleUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_doctor_actor)
):
    """Set the calling doctor's working hours and appointment length."""
    doctor = DoctorService(db).update_schedule(
        actor, data.work_start, data.work_end, data.slot_duration_minutes
    )
    return DoctorResponse.model_validate(doctor)
