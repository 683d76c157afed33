from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_actor, get_patient_actor
from ...services.appointment_rules import Actor
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentStatusUpdate

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_patient_actor)
):
    """Request an appointment; it starts out pending until the doctor confirms."""
    service = AppointmentService(db)
    appointment = service.book(
        actor,
        doctor_id=data.doctor_id,
        appointment_date=data.date,
        appointment_time=data.time,
        reason=data.reason,
        notes=data.notes
    )
    return AppointmentResponse.model_validate(appointment)

@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Own appointments for patients and doctors, every appointment for admins."""
    service = AppointmentService(db)
    return [AppointmentResponse.model_validate(a) for a in service.list_for(actor)]

@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    service = AppointmentService(db)
    return AppointmentResponse.model_validate(service.get_for(actor, appointment_id))

@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def change_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Confirm, complete or cancel an appointment, subject to the caller's role."""
    service = AppointmentService(db)
    appointment = service.change_status(actor, appointment_id, data.status, reason=data.reason)
    return AppointmentResponse.model_validate(appointment)
