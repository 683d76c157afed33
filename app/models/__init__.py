from .user import User
from .patient import Patient
from .doctor import Doctor
from .appointment import Appointment, AppointmentStatus

__all__ = ["User", "Patient", "Doctor", "Appointment", "AppointmentStatus"]
