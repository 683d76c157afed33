"""
Healthcare Appointment Scheduling

A FastAPI-based backend for booking medical appointments, with JWT
authentication, doctor availability, double-booking prevention and a
role-aware appointment lifecycle.
"""

__version__ = "1.0.0"
