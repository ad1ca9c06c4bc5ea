# Patients domain module
from app.domain.patients.models import Patient, Consultation, Gender

__all__ = [
    "Patient",
    "Consultation",
    "Gender",
]
