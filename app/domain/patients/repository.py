from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from app.domain.patients.models import Patient, Consultation


class PatientRepository:
    """Repository for patient data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, patient_id: int) -> Optional[Patient]:
        """Get patient by ID"""
        return self.db.get(Patient, patient_id)


class ConsultationRepository:
    """Repository for consultation lookups"""

    def __init__(self, db: Session):
        self.db = db

    def get_latest_for_patient(self, patient_id: int) -> Optional[Consultation]:
        """Most recent consultation by actual start time"""
        result = self.db.execute(
            select(Consultation)
            .where(Consultation.patient_id == patient_id)
            .order_by(Consultation.actual_start_datetime.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
