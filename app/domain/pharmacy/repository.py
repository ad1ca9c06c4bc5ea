from typing import Optional, List
from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from app.domain.pharmacy.models import (
    Prescription, PrescriptionEntry, PharmacyDispensing, DispensingItem, DispensingKind
)


class PrescriptionRepository:
    """Repository for prescriptions and their entries"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, prescription_id: str, for_update: bool = False) -> Optional[Prescription]:
        query = (
            select(Prescription)
            .options(selectinload(Prescription.entries))
            .where(Prescription.id == prescription_id)
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalar_one_or_none()

    def get_for_consultation(self, consultation_id: str, for_update: bool = False) -> List[Prescription]:
        """Prescriptions of a consultation, newest first"""
        query = (
            select(Prescription)
            .options(selectinload(Prescription.entries))
            .where(Prescription.consultation_id == consultation_id)
            .order_by(Prescription.prescription_date.desc(), Prescription.created_at.desc())
        )
        if for_update:
            query = query.with_for_update()
        return list(self.db.execute(query).scalars().all())


class DispensingRepository:
    """Repository for the dispensing ledger"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        prescription: Prescription,
        kind: DispensingKind,
        items: List[dict],
        notes: Optional[str] = None
    ) -> PharmacyDispensing:
        """Write a ledger record with its items; the caller commits"""
        last = self.db.execute(
            select(func.max(PharmacyDispensing.sequence_no))
            .where(PharmacyDispensing.prescription_id == prescription.id)
        ).scalar()

        dispensing = PharmacyDispensing(
            prescription_id=prescription.id,
            patient_id=prescription.patient_id,
            sequence_no=(last or 0) + 1,
            kind=kind,
            notes=notes,
        )
        for it in items:
            dispensing.items.append(DispensingItem(**it))

        self.db.add(dispensing)
        self.db.flush()
        return dispensing

    def list_for_prescription(self, prescription_id: str) -> List[PharmacyDispensing]:
        result = self.db.execute(
            select(PharmacyDispensing)
            .options(selectinload(PharmacyDispensing.items))
            .where(PharmacyDispensing.prescription_id == prescription_id)
            .order_by(PharmacyDispensing.sequence_no.desc())
        )
        return list(result.scalars().all())

    def items_for_entry(self, entry: PrescriptionEntry) -> List[DispensingItem]:
        """Ledger items of an entry in the order they were written"""
        result = self.db.execute(
            select(DispensingItem)
            .options(selectinload(DispensingItem.dispensing))
            .where(DispensingItem.entry_id == entry.id)
            .order_by(DispensingItem.id)
        )
        return list(result.scalars().all())
