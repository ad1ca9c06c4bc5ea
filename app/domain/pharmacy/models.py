from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Text, Enum, CheckConstraint,
    UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from sqlalchemy.ext.orderinglist import ordering_list
from typing import Iterable, Optional
import uuid
import enum

from app.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class PrescriptionStatus(str, enum.Enum):
    """Dispensing status of a prescription"""
    PENDING = "pending"
    PARTIALLY_DISPENSED = "partially_dispensed"
    DISPENSED = "dispensed"


class DispensingKind(str, enum.Enum):
    DISPENSE = "dispense"
    RETURN = "return"


def derive_prescription_status(entries: Iterable["PrescriptionEntry"]) -> PrescriptionStatus:
    """Status from the entries' dispensed/prescribed quantities alone"""
    entries = list(entries)
    if entries and all(entry.dispensed_qty >= entry.quantity for entry in entries):
        return PrescriptionStatus.DISPENSED
    if any(entry.dispensed_qty > 0 for entry in entries):
        return PrescriptionStatus.PARTIALLY_DISPENSED
    return PrescriptionStatus.PENDING


class Prescription(Base):
    """Prescription written during a consultation"""
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    consultation_id = Column(String(36), ForeignKey("consultations.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    prescription_date = Column(DateTime, default=func.now())
    status = Column(Enum(PrescriptionStatus), nullable=False, default=PrescriptionStatus.PENDING)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    consultation = relationship("Consultation", back_populates="prescriptions")
    patient = relationship("Patient")
    entries = relationship(
        "PrescriptionEntry",
        back_populates="prescription",
        order_by="PrescriptionEntry.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
    dispensings = relationship(
        "PharmacyDispensing",
        back_populates="prescription",
        order_by="desc(PharmacyDispensing.sequence_no)",
    )

    def find_entry(self, entry_id: str) -> Optional["PrescriptionEntry"]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def refresh_status(self) -> PrescriptionStatus:
        self.status = derive_prescription_status(self.entries)
        return self.status


class PrescriptionEntry(Base):
    """One medicine line of a prescription"""
    __tablename__ = "prescription_entries"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_prescription_entries_quantity_positive"),
        CheckConstraint(
            "dispensed_qty >= 0 AND dispensed_qty <= quantity",
            name="ck_prescription_entries_dispensed_within_quantity"
        ),
    )

    id = Column(String(36), primary_key=True, default=gen_uuid)
    prescription_id = Column(String(36), ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Medicines may be removed from the catalogue, so no FK constraint here
    medicine_id = Column(Integer, nullable=False, index=True)
    dosage = Column(String(100), nullable=False)
    frequency = Column(String(100), nullable=False)
    duration = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    dispensed_qty = Column(Integer, nullable=False, default=0)

    prescription = relationship("Prescription", back_populates="entries")

    @property
    def remaining_qty(self) -> int:
        return self.quantity - self.dispensed_qty


class PharmacyDispensing(Base):
    """Ledger record of one stock movement against a prescription"""
    __tablename__ = "pharmacy_dispensing"
    __table_args__ = (
        UniqueConstraint("prescription_id", "sequence_no", name="uq_pharmacy_dispensing_sequence"),
    )

    id = Column(String(36), primary_key=True, default=gen_uuid)
    prescription_id = Column(String(36), ForeignKey("prescriptions.id"), nullable=False, index=True)
    sequence_no = Column(Integer, nullable=False)
    patient_id = Column(Integer, nullable=False)
    kind = Column(Enum(DispensingKind), nullable=False, default=DispensingKind.DISPENSE)
    dispensed_by = Column(String(36), nullable=True)
    dispensed_at = Column(DateTime, default=func.now())
    notes = Column(Text, nullable=True)

    prescription = relationship("Prescription", back_populates="dispensings")
    items = relationship(
        "DispensingItem",
        back_populates="dispensing",
        order_by="DispensingItem.id",
        cascade="all, delete-orphan",
    )


class DispensingItem(Base):
    """Units moved between one batch and one prescription entry"""
    __tablename__ = "dispensing_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_dispensing_items_quantity_positive"),
    )

    # Integer key keeps items in the order they were written
    id = Column(Integer, primary_key=True, autoincrement=True)
    dispensing_id = Column(String(36), ForeignKey("pharmacy_dispensing.id"), nullable=False, index=True)
    entry_id = Column(String(36), ForeignKey("prescription_entries.id"), nullable=False, index=True)
    medicine_id = Column(Integer, nullable=False)
    batch_no = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)

    dispensing = relationship("PharmacyDispensing", back_populates="items")
