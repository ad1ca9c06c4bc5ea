from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime

from app.domain.inventory.models import DosageForm
from app.domain.patients.models import Gender
from app.domain.pharmacy.models import PrescriptionStatus, DispensingKind


class BatchView(BaseModel):
    """A valid batch with what is left in it"""
    batch_no: str
    expiry_date: date
    manufacturing_date: Optional[date] = None
    quantity: int
    unit_price: Optional[float] = None
    supplier: Optional[str] = None


class BatchDraw(BaseModel):
    batch_no: str
    taken: int


class PatientSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None


class PrescribedMedicine(BaseModel):
    """One prescription entry joined with its medicine and stock"""
    prescription_id: str
    prescription_date: Optional[datetime] = None
    prescription_status: PrescriptionStatus
    entry_id: str
    medicine_id: int
    medicine_name: str
    dosage_form: Optional[DosageForm] = None
    manufacturer: Optional[str] = None
    available: bool
    dosage: str
    frequency: str
    duration: str
    quantity: int
    dispensed_qty: int
    valid_batches: List[BatchView]
    dispensed_from: List[BatchDraw]


class PrescriptionSearchResponse(BaseModel):
    patient: PatientSummary
    consultation_id: str
    prescribed_medicines: List[PrescribedMedicine]


class DispensedQuantityUpdate(BaseModel):
    """Absolute dispensed quantity for one entry"""
    dispensed_qty: Optional[int] = None


class MessageResponse(BaseModel):
    message: str


class DispensingItemResponse(BaseModel):
    entry_id: str
    medicine_id: int
    batch_no: str
    quantity: int

    class Config:
        from_attributes = True


class DispensingResponse(BaseModel):
    id: str
    prescription_id: str
    sequence_no: int
    patient_id: int
    kind: DispensingKind
    dispensed_by: Optional[str] = None
    dispensed_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[DispensingItemResponse]

    class Config:
        from_attributes = True
