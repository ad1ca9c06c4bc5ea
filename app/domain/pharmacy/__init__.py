# Pharmacy dispensing domain module
from app.domain.pharmacy.models import (
    Prescription,
    PrescriptionEntry,
    PrescriptionStatus,
    PharmacyDispensing,
    DispensingItem,
    DispensingKind,
    derive_prescription_status,
)

__all__ = [
    "Prescription",
    "PrescriptionEntry",
    "PrescriptionStatus",
    "PharmacyDispensing",
    "DispensingItem",
    "DispensingKind",
    "derive_prescription_status",
]
