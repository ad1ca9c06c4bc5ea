# Imported by init_db and alembic so every table is registered on Base.metadata
from app.domain.patients.models import Patient, Consultation
from app.domain.inventory.models import Medicine, StockBatch
from app.domain.pharmacy.models import Prescription, PrescriptionEntry, PharmacyDispensing, DispensingItem

__all__ = [
    "Patient",
    "Consultation",
    "Medicine",
    "StockBatch",
    "Prescription",
    "PrescriptionEntry",
    "PharmacyDispensing",
    "DispensingItem",
]
