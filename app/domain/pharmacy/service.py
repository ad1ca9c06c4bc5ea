"""
Pharmacy Dispensing Service

Resolves a patient's latest prescriptions against stock, dispenses from
valid batches and keeps each prescription's status in line with its entries.
Every public operation is a single transaction: stock, entries, status and
ledger rows are committed together or rolled back together.
"""

from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    ValidationError, NotFoundError, InsufficientStockError, handle_database_error
)
from app.domain.inventory.models import Medicine, StockBatch
from app.domain.inventory.repository import MedicineRepository
from app.domain.inventory.service import serialize_batch, parse_numeric_id
from app.domain.patients.models import Patient
from app.domain.patients.repository import PatientRepository, ConsultationRepository
from app.domain.pharmacy.models import (
    Prescription, PrescriptionEntry, PharmacyDispensing, DispensingItem, DispensingKind
)
from app.domain.pharmacy.repository import PrescriptionRepository, DispensingRepository

logger = logging.getLogger(__name__)


def parse_patient_id(value: Optional[str]) -> int:
    if value is None or not str(value).strip():
        raise ValidationError("Search query is required.")
    value = str(value).strip()
    patient_id = parse_numeric_id(value)
    if patient_id is None:
        raise ValidationError("Invalid patient identifier.", details={"searchById": value})
    return patient_id


def parse_record_id(value: str, label: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise ValidationError(f"Invalid {label} identifier.", details={f"{label}_id": value})


def draw_from_batches(batches: Iterable[StockBatch], required: int) -> List[Dict[str, Any]]:
    """
    Take up to `required` units from `batches` in the given order.

    Each batch gives min(required, batch.quantity); quantities are decremented
    in place. Returns one {batch_no, taken} record per batch touched.
    """
    draws = []
    for batch in batches:
        if required <= 0:
            break
        take = min(required, batch.quantity)
        if take <= 0:
            continue
        batch.quantity -= take
        required -= take
        draws.append({"batch_no": batch.batch_no, "taken": take})
    return draws


def outstanding_draws(items: Iterable[DispensingItem]) -> List[List]:
    """
    Replay an entry's ledger and return the [batch_no, quantity] draws that
    have not been returned yet, oldest first. A return cancels the most
    recent outstanding draw from the same batch.
    """
    stack: List[List] = []
    for item in items:
        if item.dispensing.kind == DispensingKind.DISPENSE:
            stack.append([item.batch_no, item.quantity])
            continue

        remaining = item.quantity
        for draw in reversed(stack):
            if remaining <= 0:
                break
            if draw[0] != item.batch_no:
                continue
            take = min(remaining, draw[1])
            draw[1] -= take
            remaining -= take
        stack = [draw for draw in stack if draw[1] > 0]
    return stack


def patient_summary(patient: Patient) -> Dict[str, Any]:
    return {
        "id": patient.id,
        "name": patient.name,
        "email": patient.email,
        "phone_number": patient.phone_number,
        "gender": patient.gender,
        "date_of_birth": patient.date_of_birth,
        "blood_group": patient.blood_group,
    }


class DispensingService:
    """Service layer for the pharmacy dispensing workflow"""

    def __init__(self, db: Session):
        self.db = db
        self.patient_repo = PatientRepository(db)
        self.consultation_repo = ConsultationRepository(db)
        self.prescription_repo = PrescriptionRepository(db)
        self.dispensing_repo = DispensingRepository(db)
        self.medicine_repo = MedicineRepository(db)

    @contextmanager
    def _unit_of_work(self, operation: str):
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, operation) from e
        except Exception:
            self.db.rollback()
            raise

    # ==================== Search / dispense ====================

    def search_patient_prescriptions(
        self,
        search_by_id: Optional[str],
        dispense: bool = False,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Resolve the prescriptions of the patient's latest consultation.

        With dispense=False this is a preview and nothing is written. With
        dispense=True every entry still owed units is filled greedily from
        its medicine's valid batches in stored order.
        """
        patient_id = parse_patient_id(search_by_id)
        today = today or date.today()

        with self._unit_of_work("search patient prescriptions"):
            patient = self.patient_repo.get_by_id(patient_id)
            if not patient:
                raise NotFoundError("Patient not found.", details={"patient_id": patient_id})

            consultation = self.consultation_repo.get_latest_for_patient(patient_id)
            if not consultation:
                raise NotFoundError(
                    "No consultation found for this patient.",
                    details={"patient_id": patient_id}
                )

            prescriptions = self.prescription_repo.get_for_consultation(consultation.id, for_update=dispense)
            if not prescriptions:
                raise NotFoundError(
                    "No prescriptions found for the latest consultation.",
                    details={"patient_id": patient_id, "consultation_id": consultation.id}
                )

            prescribed_medicines = []
            for prescription in prescriptions:
                prescribed_medicines.extend(self._process_prescription(prescription, dispense, today))

        return {
            "patient": patient_summary(patient),
            "consultation_id": consultation.id,
            "prescribed_medicines": prescribed_medicines,
        }

    def _process_prescription(
        self,
        prescription: Prescription,
        dispense: bool,
        today: date
    ) -> List[Dict[str, Any]]:
        rows = []
        ledger_items = []

        for entry in prescription.entries:
            medicine = self.medicine_repo.get_by_id(entry.medicine_id, for_update=dispense)
            if medicine is None:
                logger.warning(
                    "Skipping entry %s of prescription %s: medicine %s not found",
                    entry.id, prescription.id, entry.medicine_id
                )
                continue

            draws = []
            required = entry.remaining_qty
            if dispense and required > 0:
                draws = draw_from_batches(medicine.valid_batches(today), required)
                entry.dispensed_qty += sum(draw["taken"] for draw in draws)
                ledger_items.extend(
                    {
                        "entry_id": entry.id,
                        "medicine_id": medicine.id,
                        "batch_no": draw["batch_no"],
                        "quantity": draw["taken"],
                    }
                    for draw in draws
                )

            rows.append(self._entry_view(prescription, entry, medicine, draws, today))

        if dispense:
            prescription.refresh_status()
            if ledger_items:
                self.dispensing_repo.create(prescription, DispensingKind.DISPENSE, ledger_items)
                logger.info(
                    "Dispensed %d units across %d batch draws for prescription %s (status %s)",
                    sum(item["quantity"] for item in ledger_items),
                    len(ledger_items),
                    prescription.id,
                    prescription.status.value,
                )

        for row in rows:
            row["prescription_status"] = prescription.status
        return rows

    def _entry_view(
        self,
        prescription: Prescription,
        entry: PrescriptionEntry,
        medicine: Medicine,
        draws: List[Dict[str, Any]],
        today: date
    ) -> Dict[str, Any]:
        return {
            "prescription_id": prescription.id,
            "prescription_date": prescription.prescription_date,
            "prescription_status": prescription.status,
            "entry_id": entry.id,
            "medicine_id": medicine.id,
            "medicine_name": medicine.name or "Unknown",
            "dosage_form": medicine.dosage_form,
            "manufacturer": medicine.manufacturer,
            "available": bool(medicine.available),
            "dosage": entry.dosage,
            "frequency": entry.frequency,
            "duration": entry.duration,
            "quantity": entry.quantity,
            "dispensed_qty": entry.dispensed_qty,
            "valid_batches": [serialize_batch(batch) for batch in medicine.valid_batches(today)],
            "dispensed_from": draws,
        }

    # ==================== Entry correction ====================

    def update_entry_dispensed_quantity(
        self,
        prescription_id: str,
        entry_id: str,
        dispensed_qty: Optional[int],
        today: Optional[date] = None
    ) -> Dict[str, str]:
        """
        Set an entry's dispensed quantity to an absolute value.

        Raising it draws the difference from valid stock and fails without
        side effects when stock is short. Lowering it returns the units to
        the batches they were last drawn from.
        """
        prescription_id = parse_record_id(prescription_id, "prescription")
        entry_id = parse_record_id(entry_id, "entry")
        today = today or date.today()

        with self._unit_of_work("update dispensed quantity"):
            prescription = self.prescription_repo.get_by_id(prescription_id, for_update=True)
            if not prescription:
                raise NotFoundError("Prescription not found.", details={"prescription_id": prescription_id})

            entry = prescription.find_entry(entry_id)
            if not entry:
                raise NotFoundError("Prescription entry not found.", details={"entry_id": entry_id})

            if dispensed_qty is None or isinstance(dispensed_qty, bool) or dispensed_qty < 0:
                raise ValidationError("Valid dispensed quantity is required.")

            if dispensed_qty > entry.quantity:
                raise ValidationError(
                    "Dispensed quantity cannot exceed prescribed quantity.",
                    details={"dispensed_qty": dispensed_qty, "quantity": entry.quantity}
                )

            medicine = self.medicine_repo.get_by_id(entry.medicine_id, for_update=True)
            if not medicine:
                raise NotFoundError("Medicine not found.", details={"medicine_id": entry.medicine_id})

            delta = dispensed_qty - entry.dispensed_qty
            if delta > 0:
                self._dispense_additional(prescription, entry, medicine, delta, today)
            elif delta < 0:
                self._return_units(prescription, entry, medicine, -delta)

            entry.dispensed_qty = dispensed_qty
            prescription.refresh_status()

        return {"message": "Dispensed quantity updated successfully."}

    def _dispense_additional(
        self,
        prescription: Prescription,
        entry: PrescriptionEntry,
        medicine: Medicine,
        quantity: int,
        today: date
    ) -> None:
        valid = medicine.valid_batches(today)
        available = sum(batch.quantity for batch in valid)
        if available < quantity:
            logger.warning(
                "Insufficient stock for medicine %s: requested %d, available %d",
                medicine.id, quantity, available
            )
            raise InsufficientStockError(requested=quantity, available=available, medicine_id=medicine.id)

        draws = draw_from_batches(valid, quantity)
        self.dispensing_repo.create(
            prescription,
            DispensingKind.DISPENSE,
            [
                {
                    "entry_id": entry.id,
                    "medicine_id": medicine.id,
                    "batch_no": draw["batch_no"],
                    "quantity": draw["taken"],
                }
                for draw in draws
            ],
            notes="Dispensed quantity corrected upward",
        )
        logger.info("Dispensed %d more units of medicine %s for entry %s", quantity, medicine.id, entry.id)

    def _return_units(
        self,
        prescription: Prescription,
        entry: PrescriptionEntry,
        medicine: Medicine,
        quantity: int
    ) -> None:
        outstanding = outstanding_draws(self.dispensing_repo.items_for_entry(entry))

        remaining = quantity
        returned = []
        for batch_no, drawn in reversed(outstanding):
            if remaining <= 0:
                break
            batch = medicine.find_batch(batch_no)
            if batch is None:
                continue
            give_back = min(remaining, drawn)
            batch.quantity += give_back
            remaining -= give_back
            returned.append({
                "entry_id": entry.id,
                "medicine_id": medicine.id,
                "batch_no": batch_no,
                "quantity": give_back,
            })

        if returned:
            self.dispensing_repo.create(
                prescription,
                DispensingKind.RETURN,
                returned,
                notes="Dispensed quantity corrected downward",
            )
            logger.info(
                "Returned %d units of medicine %s to stock for entry %s",
                quantity - remaining, medicine.id, entry.id
            )
        if remaining:
            logger.warning(
                "%d units of entry %s have no dispensing record and were not restocked",
                remaining, entry.id
            )

    # ==================== Ledger ====================

    def get_dispensing_history(self, prescription_id: str) -> List[PharmacyDispensing]:
        prescription_id = parse_record_id(prescription_id, "prescription")
        prescription = self.prescription_repo.get_by_id(prescription_id)
        if not prescription:
            raise NotFoundError("Prescription not found.", details={"prescription_id": prescription_id})
        return self.dispensing_repo.list_for_prescription(prescription_id)
