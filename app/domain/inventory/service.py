"""
Inventory Service Layer

Medicine registration, stock replenishment, inventory search and the
reorder workflow.
"""

from typing import Optional, List, Dict, Any, Tuple
from datetime import date
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    ValidationError, NotFoundError, ConflictError, handle_database_error
)
from app.domain.inventory.models import Medicine, StockBatch, OrderStatus
from app.domain.inventory.repository import MedicineRepository

logger = logging.getLogger(__name__)

BATCH_FIELDS = ("quantity", "expiry_date", "manufacturing_date", "unit_price", "supplier")
MEDICINE_FIELDS = ("name", "effectiveness", "dosage_form", "manufacturer", "available")

# Largest value an INTEGER / BIGINT id column can hold
MAX_RECORD_ID = 2 ** 63 - 1

# Allowed reorder transitions; None is a medicine that was never reordered
ORDER_STATUS_TRANSITIONS = {
    None: {OrderStatus.REQUESTED},
    OrderStatus.CANCELLED: {OrderStatus.REQUESTED},
    OrderStatus.REQUESTED: {OrderStatus.ORDERED, OrderStatus.CANCELLED},
    OrderStatus.ORDERED: {OrderStatus.CANCELLED},
}


def parse_numeric_id(value: str) -> Optional[int]:
    """ASCII digits within the id column range, else None"""
    if not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    return number if number <= MAX_RECORD_ID else None


def serialize_batch(batch: StockBatch) -> Dict[str, Any]:
    return {
        "batch_no": batch.batch_no,
        "quantity": batch.quantity,
        "expiry_date": batch.expiry_date,
        "manufacturing_date": batch.manufacturing_date,
        "unit_price": batch.unit_price,
        "supplier": batch.supplier,
    }


class InventoryService:
    """Service layer for medicine inventory"""

    def __init__(self, db: Session):
        self.db = db
        self.medicine_repo = MedicineRepository(db)

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, operation) from e

    def get_medicine(self, medicine_id: int) -> Medicine:
        medicine = self.medicine_repo.get_by_id(medicine_id)
        if not medicine:
            raise NotFoundError("Medicine not found.", details={"medicine_id": medicine_id})
        return medicine

    def register_medicine(self, medicine_data: dict, batches: List[dict]) -> Medicine:
        """Create a medicine with its initial stock batches"""
        batch_numbers = [b["batch_no"] for b in batches]
        if len(batch_numbers) != len(set(batch_numbers)):
            raise ValidationError(
                "Batch numbers must be unique within a medicine.",
                details={"batch_numbers": batch_numbers}
            )

        medicine = Medicine(**medicine_data)
        for batch in batches:
            medicine.batches.append(StockBatch(**batch))

        self.medicine_repo.add(medicine)
        self._commit("register medicine")
        logger.info("Registered medicine %s (%s) with %d batches", medicine.id, medicine.name, len(batches))
        return medicine

    def upsert_stock_batch(
        self,
        medicine_id: int,
        batch_data: dict,
        medicine_data: Optional[dict] = None
    ) -> Tuple[Medicine, bool]:
        """
        Add or update a stock batch.

        Creates the medicine when it does not exist yet. An existing batch with
        the same batch number has the supplied fields overwritten, anything left
        out keeps its stored value. Returns the medicine and whether it was
        created.
        """
        medicine_data = {k: v for k, v in (medicine_data or {}).items() if v is not None}
        batch_no = batch_data["batch_no"]
        supplied = {k: v for k, v in batch_data.items() if k in BATCH_FIELDS and v is not None}

        medicine = self.medicine_repo.get_by_id(medicine_id, for_update=True)
        created = medicine is None

        if created:
            if not medicine_data.get("name"):
                raise ValidationError(
                    "Medicine name is required when adding a new medicine.",
                    details={"medicine_id": medicine_id}
                )
            self._require_new_batch_fields(supplied)
            medicine = Medicine(id=medicine_id, **medicine_data)
            medicine.batches.append(StockBatch(batch_no=batch_no, **supplied))
            self.medicine_repo.add(medicine)
        else:
            for field, value in medicine_data.items():
                setattr(medicine, field, value)

            batch = medicine.find_batch(batch_no)
            if batch is not None:
                for field, value in supplied.items():
                    setattr(batch, field, value)
            else:
                self._require_new_batch_fields(supplied)
                medicine.batches.append(StockBatch(batch_no=batch_no, **supplied))

        self._commit("upsert stock batch")
        logger.info(
            "Stock batch %s %s for medicine %s",
            batch_no, "created" if created else "stored", medicine.id
        )
        return medicine, created

    def _require_new_batch_fields(self, supplied: dict) -> None:
        missing = [field for field in ("quantity", "expiry_date") if field not in supplied]
        if missing:
            raise ValidationError(
                "Quantity and expiry date are required for a new batch.",
                details={"missing_fields": missing}
            )

    def search(self, search_query: Optional[str], today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Search by numeric id or by name, manufacturer and dosage form"""
        if search_query is None or not search_query.strip():
            raise ValidationError("Search query is required.")

        search_query = search_query.strip()
        if search_query.isascii() and search_query.isdigit():
            medicine_id = parse_numeric_id(search_query)
            medicine = self.medicine_repo.get_by_id(medicine_id) if medicine_id is not None else None
            medicines = [medicine] if medicine else []
        else:
            medicines = self.medicine_repo.search(search_query)

        if not medicines:
            raise NotFoundError("No medicines found matching the search criteria.")

        today = today or date.today()
        items = []
        for medicine in medicines:
            latest = medicine.batches[-1] if medicine.batches else None
            items.append({
                "id": medicine.id,
                "name": medicine.name,
                "effectiveness": medicine.effectiveness,
                "dosage_form": medicine.dosage_form,
                "manufacturer": medicine.manufacturer,
                "available": medicine.available,
                "order_status": medicine.order_status,
                "total_valid_quantity": medicine.available_quantity(today),
                "current_stock": serialize_batch(latest) if latest else None,
            })
        return items

    def update_order_status(self, medicine_id: int, new_status: OrderStatus) -> Medicine:
        """Move a medicine through requested -> ordered / cancelled"""
        medicine = self.medicine_repo.get_by_id(medicine_id, for_update=True)
        if not medicine:
            raise NotFoundError("Medicine not found.", details={"medicine_id": medicine_id})

        allowed = ORDER_STATUS_TRANSITIONS.get(medicine.order_status, set())
        if new_status not in allowed:
            current = medicine.order_status.value if medicine.order_status else None
            raise ConflictError(
                f"Cannot change order status from {current or 'unset'} to {new_status.value}.",
                details={"current": current, "requested": new_status.value},
                error_code="INVALID_ORDER_STATUS_TRANSITION"
            )

        medicine.order_status = new_status
        self._commit("update order status")
        logger.info("Medicine %s order status set to %s", medicine.id, new_status.value)
        return medicine
