"""
Inventory Domain Models

Medicines and the stock batches they are dispensed from.
"""

from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Boolean, Float, Enum,
    ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from sqlalchemy.ext.orderinglist import ordering_list
from datetime import date
from typing import List, Optional
import enum

from app.infrastructure.database import Base


class DosageForm(str, enum.Enum):
    """Physical form a medicine is supplied in"""
    TABLET = "tablet"
    CAPSULE = "capsule"
    SYRUP = "syrup"
    INJECTION = "injection"
    CREAM = "cream"
    OINTMENT = "ointment"
    OTHER = "other"


class Effectiveness(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OrderStatus(str, enum.Enum):
    """Reorder state of a medicine"""
    REQUESTED = "requested"  # pharmacist asked the admin to reorder
    ORDERED = "ordered"      # admin placed the order with a supplier
    CANCELLED = "cancelled"


class Medicine(Base):
    """Medicine catalogue record owning its stock batches"""
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(255), nullable=False, index=True)
    effectiveness = Column(Enum(Effectiveness))
    dosage_form = Column(Enum(DosageForm))
    manufacturer = Column(String(255))
    available = Column(Boolean, default=False, nullable=False)
    order_status = Column(Enum(OrderStatus))

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    batches = relationship(
        "StockBatch",
        back_populates="medicine",
        order_by="StockBatch.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    def find_batch(self, batch_no: str) -> Optional["StockBatch"]:
        for batch in self.batches:
            if batch.batch_no == batch_no:
                return batch
        return None

    def valid_batches(self, today: Optional[date] = None) -> List["StockBatch"]:
        """Batches that can be dispensed from, in stored order"""
        today = today or date.today()
        return [batch for batch in self.batches if batch.is_valid(today)]

    def available_quantity(self, today: Optional[date] = None) -> int:
        return sum(batch.quantity for batch in self.valid_batches(today))


class StockBatch(Base):
    """A lot of a medicine with its own quantity, expiry and supplier"""
    __tablename__ = "stock_batches"
    __table_args__ = (
        UniqueConstraint("medicine_id", "batch_no", name="uq_stock_batches_medicine_batch"),
        CheckConstraint("quantity >= 0", name="ck_stock_batches_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    medicine_id = Column(Integer, ForeignKey("medicines.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    batch_no = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    expiry_date = Column(Date, nullable=False)
    manufacturing_date = Column(Date)
    unit_price = Column(Float)
    supplier = Column(String(255))

    medicine = relationship("Medicine", back_populates="batches")

    def is_valid(self, today: date) -> bool:
        return self.expiry_date > today and self.quantity > 0
