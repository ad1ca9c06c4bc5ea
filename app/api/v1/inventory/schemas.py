"""
Inventory API Schemas

Pydantic models for medicine and stock batch requests and responses.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime

from app.domain.inventory.models import DosageForm, Effectiveness, OrderStatus


def _expiry_in_future(v: Optional[date]) -> Optional[date]:
    if v is not None and v <= date.today():
        raise ValueError("Expiry date must be in the future")
    return v


def _manufactured_in_past(v: Optional[date]) -> Optional[date]:
    if v is not None and v > date.today():
        raise ValueError("Manufacturing date cannot be in the future")
    return v


# ==================== Stock Batch Schemas ====================

class StockBatchCreate(BaseModel):
    """Schema for a new stock batch"""
    batch_no: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=0)
    expiry_date: date
    manufacturing_date: Optional[date] = None
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, min_length=1, max_length=255)

    @field_validator("expiry_date")
    @classmethod
    def check_expiry_date(cls, v):
        return _expiry_in_future(v)

    @field_validator("manufacturing_date")
    @classmethod
    def check_manufacturing_date(cls, v):
        return _manufactured_in_past(v)


class StockBatchUpsert(BaseModel):
    """Replenish or correct one batch; medicine fields create the medicine when missing"""
    batch_no: str = Field(..., min_length=1, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)
    expiry_date: Optional[date] = None
    manufacturing_date: Optional[date] = None
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, min_length=1, max_length=255)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    effectiveness: Optional[Effectiveness] = None
    dosage_form: Optional[DosageForm] = None
    manufacturer: Optional[str] = None
    available: Optional[bool] = None

    @field_validator("expiry_date")
    @classmethod
    def check_expiry_date(cls, v):
        return _expiry_in_future(v)

    @field_validator("manufacturing_date")
    @classmethod
    def check_manufacturing_date(cls, v):
        return _manufactured_in_past(v)

    def batch_fields(self) -> dict:
        return self.model_dump(include={
            "batch_no", "quantity", "expiry_date", "manufacturing_date", "unit_price", "supplier"
        })

    def medicine_fields(self) -> dict:
        return self.model_dump(include={
            "name", "effectiveness", "dosage_form", "manufacturer", "available"
        })


class StockBatchResponse(BaseModel):
    batch_no: str
    quantity: int
    expiry_date: date
    manufacturing_date: Optional[date] = None
    unit_price: Optional[float] = None
    supplier: Optional[str] = None

    class Config:
        from_attributes = True


# ==================== Medicine Schemas ====================

class MedicineCreate(BaseModel):
    """Schema for registering a medicine"""
    name: str = Field(..., min_length=1, max_length=255)
    effectiveness: Optional[Effectiveness] = None
    dosage_form: Optional[DosageForm] = None
    manufacturer: Optional[str] = Field(None, max_length=255)
    available: bool = False
    batches: List[StockBatchCreate] = []


class MedicineResponse(BaseModel):
    id: int
    name: str
    effectiveness: Optional[Effectiveness] = None
    dosage_form: Optional[DosageForm] = None
    manufacturer: Optional[str] = None
    available: bool
    order_status: Optional[OrderStatus] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    batches: List[StockBatchResponse]

    class Config:
        from_attributes = True


class MedicineSearchItem(BaseModel):
    id: int
    name: str
    effectiveness: Optional[Effectiveness] = None
    dosage_form: Optional[DosageForm] = None
    manufacturer: Optional[str] = None
    available: bool
    order_status: Optional[OrderStatus] = None
    total_valid_quantity: int
    current_stock: Optional[StockBatchResponse] = None


class MedicineSearchResponse(BaseModel):
    count: int
    items: List[MedicineSearchItem]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
