from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional

from app.infrastructure.database import get_db
from app.domain.inventory.service import InventoryService, MAX_RECORD_ID
from app.api.v1.inventory.schemas import (
    MedicineCreate, MedicineResponse, StockBatchUpsert,
    MedicineSearchResponse, OrderStatusUpdate
)

router = APIRouter(tags=["Inventory"])

MedicineId = Annotated[int, Path(ge=1, le=MAX_RECORD_ID)]


@router.post("/medicines", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def register_medicine(medicine_in: MedicineCreate, db: Session = Depends(get_db)):
    """Register a medicine with its initial batches"""
    service = InventoryService(db)
    batches = [b.model_dump() for b in medicine_in.batches]
    medicine = service.register_medicine(medicine_in.model_dump(exclude={"batches"}), batches)
    return MedicineResponse.model_validate(medicine)


@router.get("/medicines/{medicine_id}", response_model=MedicineResponse)
def get_medicine(medicine_id: MedicineId, db: Session = Depends(get_db)):
    service = InventoryService(db)
    return MedicineResponse.model_validate(service.get_medicine(medicine_id))


@router.put("/medicines/{medicine_id}/batches", response_model=MedicineResponse)
def upsert_stock_batch(
    medicine_id: MedicineId,
    batch_in: StockBatchUpsert,
    response: Response,
    db: Session = Depends(get_db)
):
    """Add or update a stock batch, creating the medicine if needed"""
    service = InventoryService(db)
    medicine, created = service.upsert_stock_batch(
        medicine_id, batch_in.batch_fields(), batch_in.medicine_fields()
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return MedicineResponse.model_validate(medicine)


@router.get("/search", response_model=MedicineSearchResponse)
def search_inventory(
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    db: Session = Depends(get_db)
):
    """Search medicines by id, name, manufacturer or dosage form"""
    service = InventoryService(db)
    items = service.search(search_query)
    return MedicineSearchResponse(count=len(items), items=items)


@router.patch("/medicines/{medicine_id}/order-status", response_model=MedicineResponse)
def update_order_status(
    medicine_id: MedicineId,
    status_in: OrderStatusUpdate,
    db: Session = Depends(get_db)
):
    service = InventoryService(db)
    medicine = service.update_order_status(medicine_id, status_in.status)
    return MedicineResponse.model_validate(medicine)
