from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.infrastructure.database import get_db
from app.domain.pharmacy.service import DispensingService
from app.api.v1.pharmacy.schemas import (
    PrescriptionSearchResponse, DispensedQuantityUpdate, MessageResponse, DispensingResponse
)

router = APIRouter(tags=["Pharmacy"])


@router.get("/prescriptions/search", response_model=PrescriptionSearchResponse)
def search_patient_prescriptions(
    search_by_id: Optional[str] = Query(None, alias="searchById"),
    dispense: bool = Query(False),
    db: Session = Depends(get_db)
):
    """Latest prescriptions of a patient; dispense=true fills them from stock"""
    service = DispensingService(db)
    return service.search_patient_prescriptions(search_by_id, dispense=dispense)


@router.api_route(
    "/prescriptions/{prescription_id}/entries/{entry_id}",
    methods=["PATCH", "PUT"],
    response_model=MessageResponse,
)
def update_prescription_entry(
    prescription_id: str,
    entry_id: str,
    payload: DispensedQuantityUpdate,
    db: Session = Depends(get_db)
):
    """Set the dispensed quantity of one prescription entry"""
    service = DispensingService(db)
    return service.update_entry_dispensed_quantity(prescription_id, entry_id, payload.dispensed_qty)


@router.get("/prescriptions/{prescription_id}/dispensings", response_model=List[DispensingResponse])
def list_dispensings(prescription_id: str, db: Session = Depends(get_db)):
    service = DispensingService(db)
    dispensings = service.get_dispensing_history(prescription_id)
    return [DispensingResponse.model_validate(d) for d in dispensings]
