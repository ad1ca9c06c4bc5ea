from typing import Optional, List
from sqlalchemy import select, or_, func, cast, String
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.domain.inventory.models import Medicine


class MedicineRepository:
    """Repository for medicine and stock batch data access"""

    def __init__(self, db: Session):
        self.db = db

    def next_id(self) -> int:
        """Next numeric medicine id; ids start at MEDICINE_ID_START"""
        current = self.db.execute(select(func.max(Medicine.id))).scalar()
        if current is None or current < settings.MEDICINE_ID_START:
            return settings.MEDICINE_ID_START
        return current + 1

    def add(self, medicine: Medicine) -> Medicine:
        if medicine.id is None:
            medicine.id = self.next_id()
        self.db.add(medicine)
        self.db.flush()
        return medicine

    def get_by_id(self, medicine_id: int, for_update: bool = False) -> Optional[Medicine]:
        """Get medicine with its batches; for_update takes a row lock where supported"""
        query = (
            select(Medicine)
            .options(selectinload(Medicine.batches))
            .where(Medicine.id == medicine_id)
        )
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalar_one_or_none()

    def search(self, text: str, limit: int = 100) -> List[Medicine]:
        """Case-insensitive substring match on name, manufacturer or dosage form"""
        pattern = f"%{text.lower()}%"
        query = (
            select(Medicine)
            .options(selectinload(Medicine.batches))
            .where(
                or_(
                    func.lower(Medicine.name).like(pattern),
                    func.lower(Medicine.manufacturer).like(pattern),
                    func.lower(cast(Medicine.dosage_form, String)).like(pattern),
                )
            )
            .order_by(Medicine.id)
            .limit(limit)
        )
        return list(self.db.execute(query).scalars().all())
