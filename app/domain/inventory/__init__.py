# Inventory domain module
from app.domain.inventory.models import (
    Medicine,
    StockBatch,
    DosageForm,
    Effectiveness,
    OrderStatus,
)

__all__ = [
    "Medicine",
    "StockBatch",
    "DosageForm",
    "Effectiveness",
    "OrderStatus",
]
