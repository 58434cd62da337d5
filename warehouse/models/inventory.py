from datetime import datetime
from enum import Enum as PyEnum

from warehouse.models.base import Record


class TransactionType(str, PyEnum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    ADJUSTMENT = "adjustment"


class InventoryItem(Record):
    """Current on-hand quantity of one material."""

    material_id: str
    quantity: float = 0
    alert_threshold: float = 10
    last_updated: datetime

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.alert_threshold


class InventoryTransaction(Record):
    """Append-only record of one quantity change. Never updated or deleted."""

    material_id: str
    type: TransactionType
    quantity: float  # positive=in, negative=out
    reference_id: str = ""  # stock-in/out order id
    notes: str = ""
    transaction_date: datetime
    created_by: str
