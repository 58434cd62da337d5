from pydantic import BaseModel

from warehouse.models.catalog import Material
from warehouse.models.inventory import InventoryItem


class InventoryAdjust(BaseModel):
    quantity: float  # positive to add, negative to remove
    reason: str
    notes: str = ""


class ThresholdUpdate(BaseModel):
    alert_threshold: float


class InventoryRowOut(BaseModel):
    item: InventoryItem
    material: Material | None = None
    is_low_stock: bool


class LowStockOut(BaseModel):
    item_id: str
    material_id: str
    material: Material | None = None
    current: float
    threshold: float


class ReconcileOut(BaseModel):
    material_id: str
    quantity: float
    ledger_total: float
