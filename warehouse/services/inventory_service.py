from dataclasses import dataclass

from warehouse.errors import NotFoundError, ValidationError
from warehouse.models.catalog import Material
from warehouse.models.inventory import InventoryItem, InventoryTransaction
from warehouse.models.user import Module, Permission, User
from warehouse.services import ledger
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores


@dataclass
class InventoryRow:
    item: InventoryItem
    material: Material | None

    @property
    def is_low_stock(self) -> bool:
        return self.item.is_low_stock


def adjust_inventory(
    stores: Stores, user: User, item_id: str, quantity: float, reason: str, notes: str = ""
) -> InventoryItem:
    require_permission(user, Module.INVENTORY, Permission.EDIT)
    return ledger.adjust(stores, item_id, quantity, reason, notes, actor=user.username)


def set_alert_threshold(stores: Stores, user: User, item_id: str, threshold: float) -> InventoryItem:
    require_permission(user, Module.INVENTORY, Permission.EDIT)
    if threshold is None or threshold < 0:
        raise ValidationError("Alert threshold cannot be negative", {"alert_threshold": "cannot be negative"})
    item = stores.inventory.update(item_id, {"alert_threshold": threshold})
    if item is None:
        raise NotFoundError("Inventory item", item_id)
    return item


def list_inventory(
    stores: Stores,
    category_id: str | None = None,
    search: str | None = None,
    stock_status: str | None = None,
) -> list[InventoryRow]:
    """Inventory joined with materials. ``stock_status`` is ``low`` or ``normal``."""
    ledger.ensure_inventory_items(stores)
    materials = {m.id: m for m in stores.materials.get_all()}
    rows = [InventoryRow(item, materials.get(item.material_id)) for item in stores.inventory.get_all()]

    if category_id:
        rows = [r for r in rows if r.material and r.material.category_id == category_id]
    if search:
        needle = search.lower()
        rows = [
            r for r in rows
            if r.material and (needle in r.material.name.lower() or needle in r.material.specification.lower())
        ]
    if stock_status == "low":
        rows = [r for r in rows if r.is_low_stock]
    elif stock_status == "normal":
        rows = [r for r in rows if not r.is_low_stock]
    return rows


def list_transactions(
    stores: Stores, material_id: str | None = None, limit: int | None = None
) -> list[InventoryTransaction]:
    txs = stores.transactions.get_all()
    if material_id:
        txs = [t for t in txs if t.material_id == material_id]
    txs.sort(key=lambda t: t.transaction_date, reverse=True)
    return txs[:limit] if limit else txs
