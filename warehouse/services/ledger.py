"""Inventory ledger.

The only code that changes ``InventoryItem.quantity``. Every movement follows
the same protocol: validate, update the current-state record, append an
immutable transaction. Validation completes before the first write so a
rejected movement leaves storage untouched, and both writes share one storage
transaction.
"""

import logging
import math
from dataclasses import dataclass

from warehouse.config import settings
from warehouse.errors import InsufficientStock, InvalidAdjustment, NotFoundError, ValidationError
from warehouse.models.base import utcnow
from warehouse.models.catalog import Material
from warehouse.models.inventory import InventoryItem, InventoryTransaction, TransactionType
from warehouse.services.record_store import Stores

logger = logging.getLogger(__name__)


@dataclass
class LowStockEntry:
    item_id: str
    material_id: str
    material: Material | None
    current: float
    threshold: float


@dataclass
class ReconcileMismatch:
    material_id: str
    quantity: float
    ledger_total: float


def ensure_inventory_items(stores: Stores) -> list[InventoryItem]:
    """Create a zero-quantity item for every material that has none. Returns the created items."""
    with stores.transaction():
        known = {item.material_id for item in stores.inventory.get_all()}
        created = []
        for material in stores.materials.get_all():
            if material.id in known:
                continue
            created.append(_new_item(stores, material.id, 0))
            known.add(material.id)
    if created:
        logger.info("Provisioned %d inventory items for new materials", len(created))
    return created


def _new_item(stores: Stores, material_id: str, quantity: float) -> InventoryItem:
    return stores.inventory.create(
        {
            "material_id": material_id,
            "quantity": quantity,
            "alert_threshold": settings.DEFAULT_ALERT_THRESHOLD,
            "last_updated": utcnow(),
        }
    )


def get_item_for_material(stores: Stores, material_id: str) -> InventoryItem | None:
    return stores.inventory.find_one(lambda i: i.material_id == material_id)


def get_or_create_item(stores: Stores, material_id: str) -> InventoryItem:
    item = get_item_for_material(stores, material_id)
    if item is None:
        item = _new_item(stores, material_id, 0)
    return item


def _check_quantity(quantity: float) -> None:
    if quantity is None or not math.isfinite(quantity) or quantity <= 0:
        raise ValidationError("Quantity must be greater than 0", {"quantity": "must be greater than 0"})


def _apply(
    stores: Stores,
    item: InventoryItem,
    delta: float,
    kind: TransactionType,
    actor: str,
    reference_id: str = "",
    notes: str = "",
) -> InventoryItem:
    now = utcnow()
    updated = stores.inventory.update(item.id, {"quantity": item.quantity + delta, "last_updated": now})
    stores.transactions.create(
        {
            "material_id": item.material_id,
            "type": kind,
            "quantity": delta,
            "reference_id": reference_id or "",
            "notes": notes,
            "transaction_date": now,
            "created_by": actor,
        }
    )
    return updated


def receive_stock(
    stores: Stores,
    material_id: str,
    quantity: float,
    reference_id: str,
    actor: str,
    notes: str = "Stock in",
    notify: bool = True,
) -> InventoryItem:
    _check_quantity(quantity)
    if stores.materials.get_by_id(material_id) is None:
        raise NotFoundError("Material", material_id)
    with stores.transaction():
        item = get_or_create_item(stores, material_id)
        updated = _apply(stores, item, quantity, TransactionType.STOCK_IN, actor, reference_id, notes)
        if notify:
            stores.publish_inventory_changed("stock-in", order_id=reference_id or None, material_ids=[material_id])
    logger.info("Received %s of material %s (ref %s), balance %s", quantity, material_id, reference_id, updated.quantity)
    return updated


def issue_stock(
    stores: Stores,
    material_id: str,
    quantity: float,
    reference_id: str,
    actor: str,
    notes: str = "Stock out",
    notify: bool = True,
) -> InventoryItem:
    _check_quantity(quantity)
    with stores.transaction():
        item = get_item_for_material(stores, material_id)
        current = item.quantity if item else 0
        if current - quantity < 0:
            logger.warning("Rejected issue of %s from material %s: only %s on hand", quantity, material_id, current)
            raise InsufficientStock(material_id, current, -quantity)
        updated = _apply(stores, item, -quantity, TransactionType.STOCK_OUT, actor, reference_id, notes)
        if notify:
            stores.publish_inventory_changed("stock-out", order_id=reference_id or None, material_ids=[material_id])
    logger.info("Issued %s of material %s (ref %s), balance %s", quantity, material_id, reference_id, updated.quantity)
    return updated


def adjustment_notes(reason: str, notes: str | None) -> str:
    return f"Reason: {reason}. Notes: {notes or 'none'}"


def adjust(stores: Stores, item_id: str, delta: float, reason: str, notes: str | None, actor: str) -> InventoryItem:
    if delta is None or not math.isfinite(delta) or delta == 0:
        raise InvalidAdjustment("Adjustment quantity cannot be zero", {"quantity": "cannot be zero"})
    if not reason:
        raise InvalidAdjustment("Adjustment reason is required", {"reason": "required"})
    with stores.transaction():
        item = stores.inventory.get_by_id(item_id)
        if item is None:
            raise InvalidAdjustment(f"Inventory item {item_id} not found", {"item_id": "not found"})
        if item.quantity + delta < 0:
            logger.warning("Rejected adjustment %s on item %s: only %s on hand", delta, item_id, item.quantity)
            raise InsufficientStock(item.material_id, item.quantity, delta)
        updated = _apply(stores, item, delta, TransactionType.ADJUSTMENT, actor, notes=adjustment_notes(reason, notes))
        stores.publish_inventory_changed("adjustment", material_ids=[item.material_id])
    logger.info("Adjusted item %s by %s (%s), balance %s", item_id, delta, reason, updated.quantity)
    return updated


def low_stock_report(stores: Stores) -> list[LowStockEntry]:
    """Items at or below their alert threshold, most critical first."""
    materials = {m.id: m for m in stores.materials.get_all()}
    entries = [
        LowStockEntry(
            item_id=item.id,
            material_id=item.material_id,
            material=materials.get(item.material_id),
            current=item.quantity,
            threshold=item.alert_threshold,
        )
        for item in stores.inventory.get_all()
        if item.is_low_stock
    ]
    return sorted(entries, key=lambda e: e.current)


def reconcile(stores: Stores) -> list[ReconcileMismatch]:
    """Materials whose on-hand quantity differs from the sum of their transactions."""
    totals: dict[str, float] = {}
    for tx in stores.transactions.get_all():
        totals[tx.material_id] = totals.get(tx.material_id, 0) + tx.quantity
    mismatches = []
    for item in stores.inventory.get_all():
        total = totals.get(item.material_id, 0)
        if not math.isclose(item.quantity, total, abs_tol=1e-9):
            mismatches.append(ReconcileMismatch(item.material_id, item.quantity, total))
    return mismatches
