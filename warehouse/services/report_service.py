from datetime import datetime

from warehouse.models.base import utcnow
from warehouse.models.catalog import Category, Material
from warehouse.models.inventory import InventoryItem, InventoryTransaction, TransactionType
from warehouse.services import ledger
from warehouse.services.record_store import Stores

UNKNOWN_MATERIAL = "Unknown material"

TRANSACTION_LABELS = {
    TransactionType.STOCK_IN: "Stock in",
    TransactionType.STOCK_OUT: "Stock out",
    TransactionType.ADJUSTMENT: "Adjustment",
}


def category_stock(
    categories: list[Category], materials: list[Material], inventory: list[InventoryItem]
) -> list[dict]:
    """Total quantity on hand per category; categories holding nothing are left out."""
    category_of = {m.id: m.category_id for m in materials}
    totals: dict[str, float] = {}
    for item in inventory:
        cat = category_of.get(item.material_id)
        if cat:
            totals[cat] = totals.get(cat, 0) + item.quantity
    return [
        {"category_id": c.id, "name": c.name, "total_quantity": totals[c.id]}
        for c in categories
        if totals.get(c.id, 0) > 0
    ]


def recent_activities(
    transactions: list[InventoryTransaction], materials: list[Material], limit: int = 5
) -> list[dict]:
    names = {m.id: m.name for m in materials}
    latest = sorted(transactions, key=lambda t: t.transaction_date, reverse=True)[:limit]
    return [
        {
            "id": t.id,
            "type": t.type.value,
            "label": TRANSACTION_LABELS.get(t.type, t.type.value),
            "material": names.get(t.material_id, UNKNOWN_MATERIAL),
            "quantity": abs(t.quantity),
            "date": t.transaction_date.isoformat(),
            "operator": t.created_by or "system",
        }
        for t in latest
    ]


def low_stock_alerts(
    inventory: list[InventoryItem], materials: list[Material], limit: int | None = 5
) -> list[dict]:
    by_id = {m.id: m for m in materials}
    alerts = []
    for item in sorted((i for i in inventory if i.is_low_stock), key=lambda i: i.quantity):
        material = by_id.get(item.material_id)
        alerts.append(
            {
                "id": item.id,
                "material_id": item.material_id,
                "name": material.name if material else UNKNOWN_MATERIAL,
                "current": item.quantity,
                "threshold": item.alert_threshold,
                "unit": material.unit if material else "",
            }
        )
    return alerts[:limit] if limit else alerts


def inventory_value(inventory: list[InventoryItem], materials: list[Material]) -> float:
    prices = {m.id: m.reference_price for m in materials}
    return round(sum(i.quantity * prices.get(i.material_id, 0) for i in inventory), 2)


def inventory_stats(
    inventory: list[InventoryItem], transactions: list[InventoryTransaction], now: datetime | None = None
) -> dict:
    now = now or utcnow()
    this_month = [
        t for t in transactions
        if t.transaction_date.year == now.year and t.transaction_date.month == now.month
    ]
    return {
        "total_materials": len(inventory),
        "low_stock_count": sum(1 for i in inventory if i.is_low_stock),
        "total_units": sum(i.quantity for i in inventory),
        "transactions_this_month": len(this_month),
    }


def _group_by_category(
    categories: list[Category], materials: list[Material], inventory: list[InventoryItem]
) -> list[dict]:
    names = {c.id: c.name for c in categories}
    quantity = {i.material_id: i.quantity for i in inventory}
    cats: dict[str, dict] = {}
    for m in materials:
        cat = m.category_id if m.category_id in names else ""
        if cat not in cats:
            cats[cat] = {
                "category_id": cat,
                "category": names.get(cat, "Uncategorized"),
                "material_count": 0,
                "total_units": 0,
                "total_value": 0.0,
            }
        qty = quantity.get(m.id, 0)
        cats[cat]["material_count"] += 1
        cats[cat]["total_units"] += qty
        cats[cat]["total_value"] += qty * m.reference_price
    for v in cats.values():
        v["total_value"] = round(v["total_value"], 2)
    return list(cats.values())


def inventory_summary(stores: Stores) -> dict:
    ledger.ensure_inventory_items(stores)
    categories = stores.categories.get_all()
    materials = stores.materials.get_all()
    inventory = stores.inventory.get_all()
    stats = inventory_stats(inventory, stores.transactions.get_all())
    return {
        "total_materials": stats["total_materials"],
        "total_units_in_stock": stats["total_units"],
        "total_inventory_value": inventory_value(inventory, materials),
        "low_stock_count": stats["low_stock_count"],
        "low_stock_items": low_stock_alerts(inventory, materials, limit=None),
        "by_category": _group_by_category(categories, materials, inventory),
    }
