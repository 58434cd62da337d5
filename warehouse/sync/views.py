"""Derived views recomputed from a fresh snapshot on every refresh."""

from dataclasses import dataclass, field
from datetime import datetime

from warehouse.models.base import utcnow
from warehouse.models.catalog import Category, Material
from warehouse.models.inventory import InventoryItem, InventoryTransaction
from warehouse.services import ledger, report_service
from warehouse.services.catalog_service import build_category_tree
from warehouse.services.record_store import Stores


@dataclass
class InventorySnapshot:
    materials: list[Material]
    categories: list[Category]
    inventory: list[InventoryItem]
    transactions: list[InventoryTransaction]  # newest first
    revision: int
    loaded_at: datetime = field(default_factory=utcnow)


def load_snapshot(stores: Stores) -> InventorySnapshot:
    """Reload every inventory-related collection, provisioning missing inventory items."""
    with stores.transaction():
        ledger.ensure_inventory_items(stores)
        snapshot = InventorySnapshot(
            materials=stores.materials.get_all(),
            categories=stores.categories.get_all(),
            inventory=stores.inventory.get_all(),
            transactions=sorted(stores.transactions.get_all(), key=lambda t: t.transaction_date, reverse=True),
            revision=stores.storage.revision(),
        )
    return snapshot


class InventoryView:
    """Inventory list with statistics and the full low-stock list."""

    def __init__(self):
        self.rows: list[dict] = []
        self.low_stock: list[dict] = []
        self.stats: dict = {}
        self.category_tree = []
        self.revision = 0

    def apply(self, snapshot: InventorySnapshot) -> None:
        materials = {m.id: m for m in snapshot.materials}
        self.rows = [
            {
                "item": item,
                "material": materials.get(item.material_id),
                "is_low_stock": item.is_low_stock,
            }
            for item in snapshot.inventory
        ]
        self.low_stock = report_service.low_stock_alerts(snapshot.inventory, snapshot.materials, limit=None)
        self.stats = report_service.inventory_stats(snapshot.inventory, snapshot.transactions)
        self.category_tree = build_category_tree(snapshot.categories)
        self.revision = snapshot.revision


class DashboardView:
    def __init__(self, alert_limit: int = 5, activity_limit: int = 5):
        self.alert_limit = alert_limit
        self.activity_limit = activity_limit
        self.category_stock: list[dict] = []
        self.recent_activities: list[dict] = []
        self.low_stock_alerts: list[dict] = []
        self.material_counts: dict[str, int] = {}
        self.total_quantity: float = 0
        self.total_value: float = 0.0
        self.revision = 0

    def apply(self, snapshot: InventorySnapshot) -> None:
        self.category_stock = report_service.category_stock(snapshot.categories, snapshot.materials, snapshot.inventory)
        self.recent_activities = report_service.recent_activities(
            snapshot.transactions, snapshot.materials, self.activity_limit
        )
        self.low_stock_alerts = report_service.low_stock_alerts(
            snapshot.inventory, snapshot.materials, self.alert_limit
        )
        counts: dict[str, int] = {}
        for m in snapshot.materials:
            counts[m.category_id] = counts.get(m.category_id, 0) + 1
        self.material_counts = counts
        self.total_quantity = sum(i.quantity for i in snapshot.inventory)
        self.total_value = report_service.inventory_value(snapshot.inventory, snapshot.materials)
        self.revision = snapshot.revision

    def as_dict(self) -> dict:
        return {
            "category_stock": self.category_stock,
            "recent_activities": self.recent_activities,
            "low_stock_alerts": self.low_stock_alerts,
            "material_counts": self.material_counts,
            "total_quantity": self.total_quantity,
            "total_value": self.total_value,
            "revision": self.revision,
        }
