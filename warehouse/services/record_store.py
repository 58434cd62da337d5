"""Generic record store over one named collection of the key/value storage.

A collection is persisted as one JSON list under its key. Every successful
mutation writes the whole list back (read-modify-write, last write wins).
"""

import logging
from typing import Callable, Generic, Iterable, TypeVar

from pydantic import ValidationError as PydanticValidationError

from warehouse.errors import ValidationError
from warehouse.models.base import Record, generate_id, utcnow
from warehouse.models.catalog import Category, Material, Project, Supplier
from warehouse.models.inventory import InventoryItem, InventoryTransaction
from warehouse.models.stock import StockInItem, StockInOrder, StockOutItem, StockOutOrder
from warehouse.models.user import User
from warehouse.storage import Storage
from warehouse.sync.events import CollectionUpdated, EventBus, InventoryChanged

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Record)

PROTECTED_FIELDS = ("id", "created_at", "updated_at")

INVENTORY_KEY = "inventory"
# Keys whose writes by another context should trigger an inventory refresh
INVENTORY_WATCHED_KEYS = frozenset({"inventory", "stockInOrders", "stockOutOrders"})


def _field_errors(exc: PydanticValidationError) -> dict[str, str]:
    return {".".join(str(p) for p in err["loc"]) or "__root__": err["msg"] for err in exc.errors()}


class RecordStore(Generic[T]):
    def __init__(self, key: str, model: type[T], storage: Storage, bus: EventBus | None = None):
        self.key = key
        self.model = model
        self.storage = storage
        self.bus = bus

    def _load(self) -> list[dict]:
        return self.storage.get_json(self.key, default=[])

    def _save(self, rows: list[dict]) -> int:
        return self.storage.set_json(self.key, rows)

    def _validate(self, data: dict) -> T:
        try:
            return self.model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {self.key} record", _field_errors(e)) from e

    def get_all(self) -> list[T]:
        return [self.model.model_validate(row) for row in self._load()]

    def get_by_id(self, record_id: str) -> T | None:
        for row in self._load():
            if row.get("id") == record_id:
                return self.model.model_validate(row)
        return None

    def find(self, predicate: Callable[[T], bool]) -> list[T]:
        return [r for r in self.get_all() if predicate(r)]

    def find_one(self, predicate: Callable[[T], bool]) -> T | None:
        return next((r for r in self.get_all() if predicate(r)), None)

    def create(self, fields: dict) -> T:
        now = utcnow()
        data = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
        record = self._validate({"id": generate_id(), "created_at": now, "updated_at": now, **data})
        with self.storage.transaction():
            rows = self._load()
            rows.append(record.model_dump(mode="json"))
            self._save(rows)
        logger.debug("Created %s record %s", self.key, record.id)
        return record

    def update(self, record_id: str, changes: dict) -> T | None:
        with self.storage.transaction():
            rows = self._load()
            index = next((i for i, row in enumerate(rows) if row.get("id") == record_id), None)
            if index is None:
                return None
            current = self.model.model_validate(rows[index])
            merged = current.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in PROTECTED_FIELDS})
            merged["updated_at"] = utcnow()
            record = self._validate(merged)
            rows[index] = record.model_dump(mode="json")
            revision = self._save(rows)
            self._notify_updated(record, revision)
        logger.debug("Updated %s record %s", self.key, record_id)
        return record

    def delete(self, record_id: str) -> bool:
        with self.storage.transaction():
            rows = self._load()
            remaining = [row for row in rows if row.get("id") != record_id]
            if len(remaining) == len(rows):
                return False
            self._save(remaining)
        logger.debug("Deleted %s record %s", self.key, record_id)
        return True

    def delete_many(self, record_ids: Iterable[str]) -> int:
        ids = set(record_ids)
        if not ids:
            return 0
        with self.storage.transaction():
            rows = self._load()
            remaining = [row for row in rows if row.get("id") not in ids]
            removed = len(rows) - len(remaining)
            if removed:
                self._save(remaining)
        return removed

    def clear(self) -> None:
        self._save([])

    def _notify_updated(self, record: T, revision: int) -> None:
        if self.bus is None:
            return
        if self.key == INVENTORY_KEY:
            event = InventoryChanged(
                source="storage-service",
                revision=revision,
                material_ids=(getattr(record, "material_id", ""),),
            )
        else:
            event = CollectionUpdated(collection=self.key, record_id=record.id, revision=revision)
        bus = self.bus
        self.storage.after_commit(lambda: bus.publish(event))


class Stores:
    """One record store per collection, sharing a storage and an event bus."""

    def __init__(self, storage: Storage, bus: EventBus | None = None):
        self.storage = storage
        self.bus = bus or EventBus()
        self.users = RecordStore("users", User, storage, self.bus)
        self.categories = RecordStore("categories", Category, storage, self.bus)
        self.materials = RecordStore("materials", Material, storage, self.bus)
        self.projects = RecordStore("projects", Project, storage, self.bus)
        self.suppliers = RecordStore("suppliers", Supplier, storage, self.bus)
        self.inventory = RecordStore(INVENTORY_KEY, InventoryItem, storage, self.bus)
        self.transactions = RecordStore("inventoryTransactions", InventoryTransaction, storage, self.bus)
        self.stock_in_orders = RecordStore("stockInOrders", StockInOrder, storage, self.bus)
        self.stock_in_items = RecordStore("stockInItems", StockInItem, storage, self.bus)
        self.stock_out_orders = RecordStore("stockOutOrders", StockOutOrder, storage, self.bus)
        self.stock_out_items = RecordStore("stockOutItems", StockOutItem, storage, self.bus)

    def transaction(self):
        return self.storage.transaction()

    def publish_inventory_changed(self, source: str, order_id: str | None = None, material_ids=()) -> None:
        """Broadcast an inventory change once the current transaction commits."""

        def _publish():
            self.bus.publish(
                InventoryChanged(
                    source=source,
                    revision=self.storage.revision(),
                    order_id=order_id,
                    material_ids=tuple(material_ids),
                )
            )

        self.storage.after_commit(_publish)
