import logging
from datetime import datetime

from warehouse.errors import NotFoundError, ValidationError
from warehouse.models.base import as_utc
from warehouse.models.stock import OrderStatus, StockInItem, StockInOrder
from warehouse.models.user import Module, Permission, User
from warehouse.schemas.stock import StockInOrderOut, StockInOrderSave
from warehouse.services import ledger
from warehouse.services.order_numbers import STOCK_IN_PREFIX, next_order_number
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores
from warehouse.services.validation import FieldErrors

logger = logging.getLogger(__name__)


def _validate(stores: Stores, data: StockInOrderSave) -> None:
    errors = FieldErrors()
    if not data.supplier_id:
        errors.add("supplier_id", "required")
    elif stores.suppliers.get_by_id(data.supplier_id) is None:
        errors.add("supplier_id", "supplier not found")
    if data.project_id and stores.projects.get_by_id(data.project_id) is None:
        errors.add("project_id", "project not found")
    if data.order_date is None:
        errors.add("order_date", "required")
    if not data.items:
        errors.add("items", "at least one item is required")

    material_ids = {m.id for m in stores.materials.get_all()}
    for index, line in enumerate(data.items):
        if not line.material_id:
            errors.add(f"items.{index}.material_id", "required")
        elif line.material_id not in material_ids:
            errors.add(f"items.{index}.material_id", "material not found")
        errors.positive(f"items.{index}.quantity", line.quantity)
        errors.positive(f"items.{index}.unit_price", line.unit_price)
    errors.raise_if_any("Invalid stock-in order")


def get_order(stores: Stores, order_id: str) -> StockInOrder:
    order = stores.stock_in_orders.get_by_id(order_id)
    if order is None:
        raise NotFoundError("Stock-in order", order_id)
    return order


def get_items(stores: Stores, order_id: str) -> list[StockInItem]:
    return stores.stock_in_items.find(lambda i: i.order_id == order_id)


def order_total(stores: Stores, order_id: str) -> float:
    return round(sum(i.total_price for i in get_items(stores, order_id)), 2)


def get_order_detail(stores: Stores, order_id: str) -> StockInOrderOut:
    order = get_order(stores, order_id)
    items = get_items(stores, order_id)
    return StockInOrderOut(
        **order.model_dump(),
        items=items,
        total_amount=round(sum(i.total_price for i in items), 2),
    )


def _receive_all(stores: Stores, order: StockInOrder, items: list[StockInItem], actor: str) -> None:
    for item in items:
        ledger.receive_stock(
            stores,
            item.material_id,
            item.quantity,
            order.id,
            actor,
            notes=f"Stock in {order.order_number}",
            notify=False,
        )
    stores.publish_inventory_changed(
        "stock-in", order_id=order.id, material_ids=list(dict.fromkeys(i.material_id for i in items))
    )


def save_order(stores: Stores, user: User, data: StockInOrderSave, order_id: str | None = None) -> StockInOrder:
    """Create or replace a stock-in order and its lines.

    Inventory is received only when the order moves into ``completed``.
    """
    require_permission(user, Module.STOCK_IN, Permission.EDIT)

    # Reads and guards share the write lock with the writes below
    with stores.transaction():
        current = get_order(stores, order_id) if order_id else None
        if current and current.status == OrderStatus.COMPLETED:
            raise ValidationError("Completed orders cannot be edited")
        _validate(stores, data)

        order_date = as_utc(data.order_date)
        header = {
            "supplier_id": data.supplier_id,
            "project_id": data.project_id or None,
            "order_date": order_date,
            "status": data.status,
            "notes": data.notes,
        }

        if current:
            if data.order_number:
                header["order_number"] = data.order_number
            order = stores.stock_in_orders.update(current.id, header)
            stores.stock_in_items.delete_many(i.id for i in get_items(stores, current.id))
        else:
            header["order_number"] = data.order_number or next_order_number(
                STOCK_IN_PREFIX, order_date, stores.stock_in_orders.get_all()
            )
            header["created_by"] = user.username
            order = stores.stock_in_orders.create(header)

        items = [
            stores.stock_in_items.create(
                {
                    "order_id": order.id,
                    "material_id": line.material_id,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "total_price": round(line.quantity * line.unit_price, 2),
                    "notes": line.notes,
                }
            )
            for line in data.items
        ]
        if order.status == OrderStatus.COMPLETED:
            _receive_all(stores, order, items, user.username)

    logger.info("Saved stock-in order %s (%s) with %d items", order.order_number, order.status.value, len(items))
    return order


def set_status(stores: Stores, user: User, order_id: str, status: OrderStatus) -> StockInOrder:
    require_permission(user, Module.STOCK_IN, Permission.EDIT)
    with stores.transaction():
        order = get_order(stores, order_id)
        if order.status == status:
            return order
        if order.status == OrderStatus.COMPLETED:
            raise ValidationError("Completed orders cannot change status")
        items = get_items(stores, order_id)
        if status == OrderStatus.COMPLETED and not items:
            raise ValidationError("Cannot complete an order without items")
        order = stores.stock_in_orders.update(order_id, {"status": status})
        if status == OrderStatus.COMPLETED:
            _receive_all(stores, order, items, user.username)
    logger.info("Stock-in order %s is now %s", order.order_number, status.value)
    return order


def delete_order(stores: Stores, user: User, order_id: str) -> bool:
    """Delete the header and its lines. Inventory already received is not reversed."""
    require_permission(user, Module.STOCK_IN, Permission.DELETE)
    with stores.transaction():
        stores.stock_in_items.delete_many(i.id for i in get_items(stores, order_id))
        deleted = stores.stock_in_orders.delete(order_id)
    if deleted:
        logger.info("Deleted stock-in order %s", order_id)
    return deleted


def list_orders(
    stores: Stores,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    supplier_id: str | None = None,
    category_id: str | None = None,
    status: OrderStatus | None = None,
) -> list[StockInOrder]:
    orders = stores.stock_in_orders.get_all()
    if start_date:
        orders = [o for o in orders if o.order_date >= as_utc(start_date)]
    if end_date:
        orders = [o for o in orders if o.order_date <= as_utc(end_date)]
    if supplier_id:
        orders = [o for o in orders if o.supplier_id == supplier_id]
    if status:
        orders = [o for o in orders if o.status == status]
    if category_id:
        material_ids = {m.id for m in stores.materials.get_all() if m.category_id == category_id}
        order_ids = {i.order_id for i in stores.stock_in_items.get_all() if i.material_id in material_ids}
        orders = [o for o in orders if o.id in order_ids]
    return sorted(orders, key=lambda o: o.order_date, reverse=True)
