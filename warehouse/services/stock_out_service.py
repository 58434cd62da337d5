import logging
from datetime import datetime

from warehouse.errors import InsufficientStock, NotFoundError, ValidationError
from warehouse.models.base import as_utc
from warehouse.models.stock import OrderStatus, StockOutItem, StockOutOrder
from warehouse.models.user import Module, Permission, User
from warehouse.schemas.stock import StockOutOrderOut, StockOutOrderSave
from warehouse.services import ledger
from warehouse.services.order_numbers import STOCK_OUT_PREFIX, next_order_number
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores
from warehouse.services.validation import FieldErrors

logger = logging.getLogger(__name__)


def _validate(stores: Stores, data: StockOutOrderSave) -> None:
    errors = FieldErrors()
    if not data.project_id:
        errors.add("project_id", "required")
    elif stores.projects.get_by_id(data.project_id) is None:
        errors.add("project_id", "project not found")
    if data.order_date is None:
        errors.add("order_date", "required")
    if not data.recipient_name.strip():
        errors.add("recipient_name", "required")
    if not data.items:
        errors.add("items", "at least one item is required")

    material_ids = {m.id for m in stores.materials.get_all()}
    for index, line in enumerate(data.items):
        if not line.material_id:
            errors.add(f"items.{index}.material_id", "required")
        elif line.material_id not in material_ids:
            errors.add(f"items.{index}.material_id", "material not found")
        errors.positive(f"items.{index}.quantity", line.quantity)
    errors.raise_if_any("Invalid stock-out order")


def check_availability(stores: Stores, lines) -> None:
    """Raise InsufficientStock if the lines, summed per material, exceed stock on hand."""
    requested: dict[str, float] = {}
    for line in lines:
        requested[line.material_id] = requested.get(line.material_id, 0) + line.quantity
    on_hand = {i.material_id: i.quantity for i in stores.inventory.get_all()}
    for material_id, quantity in requested.items():
        current = on_hand.get(material_id, 0)
        if current - quantity < 0:
            logger.warning("Stock-out of %s for material %s exceeds %s on hand", quantity, material_id, current)
            raise InsufficientStock(material_id, current, -quantity)


def get_order(stores: Stores, order_id: str) -> StockOutOrder:
    order = stores.stock_out_orders.get_by_id(order_id)
    if order is None:
        raise NotFoundError("Stock-out order", order_id)
    return order


def get_items(stores: Stores, order_id: str) -> list[StockOutItem]:
    return stores.stock_out_items.find(lambda i: i.order_id == order_id)


def get_order_detail(stores: Stores, order_id: str) -> StockOutOrderOut:
    order = get_order(stores, order_id)
    items = get_items(stores, order_id)
    return StockOutOrderOut(**order.model_dump(), items=items, total_quantity=sum(i.quantity for i in items))


def _issue_all(stores: Stores, order: StockOutOrder, items: list[StockOutItem], actor: str) -> None:
    for item in items:
        ledger.issue_stock(
            stores,
            item.material_id,
            item.quantity,
            order.id,
            actor,
            notes=f"Stock out {order.order_number}",
            notify=False,
        )
    stores.publish_inventory_changed(
        "stock-out", order_id=order.id, material_ids=list(dict.fromkeys(i.material_id for i in items))
    )


def save_order(stores: Stores, user: User, data: StockOutOrderSave, order_id: str | None = None) -> StockOutOrder:
    """Create or replace a stock-out order and its lines.

    Inventory is issued only when the order moves into ``completed``; every
    line is checked against stock on hand before anything is written.
    """
    require_permission(user, Module.STOCK_OUT, Permission.EDIT)

    # Reads and guards share the write lock with the writes below
    with stores.transaction():
        current = get_order(stores, order_id) if order_id else None
        if current and current.status == OrderStatus.COMPLETED:
            raise ValidationError("Completed orders cannot be edited")
        _validate(stores, data)

        order_date = as_utc(data.order_date)
        header = {
            "project_id": data.project_id,
            "order_date": order_date,
            "status": data.status,
            "recipient_name": data.recipient_name,
            "recipient_contact": data.recipient_contact,
            "notes": data.notes,
        }

        if data.status == OrderStatus.COMPLETED:
            check_availability(stores, data.items)
        if current:
            if data.order_number:
                header["order_number"] = data.order_number
            order = stores.stock_out_orders.update(current.id, header)
            stores.stock_out_items.delete_many(i.id for i in get_items(stores, current.id))
        else:
            header["order_number"] = data.order_number or next_order_number(
                STOCK_OUT_PREFIX, order_date, stores.stock_out_orders.get_all()
            )
            header["created_by"] = user.username
            order = stores.stock_out_orders.create(header)

        items = [
            stores.stock_out_items.create(
                {
                    "order_id": order.id,
                    "material_id": line.material_id,
                    "quantity": line.quantity,
                    "notes": line.notes,
                }
            )
            for line in data.items
        ]
        if order.status == OrderStatus.COMPLETED:
            _issue_all(stores, order, items, user.username)

    logger.info("Saved stock-out order %s (%s) with %d items", order.order_number, order.status.value, len(items))
    return order


def set_status(stores: Stores, user: User, order_id: str, status: OrderStatus) -> StockOutOrder:
    require_permission(user, Module.STOCK_OUT, Permission.EDIT)
    with stores.transaction():
        order = get_order(stores, order_id)
        if order.status == status:
            return order
        if order.status == OrderStatus.COMPLETED:
            raise ValidationError("Completed orders cannot change status")
        items = get_items(stores, order_id)
        if status == OrderStatus.COMPLETED and not items:
            raise ValidationError("Cannot complete an order without items")
        if status == OrderStatus.COMPLETED:
            check_availability(stores, items)
        order = stores.stock_out_orders.update(order_id, {"status": status})
        if status == OrderStatus.COMPLETED:
            _issue_all(stores, order, items, user.username)
    logger.info("Stock-out order %s is now %s", order.order_number, status.value)
    return order


def delete_order(stores: Stores, user: User, order_id: str) -> bool:
    """Delete the header and its lines. Inventory already issued is not reversed."""
    require_permission(user, Module.STOCK_OUT, Permission.DELETE)
    with stores.transaction():
        stores.stock_out_items.delete_many(i.id for i in get_items(stores, order_id))
        deleted = stores.stock_out_orders.delete(order_id)
    if deleted:
        logger.info("Deleted stock-out order %s", order_id)
    return deleted


def list_orders(
    stores: Stores,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    project_id: str | None = None,
    category_id: str | None = None,
    status: OrderStatus | None = None,
) -> list[StockOutOrder]:
    orders = stores.stock_out_orders.get_all()
    if start_date:
        orders = [o for o in orders if o.order_date >= as_utc(start_date)]
    if end_date:
        orders = [o for o in orders if o.order_date <= as_utc(end_date)]
    if project_id:
        orders = [o for o in orders if o.project_id == project_id]
    if status:
        orders = [o for o in orders if o.status == status]
    if category_id:
        material_ids = {m.id for m in stores.materials.get_all() if m.category_id == category_id}
        order_ids = {i.order_id for i in stores.stock_out_items.get_all() if i.material_id in material_ids}
        orders = [o for o in orders if o.id in order_ids]
    return sorted(orders, key=lambda o: o.order_date, reverse=True)
