from datetime import datetime
from enum import Enum as PyEnum

from warehouse.models.base import Record


class OrderStatus(str, PyEnum):
    DRAFT = "draft"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StockInOrder(Record):
    order_number: str
    supplier_id: str
    project_id: str | None = None
    order_date: datetime
    status: OrderStatus = OrderStatus.DRAFT
    notes: str = ""
    created_by: str = ""


class StockInItem(Record):
    order_id: str
    material_id: str
    quantity: float
    unit_price: float
    total_price: float
    notes: str = ""


class StockOutOrder(Record):
    order_number: str
    project_id: str
    order_date: datetime
    status: OrderStatus = OrderStatus.DRAFT
    recipient_name: str
    recipient_contact: str = ""
    notes: str = ""
    created_by: str = ""


class StockOutItem(Record):
    order_id: str
    material_id: str
    quantity: float
    notes: str = ""
