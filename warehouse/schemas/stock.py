from datetime import datetime

from pydantic import BaseModel

from warehouse.models.stock import OrderStatus, StockInItem, StockInOrder, StockOutItem, StockOutOrder


class StockInItemIn(BaseModel):
    material_id: str = ""
    quantity: float = 0
    unit_price: float = 0
    notes: str = ""


class StockInOrderSave(BaseModel):
    order_number: str = ""
    supplier_id: str = ""
    project_id: str | None = None
    order_date: datetime | None = None
    status: OrderStatus = OrderStatus.DRAFT
    notes: str = ""
    items: list[StockInItemIn] = []


class StockInOrderOut(StockInOrder):
    items: list[StockInItem] = []
    total_amount: float = 0.0


class StockOutItemIn(BaseModel):
    material_id: str = ""
    quantity: float = 0
    notes: str = ""


class StockOutOrderSave(BaseModel):
    order_number: str = ""
    project_id: str = ""
    order_date: datetime | None = None
    status: OrderStatus = OrderStatus.DRAFT
    recipient_name: str = ""
    recipient_contact: str = ""
    notes: str = ""
    items: list[StockOutItemIn] = []


class StockOutOrderOut(StockOutOrder):
    items: list[StockOutItem] = []
    total_quantity: float = 0.0


class OrderStatusChange(BaseModel):
    status: OrderStatus
