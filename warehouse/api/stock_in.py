from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from warehouse.api.deps import get_current_user, get_stores
from warehouse.models.stock import OrderStatus, StockInOrder
from warehouse.models.user import Module, Permission, User
from warehouse.schemas.stock import OrderStatusChange, StockInOrderOut, StockInOrderSave
from warehouse.services import stock_in_service
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores

router = APIRouter(prefix="/stock-in", tags=["Stock In"])


@router.get("", response_model=list[StockInOrder])
def list_orders(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    supplier_id: str | None = None,
    category_id: str | None = None,
    status: OrderStatus | None = None,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    require_permission(user, Module.STOCK_IN, Permission.VIEW)
    return stock_in_service.list_orders(
        stores,
        start_date=start_date,
        end_date=end_date,
        supplier_id=supplier_id,
        category_id=category_id,
        status=status,
    )


@router.get("/{order_id}", response_model=StockInOrderOut)
def get_order(order_id: str, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.STOCK_IN, Permission.VIEW)
    return stock_in_service.get_order_detail(stores, order_id)


@router.post("", response_model=StockInOrderOut, status_code=201)
def create_order(data: StockInOrderSave, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    order = stock_in_service.save_order(stores, user, data)
    return stock_in_service.get_order_detail(stores, order.id)


@router.put("/{order_id}", response_model=StockInOrderOut)
def update_order(
    order_id: str, data: StockInOrderSave, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)
):
    order = stock_in_service.save_order(stores, user, data, order_id=order_id)
    return stock_in_service.get_order_detail(stores, order.id)


@router.post("/{order_id}/status", response_model=StockInOrder)
def change_status(
    order_id: str, data: OrderStatusChange, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)
):
    return stock_in_service.set_status(stores, user, order_id, data.status)


@router.delete("/{order_id}", status_code=204)
def delete_order(order_id: str, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    if not stock_in_service.delete_order(stores, user, order_id):
        raise HTTPException(404, "Stock-in order not found")
