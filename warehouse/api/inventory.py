from fastapi import APIRouter, Depends, Query

from warehouse.api.deps import get_current_user, get_stores
from warehouse.models.inventory import InventoryItem, InventoryTransaction
from warehouse.models.user import Module, Permission, User
from warehouse.schemas.inventory import (
    InventoryAdjust,
    InventoryRowOut,
    LowStockOut,
    ReconcileOut,
    ThresholdUpdate,
)
from warehouse.services import inventory_service, ledger
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("", response_model=list[InventoryRowOut])
def list_inventory(
    category_id: str | None = None,
    search: str | None = None,
    stock_status: str | None = Query(None, pattern="^(low|normal)$"),
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    require_permission(user, Module.INVENTORY, Permission.VIEW)
    rows = inventory_service.list_inventory(stores, category_id=category_id, search=search, stock_status=stock_status)
    return [InventoryRowOut(item=r.item, material=r.material, is_low_stock=r.is_low_stock) for r in rows]


@router.get("/low-stock", response_model=list[LowStockOut])
def low_stock(user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.INVENTORY, Permission.VIEW)
    return [LowStockOut(**vars(entry)) for entry in ledger.low_stock_report(stores)]


@router.get("/transactions", response_model=list[InventoryTransaction])
def list_transactions(
    material_id: str | None = None,
    limit: int = 100,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    require_permission(user, Module.INVENTORY, Permission.VIEW)
    return inventory_service.list_transactions(stores, material_id=material_id, limit=limit)


@router.get("/reconcile", response_model=list[ReconcileOut])
def reconcile(user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.REPORTS, Permission.VIEW)
    return [ReconcileOut(**vars(m)) for m in ledger.reconcile(stores)]


@router.post("/{item_id}/adjust", response_model=InventoryItem)
def adjust_inventory(
    item_id: str,
    data: InventoryAdjust,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    return inventory_service.adjust_inventory(stores, user, item_id, data.quantity, data.reason, data.notes)


@router.patch("/{item_id}/threshold", response_model=InventoryItem)
def set_threshold(
    item_id: str,
    data: ThresholdUpdate,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    return inventory_service.set_alert_threshold(stores, user, item_id, data.alert_threshold)
