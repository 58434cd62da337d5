from fastapi import APIRouter, Depends, Request

from warehouse.api.deps import get_current_user, get_stores, get_sync
from warehouse.models.user import Module, Permission, User
from warehouse.services import report_service
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores
from warehouse.sync.loop import InventorySync

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard")
def dashboard(request: Request, user: User = Depends(get_current_user), sync: InventorySync = Depends(get_sync)):
    require_permission(user, Module.DASHBOARD, Permission.VIEW)
    if sync.snapshot is None:
        sync.refresh("dashboard")
    return {**request.app.state.dashboard_view.as_dict(), "sync": sync.as_dict()}


@router.get("/sync/status")
def sync_status(user: User = Depends(get_current_user), sync: InventorySync = Depends(get_sync)):
    return sync.as_dict()


@router.post("/sync/refresh")
def sync_refresh(user: User = Depends(get_current_user), sync: InventorySync = Depends(get_sync)):
    """The client regained focus or asked for a manual refresh."""
    refreshed = sync.on_focus()
    return {"refreshed": refreshed, **sync.as_dict()}


@router.get("/reports/inventory")
def inventory_report(user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.REPORTS, Permission.VIEW)
    return report_service.inventory_summary(stores)
