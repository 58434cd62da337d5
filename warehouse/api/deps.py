from fastapi import Cookie, Depends, HTTPException, Request

from warehouse.models.user import User
from warehouse.services import user_service
from warehouse.services.record_store import Stores
from warehouse.sync.loop import InventorySync


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_sync(request: Request) -> InventorySync:
    return request.app.state.sync


def get_current_user(
    token: str | None = Cookie(default=None, alias="token"),
    stores: Stores = Depends(get_stores),
) -> User:
    """Dependency: extract user from JWT cookie."""
    if not token:
        raise HTTPException(401, "Not authenticated")
    payload = user_service.decode_token(token)
    if not payload:
        raise HTTPException(401, "Invalid or expired token")
    user = user_service.get_user_by_id(stores, payload["sub"])
    if not user or not user.is_active:
        raise HTTPException(401, "User not found or disabled")
    return user
