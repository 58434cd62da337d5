from fastapi import APIRouter, Depends, HTTPException, Response

from warehouse.api.deps import get_current_user, get_stores
from warehouse.models.user import Module, Permission, User
from warehouse.schemas.user import LoginRequest, PermissionsUpdate, UserCreate, UserOut, UserUpdate
from warehouse.services import user_service
from warehouse.services.permission_service import require_permission
from warehouse.services.record_store import Stores

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
def login(data: LoginRequest, response: Response, stores: Stores = Depends(get_stores)):
    user = user_service.authenticate(stores, data.username, data.password)
    if not user:
        raise HTTPException(401, "Invalid username or password")
    token = user_service.create_access_token(user.id, user.username)
    response.set_cookie("token", token, httponly=True, samesite="lax", max_age=3600 * 72)
    return {"token": token, "user": UserOut.model_validate(user)}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie("token")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.get("/users", response_model=list[UserOut])
def list_users(user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.USERS, Permission.VIEW)
    return user_service.list_users(stores)


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(data: UserCreate, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.USERS, Permission.MANAGE_USERS)
    return user_service.create_user(stores, data)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: str, data: UserUpdate, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)
):
    require_permission(user, Module.USERS, Permission.MANAGE_USERS)
    return user_service.update_user(stores, user_id, data)


@router.put("/users/{user_id}/permissions", response_model=UserOut)
def update_permissions(
    user_id: str, data: PermissionsUpdate, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)
):
    require_permission(user, Module.USERS, Permission.MANAGE_USERS)
    return user_service.update_permissions(stores, user_id, data.permissions)


@router.patch("/users/{user_id}/active", response_model=UserOut)
def toggle_user_active(user_id: str, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.USERS, Permission.EDIT)
    return user_service.toggle_active(stores, user, user_id)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: str, user: User = Depends(get_current_user), stores: Stores = Depends(get_stores)):
    require_permission(user, Module.USERS, Permission.DELETE)
    if not user_service.delete_user(stores, user, user_id):
        raise HTTPException(404, "User not found")
