from datetime import datetime

from pydantic import BaseModel

from warehouse.models.user import Role


class LoginRequest(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str
    password: str
    name: str
    email: str
    role: Role = Role.STAFF
    is_active: bool = True
    permissions: dict[str, list[str]] | None = None


class UserUpdate(BaseModel):
    username: str | None = None
    password: str | None = None
    name: str | None = None
    email: str | None = None
    role: Role | None = None
    is_active: bool | None = None
    permissions: dict[str, list[str]] | None = None


class PermissionsUpdate(BaseModel):
    permissions: dict[str, list[str]]


class UserOut(BaseModel):
    id: str
    username: str
    name: str
    email: str
    role: Role
    permissions: dict[str, list[str]]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
