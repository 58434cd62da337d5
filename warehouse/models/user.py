import copy
from enum import Enum as PyEnum

from warehouse.models.base import Record


class Role(str, PyEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class Module(str, PyEnum):
    DASHBOARD = "dashboard"
    INVENTORY = "inventory"
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    REPORTS = "reports"
    USERS = "users"


class Permission(str, PyEnum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"
    MANAGE_SETTINGS = "manage_settings"


DEFAULT_PERMISSIONS: dict[Role, dict[str, list[str]]] = {
    Role.ADMIN: {
        "dashboard": ["view"],
        "inventory": ["view", "edit", "delete"],
        "stock_in": ["view", "edit", "delete"],
        "stock_out": ["view", "edit", "delete"],
        "reports": ["view"],
        "users": ["view", "edit", "delete", "manage_users"],
    },
    Role.MANAGER: {
        "dashboard": ["view"],
        "inventory": ["view", "edit"],
        "stock_in": ["view", "edit"],
        "stock_out": ["view", "edit"],
        "reports": ["view"],
        "users": ["view"],
    },
    Role.STAFF: {
        "dashboard": ["view"],
        "inventory": ["view"],
        "stock_in": ["view", "edit"],
        "stock_out": ["view", "edit"],
        "reports": [],
        "users": [],
    },
}


def default_permissions(role: Role | str) -> dict[str, list[str]]:
    return copy.deepcopy(DEFAULT_PERMISSIONS[Role(role)])


class User(Record):
    username: str
    password_hash: str
    name: str
    email: str
    role: Role = Role.STAFF
    permissions: dict[str, list[str]] = {}
    is_active: bool = True
