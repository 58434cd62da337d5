from warehouse.errors import PermissionDenied
from warehouse.models.user import Module, Permission, Role, User


def _value(v) -> str:
    return v.value if isinstance(v, (Module, Permission)) else str(v)


def has_permission(user: User | None, module: Module | str, permission: Permission | str) -> bool:
    """Pure check: inactive/absent users never pass, admins always pass."""
    if user is None or not user.is_active:
        return False
    if user.role == Role.ADMIN:
        return True
    return _value(permission) in user.permissions.get(_value(module), [])


def require_permission(user: User | None, module: Module | str, permission: Permission | str) -> None:
    if not has_permission(user, module, permission):
        raise PermissionDenied(_value(module), _value(permission))
