import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from warehouse.config import settings
from warehouse.errors import DuplicateUsername, NotFoundError, ValidationError
from warehouse.models.user import Module, Permission, Role, User, default_permissions
from warehouse.schemas.user import UserCreate, UserUpdate
from warehouse.services.record_store import Stores
from warehouse.services.validation import FieldErrors

logger = logging.getLogger(__name__)

VALID_MODULES = {m.value for m in Module}
VALID_PERMISSIONS = {p.value for p in Permission}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(user_id: str, username: str) -> str:
    payload = {
        "sub": user_id,
        "username": username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError):
        return None


def _check_permissions(errors: FieldErrors, permissions: dict[str, list[str]] | None) -> None:
    for module, granted in (permissions or {}).items():
        if module not in VALID_MODULES:
            errors.add(f"permissions.{module}", "unknown module")
        elif any(p not in VALID_PERMISSIONS for p in granted):
            errors.add(f"permissions.{module}", "unknown permission")


def _check_user(data: dict, require_password: bool) -> None:
    errors = FieldErrors()
    username = (data.get("username") or "").strip()
    if len(username) < 3:
        errors.add("username", "must be at least 3 characters")
    password = data.get("password")
    if require_password or password is not None:
        if not password or len(password) < 6:
            errors.add("password", "must be at least 6 characters")
    if len((data.get("name") or "").strip()) < 2:
        errors.add("name", "must be at least 2 characters")
    if not data.get("email"):
        errors.add("email", "required")
    errors.email("email", data.get("email"))
    _check_permissions(errors, data.get("permissions"))
    errors.raise_if_any("Invalid user")


def get_user_by_id(stores: Stores, user_id: str) -> User | None:
    return stores.users.get_by_id(user_id)


def get_user_by_username(stores: Stores, username: str) -> User | None:
    return stores.users.find_one(lambda u: u.username == username)


def list_users(stores: Stores) -> list[User]:
    return sorted(stores.users.get_all(), key=lambda u: u.created_at, reverse=True)


def authenticate(stores: Stores, username: str, password: str) -> User | None:
    user = get_user_by_username(stores, username.strip())
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


def create_user(stores: Stores, data: UserCreate) -> User:
    username = data.username.strip()
    _check_user({**data.model_dump(), "username": username}, require_password=True)
    with stores.transaction():
        if get_user_by_username(stores, username):
            raise DuplicateUsername(username)
        user = stores.users.create(
            {
                "username": username,
                "password_hash": hash_password(data.password),
                "name": data.name,
                "email": data.email,
                "role": data.role,
                "is_active": data.is_active,
                "permissions": data.permissions if data.permissions is not None else default_permissions(data.role),
            }
        )
    logger.info("Created user %s (%s)", user.username, user.role.value)
    return user


def _active_admins(stores: Stores, excluding: str | None = None) -> list[User]:
    return stores.users.find(lambda u: u.role == Role.ADMIN and u.is_active and u.id != excluding)


def update_user(stores: Stores, user_id: str, data: UserUpdate) -> User:
    current = get_user_by_id(stores, user_id)
    if current is None:
        raise NotFoundError("User", user_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("username") is not None:
        changes["username"] = changes["username"].strip()
    _check_user({**current.model_dump(), "password": None, **changes}, require_password=False)

    demoted = changes.get("role", current.role) != Role.ADMIN or changes.get("is_active", True) is False
    if current.role == Role.ADMIN and current.is_active and demoted and not _active_admins(stores, user_id):
        raise ValidationError("At least one active admin is required")

    with stores.transaction():
        new_username = changes.get("username")
        if new_username and new_username != current.username and get_user_by_username(stores, new_username):
            raise DuplicateUsername(new_username)
        password = changes.pop("password", None)
        if password:
            changes["password_hash"] = hash_password(password)
        user = stores.users.update(user_id, changes)
    logger.info("Updated user %s", user.username)
    return user


def update_permissions(stores: Stores, user_id: str, permissions: dict[str, list[str]]) -> User:
    errors = FieldErrors()
    _check_permissions(errors, permissions)
    errors.raise_if_any("Invalid permissions")
    user = stores.users.update(user_id, {"permissions": permissions})
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def toggle_active(stores: Stores, acting_user: User, user_id: str) -> User:
    target = get_user_by_id(stores, user_id)
    if target is None:
        raise NotFoundError("User", user_id)
    if target.id == acting_user.id:
        raise ValidationError("Cannot disable yourself")
    if target.is_active and target.role == Role.ADMIN and not _active_admins(stores, target.id):
        raise ValidationError("At least one active admin is required")
    user = stores.users.update(user_id, {"is_active": not target.is_active})
    logger.info("User %s is now %s", user.username, "enabled" if user.is_active else "disabled")
    return user


def delete_user(stores: Stores, acting_user: User, user_id: str) -> bool:
    target = get_user_by_id(stores, user_id)
    if target is None:
        return False
    if target.id == acting_user.id:
        raise ValidationError("Cannot delete yourself")
    if target.is_active and target.role == Role.ADMIN and not _active_admins(stores, target.id):
        raise ValidationError("At least one active admin is required")
    deleted = stores.users.delete(user_id)
    logger.info("Deleted user %s", target.username)
    return deleted


def ensure_default_admin(stores: Stores) -> User | None:
    """Create default admin user if no users exist."""
    if stores.users.get_all():
        return None
    return create_user(
        stores,
        UserCreate(
            username=settings.DEFAULT_ADMIN_USERNAME,
            password=settings.DEFAULT_ADMIN_PASSWORD,
            name="System Administrator",
            email="admin@example.com",
            role=Role.ADMIN,
        ),
    )
