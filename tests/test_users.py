import pytest

from warehouse.errors import DuplicateUsername, NotFoundError, ValidationError
from warehouse.models.user import Role, default_permissions
from warehouse.schemas.user import UserCreate, UserUpdate
from warehouse.services import user_service


def _create(stores, username="admin", role=Role.ADMIN, **extra):
    data = {
        "username": username,
        "password": "secret123",
        "name": "Some Body",
        "email": f"{username}@example.com",
        "role": role,
    }
    data.update(extra)
    return user_service.create_user(stores, UserCreate(**data))


def test_duplicate_username_leaves_first_unchanged(stores):
    first = _create(stores, name="First Admin")
    with pytest.raises(DuplicateUsername):
        _create(stores, name="Second Admin")
    assert stores.users.get_all() == [first]


def test_password_is_hashed(stores):
    user = _create(stores)
    assert user.password_hash != "secret123"
    assert user_service.verify_password("secret123", user.password_hash)
    assert user_service.authenticate(stores, "admin", "secret123") == user
    assert user_service.authenticate(stores, "admin", "wrong") is None
    assert user_service.authenticate(stores, "nobody", "secret123") is None


def test_default_permissions_follow_role(stores):
    user = _create(stores, "worker", Role.STAFF)
    assert user.permissions == default_permissions(Role.STAFF)
    assert user.permissions["reports"] == []


@pytest.mark.parametrize(
    "field,value",
    [
        ("username", "ab"),
        ("password", "123"),
        ("name", "A"),
        ("email", "not-an-email"),
        ("permissions", {"warehouse": ["view"]}),
    ],
)
def test_create_validation(stores, field, value):
    with pytest.raises(ValidationError) as exc:
        _create(stores, **{field: value})
    assert any(key.startswith(field) for key in exc.value.fields)
    assert stores.users.get_all() == []


def test_inactive_user_cannot_authenticate(stores, admin):
    _create(stores, "worker", Role.STAFF, is_active=False)
    assert user_service.authenticate(stores, "worker", "secret123") is None


def test_token_round_trip(admin):
    token = user_service.create_access_token(admin.id, admin.username)
    payload = user_service.decode_token(token)
    assert payload["sub"] == admin.id
    assert user_service.decode_token(token + "x") is None


class TestUpdate:
    def test_update_rehashes_password(self, stores, admin, staff):
        user_service.update_user(stores, staff.id, UserUpdate(password="newpass1"))
        assert user_service.authenticate(stores, "staff", "newpass1") is not None
        assert user_service.authenticate(stores, "staff", "secret123") is None

    def test_rename_to_existing_username(self, stores, admin, staff):
        with pytest.raises(DuplicateUsername):
            user_service.update_user(stores, staff.id, UserUpdate(username="admin"))

    def test_cannot_demote_last_admin(self, stores, admin):
        with pytest.raises(ValidationError):
            user_service.update_user(stores, admin.id, UserUpdate(role=Role.STAFF))

    def test_unknown_user(self, stores):
        with pytest.raises(NotFoundError):
            user_service.update_user(stores, "missing", UserUpdate(name="Nobody"))

    def test_update_permissions(self, stores, admin, staff):
        user = user_service.update_permissions(stores, staff.id, {"reports": ["view"]})
        assert user.permissions == {"reports": ["view"]}
        with pytest.raises(ValidationError):
            user_service.update_permissions(stores, staff.id, {"reports": ["fly"]})


class TestLastAdmin:
    def test_cannot_disable_or_delete_self(self, stores, admin):
        with pytest.raises(ValidationError):
            user_service.toggle_active(stores, admin, admin.id)
        with pytest.raises(ValidationError):
            user_service.delete_user(stores, admin, admin.id)

    def test_last_active_admin_is_protected(self, stores, admin):
        other = _create(stores, "boss", Role.ADMIN)
        user_service.toggle_active(stores, admin, other.id)
        disabled = user_service.get_user_by_id(stores, other.id)
        with pytest.raises(ValidationError):
            user_service.delete_user(stores, disabled, admin.id)
        with pytest.raises(ValidationError):
            user_service.toggle_active(stores, disabled, admin.id)

    def test_toggle_and_delete(self, stores, admin, staff):
        assert not user_service.toggle_active(stores, admin, staff.id).is_active
        assert user_service.toggle_active(stores, admin, staff.id).is_active
        assert user_service.delete_user(stores, admin, staff.id)
        assert not user_service.delete_user(stores, admin, staff.id)


def test_ensure_default_admin_only_once(stores):
    admin = user_service.ensure_default_admin(stores)
    assert admin.username == "admin"
    assert admin.role == Role.ADMIN
    assert user_service.ensure_default_admin(stores) is None


def test_padded_username_is_a_duplicate(stores):
    _create(stores, "admin")
    with pytest.raises(DuplicateUsername):
        _create(stores, " admin ")
    assert [u.username for u in stores.users.get_all()] == ["admin"]


def test_usernames_are_stored_trimmed(stores, admin):
    user = _create(stores, "  clerk ", Role.STAFF, email="clerk@example.com")
    assert user.username == "clerk"
    assert user_service.authenticate(stores, "clerk ", "secret123") == user

    with pytest.raises(DuplicateUsername):
        user_service.update_user(stores, user.id, UserUpdate(username="admin  "))
    renamed = user_service.update_user(stores, user.id, UserUpdate(username=" worker "))
    assert renamed.username == "worker"
