# Shared fixtures: an in-memory database per test, record stores over it,
# users of every role and a small catalog with stock on hand.

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from warehouse.database import init_db
from warehouse.models.user import Role
from warehouse.schemas.user import UserCreate
from warehouse.services import ledger, user_service
from warehouse.services.record_store import Stores
from warehouse.storage import Storage
from warehouse.sync.events import EventBus, InventoryChanged


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def storage(session_factory):
    return Storage(session_factory, origin="tab-a")


@pytest.fixture
def other_storage(session_factory):
    """A second execution context writing to the same database."""
    return Storage(session_factory, origin="tab-b")


@pytest.fixture
def stores(storage):
    return Stores(storage, EventBus())


@pytest.fixture
def other_stores(other_storage):
    return Stores(other_storage, EventBus())


def _user(stores, username, role, **extra):
    return user_service.create_user(
        stores,
        UserCreate(
            username=username,
            password="secret123",
            name=f"{username.title()} User",
            email=f"{username}@example.com",
            role=role,
            **extra,
        ),
    )


@pytest.fixture
def admin(stores):
    return _user(stores, "admin", Role.ADMIN)


@pytest.fixture
def manager(stores):
    return _user(stores, "manager", Role.MANAGER)


@pytest.fixture
def staff(stores):
    return _user(stores, "staff", Role.STAFF)


@pytest.fixture
def catalog(stores):
    """One category, supplier and project with two materials (no stock yet)."""
    category = stores.categories.create({"name": "Plumbing"})
    supplier = stores.suppliers.create({"name": "Pipe Co", "contact_person": "Ann", "phone": "555-0100"})
    project = stores.projects.create(
        {
            "name": "Flat 302",
            "address": "1 Main St",
            "manager": "Bob",
            "manager_contact": "555-0101",
            "start_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
    )
    pipe = stores.materials.create(
        {
            "name": "Water pipe",
            "specification": "PPR-20mm",
            "category_id": category.id,
            "unit": "m",
            "supplier_id": supplier.id,
            "reference_price": 15,
        }
    )
    wire = stores.materials.create(
        {
            "name": "Electrical wire",
            "specification": "BV-2.5mm",
            "category_id": category.id,
            "unit": "roll",
            "supplier_id": supplier.id,
            "reference_price": 180,
        }
    )
    return {"category": category, "supplier": supplier, "project": project, "pipe": pipe, "wire": wire}


@pytest.fixture
def stocked(stores, catalog):
    """The catalog with 50 m of pipe on hand and no wire."""
    ledger.receive_stock(stores, catalog["pipe"].id, 50, "seed", "tester")
    return catalog


@pytest.fixture
def events(stores):
    """Every InventoryChanged published on the stores' bus."""
    received = []
    stores.bus.subscribe(InventoryChanged, received.append)
    return received
