import pytest

from warehouse.errors import ValidationError
from warehouse.sync.events import CollectionUpdated, InventoryChanged


def test_create_assigns_id_and_timestamps(stores):
    category = stores.categories.create({"name": "Paint", "id": "forced"})
    assert category.id and category.id != "forced"
    assert category.created_at == category.updated_at
    assert stores.categories.get_by_id(category.id) == category


def test_create_rejects_invalid_record(stores):
    with pytest.raises(ValidationError) as exc:
        stores.materials.create({"name": "No category"})
    assert "category_id" in exc.value.fields


def test_update_merges_and_protects_id(stores):
    category = stores.categories.create({"name": "Paint"})
    updated = stores.categories.update(category.id, {"name": "Coatings", "id": "other", "created_at": None})
    assert updated.id == category.id
    assert updated.name == "Coatings"
    assert updated.created_at == category.created_at
    assert updated.updated_at >= category.updated_at


def test_update_unknown_id_returns_none(stores):
    assert stores.categories.update("missing", {"name": "x"}) is None


def test_delete_and_delete_many(stores):
    ids = [stores.categories.create({"name": f"c{i}"}).id for i in range(3)]
    assert stores.categories.delete(ids[0])
    assert not stores.categories.delete(ids[0])
    assert stores.categories.delete_many(ids[1:] + ["missing"]) == 2
    assert stores.categories.get_all() == []


def test_find_and_find_one(stores):
    stores.categories.create({"name": "a"})
    b = stores.categories.create({"name": "b"})
    assert stores.categories.find(lambda c: c.name == "b") == [b]
    assert stores.categories.find_one(lambda c: c.name == "zzz") is None


def test_inventory_update_publishes_inventory_changed(stores, catalog):
    received = []
    stores.bus.subscribe(InventoryChanged, received.append)
    item = stores.inventory.create({"material_id": catalog["pipe"].id, "last_updated": "2024-01-01T00:00:00Z"})
    assert received == []

    stores.inventory.update(item.id, {"quantity": 5})
    assert len(received) == 1
    assert received[0].source == "storage-service"
    assert received[0].material_ids == (catalog["pipe"].id,)


def test_other_collection_update_publishes_collection_updated(stores):
    received = []
    stores.bus.subscribe(CollectionUpdated, received.append)
    category = stores.categories.create({"name": "Paint"})
    stores.categories.update(category.id, {"name": "Coatings"})
    assert [(e.collection, e.record_id) for e in received] == [("categories", category.id)]


def test_events_wait_for_commit(stores, catalog):
    received = []
    stores.bus.subscribe(InventoryChanged, received.append)
    item = stores.inventory.create({"material_id": catalog["pipe"].id, "last_updated": "2024-01-01T00:00:00Z"})
    with pytest.raises(RuntimeError):
        with stores.transaction():
            stores.inventory.update(item.id, {"quantity": 5})
            raise RuntimeError
    assert received == []
    assert stores.inventory.get_by_id(item.id).quantity == 0
