from warehouse.services import ledger, report_service
from warehouse.services.seed_service import INITIALIZED_KEY, initialize_data, is_initialized


def test_seed_runs_once(stores):
    assert initialize_data(stores, seed_demo_data=True)
    assert is_initialized(stores)
    assert len(stores.categories.get_all()) == 3
    assert len(stores.suppliers.get_all()) == 2
    assert len(stores.materials.get_all()) == 4
    assert len(stores.projects.get_all()) == 1
    assert [u.username for u in stores.users.get_all()] == ["admin"]

    assert not initialize_data(stores, seed_demo_data=True)
    assert len(stores.materials.get_all()) == 4


def test_seed_without_demo_data(stores):
    assert initialize_data(stores, seed_demo_data=False)
    assert stores.materials.get_all() == []
    assert stores.storage.get_json(INITIALIZED_KEY) is True


def test_inventory_summary(stores, stocked):
    ledger.ensure_inventory_items(stores)
    summary = report_service.inventory_summary(stores)
    assert summary["total_materials"] == 2
    assert summary["total_units_in_stock"] == 50
    assert summary["total_inventory_value"] == 750
    assert summary["low_stock_count"] == 1
    [group] = summary["by_category"]
    assert group["material_count"] == 2


def test_category_stock_omits_empty_categories(stores, stocked):
    empty = stores.categories.create({"name": "Empty"})
    rows = report_service.category_stock(
        stores.categories.get_all(), stores.materials.get_all(), stores.inventory.get_all()
    )
    names = [r["name"] for r in rows]
    assert "Plumbing" in names
    assert empty.name not in names


def test_recent_activities_use_absolute_quantities(stores, stocked):
    ledger.issue_stock(stores, stocked["pipe"].id, 4, "out", "staff")
    txs = sorted(stores.transactions.get_all(), key=lambda t: t.transaction_date, reverse=True)
    [latest, _] = report_service.recent_activities(txs, stores.materials.get_all(), 5)
    assert latest["quantity"] == 4
    assert latest["material"] == "Water pipe"
    assert latest["operator"] == "staff"
    assert latest["type"] == "stock_out"
