import pytest

from warehouse.errors import InsufficientStock, InvalidAdjustment, NotFoundError, ValidationError
from warehouse.models.inventory import TransactionType
from warehouse.services import ledger


def _snapshot(stores):
    return (
        stores.storage.get_item("inventory"),
        stores.storage.get_item("inventoryTransactions"),
    )


class TestReceive:
    def test_receive_creates_missing_item(self, stores, catalog):
        pipe = catalog["pipe"]
        assert ledger.get_item_for_material(stores, pipe.id) is None

        item = ledger.receive_stock(stores, pipe.id, 5, "order-1", "admin")

        assert item.quantity == 5
        assert item.alert_threshold == 10
        txs = stores.transactions.get_all()
        assert len(txs) == 1
        assert txs[0].type == TransactionType.STOCK_IN
        assert txs[0].quantity == 5
        assert txs[0].reference_id == "order-1"
        assert txs[0].created_by == "admin"

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_receive_rejects_non_positive_quantity(self, stores, catalog, quantity):
        with pytest.raises(ValidationError):
            ledger.receive_stock(stores, catalog["pipe"].id, quantity, "", "admin")
        assert stores.transactions.get_all() == []

    def test_receive_unknown_material(self, stores, catalog):
        with pytest.raises(NotFoundError):
            ledger.receive_stock(stores, "missing", 1, "", "admin")

    def test_receive_publishes_one_event(self, stores, catalog, events):
        ledger.receive_stock(stores, catalog["pipe"].id, 5, "order-1", "admin")
        sources = [e.source for e in events]
        assert sources.count("stock-in") == 1
        stock_in = next(e for e in events if e.source == "stock-in")
        assert stock_in.order_id == "order-1"
        assert stock_in.material_ids == (catalog["pipe"].id,)


class TestIssue:
    def test_issue_more_than_on_hand_changes_nothing(self, stores, catalog):
        pipe = catalog["pipe"]
        ledger.receive_stock(stores, pipe.id, 5, "order-1", "admin")
        before = _snapshot(stores)

        with pytest.raises(InsufficientStock) as exc:
            ledger.issue_stock(stores, pipe.id, 8, "order-2", "admin")

        assert exc.value.current == 5
        assert exc.value.delta == -8
        assert _snapshot(stores) == before
        assert ledger.get_item_for_material(stores, pipe.id).quantity == 5
        assert len(stores.transactions.get_all()) == 1

    def test_issue_without_item_is_insufficient(self, stores, catalog):
        with pytest.raises(InsufficientStock):
            ledger.issue_stock(stores, catalog["wire"].id, 1, "", "admin")
        assert stores.inventory.get_all() == []

    def test_issue_records_negative_delta(self, stores, stocked):
        item = ledger.issue_stock(stores, stocked["pipe"].id, 20, "order-9", "staff")
        assert item.quantity == 30
        tx = [t for t in stores.transactions.get_all() if t.type == TransactionType.STOCK_OUT]
        assert [(t.quantity, t.reference_id) for t in tx] == [(-20, "order-9")]


class TestAdjust:
    def test_adjust_down_to_zero_then_reject(self, stores, catalog):
        pipe = catalog["pipe"]
        item = ledger.receive_stock(stores, pipe.id, 5, "order-1", "admin")

        item = ledger.adjust(stores, item.id, -5, "damage", "", "admin")
        assert item.quantity == 0

        before = _snapshot(stores)
        with pytest.raises(InsufficientStock):
            ledger.adjust(stores, item.id, -1, "damage", "", "admin")
        assert _snapshot(stores) == before

    def test_adjust_notes_format(self, stores, stocked):
        item = ledger.get_item_for_material(stores, stocked["pipe"].id)
        ledger.adjust(stores, item.id, 3, "recount", None, "admin")
        ledger.adjust(stores, item.id, -1, "damage", "cracked", "admin")
        notes = [t.notes for t in stores.transactions.get_all() if t.type == TransactionType.ADJUSTMENT]
        assert notes == ["Reason: recount. Notes: none", "Reason: damage. Notes: cracked"]

    @pytest.mark.parametrize("delta,reason", [(0, "recount"), (2, "")])
    def test_adjust_rejects_invalid_input(self, stores, stocked, delta, reason):
        item = ledger.get_item_for_material(stores, stocked["pipe"].id)
        with pytest.raises(InvalidAdjustment):
            ledger.adjust(stores, item.id, delta, reason, "", "admin")

    def test_adjust_unknown_item(self, stores, stocked):
        with pytest.raises(InvalidAdjustment):
            ledger.adjust(stores, "missing", 1, "recount", "", "admin")


class TestInvariants:
    def test_quantities_reconcile_with_transactions(self, stores, catalog):
        pipe, wire = catalog["pipe"].id, catalog["wire"].id
        ledger.receive_stock(stores, pipe, 40, "in-1", "admin")
        ledger.receive_stock(stores, wire, 12.5, "in-2", "admin")
        ledger.issue_stock(stores, pipe, 15, "out-1", "admin")
        item = ledger.get_item_for_material(stores, wire)
        ledger.adjust(stores, item.id, -2.5, "damage", "", "admin")
        with pytest.raises(InsufficientStock):
            ledger.issue_stock(stores, wire, 100, "out-2", "admin")

        assert ledger.reconcile(stores) == []
        assert ledger.get_item_for_material(stores, pipe).quantity == 25
        assert ledger.get_item_for_material(stores, wire).quantity == 10

    def test_reconcile_reports_drift(self, stores, stocked):
        item = ledger.get_item_for_material(stores, stocked["pipe"].id)
        stores.inventory.update(item.id, {"quantity": 49})
        [mismatch] = ledger.reconcile(stores)
        assert (mismatch.material_id, mismatch.quantity, mismatch.ledger_total) == (stocked["pipe"].id, 49, 50)

    def test_provisioning_is_idempotent(self, stores, catalog):
        created = ledger.ensure_inventory_items(stores)
        assert len(created) == 2
        assert ledger.ensure_inventory_items(stores) == []
        material_ids = [i.material_id for i in stores.inventory.get_all()]
        assert sorted(material_ids) == sorted([catalog["pipe"].id, catalog["wire"].id])
        assert all(i.quantity == 0 for i in stores.inventory.get_all())

    def test_low_stock_report(self, stores, stocked):
        ledger.ensure_inventory_items(stores)
        report = ledger.low_stock_report(stores)
        assert [e.material_id for e in report] == [stocked["wire"].id]

        ledger.receive_stock(stores, stocked["wire"].id, 10, "in", "admin")
        assert [e.current for e in ledger.low_stock_report(stores)] == [10]

        ledger.receive_stock(stores, stocked["wire"].id, 1, "in", "admin")
        assert ledger.low_stock_report(stores) == []

    def test_low_stock_sorted_most_critical_first(self, stores, catalog):
        ledger.receive_stock(stores, catalog["pipe"].id, 8, "in", "admin")
        ledger.receive_stock(stores, catalog["wire"].id, 2, "in", "admin")
        assert [e.current for e in ledger.low_stock_report(stores)] == [2, 8]
