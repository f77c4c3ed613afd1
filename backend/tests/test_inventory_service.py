# Overview: Pytest coverage for the dual-stock inventory ledger, restock and corrections.

"""
Inventory Ledger Tests

Every stock change writes exactly one audit event, and the stored counters
always equal the sum of their events.
"""

import pytest

from depot.extensions import db
from depot.errors import InsufficientCapital, InsufficientStock, NotFoundError, ValidationError
from depot.models import CapitalEntry, InventoryEvent, InventoryState
from depot.models.catalog import CATEGORY_FUEL_CANISTER
from depot.models.inventory import REASON_CORRECTION, REASON_MANUAL_RESTOCK, REASON_RETURN, REASON_SALE
from depot.services import capital_service
from depot.services.checkout_service import checkout
from depot.services.concurrency import run_in_transaction
from depot.services.inventory_service import (
    apply_delta,
    correct_inventory,
    get_inventory_state,
    list_inventory_events,
    list_inventory_states,
    replay_inventory,
    restock_product,
    sale_deltas,
    verify_inventory,
)


def _state(outlet_id, product_id):
    return get_inventory_state(outlet_id, product_id)


def _event_count(outlet_id, product_id):
    return db.session.query(InventoryEvent).filter_by(outlet_id=outlet_id, product_id=product_id).count()


class TestSaleAndRestockMovements:
    """Filled/empty exchange for returnable products."""

    def test_sale_deltas(self):
        assert sale_deltas(True, 3) == (-3, 3)
        assert sale_deltas(False, 3) == (-3, 0)

    def test_sell_then_restock_returnable(self, db_session, outlet_a, lpg, seed_stock):
        """10/2, sell 3 -> 7/5, restock 4 -> 11/1."""
        seed_stock(outlet_a.id, lpg.id, filled=10, empty=2)

        checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 3}], "cash", cash_tendered=54000)
        state = _state(outlet_a.id, lpg.id)
        assert (state["stock_filled"], state["stock_empty"]) == (7, 5)

        result = restock_product(outlet_a.id, lpg.id, 4)
        assert (result.state.stock_filled, result.state.stock_empty) == (11, 1)
        assert result.warning is None

    def test_restock_beyond_empties_clamps_with_warning(self, db_session, outlet_a, lpg, seed_stock):
        """Restock 10 against 1 empty: empty goes to 0, filled still +10, warning attached."""
        seed_stock(outlet_a.id, lpg.id, filled=2, empty=1)

        result = restock_product(outlet_a.id, lpg.id, 10)

        assert result.state.stock_filled == 12
        assert result.state.stock_empty == 0
        assert result.warning is not None
        assert result.warning.code == "EMPTY_STOCK_UNDERFLOW"
        assert result.warning.requested == 10
        assert result.warning.available == 1
        assert result.to_dict()["warning"]["shortfall"] == 9

        latest = list_inventory_events(outlet_id=outlet_a.id, product_id=lpg.id, limit=1)[0]
        assert latest.reason == REASON_MANUAL_RESTOCK
        assert (latest.delta_filled, latest.delta_empty) == (10, -1)

    def test_restock_general_product_keeps_empty_at_zero(self, db_session, outlet_a, snack):
        result = restock_product(outlet_a.id, snack.id, 24)

        assert result.state.stock_filled == 24
        assert result.state.stock_empty == 0
        assert result.warning is None

    def test_restock_requires_positive_quantity(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            restock_product(outlet_a.id, lpg.id, 0)
        with pytest.raises(ValidationError):
            restock_product(outlet_a.id, lpg.id, 2.5)

    def test_restock_unknown_product(self, db_session, outlet_a):
        with pytest.raises(NotFoundError):
            restock_product(outlet_a.id, 99999, 1)

    def test_restock_product_of_other_outlet(self, db_session, outlet_a, outlet_b, product_factory):
        private = product_factory(outlet_b, "Air Isi Ulang", CATEGORY_FUEL_CANISTER, 5000, is_global=False)
        with pytest.raises(NotFoundError):
            restock_product(outlet_a.id, private.id, 1)


class TestRestockCapitalDebit:
    """Optional booking of restock cost against outlet capital."""

    def test_restock_books_capital_out(self, db_session, outlet_a, lpg):
        capital_service.record_entry(outlet_a.id, "in", 1000000)

        result = restock_product(outlet_a.id, lpg.id, 5, record_capital=True)

        assert result.capital_entry is not None
        assert result.capital_entry.kind == "out"
        assert result.capital_entry.amount == 80000
        assert result.capital_entry.note == "AUTO:RESTOCK:LPG 3kg x5"
        assert capital_service.get_balance(outlet_a.id) == 920000

    def test_restock_rejected_when_capital_short(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=1, empty=5)
        capital_service.record_entry(outlet_a.id, "in", 10000)
        events_before = _event_count(outlet_a.id, lpg.id)

        with pytest.raises(InsufficientCapital):
            restock_product(outlet_a.id, lpg.id, 5, record_capital=True)

        state = _state(outlet_a.id, lpg.id)
        assert (state["stock_filled"], state["stock_empty"]) == (1, 5)
        assert _event_count(outlet_a.id, lpg.id) == events_before
        assert capital_service.get_balance(outlet_a.id) == 10000

    def test_zero_cost_restock_reports_capital_warning(self, db_session, outlet_a, product_factory):
        free = product_factory(outlet_a, "Tabung Promo", CATEGORY_FUEL_CANISTER, 0, 0)

        result = restock_product(outlet_a.id, free.id, 3, record_capital=True)

        assert result.capital_entry is None
        assert result.capital_warning
        assert db.session.query(CapitalEntry).filter_by(outlet_id=outlet_a.id).count() == 0

    def test_unpriced_product_restocks_with_capital_warning(self, db_session, outlet_a, outlet_b, product_factory):
        # Global product priced only at outlet B.
        tube = product_factory(outlet_b, "Tabung 12kg", CATEGORY_FUEL_CANISTER, 150000, 140000)
        capital_service.record_entry(outlet_a.id, "in", 1000000)

        result = restock_product(outlet_a.id, tube.id, 2, record_capital=True)

        assert result.state.stock_filled == 2
        assert result.capital_entry is None
        assert result.capital_warning
        assert capital_service.get_balance(outlet_a.id) == 1000000

    def test_config_flag_enables_debit(self, app, db_session, outlet_a, lpg):
        capital_service.record_entry(outlet_a.id, "in", 100000)
        app.config["DEPOT_RESTOCK_DEBITS_CAPITAL"] = True
        try:
            result = restock_product(outlet_a.id, lpg.id, 1)
        finally:
            app.config["DEPOT_RESTOCK_DEBITS_CAPITAL"] = False

        assert result.capital_entry.amount == 16000

    def test_debit_off_by_default(self, db_session, outlet_a, lpg):
        result = restock_product(outlet_a.id, lpg.id, 4)
        assert result.capital_entry is None
        assert result.capital_warning is None


class TestApplyDelta:
    """The single write entry point."""

    def test_insufficient_filled_raises_before_write(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=2, empty=0)
        events_before = _event_count(outlet_a.id, lpg.id)

        with pytest.raises(InsufficientStock) as exc:
            run_in_transaction(lambda: apply_delta(outlet_a.id, lpg.id, -3, 3, REASON_SALE))

        assert exc.value.details["items"][0]["available"] == 2
        assert exc.value.details["items"][0]["requested"] == 3
        assert "have 2, need 3" in exc.value.message
        assert _event_count(outlet_a.id, lpg.id) == events_before
        assert _state(outlet_a.id, lpg.id)["stock_filled"] == 2

    def test_general_product_never_carries_empties(self, db_session, outlet_a, snack):
        applied = run_in_transaction(lambda: apply_delta(outlet_a.id, snack.id, 5, 5, REASON_CORRECTION))

        assert applied.state.stock_empty == 0
        assert applied.event.delta_empty == 0

    def test_unknown_reason_rejected(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            run_in_transaction(lambda: apply_delta(outlet_a.id, lpg.id, 1, 0, "theft"))

    def test_event_records_applied_delta_after_clamp(self, db_session, outlet_a, gallon, seed_stock):
        seed_stock(outlet_a.id, gallon.id, filled=0, empty=2)

        applied = correct_inventory(outlet_a.id, gallon.id, delta_empty=-5, reason=REASON_RETURN)

        assert applied.state.stock_empty == 0
        assert applied.event.delta_empty == -2
        assert len(applied.warnings) == 1
        assert applied.warnings[0].shortfall == 3

    def test_creates_state_row_on_first_change(self, db_session, outlet_a, gallon):
        assert db.session.query(InventoryState).filter_by(outlet_id=outlet_a.id, product_id=gallon.id).count() == 0

        correct_inventory(outlet_a.id, gallon.id, delta_filled=4)

        assert _state(outlet_a.id, gallon.id)["stock_filled"] == 4


class TestCorrections:
    def test_correction_requires_a_change(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            correct_inventory(outlet_a.id, lpg.id, 0, 0)

    def test_correction_reason_limited(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            correct_inventory(outlet_a.id, lpg.id, 1, 0, reason=REASON_SALE)

    def test_correction_cannot_drive_filled_negative(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=1)
        with pytest.raises(InsufficientStock):
            correct_inventory(outlet_a.id, lpg.id, delta_filled=-2)


class TestAuditReplay:
    """Stored counters equal the sum of their events."""

    def test_replay_matches_state_after_mixed_activity(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=10, empty=2)
        checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 3}], "cash", cash_tendered=60000)
        restock_product(outlet_a.id, lpg.id, 9)
        correct_inventory(outlet_a.id, lpg.id, delta_filled=-1, note="Leaking valve")

        state = _state(outlet_a.id, lpg.id)
        replayed = replay_inventory(outlet_a.id, lpg.id)

        assert replayed["stock_filled"] == state["stock_filled"] == 15
        assert replayed["stock_empty"] == state["stock_empty"] == 0
        assert replayed["events"] == 4
        assert verify_inventory(outlet_a.id) == []

    def test_verify_reports_drift(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=5, empty=1)
        state = db.session.query(InventoryState).filter_by(outlet_id=outlet_a.id, product_id=lpg.id).one()
        state.stock_filled = 6
        db_session.commit()

        mismatches = verify_inventory(outlet_a.id)

        assert len(mismatches) == 1
        assert mismatches[0]["product_id"] == lpg.id
        assert mismatches[0]["stored"]["stock_filled"] == 6
        assert mismatches[0]["replayed"]["stock_filled"] == 5


class TestInventoryViews:
    def test_list_states_is_outlet_scoped(self, db_session, outlet_a, outlet_b, lpg, snack, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=3)
        seed_stock(outlet_a.id, snack.id, filled=7)

        rows = list_inventory_states(outlet_a.id)
        assert {r["product_id"]: r["stock_filled"] for r in rows} == {lpg.id: 3, snack.id: 7}
        assert list_inventory_states(outlet_b.id) == []

    def test_events_newest_first(self, db_session, outlet_a, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=3)
        restock_product(outlet_a.id, lpg.id, 2)

        events = list_inventory_events(outlet_id=outlet_a.id, product_id=lpg.id)
        assert [e.reason for e in events] == [REASON_MANUAL_RESTOCK, REASON_CORRECTION]

    def test_unstocked_product_reads_as_zero(self, db_session, outlet_a, gallon):
        state = _state(outlet_a.id, gallon.id)
        assert (state["stock_filled"], state["stock_empty"]) == (0, 0)
