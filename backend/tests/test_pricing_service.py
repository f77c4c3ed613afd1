# Overview: Pytest coverage for price rules, tier overrides and sales reporting.

from datetime import timedelta
from decimal import Decimal

import pytest

from depot.errors import NotFoundError, ValidationError
from depot.models.catalog import CATEGORY_GENERAL
from depot.services import pricing_service
from depot.services.checkout_service import checkout
from depot.services.reporting_service import get_sales_summary, list_item_sales, list_sales
from depot.time_utils import utcnow


class TestPriceRules:
    def test_set_price_rule_upserts(self, db_session, outlet_a, lpg):
        rule = pricing_service.set_price_rule(outlet_a.id, lpg.id, 19000, 16500)
        assert (rule.base_price, rule.cost_price) == (19000, 16500)

        again = pricing_service.set_price_rule(outlet_a.id, lpg.id, 19500, 16500)
        assert again.id == rule.id
        assert pricing_service.get_price_rule(outlet_a.id, lpg.id).base_price == 19500

    def test_cost_above_base_rejected(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            pricing_service.set_price_rule(outlet_a.id, lpg.id, 15000, 16000)

    def test_negative_price_rejected(self, db_session, outlet_a, lpg):
        with pytest.raises(ValidationError):
            pricing_service.set_price_rule(outlet_a.id, lpg.id, -1)

    def test_price_for_invisible_product_rejected(self, db_session, outlet_a, outlet_b, product_factory):
        private = product_factory(outlet_b, "Gas Biru", CATEGORY_GENERAL, 90000, is_global=False)
        with pytest.raises(NotFoundError):
            pricing_service.set_price_rule(outlet_a.id, private.id, 90000)


class TestTierOverrides:
    def test_upsert_and_list(self, db_session, outlet_a, lpg, gold_tier):
        override = pricing_service.upsert_tier_override(outlet_a.id, lpg.id, gold_tier.id, "fixed", "500")
        assert override.discount_value == Decimal("500.00")

        updated = pricing_service.upsert_tier_override(outlet_a.id, lpg.id, gold_tier.id, "percentage", 12.5)
        assert updated.id == override.id
        assert updated.discount_kind == "percentage"
        assert updated.discount_value == Decimal("12.50")

        listed = pricing_service.list_tier_overrides(outlet_a.id)
        assert [o.id for o in listed] == [override.id]

    @pytest.mark.parametrize("kind,value", [
        ("percentage", 101),
        ("percentage", -1),
        ("fixed", -500),
        ("bogus", 10),
        (["fixed"], 10),
        ({"kind": "fixed"}, 10),
        ("fixed", "abc"),
    ])
    def test_invalid_override_rejected(self, db_session, outlet_a, lpg, gold_tier, kind, value):
        with pytest.raises(ValidationError):
            pricing_service.upsert_tier_override(outlet_a.id, lpg.id, gold_tier.id, kind, value)

    def test_unknown_tier_rejected(self, db_session, outlet_a, lpg):
        with pytest.raises(NotFoundError):
            pricing_service.upsert_tier_override(outlet_a.id, lpg.id, 99999, "fixed", 500)

    def test_delete_override(self, db_session, outlet_a, lpg, gold_tier):
        pricing_service.upsert_tier_override(outlet_a.id, lpg.id, gold_tier.id, "fixed", 500)

        assert pricing_service.delete_tier_override(outlet_a.id, lpg.id, gold_tier.id) is True
        assert pricing_service.delete_tier_override(outlet_a.id, lpg.id, gold_tier.id) is False
        assert pricing_service.list_tier_overrides(outlet_a.id) == []

    def test_override_changes_checkout_price(self, db_session, outlet_a, lpg, gold_tier, gold_customer, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=5)
        pricing_service.upsert_tier_override(outlet_a.id, lpg.id, gold_tier.id, "fixed", 500)

        result = checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 1}], "credit", customer_id=gold_customer.id)

        assert result.sale.total_amount == 17500
        assert result.sale.lines[0].discount_source == "tier_override"


class TestSalesSummary:
    def test_summary_totals_today(self, db_session, outlet_a, lpg, snack, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=5)
        seed_stock(outlet_a.id, snack.id, filled=5)
        checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 2}], "qris")
        checkout(outlet_a.id, [{"product_id": snack.id, "quantity": 3}], "cash", cash_tendered=10000)

        summary = get_sales_summary(outlet_a.id)

        assert summary["transaction_count"] == 2
        assert summary["total_sales"] == 36000 + 7500
        assert summary["total_cost"] == 32000 + 5400
        assert summary["total_profit"] == 4000 + 2100
        assert summary["total_items"] == 5

    def test_summary_excludes_other_days_and_outlets(self, db_session, outlet_a, outlet_b, lpg, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=5)
        checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 1}], "qris")

        yesterday = utcnow() - timedelta(days=1)
        assert get_sales_summary(outlet_a.id, yesterday, yesterday)["transaction_count"] == 0
        assert get_sales_summary(outlet_b.id)["transaction_count"] == 0

    def test_list_sales_and_item_sales(self, db_session, outlet_a, outlet_b, lpg, snack, gold_customer, seed_stock):
        seed_stock(outlet_a.id, lpg.id, filled=5)
        seed_stock(outlet_a.id, snack.id, filled=5)
        checkout(outlet_a.id, [{"product_id": lpg.id, "quantity": 1}, {"product_id": snack.id, "quantity": 2}],
                 "qris", customer_id=gold_customer.id)

        sales = list_sales(outlet_a.id)
        assert len(sales) == 1
        assert sales[0]["customer_name"] == "Bu Sari"
        assert sales[0]["item_count"] == 3
        assert sales[0]["invoice_number"] == "INV-000001"

        items = list_item_sales(outlet_a.id)
        assert sorted((i["product_name"], i["quantity"]) for i in items) == [("Kerupuk", 2), ("LPG 3kg", 1)]
        assert all(i["sale_id"] == sales[0]["id"] for i in items)

        assert list_sales(outlet_b.id) == []
        assert list_item_sales(outlet_b.id) == []
