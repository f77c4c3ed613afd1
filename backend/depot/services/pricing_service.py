# Overview: Price rule / tier override configuration and the catalog lookups used by checkout and restock.

from __future__ import annotations

from decimal import Decimal

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, CustomerTier, PriceRule, Product, TierPriceOverride
from ..models.customers import DISCOUNT_KINDS, DISCOUNT_PERCENTAGE
from ..validation import choice, coerce_decimal, non_negative_int
from .concurrency import run_in_transaction


def get_visible_product(outlet_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None or not product.is_visible_to(outlet_id):
        raise NotFoundError(
            f"product {product_id} not found for outlet {outlet_id}",
            details={"product_id": product_id},
        )
    return product


def get_price_rule(outlet_id: int, product_id: int) -> PriceRule:
    rule = db.session.query(PriceRule).filter_by(outlet_id=outlet_id, product_id=product_id).first()
    if rule is None:
        raise NotFoundError(
            f"product {product_id} has no price at outlet {outlet_id}",
            details={"product_id": product_id},
        )
    return rule


def get_customer(outlet_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, outlet_id=outlet_id).first()
    if customer is None or not customer.is_active:
        raise NotFoundError(
            f"customer {customer_id} not found for outlet {outlet_id}",
            details={"customer_id": customer_id},
        )
    return customer


def get_tier(tier_id: int) -> CustomerTier:
    tier = db.session.query(CustomerTier).filter_by(id=tier_id).first()
    if tier is None:
        raise NotFoundError(f"customer tier {tier_id} not found", details={"tier_id": tier_id})
    return tier


def validate_price_pair(base_price, cost_price) -> tuple[int, int]:
    base = non_negative_int(base_price, "base_price")
    cost = non_negative_int(cost_price, "cost_price")
    if cost > base:
        raise ValidationError(
            "cost_price cannot exceed base_price",
            details={"base_price": base, "cost_price": cost},
        )
    return base, cost


def validate_discount(kind, value) -> tuple[str, Decimal]:
    kind = choice(kind, "discount_kind", DISCOUNT_KINDS)
    amount = coerce_decimal(value, "discount_value")
    if amount < 0:
        raise ValidationError("discount_value must be >= 0")
    if kind == DISCOUNT_PERCENTAGE and amount > 100:
        raise ValidationError("percentage discount_value must be between 0 and 100")
    return kind, amount.quantize(Decimal("0.01"))


def set_price_rule(outlet_id: int, product_id: int, base_price, cost_price=0) -> PriceRule:
    """Create or replace the single price rule for (outlet, product)."""
    base, cost = validate_price_pair(base_price, cost_price)

    def _op():
        get_visible_product(outlet_id, product_id)
        rule = db.session.query(PriceRule).filter_by(outlet_id=outlet_id, product_id=product_id).first()
        if rule is None:
            rule = PriceRule(outlet_id=outlet_id, product_id=product_id)
            db.session.add(rule)
        rule.base_price = base
        rule.cost_price = cost
        db.session.flush()
        return rule

    return run_in_transaction(_op)


def upsert_tier_override(outlet_id: int, product_id: int, tier_id: int, kind, value) -> TierPriceOverride:
    """Create or update the override for (outlet, product, tier)."""
    kind, amount = validate_discount(kind, value)

    def _op():
        get_visible_product(outlet_id, product_id)
        get_tier(tier_id)
        override = db.session.query(TierPriceOverride).filter_by(
            outlet_id=outlet_id,
            product_id=product_id,
            tier_id=tier_id,
        ).first()
        if override is None:
            override = TierPriceOverride(outlet_id=outlet_id, product_id=product_id, tier_id=tier_id)
            db.session.add(override)
        override.discount_kind = kind
        override.discount_value = amount
        db.session.flush()
        return override

    return run_in_transaction(_op)


def delete_tier_override(outlet_id: int, product_id: int, tier_id: int) -> bool:
    def _op():
        deleted = db.session.query(TierPriceOverride).filter_by(
            outlet_id=outlet_id,
            product_id=product_id,
            tier_id=tier_id,
        ).delete()
        return bool(deleted)

    return run_in_transaction(_op)


def list_tier_overrides(outlet_id: int, tier_id: int | None = None) -> list[TierPriceOverride]:
    q = db.session.query(TierPriceOverride).filter_by(outlet_id=outlet_id)
    if tier_id is not None:
        q = q.filter_by(tier_id=tier_id)
    return q.order_by(TierPriceOverride.product_id, TierPriceOverride.tier_id).all()
