# Overview: Tiered discount resolution; one pure resolver shared by catalog display and checkout.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ..extensions import db
from ..models import PriceRule, Product, TierPriceOverride
from ..models.customers import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE
from .pricing_service import get_customer
"""
Depot Discount Invariants (authoritative)

- No customer tier -> no discount.
- A TierPriceOverride for (product, tier) wins unconditionally, even when it
  gives a smaller discount than the tier's global percentage.
- Otherwise the tier's global_discount_percent applies when > 0.
- Discount amounts are whole currency units, rounded half-up.
- final_price = base_price - discount_amount, never independently rounded,
  so final_price + discount_amount == base_price exactly.
- Resolution is pure: the same inputs give the same result whether the
  catalog is priced for display or a price is frozen at checkout.
"""

SOURCE_NONE = "none"
SOURCE_TIER_OVERRIDE = "tier_override"
SOURCE_TIER_DEFAULT = "tier_default"


@dataclass(frozen=True)
class TierOverride:
    """Plain value form of a TierPriceOverride row."""
    product_id: int
    tier_id: int
    discount_kind: str
    discount_value: Decimal


@dataclass(frozen=True)
class ResolvedDiscount:
    kind: str
    value: Decimal
    final_price: int
    discount_amount: int
    source: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "value": str(self.value),
            "final_price": self.final_price,
            "discount_amount": self.discount_amount,
            "source": self.source,
        }


def _round_units(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def percentage_discount(base_price: int, percent) -> int:
    return _round_units(Decimal(base_price) * _to_decimal(percent) / Decimal(100))


def _find_override(overrides: Iterable, product_id: int, tier_id: int):
    for override in overrides:
        if override.product_id == product_id and override.tier_id == tier_id:
            return override
    return None


def resolve_discount(
    product_id: int,
    customer_tier_id: int | None,
    base_price: int,
    overrides: Iterable,
    global_discount_percent=0,
) -> ResolvedDiscount:
    """
    Resolve the discount for one product.

    overrides: any iterable of objects with product_id, tier_id,
    discount_kind and discount_value (TierPriceOverride rows or TierOverride
    values). Only the entry matching (product_id, customer_tier_id) is used.
    """
    no_discount = ResolvedDiscount(
        kind=DISCOUNT_PERCENTAGE,
        value=Decimal(0),
        final_price=base_price,
        discount_amount=0,
        source=SOURCE_NONE,
    )

    if customer_tier_id is None:
        return no_discount

    specific = _find_override(overrides, product_id, customer_tier_id)
    if specific is not None:
        value = _to_decimal(specific.discount_value)
        if specific.discount_kind == DISCOUNT_PERCENTAGE:
            discount_amount = percentage_discount(base_price, value)
        elif specific.discount_kind == DISCOUNT_FIXED:
            discount_amount = _round_units(value)
        else:
            raise ValueError(f"unknown discount kind {specific.discount_kind!r}")

        # Clamp to [0, base_price]; final price never goes negative
        discount_amount = max(0, min(discount_amount, base_price))
        return ResolvedDiscount(
            kind=specific.discount_kind,
            value=value,
            final_price=base_price - discount_amount,
            discount_amount=discount_amount,
            source=SOURCE_TIER_OVERRIDE,
        )

    percent = _to_decimal(global_discount_percent or 0)
    if percent > 0:
        discount_amount = max(0, min(percentage_discount(base_price, percent), base_price))
        return ResolvedDiscount(
            kind=DISCOUNT_PERCENTAGE,
            value=percent,
            final_price=base_price - discount_amount,
            discount_amount=discount_amount,
            source=SOURCE_TIER_DEFAULT,
        )

    return no_discount


def load_tier_overrides(outlet_id: int, tier_id: int | None, product_ids=None) -> list[TierPriceOverride]:
    """Load the outlet's overrides for one tier (optionally limited to some products)."""
    if tier_id is None:
        return []
    q = db.session.query(TierPriceOverride).filter_by(outlet_id=outlet_id, tier_id=tier_id)
    if product_ids is not None:
        q = q.filter(TierPriceOverride.product_id.in_(list(product_ids)))
    return q.all()


def price_catalog(outlet_id: int, customer_id: int | None = None) -> list[dict]:
    """
    Display pricing for every product visible to the outlet that has a price rule.

    Uses resolve_discount, the same function checkout uses to freeze prices.
    Shown prices are advisory: the committed sale is the source of truth.
    """
    tier_id = None
    global_percent = 0
    if customer_id is not None:
        customer = get_customer(outlet_id, customer_id)
        tier_id = customer.tier_id
        global_percent = customer.tier.global_discount_percent

    rows = (
        db.session.query(Product, PriceRule)
        .join(PriceRule, PriceRule.product_id == Product.id)
        .filter(PriceRule.outlet_id == outlet_id)
        .filter((Product.is_global.is_(True)) | (Product.outlet_id == outlet_id))
        .order_by(Product.category, Product.name)
        .all()
    )
    overrides = load_tier_overrides(outlet_id, tier_id)

    catalog = []
    for product, rule in rows:
        resolved = resolve_discount(product.id, tier_id, rule.base_price, overrides, global_percent)
        catalog.append({
            "product": product.to_dict(),
            "base_price": rule.base_price,
            "final_price": resolved.final_price,
            "discount": resolved.to_dict(),
        })
    return catalog
