from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_KINDS = {DISCOUNT_PERCENTAGE, DISCOUNT_FIXED}


class CustomerTier(db.Model):
    """
    Customer classification (e.g. regular/silver/gold).

    global_discount_percent applies to every product unless a
    TierPriceOverride exists for the (outlet, product, tier).
    """
    __tablename__ = "customer_tiers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_customer_tiers_name"),
        db.CheckConstraint(
            "global_discount_percent >= 0 AND global_discount_percent <= 100",
            name="ck_customer_tiers_percent",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    display_name = db.Column(db.String(128), nullable=False)
    global_discount_percent = db.Column(db.Integer, nullable=False, default=0)
    color = db.Column(db.String(16), nullable=True)
    min_spent = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "global_discount_percent": self.global_discount_percent,
            "color": self.color,
            "min_spent": self.min_spent,
            "created_at": to_utc_z(self.created_at),
        }


class Customer(db.Model):
    """Outlet-scoped customer; carries the tier used for discount resolution."""
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_outlet_tier", "outlet_id", "tier_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    tier_id = db.Column(db.Integer, db.ForeignKey("customer_tiers.id"), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tier = db.relationship("CustomerTier")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "tier_id": self.tier_id,
            "name": self.name,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class TierPriceOverride(db.Model):
    """
    Per-product exception to a tier's global discount at one outlet.

    An override wins over the tier default even when its discount is smaller.
    percentage values live in [0, 100]; fixed values are >= 0 and are capped
    at the base price when applied.
    """
    __tablename__ = "tier_price_overrides"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "product_id", "tier_id", name="uq_tier_overrides_outlet_product_tier"),
        db.CheckConstraint("discount_value >= 0", name="ck_tier_overrides_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    tier_id = db.Column(db.Integer, db.ForeignKey("customer_tiers.id"), nullable=False)

    discount_kind = db.Column(db.String(16), nullable=False)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "product_id": self.product_id,
            "tier_id": self.tier_id,
            "discount_kind": self.discount_kind,
            "discount_value": str(self.discount_value),
            "updated_at": to_utc_z(self.updated_at),
        }
