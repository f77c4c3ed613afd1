from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

CATEGORY_FUEL_CANISTER = "fuel-canister"
CATEGORY_RETURNABLE_CONTAINER = "returnable-container"
CATEGORY_GENERAL = "general"

PRODUCT_CATEGORIES = {CATEGORY_FUEL_CANISTER, CATEGORY_RETURNABLE_CONTAINER, CATEGORY_GENERAL}

# Categories tracked with both a filled and an empty-container counter
RETURNABLE_CATEGORIES = {CATEGORY_FUEL_CANISTER, CATEGORY_RETURNABLE_CONTAINER}


def is_returnable(category: str) -> bool:
    return category in RETURNABLE_CATEGORIES


class Product(db.Model):
    """
    Product master data.

    A product is either a shared/global catalog item (is_global=True,
    outlet_id NULL, e.g. regulated LPG canisters) or owned by one outlet.
    It is visible to an outlet when it is global or owned by that outlet.
    Only name/category/image may change after creation.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "name", name="uq_products_outlet_name"),
        db.CheckConstraint(
            "(is_global AND outlet_id IS NULL) OR (NOT is_global AND outlet_id IS NOT NULL)",
            name="ck_products_ownership",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_global = db.Column(db.Boolean, nullable=False, default=False)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    outlet = db.relationship("Outlet", backref=db.backref("products", lazy=True))

    @property
    def is_returnable(self) -> bool:
        return is_returnable(self.category)

    def is_visible_to(self, outlet_id: int) -> bool:
        return self.is_global or self.outlet_id == outlet_id

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "image_url": self.image_url,
            "is_global": self.is_global,
            "outlet_id": self.outlet_id,
            "is_returnable": self.is_returnable,
            "created_at": to_utc_z(self.created_at),
        }


class PriceRule(db.Model):
    """
    Sale price and unit cost of a product at one outlet.

    Exactly one rule per (outlet, product). cost_price <= base_price is
    enforced when the rule is written, not by the database.
    """
    __tablename__ = "price_rules"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "product_id", name="uq_price_rules_outlet_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    base_price = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "product_id": self.product_id,
            "base_price": self.base_price,
            "cost_price": self.cost_price,
            "updated_at": to_utc_z(self.updated_at),
        }
