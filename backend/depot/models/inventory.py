from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

REASON_SALE = "sale"
REASON_MANUAL_RESTOCK = "manual_restock"
REASON_CORRECTION = "correction"
REASON_RETURN = "return"

INVENTORY_REASONS = {REASON_SALE, REASON_MANUAL_RESTOCK, REASON_CORRECTION, REASON_RETURN}


class InventoryState(db.Model):
    """
    Dual-stock counters for one product at one outlet.

    stock_filled: sellable units (>= 0)
    stock_empty: returnable empty containers awaiting exchange (>= 0, always
    0 for the general category)

    Mutated only through inventory_service.apply_delta, which writes one
    InventoryEvent per change; the counters always equal the running sum of
    those events.
    """
    __tablename__ = "inventory_states"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "product_id", name="uq_inventory_states_outlet_product"),
        db.CheckConstraint("stock_filled >= 0", name="ck_inventory_states_filled"),
        db.CheckConstraint("stock_empty >= 0", name="ck_inventory_states_empty"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    stock_filled = db.Column(db.Integer, nullable=False, default=0)
    stock_empty = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "outlet_id": self.outlet_id,
            "product_id": self.product_id,
            "stock_filled": self.stock_filled,
            "stock_empty": self.stock_empty,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryEvent(db.Model):
    """Append-only stock change log. Deltas are the values actually applied."""
    __tablename__ = "inventory_events"
    __table_args__ = (
        db.Index("ix_inventory_events_outlet_product_created", "outlet_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    delta_filled = db.Column(db.Integer, nullable=False, default=0)
    delta_empty = db.Column(db.Integer, nullable=False, default=0)
    reason = db.Column(db.String(32), nullable=False, index=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "product_id": self.product_id,
            "delta_filled": self.delta_filled,
            "delta_empty": self.delta_empty,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
