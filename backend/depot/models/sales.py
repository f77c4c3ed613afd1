from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PAYMENT_CASH = "cash"
PAYMENT_QRIS = "qris"
PAYMENT_CREDIT = "credit"
PAYMENT_METHODS = {PAYMENT_CASH, PAYMENT_QRIS, PAYMENT_CREDIT}

SALE_STATUS_PAID = "paid"
SALE_STATUS_VOID = "void"


class Sale(db.Model):
    """
    Sale header, written once by the checkout engine.

    Monetary fields are frozen at checkout. Only status may later move from
    'paid' to 'void' (reserved; no void path is implemented).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "invoice_number", name="uq_sales_outlet_invoice"),
        db.Index("ix_sales_outlet_status_created", "outlet_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(32), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    total_amount = db.Column(db.Integer, nullable=False)
    total_cost = db.Column(db.Integer, nullable=False)
    total_profit = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    cash_tendered = db.Column(db.Integer, nullable=True)
    change_amount = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PAID, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    customer = db.relationship("Customer")
    lines = db.relationship("SaleLine", backref="sale", lazy=True, order_by="SaleLine.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outlet_id": self.outlet_id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "total_amount": self.total_amount,
            "total_cost": self.total_cost,
            "total_profit": self.total_profit,
            "payment_method": self.payment_method,
            "cash_tendered": self.cash_tendered,
            "change_amount": self.change_amount,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    """Line item with the price and cost frozen at the time of sale."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)

    # Undiscounted price and the discount that produced unit_price
    base_price = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    discount_source = db.Column(db.String(16), nullable=False, default="none")

    unit_price = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Integer, nullable=False)
    subtotal = db.Column(db.Integer, nullable=False)
    profit = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "base_price": self.base_price,
            "discount_amount": self.discount_amount,
            "discount_source": self.discount_source,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "subtotal": self.subtotal,
            "profit": self.profit,
        }
