# Overview: Read-only reporting over committed (paid) sales and the capital ledger.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, CustomerTier, Product, Sale, SaleLine
from ..models.sales import SALE_STATUS_PAID
from ..time_utils import day_range, to_utc_z
from .capital_service import get_capital_summary


def _paid_in_range(outlet_id: int, range_start: datetime, range_end: datetime) -> tuple:
    return (
        Sale.outlet_id == outlet_id,
        Sale.status == SALE_STATUS_PAID,
        Sale.created_at >= range_start,
        Sale.created_at < range_end,
    )


def get_sales_summary(outlet_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Totals over paid sales created in [start-of-day(start), end-of-day(end)].

    Both bounds default to today (UTC); reversed bounds are swapped.
    """
    range_start, range_end = day_range(start, end)

    totals = db.session.query(
        func.count(Sale.id).label("transactions"),
        func.coalesce(func.sum(Sale.total_amount), 0).label("sales"),
        func.coalesce(func.sum(Sale.total_cost), 0).label("cost"),
        func.coalesce(func.sum(Sale.total_profit), 0).label("profit"),
    ).filter(*_paid_in_range(outlet_id, range_start, range_end)).one()

    items = db.session.query(
        func.coalesce(func.sum(SaleLine.quantity), 0)
    ).join(Sale, Sale.id == SaleLine.sale_id).filter(
        *_paid_in_range(outlet_id, range_start, range_end)
    ).scalar()

    return {
        "outlet_id": outlet_id,
        "from": to_utc_z(range_start),
        "to": to_utc_z(range_end),
        "transaction_count": int(totals.transactions or 0),
        "total_sales": int(totals.sales or 0),
        "total_cost": int(totals.cost or 0),
        "total_profit": int(totals.profit or 0),
        "total_items": int(items or 0),
    }


def list_sales(outlet_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    """Paid sales in the day range, newest first, with customer name and item count."""
    range_start, range_end = day_range(start, end)

    item_counts = (
        db.session.query(SaleLine.sale_id, func.sum(SaleLine.quantity).label("item_count"))
        .group_by(SaleLine.sale_id)
        .subquery()
    )
    rows = (
        db.session.query(
            Sale,
            Customer.name,
            CustomerTier.global_discount_percent,
            item_counts.c.item_count,
        )
        .outerjoin(Customer, Customer.id == Sale.customer_id)
        .outerjoin(CustomerTier, CustomerTier.id == Customer.tier_id)
        .outerjoin(item_counts, item_counts.c.sale_id == Sale.id)
        .filter(*_paid_in_range(outlet_id, range_start, range_end))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )

    return [
        {
            "id": sale.id,
            "invoice_number": sale.invoice_number,
            "total_amount": sale.total_amount,
            "total_cost": sale.total_cost,
            "total_profit": sale.total_profit,
            "payment_method": sale.payment_method,
            "status": sale.status,
            "customer_name": customer_name,
            "customer_discount_percent": discount_percent,
            "item_count": int(item_count or 0),
            "created_at": to_utc_z(sale.created_at),
        }
        for sale, customer_name, discount_percent, item_count in rows
    ]


def list_item_sales(outlet_id: int, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    """One row per sale line of the paid sales in the day range."""
    range_start, range_end = day_range(start, end)

    rows = (
        db.session.query(SaleLine, Product.name, Product.category, Sale.created_at)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Product, Product.id == SaleLine.product_id)
        .filter(*_paid_in_range(outlet_id, range_start, range_end))
        .order_by(Sale.created_at.desc(), SaleLine.id)
        .all()
    )

    return [
        {
            "sale_id": line.sale_id,
            "product_id": line.product_id,
            "product_name": name,
            "product_category": category,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "unit_cost": line.unit_cost,
            "subtotal": line.subtotal,
            "profit": line.profit,
            "created_at": to_utc_z(created_at),
        }
        for line, name, category, created_at in rows
    ]


def get_sales_report(outlet_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Sales, sold lines and capital position for a day range.

    opening_capital_balance counts entries created before the range start;
    current_capital_balance counts every entry.
    """
    range_start, range_end = day_range(start, end)

    return {
        "outlet_id": outlet_id,
        "from": to_utc_z(range_start),
        "to": to_utc_z(range_end),
        "opening_capital_balance": get_capital_summary(outlet_id, before=range_start)["balance"],
        "current_capital_balance": get_capital_summary(outlet_id)["balance"],
        "summary": get_sales_summary(outlet_id, start, end),
        "sales": list_sales(outlet_id, start, end),
        "items": list_item_sales(outlet_id, start, end),
    }
