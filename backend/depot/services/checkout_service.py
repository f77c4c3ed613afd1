"""
Checkout engine: prices a cart, validates stock, and commits a sale.

Everything from the first price lookup to the last inventory event runs in
one unit of work. A checkout either commits the Sale, all of its SaleLines
and all of its InventoryEvents, or nothing at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import InsufficientStock, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..models.sales import PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_METHODS, SALE_STATUS_PAID
from ..models.inventory import REASON_SALE
from ..validation import choice, coerce_int, non_negative_int, positive_int
from ..time_utils import to_utc_z
from .concurrency import run_in_transaction
from .discount_service import load_tier_overrides, resolve_discount
from .document_service import next_document_number
from .inventory_service import _lock_state, apply_delta, sale_deltas
from .pricing_service import get_customer, get_price_rule, get_visible_product


@dataclass
class CartLine:
    product_id: int
    quantity: int


@dataclass
class PricedLine:
    product: Product
    quantity: int
    base_price: int
    discount_amount: int
    discount_source: str
    unit_price: int
    unit_cost: int

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity

    @property
    def profit(self) -> int:
        return (self.unit_price - self.unit_cost) * self.quantity


@dataclass
class CheckoutResult:
    sale: Sale
    warnings: list = field(default_factory=list)


def _normalize_lines(lines) -> list[CartLine]:
    if not lines:
        raise ValidationError("a checkout needs at least one item")

    cart = []
    for i, line in enumerate(lines):
        if isinstance(line, CartLine):
            product_id, quantity = line.product_id, line.quantity
        elif isinstance(line, dict):
            product_id = line.get("product_id")
            quantity = line.get("quantity")
        else:
            raise ValidationError(f"items[{i}] must be an object")
        if product_id is None:
            raise ValidationError(f"items[{i}].product_id is required")
        if quantity is None:
            raise ValidationError(f"items[{i}].quantity is required")
        cart.append(CartLine(
            product_id=coerce_int(product_id, f"items[{i}].product_id"),
            quantity=positive_int(quantity, f"items[{i}].quantity"),
        ))
    return cart


def _price_lines(outlet_id: int, cart: list[CartLine], customer) -> list[PricedLine]:
    """Freeze unit price (discounted) and unit cost (never discounted) per line."""
    tier_id = customer.tier_id if customer is not None else None
    global_percent = customer.tier.global_discount_percent if customer is not None else 0
    overrides = load_tier_overrides(outlet_id, tier_id, product_ids={line.product_id for line in cart})

    priced = []
    for line in cart:
        product = get_visible_product(outlet_id, line.product_id)
        rule = get_price_rule(outlet_id, line.product_id)
        resolved = resolve_discount(product.id, tier_id, rule.base_price, overrides, global_percent)
        priced.append(PricedLine(
            product=product,
            quantity=line.quantity,
            base_price=rule.base_price,
            discount_amount=resolved.discount_amount,
            discount_source=resolved.source,
            unit_price=resolved.final_price,
            unit_cost=rule.cost_price,
        ))
    return priced


def _check_stock(outlet_id: int, priced: list[PricedLine]) -> None:
    """
    Lock and read the stock of every product in the cart and collect all
    shortfalls before failing, so the caller gets one complete error.
    """
    requested: dict[int, int] = {}
    products = {}
    for line in priced:
        requested[line.product.id] = requested.get(line.product.id, 0) + line.quantity
        products[line.product.id] = line.product

    insufficient = []
    # Stable lock order across concurrent carts
    for product_id in sorted(requested):
        state = _lock_state(outlet_id, product_id)
        available = state.stock_filled if state else 0
        if available < requested[product_id]:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "requested": requested[product_id],
                "available": available,
            })

    if insufficient:
        raise InsufficientStock(insufficient)


def _settle_payment(payment_method: str, total_amount: int, cash_tendered, customer) -> tuple[int | None, int | None]:
    """Returns (cash_tendered, change_amount) for the sale header."""
    if payment_method == PAYMENT_CASH:
        if cash_tendered is None:
            raise ValidationError("cash_tendered is required for cash payments")
        tendered = non_negative_int(cash_tendered, "cash_tendered")
        if tendered < total_amount:
            raise ValidationError(
                f"cash tendered {tendered} is less than total {total_amount}",
                details={"cash_tendered": tendered, "total_amount": total_amount},
            )
        return tendered, tendered - total_amount

    if payment_method == PAYMENT_CREDIT and customer is None:
        raise ValidationError("credit sales require a customer")

    return None, None


def checkout(
    outlet_id: int,
    lines,
    payment_method: str,
    customer_id: int | None = None,
    cash_tendered=None,
) -> CheckoutResult:
    """
    Price, validate and commit a sale atomically.

    lines: CartLine objects or dicts with product_id and quantity.

    Raises ValidationError, NotFoundError, InsufficientStock (with per-line
    detail) or ConcurrencyConflict. Nothing is written unless the whole sale
    commits. No automatic retry is attempted.
    """
    cart = _normalize_lines(lines)
    payment_method = choice(payment_method, "payment_method", PAYMENT_METHODS)
    if customer_id is not None:
        customer_id = coerce_int(customer_id, "customer_id")

    def _op():
        customer = get_customer(outlet_id, customer_id) if customer_id is not None else None

        priced = _price_lines(outlet_id, cart, customer)
        _check_stock(outlet_id, priced)

        total_amount = sum(line.subtotal for line in priced)
        total_cost = sum(line.unit_cost * line.quantity for line in priced)
        total_profit = sum(line.profit for line in priced)

        tendered, change = _settle_payment(payment_method, total_amount, cash_tendered, customer)

        sale = Sale(
            outlet_id=outlet_id,
            invoice_number=next_document_number(outlet_id=outlet_id, document_type="SALE", prefix="INV"),
            customer_id=customer.id if customer is not None else None,
            total_amount=total_amount,
            total_cost=total_cost,
            total_profit=total_profit,
            payment_method=payment_method,
            cash_tendered=tendered,
            change_amount=change,
            status=SALE_STATUS_PAID,
        )
        db.session.add(sale)
        db.session.flush()

        for line in priced:
            db.session.add(SaleLine(
                sale_id=sale.id,
                product_id=line.product.id,
                quantity=line.quantity,
                base_price=line.base_price,
                discount_amount=line.discount_amount,
                discount_source=line.discount_source,
                unit_price=line.unit_price,
                unit_cost=line.unit_cost,
                subtotal=line.subtotal,
                profit=line.profit,
            ))
        db.session.flush()

        warnings = []
        for line in priced:
            delta_filled, delta_empty = sale_deltas(line.product.is_returnable, line.quantity)
            applied = apply_delta(
                outlet_id,
                line.product.id,
                delta_filled,
                delta_empty,
                REASON_SALE,
                sale_id=sale.id,
                note=f"Sale {sale.invoice_number}",
                product=line.product,
            )
            warnings.extend(applied.warnings)

        return CheckoutResult(sale=sale, warnings=warnings)

    try:
        result = run_in_transaction(_op)
    except InsufficientStock as exc:
        current_app.logger.info("Checkout rejected for outlet %s: %s", outlet_id, exc.message)
        raise

    current_app.logger.info(
        "Sale %s committed for outlet %s: total=%s method=%s",
        result.sale.invoice_number, outlet_id, result.sale.total_amount, payment_method,
    )
    return result


def to_checkout_response(result: CheckoutResult) -> dict:
    sale = result.sale
    response = {
        "saleId": sale.id,
        "invoiceNumber": sale.invoice_number,
        "totalAmount": sale.total_amount,
        "totalCost": sale.total_cost,
        "totalProfit": sale.total_profit,
        "changeAmount": sale.change_amount,
        "createdAt": to_utc_z(sale.created_at),
    }
    if result.warnings:
        response["warnings"] = [w.to_dict() for w in result.warnings]
    return response


def get_sale(outlet_id: int, sale_id: int) -> dict:
    sale = db.session.query(Sale).filter_by(id=sale_id, outlet_id=outlet_id).first()
    if sale is None:
        raise NotFoundError(f"sale {sale_id} not found for outlet {outlet_id}", details={"sale_id": sale_id})
    return {
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
    }
