# Overview: Service-layer operations for the dual-stock inventory ledger; encapsulates business logic and database work.

# backend/depot/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func

from ..errors import EmptyStockUnderflow, InsufficientStock, ValidationError
from ..extensions import db
from ..models import CapitalEntry, InventoryEvent, InventoryState, PriceRule, Product
from ..models.capital import CAPITAL_OUT
from ..models.inventory import (
    INVENTORY_REASONS,
    REASON_CORRECTION,
    REASON_MANUAL_RESTOCK,
    REASON_RETURN,
)
from ..validation import choice, coerce_int, optional_text, positive_int
from .capital_service import _record_entry_inner
from .concurrency import lock_for_update, run_in_transaction
from .pricing_service import get_visible_product
"""
Depot Inventory Invariants (authoritative)

Dual-stock model, per (outlet, product):
- stock_filled: sellable units, never negative. A change that would make it
  negative raises InsufficientStock before anything is written.
- stock_empty: returnable empty containers. Clamped at 0; a clamp is a
  warning (EmptyStockUnderflow), never an error.
- general-category products never carry empty stock.

Single entry point:
- apply_delta() is the only code that mutates InventoryState. It locks the
  row, validates, applies, and writes exactly one InventoryEvent whose deltas
  are the values actually applied (post-clamp).
- Therefore stock_filled == SUM(delta_filled) and stock_empty ==
  SUM(delta_empty) over the events of the pair, at all times.

Derived movements:
- Sale of a returnable item: filled -qty, empty +qty. General: filled -qty.
- Restock of q units: filled +q; returnable items also exchange up to q
  empties (empty -min(q, empty)). Receiving more than the empties on hand is
  allowed and reported as a warning.
"""


@dataclass
class InventoryApplication:
    state: InventoryState
    event: InventoryEvent
    warnings: list = field(default_factory=list)


@dataclass
class RestockResult:
    state: InventoryState
    warning: EmptyStockUnderflow | None = None
    capital_entry: CapitalEntry | None = None
    capital_warning: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.state.product_id,
            "stock_filled": self.state.stock_filled,
            "stock_empty": self.state.stock_empty,
            "warning": self.warning.to_dict() if self.warning else None,
            "capital_entry": self.capital_entry.to_dict() if self.capital_entry else None,
            "capital_warning": self.capital_warning,
        }


def sale_deltas(category_returnable: bool, quantity: int) -> tuple[int, int]:
    """(delta_filled, delta_empty) for selling quantity units."""
    if category_returnable:
        return -quantity, quantity
    return -quantity, 0


def _lock_state(outlet_id: int, product_id: int) -> InventoryState | None:
    return lock_for_update(
        db.session.query(InventoryState).filter_by(outlet_id=outlet_id, product_id=product_id)
    ).first()


def _ensure_state_locked(outlet_id: int, product_id: int) -> InventoryState:
    state = _lock_state(outlet_id, product_id)
    if state is None:
        state = InventoryState(outlet_id=outlet_id, product_id=product_id, stock_filled=0, stock_empty=0)
        db.session.add(state)
        db.session.flush()
    return state


def apply_delta(
    outlet_id: int,
    product_id: int,
    delta_filled: int,
    delta_empty: int,
    reason: str,
    sale_id: int | None = None,
    note: str | None = None,
    product: Product | None = None,
) -> InventoryApplication:
    """
    Apply one stock change inside the caller's unit of work (no commit).

    Raises InsufficientStock if stock_filled would go negative. Clamps
    stock_empty at 0 and reports the clamp as an EmptyStockUnderflow warning.
    """
    if reason not in INVENTORY_REASONS:
        raise ValidationError(f"reason must be one of: {', '.join(sorted(INVENTORY_REASONS))}")

    if product is None:
        product = get_visible_product(outlet_id, product_id)

    state = _ensure_state_locked(outlet_id, product_id)
    warnings = []

    new_filled = state.stock_filled + delta_filled
    if new_filled < 0:
        raise InsufficientStock([{
            "product_id": product_id,
            "product_name": product.name,
            "requested": -delta_filled,
            "available": state.stock_filled,
        }])

    if not product.is_returnable:
        delta_empty = 0

    applied_empty = delta_empty
    if state.stock_empty + delta_empty < 0:
        applied_empty = -state.stock_empty
        warnings.append(EmptyStockUnderflow(
            product_id=product_id,
            requested=-delta_empty,
            available=state.stock_empty,
        ))
        current_app.logger.warning(
            "Empty stock clamped to 0 for outlet=%s product=%s (requested %s, had %s)",
            outlet_id, product_id, -delta_empty, state.stock_empty,
        )

    state.stock_filled = new_filled
    state.stock_empty = state.stock_empty + applied_empty

    event = InventoryEvent(
        outlet_id=outlet_id,
        product_id=product_id,
        delta_filled=delta_filled,
        delta_empty=applied_empty,
        reason=reason,
        sale_id=sale_id,
        note=note,
    )
    db.session.add(event)
    db.session.flush()
    return InventoryApplication(state=state, event=event, warnings=warnings)


def get_inventory_state(outlet_id: int, product_id: int) -> dict:
    product = get_visible_product(outlet_id, product_id)
    state = db.session.query(InventoryState).filter_by(outlet_id=outlet_id, product_id=product_id).first()
    return {
        "outlet_id": outlet_id,
        "product_id": product_id,
        "product_name": product.name,
        "category": product.category,
        "stock_filled": state.stock_filled if state else 0,
        "stock_empty": state.stock_empty if state else 0,
    }


def list_inventory_states(outlet_id: int) -> list[dict]:
    rows = (
        db.session.query(InventoryState, Product)
        .join(Product, Product.id == InventoryState.product_id)
        .filter(InventoryState.outlet_id == outlet_id)
        .order_by(Product.category, Product.name)
        .all()
    )
    return [
        {
            "product_id": product.id,
            "product_name": product.name,
            "category": product.category,
            "stock_filled": state.stock_filled,
            "stock_empty": state.stock_empty,
        }
        for state, product in rows
    ]


def list_inventory_events(*, outlet_id: int, product_id: int, limit: int = 200) -> list[InventoryEvent]:
    get_visible_product(outlet_id, product_id)
    return (
        db.session.query(InventoryEvent)
        .filter_by(outlet_id=outlet_id, product_id=product_id)
        .order_by(InventoryEvent.created_at.desc(), InventoryEvent.id.desc())
        .limit(limit)
        .all()
    )


def replay_inventory(outlet_id: int, product_id: int) -> dict:
    """Rebuild the counters of one pair from its event log."""
    row = db.session.query(
        func.coalesce(func.sum(InventoryEvent.delta_filled), 0).label("filled"),
        func.coalesce(func.sum(InventoryEvent.delta_empty), 0).label("empty"),
        func.count(InventoryEvent.id).label("events"),
    ).filter(
        InventoryEvent.outlet_id == outlet_id,
        InventoryEvent.product_id == product_id,
    ).one()
    return {
        "stock_filled": int(row.filled or 0),
        "stock_empty": int(row.empty or 0),
        "events": int(row.events or 0),
    }


def verify_inventory(outlet_id: int) -> list[dict]:
    """Return every (outlet, product) whose stored counters differ from the event replay."""
    mismatches = []
    states = db.session.query(InventoryState).filter_by(outlet_id=outlet_id).all()
    seen = set()
    for state in states:
        seen.add(state.product_id)
        replayed = replay_inventory(outlet_id, state.product_id)
        if (replayed["stock_filled"], replayed["stock_empty"]) != (state.stock_filled, state.stock_empty):
            mismatches.append({
                "product_id": state.product_id,
                "stored": {"stock_filled": state.stock_filled, "stock_empty": state.stock_empty},
                "replayed": {"stock_filled": replayed["stock_filled"], "stock_empty": replayed["stock_empty"]},
            })

    # Events without a state row are drift too
    orphan_ids = (
        db.session.query(InventoryEvent.product_id)
        .filter(InventoryEvent.outlet_id == outlet_id)
        .distinct()
        .all()
    )
    for (product_id,) in orphan_ids:
        if product_id in seen:
            continue
        replayed = replay_inventory(outlet_id, product_id)
        mismatches.append({
            "product_id": product_id,
            "stored": None,
            "replayed": {"stock_filled": replayed["stock_filled"], "stock_empty": replayed["stock_empty"]},
        })
    return mismatches


def _restock_capital_cost(outlet_id: int, product_id: int, quantity: int) -> int:
    """Cost of a restock at the outlet's price rule; 0 when the outlet has no price for the product."""
    rule = db.session.query(PriceRule).filter_by(outlet_id=outlet_id, product_id=product_id).first()
    if rule is None:
        return 0
    unit_cost = rule.cost_price if rule.cost_price > 0 else max(0, rule.base_price)
    return unit_cost * quantity


def restock_product(
    outlet_id: int,
    product_id: int,
    quantity,
    note=None,
    record_capital: bool | None = None,
) -> RestockResult:
    """
    Receive filled stock for one product.

    Returnable items are assumed to be exchanged for empties: up to quantity
    empties leave the outlet. Receiving more than the empties on hand still
    succeeds and carries an EmptyStockUnderflow warning.

    record_capital (default: DEPOT_RESTOCK_DEBITS_CAPITAL) also books the
    received stock at cost as an 'out' capital entry in the same unit of
    work, rejecting the restock with InsufficientCapital if the balance does
    not cover it.
    """
    quantity = positive_int(quantity, "quantity")
    note = optional_text(note, "note")
    if record_capital is None:
        record_capital = bool(current_app.config.get("DEPOT_RESTOCK_DEBITS_CAPITAL", False))

    def _op():
        product = get_visible_product(outlet_id, product_id)
        state = _ensure_state_locked(outlet_id, product_id)

        warning = None
        delta_empty = 0
        if product.is_returnable:
            delta_empty = -min(quantity, state.stock_empty)
            if quantity > state.stock_empty:
                warning = EmptyStockUnderflow(
                    product_id=product_id,
                    requested=quantity,
                    available=state.stock_empty,
                )

        applied = apply_delta(
            outlet_id,
            product_id,
            quantity,
            delta_empty,
            REASON_MANUAL_RESTOCK,
            note=note or f"Restock {quantity} x {product.name}",
            product=product,
        )

        capital_entry = None
        capital_warning = None
        if record_capital:
            cost = _restock_capital_cost(outlet_id, product_id, quantity)
            if cost > 0:
                capital_entry = _record_entry_inner(
                    outlet_id=outlet_id,
                    kind=CAPITAL_OUT,
                    amount=cost,
                    note=f"AUTO:RESTOCK:{product.name} x{quantity}",
                )
            else:
                capital_warning = "restock cost not booked to capital: product has no cost at this outlet"

        return RestockResult(
            state=applied.state,
            warning=warning,
            capital_entry=capital_entry,
            capital_warning=capital_warning,
        )

    result = run_in_transaction(_op)
    if result.warning is not None:
        current_app.logger.info(
            "Restock outlet=%s product=%s received %s with only %s empties on hand",
            outlet_id, product_id, quantity, result.warning.available,
        )
    return result


def correct_inventory(
    outlet_id: int,
    product_id: int,
    delta_filled=0,
    delta_empty=0,
    reason: str = REASON_CORRECTION,
    note=None,
) -> InventoryApplication:
    """
    Manual correction (stock count fix, container returns) as its own unit of work.

    The filled counter may not go negative; the empty counter clamps with a warning.
    """
    reason = choice(reason, "reason", (REASON_CORRECTION, REASON_RETURN))
    delta_filled = coerce_int(delta_filled, "delta_filled")
    delta_empty = coerce_int(delta_empty, "delta_empty")
    if delta_filled == 0 and delta_empty == 0:
        raise ValidationError("a correction must change delta_filled or delta_empty")
    note = optional_text(note, "note")

    def _op():
        return apply_delta(outlet_id, product_id, delta_filled, delta_empty, reason, note=note)

    return run_in_transaction(_op)
