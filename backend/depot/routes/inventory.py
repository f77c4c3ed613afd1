# backend/depot/routes/inventory.py
"""
Inventory routes: restock, manual corrections and stock views.

Every stock change goes through the inventory service, which writes exactly
one audit event per change. Restocks of returnable items exchange empties;
receiving more than the empties on hand succeeds with a warning.
"""
from flask import Blueprint, request, current_app

from ..errors import DepotError, ValidationError
from ..models.inventory import REASON_CORRECTION
from ..validation import PayloadPolicy, check_payload, coerce_int, positive_int
from ..decorators import require_outlet


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/outlets/<int:outlet_id>/inventory")

RESTOCK_POLICY = PayloadPolicy(
    allowed_fields={"productId", "quantity", "note", "recordCapital"},
    required_fields={"productId", "quantity"},
)

CORRECTION_POLICY = PayloadPolicy(
    allowed_fields={"productId", "deltaFilled", "deltaEmpty", "reason", "note"},
    required_fields={"productId"},
)

MAX_EVENTS = 1000


@inventory_bp.post("/restock")
@require_outlet
def restock_route(outlet_id: int):
    """
    Receive filled stock for one product.

    Request: {productId, quantity, note?, recordCapital?}
    """
    from ..services.inventory_service import restock_product

    try:
        data = check_payload(request.get_json(silent=True), RESTOCK_POLICY)
        record_capital = data.get("recordCapital")
        if record_capital is not None and not isinstance(record_capital, bool):
            raise ValidationError("recordCapital must be a boolean")

        result = restock_product(
            outlet_id,
            coerce_int(data["productId"], "productId"),
            data["quantity"],
            note=data.get("note"),
            record_capital=record_capital,
        )
    except DepotError as e:
        return e.to_dict(), e.http_status
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return {"error": "INTERNAL_ERROR", "message": "Internal server error"}, 500

    response = {
        "productId": result.state.product_id,
        "stockFilled": result.state.stock_filled,
        "stockEmpty": result.state.stock_empty,
    }
    if result.warning is not None:
        response["warning"] = result.warning.to_dict()
    if result.capital_entry is not None:
        response["capitalEntry"] = result.capital_entry.to_dict()
    if result.capital_warning:
        response["capitalWarning"] = result.capital_warning
    return response, 201


@inventory_bp.post("/corrections")
@require_outlet
def correction_route(outlet_id: int):
    """
    Manual stock correction or container return.

    Request: {productId, deltaFilled?, deltaEmpty?, reason?: correction|return, note?}
    """
    from ..services.inventory_service import correct_inventory

    try:
        data = check_payload(request.get_json(silent=True), CORRECTION_POLICY)
        applied = correct_inventory(
            outlet_id,
            coerce_int(data["productId"], "productId"),
            delta_filled=data.get("deltaFilled", 0),
            delta_empty=data.get("deltaEmpty", 0),
            reason=data.get("reason") or REASON_CORRECTION,
            note=data.get("note"),
        )
    except DepotError as e:
        return e.to_dict(), e.http_status
    except Exception:
        current_app.logger.exception("Failed to correct inventory")
        return {"error": "INTERNAL_ERROR", "message": "Internal server error"}, 500

    return {
        "productId": applied.state.product_id,
        "stockFilled": applied.state.stock_filled,
        "stockEmpty": applied.state.stock_empty,
        "event": applied.event.to_dict(),
        "warnings": [w.to_dict() for w in applied.warnings],
    }, 201


@inventory_bp.get("")
@require_outlet
def list_inventory_route(outlet_id: int):
    """Stock counters for every product the outlet has stocked."""
    from ..services.inventory_service import list_inventory_states

    return {"items": list_inventory_states(outlet_id)}, 200


@inventory_bp.get("/<int:product_id>")
@require_outlet
def inventory_state_route(outlet_id: int, product_id: int):
    from ..services.inventory_service import get_inventory_state

    try:
        return get_inventory_state(outlet_id, product_id), 200
    except DepotError as e:
        return e.to_dict(), e.http_status


@inventory_bp.get("/<int:product_id>/events")
@require_outlet
def inventory_events_route(outlet_id: int, product_id: int):
    """
    Audit trail for one product, newest first.

    Query params: limit (default 200, max 1000)
    """
    from ..services.inventory_service import list_inventory_events

    try:
        limit = positive_int(request.args.get("limit", "200"), "limit")
        events = list_inventory_events(outlet_id=outlet_id, product_id=product_id, limit=min(limit, MAX_EVENTS))
    except DepotError as e:
        return e.to_dict(), e.http_status

    return {"events": [e.to_dict() for e in events]}, 200
