# Overview: Flask API routes for the outlet capital ledger; parses input and returns JSON responses.

# backend/depot/routes/capital.py

from flask import Blueprint, request, jsonify, current_app

from ..errors import DepotError, ValidationError
from ..services import capital_service
from ..decorators import require_outlet
from ..validation import PayloadPolicy, check_payload, coerce_int, positive_int


capital_bp = Blueprint("capital", __name__, url_prefix="/api")

CAPITAL_ENTRY_POLICY = PayloadPolicy(
    allowed_fields={"kind", "amount", "note"},
    required_fields={"kind", "amount"},
)

MAX_ENTRIES = 1000


@capital_bp.post("/outlets/<int:outlet_id>/capital/entries")
@require_outlet
def record_entry_route(outlet_id: int):
    """
    Append a capital entry.

    Request: {kind: in|out, amount, note?}
    409 when an 'out' entry exceeds the current balance.
    """
    try:
        data = check_payload(request.get_json(silent=True), CAPITAL_ENTRY_POLICY)
        entry = capital_service.record_entry(outlet_id, data["kind"], data["amount"], note=data.get("note"))
        balance = capital_service.get_balance(outlet_id)
        return jsonify({"entry": entry.to_dict(), "balance": balance}), 201

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record capital entry")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@capital_bp.get("/outlets/<int:outlet_id>/capital/balance")
@require_outlet
def balance_route(outlet_id: int):
    return jsonify(capital_service.get_capital_summary(outlet_id)), 200


@capital_bp.get("/outlets/<int:outlet_id>/capital/entries")
@require_outlet
def list_entries_route(outlet_id: int):
    """
    Capital entries, newest first.

    Query params: limit (default 200, max 1000)
    """
    try:
        limit = positive_int(request.args.get("limit", "200"), "limit")
    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status

    entries = capital_service.list_capital_entries(outlet_id, limit=min(limit, MAX_ENTRIES))
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@capital_bp.get("/capital/balances")
def list_balances_route():
    """
    Capital summaries for several outlets, sorted by outlet name.

    Query params: outletIds (comma-separated, required)
    """
    try:
        raw = request.args.get("outletIds", "")
        parts = [p for p in raw.split(",") if p.strip()]
        if not parts:
            raise ValidationError("outletIds is required")
        outlet_ids = [coerce_int(p, "outletIds") for p in parts]
    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status

    return jsonify({"balances": capital_service.list_capital_balances(outlet_ids)}), 200
