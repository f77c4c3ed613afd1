# Overview: Flask API routes for checkout, sales lookups and sales reports; parses input and returns JSON responses.

# backend/depot/routes/checkout.py

from flask import Blueprint, request, jsonify, current_app

from ..errors import DepotError, ValidationError
from ..services import checkout_service, reporting_service
from ..decorators import require_outlet
from ..time_utils import day_range, parse_iso_datetime, to_utc_z
from ..validation import PayloadPolicy, check_payload


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/outlets/<int:outlet_id>")

CHECKOUT_POLICY = PayloadPolicy(
    allowed_fields={"customerId", "items", "paymentMethod", "cashTendered"},
    required_fields={"items", "paymentMethod"},
)
ITEM_POLICY = PayloadPolicy(
    allowed_fields={"productId", "quantity"},
    required_fields={"productId", "quantity"},
)


def _parse_items(items) -> list[dict]:
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    lines = []
    for item in items:
        item = check_payload(item, ITEM_POLICY)
        lines.append({"product_id": item["productId"], "quantity": item["quantity"]})
    return lines


def _parse_date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


@checkout_bp.post("/checkout")
@require_outlet
def checkout_route(outlet_id: int):
    """
    Price, validate and commit a sale in one step.

    Request: {customerId?, items: [{productId, quantity}], paymentMethod, cashTendered?}
    409 on insufficient stock (every short line is listed in details.items).
    """
    try:
        data = check_payload(request.get_json(silent=True), CHECKOUT_POLICY)
        result = checkout_service.checkout(
            outlet_id,
            _parse_items(data["items"]),
            data["paymentMethod"],
            customer_id=data.get("customerId"),
            cash_tendered=data.get("cashTendered"),
        )
        return jsonify(checkout_service.to_checkout_response(result)), 201

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to check out sale")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@checkout_bp.get("/sales/<int:sale_id>")
@require_outlet
def get_sale_route(outlet_id: int, sale_id: int):
    """Get a committed sale with its frozen lines."""
    try:
        return jsonify(checkout_service.get_sale(outlet_id, sale_id)), 200
    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status


@checkout_bp.get("/sales/summary")
@require_outlet
def sales_summary_route(outlet_id: int):
    """
    Sales totals for a date range.

    Query params: from, to (ISO-8601 dates; default today UTC)
    """
    try:
        start = _parse_date_arg("from")
        end = _parse_date_arg("to")
        return jsonify(reporting_service.get_sales_summary(outlet_id, start, end)), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@checkout_bp.get("/sales")
@require_outlet
def list_sales_route(outlet_id: int):
    """
    Paid sales for a date range, newest first.

    Query params: from, to (ISO-8601 dates; default today UTC)
    """
    try:
        start = _parse_date_arg("from")
        end = _parse_date_arg("to")
        range_start, range_end = day_range(start, end)
        return jsonify({
            "outlet_id": outlet_id,
            "from": to_utc_z(range_start),
            "to": to_utc_z(range_end),
            "sales": reporting_service.list_sales(outlet_id, start, end),
        }), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@checkout_bp.get("/sales/report")
@require_outlet
def sales_report_route(outlet_id: int):
    """
    Sales, sold lines, and opening/current capital balance for a date range.

    Query params: from, to (ISO-8601 dates; default today UTC)
    """
    try:
        start = _parse_date_arg("from")
        end = _parse_date_arg("to")
        return jsonify(reporting_service.get_sales_report(outlet_id, start, end)), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500
