# Overview: Flask API routes for price rules, tier overrides and catalog display pricing.

# backend/depot/routes/pricing.py

from flask import Blueprint, request, jsonify, current_app

from ..errors import DepotError, ValidationError
from ..services import discount_service, pricing_service
from ..decorators import require_outlet
from ..validation import PayloadPolicy, check_payload, coerce_int


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/outlets/<int:outlet_id>/pricing")

PRICE_RULE_POLICY = PayloadPolicy(
    allowed_fields={"basePrice", "costPrice"},
    required_fields={"basePrice"},
)

TIER_OVERRIDE_POLICY = PayloadPolicy(
    allowed_fields={"discountKind", "discountValue"},
    required_fields={"discountKind", "discountValue"},
)


@pricing_bp.get("/catalog")
@require_outlet
def catalog_route(outlet_id: int):
    """
    Display prices for every priced product visible to the outlet.

    Query params: customerId (optional; applies that customer's tier)
    Prices are advisory; checkout recomputes them when the sale commits.
    """
    try:
        customer_id = request.args.get("customerId")
        if customer_id is not None:
            customer_id = coerce_int(customer_id, "customerId")
        return jsonify({"items": discount_service.price_catalog(outlet_id, customer_id)}), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to price catalog")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@pricing_bp.put("/rules/<int:product_id>")
@require_outlet
def set_price_rule_route(outlet_id: int, product_id: int):
    """Create or replace the price rule. Request: {basePrice, costPrice?}"""
    try:
        data = check_payload(request.get_json(silent=True), PRICE_RULE_POLICY)
        rule = pricing_service.set_price_rule(
            outlet_id,
            product_id,
            data["basePrice"],
            data.get("costPrice", 0),
        )
        return jsonify({"rule": rule.to_dict()}), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to set price rule")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@pricing_bp.get("/overrides")
@require_outlet
def list_overrides_route(outlet_id: int):
    try:
        tier_id = request.args.get("tierId")
        if tier_id is not None:
            tier_id = coerce_int(tier_id, "tierId")
    except ValidationError as e:
        return jsonify(e.to_dict()), e.http_status

    overrides = pricing_service.list_tier_overrides(outlet_id, tier_id)
    return jsonify({"overrides": [o.to_dict() for o in overrides]}), 200


@pricing_bp.put("/overrides/<int:product_id>/<int:tier_id>")
@require_outlet
def upsert_override_route(outlet_id: int, product_id: int, tier_id: int):
    """Create or update a tier override. Request: {discountKind: percentage|fixed, discountValue}"""
    try:
        data = check_payload(request.get_json(silent=True), TIER_OVERRIDE_POLICY)
        override = pricing_service.upsert_tier_override(
            outlet_id,
            product_id,
            tier_id,
            data["discountKind"],
            data["discountValue"],
        )
        return jsonify({"override": override.to_dict()}), 200

    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to save tier override")
        return jsonify({"error": "INTERNAL_ERROR", "message": "Internal server error"}), 500


@pricing_bp.delete("/overrides/<int:product_id>/<int:tier_id>")
@require_outlet
def delete_override_route(outlet_id: int, product_id: int, tier_id: int):
    try:
        deleted = pricing_service.delete_tier_override(outlet_id, product_id, tier_id)
    except DepotError as e:
        return jsonify(e.to_dict()), e.http_status

    if not deleted:
        return jsonify({
            "error": "NOT_FOUND",
            "message": f"no override for product {product_id} and tier {tier_id}",
            "details": {"product_id": product_id, "tier_id": tier_id},
        }), 404
    return jsonify({"deleted": True}), 200
