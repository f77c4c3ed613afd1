# Overview: Liveness endpoints: database ping and API version.

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")

API_VERSION = "1.0.0"


@system_bp.get("/health")
def health():
    """200 when the database answers a ping, 503 otherwise."""
    try:
        db.session.execute(text("SELECT 1"))
        database = "up"
    except SQLAlchemyError:
        current_app.logger.exception("Database ping failed")
        db.session.rollback()
        database = "down"

    status = 200 if database == "up" else 503
    return jsonify({
        "status": "ok" if status == 200 else "unavailable",
        "database": database,
        "timestamp": to_utc_z(utcnow()),
    }), status


@system_bp.get("/version")
def version():
    return jsonify({"api_version": API_VERSION}), 200
