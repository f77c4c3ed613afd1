# Overview: Request decorators for API routes (outlet scoping).

from functools import wraps
from flask import jsonify, g

from .extensions import db
from .models import Outlet


def require_outlet(f):
    """
    Resolve the outlet named in the URL and reject unknown/inactive outlets.

    The outlet id always comes from the request path; an upstream auth/tenant
    layer decides which outlets a caller may address. Sets g.outlet.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        outlet_id = kwargs.get("outlet_id")
        outlet = db.session.query(Outlet).filter_by(id=outlet_id).first()
        if outlet is None or not outlet.is_active:
            return jsonify({
                "error": "NOT_FOUND",
                "message": f"outlet {outlet_id} not found",
                "details": {"outlet_id": outlet_id},
            }), 404
        g.outlet = outlet
        return f(*args, **kwargs)

    return decorated_function

