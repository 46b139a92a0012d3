"""Admin endpoints: pricing, admin flags and platform rollups."""

from __future__ import annotations

from flask import jsonify

from sharepool.extensions import current_user_id, get_context, login_required
from sharepool.services import admin
from sharepool.services.pricing import to_money

from ..parsing import json_body, parse_decimal
from . import bp


@bp.get("/summary")
@login_required
def summary():
    ctx = get_context()
    result = admin.platform_summary(actor_id=current_user_id(), session_factory=ctx.session_factory)
    return jsonify(result.to_dict())


@bp.get("/users")
@login_required
def users():
    ctx = get_context()
    rows = admin.list_user_overview(actor_id=current_user_id(), session_factory=ctx.session_factory)
    return jsonify([row.to_dict() for row in rows])


@bp.post("/price")
@login_required
def set_price():
    ctx = get_context()
    new_price = parse_decimal(json_body().get("price"), field="price")
    pool = admin.set_share_price(
        actor_id=current_user_id(),
        new_price=new_price,
        session_factory=ctx.session_factory,
        clock=ctx.clock,
    )
    return jsonify({"price": str(to_money(pool.unit_price)), "version": pool.version})


@bp.post("/users/<int:user_id>/admin")
@login_required
def set_admin(user_id: int):
    ctx = get_context()
    flag = json_body().get("is_admin")
    if not isinstance(flag, bool):
        return jsonify({"reason": "invalid_value", "message": "is_admin must be true or false"}), 400
    user = admin.set_admin_flag(
        actor_id=current_user_id(),
        target_user_id=user_id,
        is_admin=flag,
        session_factory=ctx.session_factory,
    )
    return jsonify({"id": user.id, "email": user.email, "is_admin": user.is_admin})
