"""Share trading endpoints for the signed-in user."""

from __future__ import annotations

from flask import jsonify, request

from sharepool.clock import ensure_utc
from sharepool.errors import InvalidValue
from sharepool.extensions import current_user_id, get_context, login_required
from sharepool.models.lot import ShareLot
from sharepool.models.transaction import TRANSACTION_KINDS, ShareTransaction
from sharepool.services.pricing import to_money

from ..parsing import json_body, parse_int
from . import bp


def _transaction_payload(txn: ShareTransaction) -> dict[str, object]:
    return {
        "id": txn.id,
        "kind": txn.kind,
        "quantity": txn.quantity,
        "unit_price": str(to_money(txn.unit_price)),
        "total_amount": str(to_money(txn.total_amount)),
        "created_at": ensure_utc(txn.created_at).isoformat(),
        "lot_id": txn.lot_id,
    }


def _lot_state(lot: ShareLot) -> dict[str, object]:
    return {
        "id": lot.id,
        "quantity": lot.quantity,
        "original_quantity": lot.original_quantity,
        "unit_price": str(to_money(lot.unit_price)),
        "purchased_at": ensure_utc(lot.purchased_at).isoformat(),
        "matures_at": ensure_utc(lot.matures_at).isoformat(),
        "is_sold": lot.is_sold,
    }


@bp.get("/status")
def status():
    return jsonify(get_context().trading.get_platform_status().to_dict())


@bp.get("/quote")
def quote():
    quantity = parse_int(request.args.get("quantity"), field="quantity")
    return jsonify(get_context().trading.quote(quantity).to_dict())


@bp.get("/eligibility")
@login_required
def eligibility():
    return jsonify(get_context().trading.get_eligibility(current_user_id()).to_dict())


@bp.post("/buy")
@login_required
def buy():
    quantity = parse_int(json_body().get("quantity"), field="quantity")
    result = get_context().trading.buy(current_user_id(), quantity)
    return (
        jsonify(
            {
                "lot": _lot_state(result.lot),
                "transaction": _transaction_payload(result.transaction),
                "quote": result.quote.to_dict(),
            }
        ),
        201,
    )


@bp.post("/sell")
@login_required
def sell():
    payload = json_body()
    lot_id = parse_int(payload.get("lot_id"), field="lot_id")
    quantity = parse_int(payload.get("quantity"), field="quantity")
    result = get_context().trading.sell(current_user_id(), lot_id, quantity)
    return jsonify(
        {
            "lot": _lot_state(result.lot),
            "transaction": _transaction_payload(result.transaction),
            "payout": str(result.payout),
        }
    )


@bp.get("/portfolio")
@login_required
def portfolio():
    return jsonify(get_context().trading.get_portfolio(current_user_id()).to_dict())


@bp.get("/lots")
@login_required
def lots():
    views = get_context().trading.list_lots(current_user_id())
    return jsonify([view.to_dict() for view in views])


@bp.get("/history")
@login_required
def history():
    kind = request.args.get("kind") or None
    if kind is not None and kind not in TRANSACTION_KINDS:
        raise InvalidValue("kind must be 'buy' or 'sell'", field="kind", value=kind)
    limit = parse_int(request.args.get("limit", "100"), field="limit")
    offset = parse_int(request.args.get("offset", "0"), field="offset")
    txns = get_context().trading.list_history(
        current_user_id(), kind=kind, limit=limit, offset=offset
    )
    return jsonify([_transaction_payload(txn) for txn in txns])
