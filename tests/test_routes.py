"""HTTP surface: auth, trading and admin endpoints through the Flask test client."""

from __future__ import annotations

import logging

import pytest

from sharepool import create_app
from sharepool.config import TestConfig as AppTestConfig
from sharepool.extensions import get_context
from sharepool.services import auth


@pytest.fixture
def app(tmp_path, clock):
    app = create_app(config=AppTestConfig(tmp_path), clock=clock)
    yield app
    package_logger = logging.getLogger("sharepool")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    with app.app_context():
        get_context().engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def _register(client, email="trader@example.com", password="secret1"):
    return client.post("/auth/register", json={"email": email, "password": password})


def _make_admin(app, email="root@example.com", password="rootpass"):
    with app.app_context():
        auth.create_user(
            email=email, password=password, is_admin=True, session_factory=get_context().session_factory
        )
    return email, password


def test_register_logs_the_user_in(client):
    resp = _register(client)
    assert resp.status_code == 201
    assert resp.get_json()["email"] == "trader@example.com"
    assert resp.get_json()["is_admin"] is False
    assert resp.get_json()["created_at"].endswith("+00:00")

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["email"] == "trader@example.com"


def test_register_rejects_bad_payload(client):
    assert _register(client, password="123").status_code == 400
    _register(client)
    dup = _register(client)
    assert dup.status_code == 400
    assert "already" in dup.get_json()["message"]


def test_login_and_logout(client):
    _register(client)
    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401

    bad = client.post("/auth/login", json={"email": "trader@example.com", "password": "wrong!"})
    assert bad.status_code == 401

    ok = client.post("/auth/login", json={"email": "trader@example.com", "password": "secret1"})
    assert ok.status_code == 200
    assert client.get("/auth/me").status_code == 200


def test_anonymous_trading_requires_login(client):
    assert client.post("/shares/buy", json={"quantity": 1}).status_code == 401
    assert client.get("/shares/portfolio").status_code == 401


def test_public_status_and_quote(client):
    status = client.get("/shares/status").get_json()
    assert status == {"available_units": 10_000, "total_units": 10_000, "price": "10.00"}

    quote = client.get("/shares/quote?quantity=5").get_json()
    assert quote["total_price"] == "50.00"
    assert quote["future_value"] == "51.00"

    assert client.get("/shares/quote?quantity=abc").status_code == 400
    assert client.get("/shares/quote?quantity=0").status_code == 400


@pytest.mark.parametrize("raw", ["%C2%B2", "%D9%A3", "1.5", "--2"])
def test_quote_rejects_non_ascii_digits_and_fractions(client, raw):
    resp = client.get(f"/shares/quote?quantity={raw}")

    assert resp.status_code == 400
    assert resp.get_json()["reason"] == "invalid_value"


def test_buy_rejects_superscript_quantity(client):
    _register(client)

    resp = client.post("/shares/buy", json={"quantity": "\u00b2"})

    assert resp.status_code == 400
    assert client.get("/shares/status").get_json()["available_units"] == 10_000


def test_buy_then_sell_round_trip(client, clock):
    _register(client)

    bought = client.post("/shares/buy", json={"quantity": 5})
    assert bought.status_code == 201
    payload = bought.get_json()
    lot_id = payload["lot"]["id"]
    assert payload["transaction"]["total_amount"] == "50.00"
    assert payload["lot"]["matures_at"] == "2025-03-04T09:00:00+00:00"

    again = client.post("/shares/buy", json={"quantity": 1})
    assert again.status_code == 422
    assert again.get_json()["reason"] == "not_eligible_today"
    assert again.get_json()["details"]["next_eligible_at"] == "2025-03-04T09:00:00+00:00"

    early = client.post("/shares/sell", json={"lot_id": lot_id, "quantity": 5})
    assert early.status_code == 422
    assert early.get_json()["reason"] == "not_mature"

    clock.advance(hours=24)
    lots = client.get("/shares/lots").get_json()
    assert lots[0]["is_mature"] is True
    assert lots[0]["sell_value"] == "51.00"

    sold = client.post("/shares/sell", json={"lot_id": lot_id, "quantity": 5})
    assert sold.status_code == 200
    assert sold.get_json()["payout"] == "51.00"
    assert sold.get_json()["lot"]["is_sold"] is True

    history = client.get("/shares/history").get_json()
    assert [row["kind"] for row in history] == ["sell", "buy"]
    assert client.get("/shares/status").get_json()["available_units"] == 9995


def test_buy_error_mapping(client):
    _register(client)

    cap = client.post("/shares/buy", json={"quantity": 101})
    assert cap.status_code == 422
    assert cap.get_json()["reason"] == "exceeds_daily_cap"

    bad = client.post("/shares/buy", json={"quantity": "lots"})
    assert bad.status_code == 400
    assert bad.get_json()["reason"] == "invalid_value"

    missing = client.post("/shares/sell", json={"lot_id": 404, "quantity": 1})
    assert missing.status_code == 404


def test_eligibility_and_portfolio(client, clock):
    _register(client)
    assert client.get("/shares/eligibility").get_json()["max_quantity"] == 100

    client.post("/shares/buy", json={"quantity": 10})
    clock.advance(hours=12)

    eligibility = client.get("/shares/eligibility").get_json()
    assert eligibility["can_buy_today"] is False
    assert eligibility["max_quantity"] == 0

    portfolio = client.get("/shares/portfolio").get_json()
    assert portfolio["pending_quantity"] == 10
    assert portfolio["pending_value"] == "101.00"
    assert portfolio["pending_projected_value"] == "102.00"


def test_history_rejects_unknown_kind(client):
    _register(client)
    assert client.get("/shares/history?kind=gift").status_code == 400


def test_admin_endpoints_require_admin(client):
    _register(client)

    assert client.get("/admin/summary").status_code == 403
    assert client.post("/admin/price", json={"price": "12"}).status_code == 403


def test_admin_price_and_flag(app, client):
    email, password = _make_admin(app)
    _register(client, email="member@example.com")
    member_id = client.get("/auth/me").get_json()["id"]
    client.post("/auth/logout")
    client.post("/auth/login", json={"email": email, "password": password})

    price = client.post("/admin/price", json={"price": "15.00"})
    assert price.status_code == 200
    assert price.get_json()["price"] == "15.00"
    assert client.get("/shares/status").get_json()["price"] == "15.00"

    assert client.post("/admin/price", json={"price": "-1"}).status_code == 400
    assert client.post("/admin/price", json={}).status_code == 400

    promoted = client.post(f"/admin/users/{member_id}/admin", json={"is_admin": True})
    assert promoted.status_code == 200
    assert promoted.get_json()["is_admin"] is True
    assert client.post(f"/admin/users/{member_id}/admin", json={"is_admin": "yes"}).status_code == 400
    assert client.post("/admin/users/9999/admin", json={"is_admin": True}).status_code == 400

    summary = client.get("/admin/summary").get_json()
    assert summary["total_users"] == 2
    assert summary["availability_pct"] == 100

    users = client.get("/admin/users").get_json()
    assert {row["email"] for row in users} == {email, "member@example.com"}


def test_cli_commands(app):
    runner = app.test_cli_runner()

    status = runner.invoke(args=["sharepool-status"])
    assert status.exit_code == 0
    assert "Available: 10000/10000" in status.output

    created = runner.invoke(
        args=["sharepool-create-user", "ops@example.com", "--password", "secret1", "--admin"]
    )
    assert created.exit_code == 0
    assert "Created admin ops@example.com" in created.output

    duplicate = runner.invoke(
        args=["sharepool-create-user", "ops@example.com", "--password", "secret1"]
    )
    assert duplicate.exit_code != 0

    init = runner.invoke(args=["sharepool-init"])
    assert init.exit_code == 0
    assert "Pool ready" in init.output
