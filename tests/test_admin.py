"""Admin operations: permission checks, pricing, flags and rollups."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from sharepool.errors import InvalidValue, PermissionDenied
from sharepool.services import admin


class TestPermissions:
    @pytest.mark.parametrize(
        "call",
        [
            lambda sf, uid: admin.set_share_price(actor_id=uid, new_price="12", session_factory=sf),
            lambda sf, uid: admin.set_admin_flag(
                actor_id=uid, target_user_id=uid, is_admin=True, session_factory=sf
            ),
            lambda sf, uid: admin.platform_summary(actor_id=uid, session_factory=sf),
            lambda sf, uid: admin.list_user_overview(actor_id=uid, session_factory=sf),
        ],
    )
    def test_non_admin_is_denied(self, trading, session_factory, user, call):
        with pytest.raises(PermissionDenied):
            call(session_factory, user.id)

    def test_unknown_actor_is_denied(self, trading, session_factory):
        with pytest.raises(PermissionDenied):
            admin.platform_summary(actor_id=424242, session_factory=session_factory)

    def test_denied_price_change_leaves_price(self, trading, session_factory, user):
        with pytest.raises(PermissionDenied):
            admin.set_share_price(actor_id=user.id, new_price="99", session_factory=session_factory)

        assert trading.get_platform_status().price == Decimal("10.00")


class TestSetSharePrice:
    def test_updates_price_for_future_quotes(self, trading, session_factory, admin_user, clock):
        pool = admin.set_share_price(
            actor_id=admin_user.id, new_price="12.50", session_factory=session_factory, clock=clock
        )

        assert pool.unit_price == Decimal("12.50")
        assert trading.quote(2).total_price == Decimal("25.00")

    @pytest.mark.parametrize(
        "price", ["0", "-5", "not-a-number", "0.00001", "10.123456", "1e12", "Infinity"]
    )
    def test_rejects_invalid_price(self, trading, session_factory, admin_user, price):
        with pytest.raises(InvalidValue):
            admin.set_share_price(
                actor_id=admin_user.id, new_price=price, session_factory=session_factory
            )

        assert trading.get_platform_status().price == Decimal("10.00")

    def test_four_decimal_price_is_kept_exactly(self, trading, session_factory, admin_user, user):
        admin.set_share_price(
            actor_id=admin_user.id, new_price="0.0001", session_factory=session_factory
        )

        lot = trading.buy(user.id, 3).lot

        assert trading.get_platform_status().price == Decimal("0.0001")
        assert lot.unit_price == Decimal("0.0001")


class TestSetAdminFlag:
    def test_grant_and_revoke(self, trading, session_factory, admin_user, user):
        promoted = admin.set_admin_flag(
            actor_id=admin_user.id, target_user_id=user.id, is_admin=True, session_factory=session_factory
        )
        assert promoted.is_admin is True

        # The new admin can act immediately.
        admin.platform_summary(actor_id=user.id, session_factory=session_factory)

        demoted = admin.set_admin_flag(
            actor_id=admin_user.id, target_user_id=user.id, is_admin=False, session_factory=session_factory
        )
        assert demoted.is_admin is False
        with pytest.raises(PermissionDenied):
            admin.platform_summary(actor_id=user.id, session_factory=session_factory)

    def test_unknown_target(self, trading, session_factory, admin_user):
        with pytest.raises(InvalidValue):
            admin.set_admin_flag(
                actor_id=admin_user.id, target_user_id=999, is_admin=True, session_factory=session_factory
            )

    def test_last_admin_may_demote_themselves(self, trading, session_factory, admin_user, caplog):
        with caplog.at_level(logging.WARNING, logger="sharepool"):
            result = admin.set_admin_flag(
                actor_id=admin_user.id,
                target_user_id=admin_user.id,
                is_admin=False,
                session_factory=session_factory,
            )

        assert result.is_admin is False
        messages = [record.getMessage() for record in caplog.records]
        assert "Admin revoked their own admin flag" in messages
        assert "No admin users remain" in messages


class TestRollups:
    def test_platform_summary(self, trading, session_factory, admin_user, user_factory, clock):
        a = user_factory()
        b = user_factory()
        trading.buy(a.id, 5)
        trading.buy(b.id, 20)
        clock.advance(hours=24)
        trading.sell(a.id, trading.list_lots(a.id)[0].id, 5)

        summary = admin.platform_summary(actor_id=admin_user.id, session_factory=session_factory)

        assert summary.total_units == 10_000
        assert summary.units_sold == 25
        assert summary.available_units == 9975
        assert summary.availability_pct == 100
        assert summary.price == Decimal("10.00")
        assert summary.total_users == 3
        assert summary.total_transactions == 3
        assert summary.total_volume == Decimal("301.00")
        assert summary.to_dict()["total_volume"] == "301.00"

    def test_summary_of_empty_platform(self, trading, session_factory, admin_user):
        summary = admin.platform_summary(actor_id=admin_user.id, session_factory=session_factory)

        assert summary.units_sold == 0
        assert summary.total_transactions == 0
        assert summary.total_volume == Decimal("0")

    def test_user_overview(self, trading, session_factory, admin_user, user_factory, clock):
        a = user_factory()
        idle = user_factory()
        trading.buy(a.id, 10)
        clock.advance(hours=24)
        trading.sell(a.id, trading.list_lots(a.id)[0].id, 4)

        rows = {row.id: row for row in admin.list_user_overview(
            actor_id=admin_user.id, session_factory=session_factory
        )}

        assert set(rows) == {admin_user.id, a.id, idle.id}
        assert rows[a.id].units_owned == 6
        assert rows[a.id].total_spent == Decimal("100.00")
        assert rows[idle.id].units_owned == 0
        assert rows[idle.id].total_spent == Decimal("0")
        assert rows[admin_user.id].is_admin is True
