"""
Tests for the order store helpers and payload coercion.
"""

import math

import pytest
from sqlalchemy import select

from api.routes import coerce_total, parse_order_id
from database.helpers import (
    create_order,
    create_user,
    delete_order,
    ensure_admin_user,
    list_orders,
    parse_items,
)
from database.models import User


class TestParseItems:
    def test_list_passthrough(self):
        assert parse_items([{"sku": 1}]) == [{"sku": 1}]

    def test_json_text_and_bytes(self):
        assert parse_items('[1, "two"]') == [1, "two"]
        assert parse_items(b'[{"a": 1}]') == [{"a": 1}]

    @pytest.mark.parametrize("value", ["not json", '{"a": 1}', None, 42, {"a": 1}])
    def test_everything_else_is_empty(self, value):
        assert parse_items(value) == []


class TestCoerceTotal:
    @pytest.mark.parametrize("value,expected", [(12, 12.0), (9.5, 9.5), ("3.25", 3.25), (0, 0.0)])
    def test_accepted(self, value, expected):
        assert coerce_total(value) == expected

    @pytest.mark.parametrize(
        "value", [None, True, False, "", "abc", "nan", "inf", math.inf, [1], {"a": 1}, 10**400]
    )
    def test_rejected(self, value):
        assert coerce_total(value) is None


class TestParseOrderId:
    @pytest.mark.parametrize("raw,expected", [("7", 7), ("7.0", 7), ("7e0", 7), ("1e3", 1000), ("-3", -3)])
    def test_integral(self, raw, expected):
        oid = parse_order_id(raw)
        assert oid == expected
        assert isinstance(oid, int)

    def test_fractional_stays_float(self):
        assert parse_order_id("1.5") == 1.5

    def test_huge_id_stays_int(self):
        assert parse_order_id("99999999999999999999") == 99999999999999999999

    @pytest.mark.parametrize("raw", ["", "abc", "inf", "-inf", "nan", "1e400", "0x10"])
    def test_not_a_number(self, raw):
        assert parse_order_id(raw) is None


class TestOrderStore:
    @pytest.mark.asyncio
    async def test_scoped_listing_and_delete(self, test_session_factory):
        async with test_session_factory() as session:
            alice = await create_user(session, "alice@x.io", "secret1")
            bob = await create_user(session, "bob@x.io", "secret1")
            first = await create_order(session, alice.id, alice.email, [{"sku": "a"}], 10)
            await create_order(session, bob.id, bob.email, [], 5)
            await session.commit()

            assert [o.user_id for o in await list_orders(session, user_id=alice.id)] == [alice.id]
            assert len(await list_orders(session)) == 2

            assert await delete_order(session, first.id) == 1
            assert await delete_order(session, first.id) == 0
            await session.commit()
            assert await list_orders(session, user_id=alice.id) == []


class TestEnsureAdminUser:
    @pytest.mark.asyncio
    async def test_creates_admin(self, test_session_factory):
        async with test_session_factory() as session:
            uid = await ensure_admin_user(session, "root@x.io", "pw")
            await session.commit()
            user = (await session.execute(select(User).where(User.id == uid))).scalar_one()
            assert user.role == "admin"
            assert user.email == "root@x.io"

    @pytest.mark.asyncio
    async def test_promotes_existing(self, test_session_factory):
        async with test_session_factory() as session:
            existing = await create_user(session, "root@x.io", "other-pw")
            await session.commit()

            uid = await ensure_admin_user(session, "root@x.io", "pw")
            await session.commit()
            assert uid == existing.id

        async with test_session_factory() as session:
            rows = (await session.execute(select(User))).scalars().all()
            assert len(rows) == 1
            assert rows[0].role == "admin"
