"""
Tests for the cart engine
"""
import dataclasses
from decimal import Decimal

import pytest

from shopcart.cart_engine import MAX_QUANTITY, CartEngine, parse_quantity
from shopcart.config import get_settings
from shopcart.errors import (
    Discontinued, InternalFailure, InvalidArgument, InvalidOperation, NotFound, Unavailable,
)
from shopcart.models import Cart, Product
from shopcart.users import UserDirectory


def lines(view):
    return [(item.product_id, item.quantity) for item in view.cart.items]


class TestParseQuantity:
    @pytest.mark.parametrize("raw, expected", [(1, 1), (7, 7), ("3", 3), (" 12 ", 12), ("+2", 2)])
    def test_accepts_positive_integers(self, raw, expected):
        assert parse_quantity(raw) == expected

    @pytest.mark.parametrize("raw", [0, -1, "0", "-4", "abc", "", "2.5", "1e3", None, 2.0, True])
    def test_rejects_everything_else(self, raw):
        with pytest.raises(InvalidArgument) as exc:
            parse_quantity(raw)
        assert exc.value.message == "Quantity must be a positive number"

    @pytest.mark.parametrize("raw", [MAX_QUANTITY + 1, str(MAX_QUANTITY + 1), "99999999999999999999", "1" * 5000])
    def test_rejects_values_beyond_the_column_range(self, raw):
        with pytest.raises(InvalidArgument) as exc:
            parse_quantity(raw)
        assert exc.value.message == "Quantity is too large"

    def test_accepts_the_largest_storable_value(self):
        assert parse_quantity(str(MAX_QUANTITY)) == MAX_QUANTITY


class TestAddItem:
    @pytest.mark.asyncio
    async def test_add_to_empty_cart(self, session, user_id, make_product):
        pid = await make_product(price="120.50")

        view = await CartEngine(session).add_item(user_id, pid, 2)

        assert lines(view) == [(pid, 2)]
        assert view.total_price == Decimal("241.00")
        assert view.cart.items[0].added_at is not None

    @pytest.mark.asyncio
    async def test_same_product_is_merged_by_addition(self, session, user_id, make_product):
        pid = await make_product(price="10")
        engine = CartEngine(session)

        first = await engine.add_item(user_id, pid, 2)
        first_added_at = first.cart.items[0].added_at
        view = await engine.add_item(user_id, pid, "3")

        assert lines(view) == [(pid, 5)]
        assert view.total_price == Decimal("50.00")
        assert view.cart.items[0].added_at >= first_added_at

    @pytest.mark.asyncio
    async def test_items_keep_insertion_order(self, session, user_id, make_product):
        a = await make_product(price="5", name="A")
        b = await make_product(price="7", name="B")
        engine = CartEngine(session)

        await engine.add_item(user_id, b, 1)
        await engine.add_item(user_id, a, 1)
        view = await engine.add_item(user_id, b, 1)

        assert lines(view) == [(b, 2), (a, 1)]
        assert view.total_price == Decimal("19.00")

    @pytest.mark.asyncio
    async def test_bad_quantity_leaves_cart_untouched(self, session, user_id, make_product):
        pid = await make_product()
        engine = CartEngine(session)

        with pytest.raises(InvalidArgument):
            await engine.add_item(user_id, pid, "zero")

        view = await engine.get_cart(user_id)
        assert lines(view) == []
        assert view.total_price == 0

    @pytest.mark.asyncio
    async def test_out_of_stock_product_is_rejected(self, session, user_id, make_product):
        pid = await make_product(stock=0)
        engine = CartEngine(session)

        with pytest.raises(Unavailable):
            await engine.add_item(user_id, pid, 1)

        assert lines(await engine.get_cart(user_id)) == []

    @pytest.mark.asyncio
    async def test_discontinued_product_is_rejected(self, session, user_id, make_product):
        keep = await make_product(price="3", name="Keep")
        gone = await make_product(stock=-1, name="Gone")
        engine = CartEngine(session)
        await engine.add_item(user_id, keep, 1)

        with pytest.raises(Discontinued):
            await engine.add_item(user_id, gone, 1)

        view = await engine.get_cart(user_id)
        assert lines(view) == [(keep, 1)]
        assert view.total_price == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_stock_is_not_reserved(self, session, session_maker, user_id, make_product):
        pid = await make_product(stock=1)

        # quantity above stock is accepted; stock stays as it was
        await CartEngine(session).add_item(user_id, pid, 5)

        async with session_maker() as s:
            assert (await s.get(Product, pid)).stock == 1

    @pytest.mark.asyncio
    async def test_unknown_product(self, session, user_id):
        with pytest.raises(NotFound) as exc:
            await CartEngine(session).add_item(user_id, 999, 1)
        assert exc.value.message == "Product not found"

    @pytest.mark.asyncio
    async def test_unknown_user(self, session, make_product):
        pid = await make_product()
        with pytest.raises(NotFound) as exc:
            await CartEngine(session).add_item(424242, pid, 1)
        assert exc.value.message == "User not found"


class TestRemoveItem:
    @pytest.mark.asyncio
    async def test_remove_recomputes_total(self, session, user_id, make_product):
        a = await make_product(price="4", name="A")
        b = await make_product(price="6", name="B")
        engine = CartEngine(session)
        await engine.add_item(user_id, a, 1)
        await engine.add_item(user_id, b, 2)

        view = await engine.remove_item(user_id, a)

        assert lines(view) == [(b, 2)]
        assert view.total_price == Decimal("12.00")

    @pytest.mark.asyncio
    async def test_remove_missing_item(self, session, user_id, make_product):
        a = await make_product(price="4", name="A")
        b = await make_product(price="6", name="B")
        engine = CartEngine(session)
        await engine.add_item(user_id, a, 2)

        with pytest.raises(NotFound) as exc:
            await engine.remove_item(user_id, b)
        assert exc.value.message == "Item not found in cart"

        view = await engine.get_cart(user_id)
        assert lines(view) == [(a, 2)]
        assert view.total_price == Decimal("8.00")


class TestAdjustQuantity:
    @pytest.mark.asyncio
    async def test_increase_and_decrease(self, session, user_id, make_product):
        pid = await make_product(price="2.50")
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, 1)

        view = await engine.adjust_quantity(user_id, pid, "increase")
        assert lines(view) == [(pid, 2)]
        assert view.total_price == Decimal("5.00")

        view = await engine.adjust_quantity(user_id, pid, "decrease")
        assert lines(view) == [(pid, 1)]
        assert view.total_price == Decimal("2.50")

    @pytest.mark.asyncio
    async def test_decrease_below_one_is_refused(self, session, user_id, make_product):
        pid = await make_product()
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, 1)

        with pytest.raises(InvalidOperation) as exc:
            await engine.adjust_quantity(user_id, pid, "decrease")
        assert exc.value.message == "Cannot decrease quantity below 1"
        assert isinstance(exc.value, InvalidArgument)

        assert lines(await engine.get_cart(user_id)) == [(pid, 1)]

    @pytest.mark.asyncio
    async def test_adjust_missing_item(self, session, user_id):
        with pytest.raises(NotFound):
            await CartEngine(session).adjust_quantity(user_id, 1, "increase")

    @pytest.mark.asyncio
    async def test_unknown_action(self, session, user_id, make_product):
        pid = await make_product()
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, 1)

        with pytest.raises(InvalidArgument):
            await engine.adjust_quantity(user_id, pid, "double")


class TestQuantityLimits:
    @pytest.mark.asyncio
    async def test_merge_beyond_limit_is_refused(self, session, user_id, make_product):
        pid = await make_product(price="1")
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, MAX_QUANTITY - 1)

        with pytest.raises(InvalidArgument) as exc:
            await engine.add_item(user_id, pid, 2)
        assert exc.value.message == "Quantity is too large"

        assert lines(await engine.get_cart(user_id)) == [(pid, MAX_QUANTITY - 1)]

    @pytest.mark.asyncio
    async def test_increase_at_limit_is_refused(self, session, user_id, make_product):
        pid = await make_product(price="1")
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, MAX_QUANTITY)

        with pytest.raises(InvalidArgument):
            await engine.adjust_quantity(user_id, pid, "increase")

        assert lines(await engine.get_cart(user_id)) == [(pid, MAX_QUANTITY)]


class TestTotals:
    @pytest.mark.asyncio
    async def test_price_change_is_picked_up_on_read(self, session, session_maker, user_id, make_product, set_product):
        pid = await make_product(price="100")
        engine = CartEngine(session)
        await engine.add_item(user_id, pid, 3)

        await set_product(pid, price=Decimal("80"))
        view = await engine.get_cart(user_id)

        assert view.total_price == Decimal("240.00")
        # the refreshed total is stored, not just reported
        async with session_maker() as s:
            cart_id = await UserDirectory(s).get_cart_id_for_user(user_id)
            assert (await s.get(Cart, cart_id)).total_price == Decimal("240.00")

    @pytest.mark.asyncio
    async def test_total_matches_sum_after_mixed_operations(self, session, user_id, make_product, set_product):
        a = await make_product(price="9.99", name="A")
        b = await make_product(price="0.50", name="B")
        c = await make_product(price="120", name="C")
        engine = CartEngine(session)

        await engine.add_item(user_id, a, 2)
        await engine.add_item(user_id, b, "4")
        await engine.add_item(user_id, c, 1)
        await engine.adjust_quantity(user_id, b, "decrease")
        await engine.remove_item(user_id, c)
        await set_product(a, price=Decimal("10.00"))
        view = await engine.adjust_quantity(user_id, a, "increase")

        expected = sum(view.unit_price(pid) * qty for pid, qty in lines(view))
        assert lines(view) == [(a, 3), (b, 3)]
        assert view.total_price == expected == Decimal("31.50")

    @pytest.mark.asyncio
    async def test_add_increase_remove_flow(self, session, user_id, make_product):
        pid = await make_product(price="75")
        engine = CartEngine(session)

        view = await engine.add_item(user_id, pid, 2)
        assert lines(view) == [(pid, 2)]
        assert view.total_price == Decimal("150.00")

        view = await engine.adjust_quantity(user_id, pid, "increase")
        assert lines(view) == [(pid, 3)]
        assert view.total_price == Decimal("225.00")

        view = await engine.remove_item(user_id, pid)
        assert lines(view) == []
        assert view.total_price == 0


class TestConcurrentUpdates:
    @pytest.mark.asyncio
    async def test_conflicting_write_is_retried_not_lost(self, session_maker, user_id, make_product):
        mine = await make_product(price="10", name="Mine")
        theirs = await make_product(price="1", name="Theirs")

        async with session_maker() as s1, session_maker() as s2:
            engine = CartEngine(s1)
            other = CartEngine(s2)
            original = engine.catalog.unit_prices
            calls = []

            async def interfering_unit_prices(product_ids):
                product_ids = list(product_ids)
                calls.append(product_ids)
                if len(calls) == 1:
                    # another request commits between our read and our write
                    await other.add_item(user_id, theirs, 1)
                return await original(product_ids)

            engine.catalog.unit_prices = interfering_unit_prices
            view = await engine.add_item(user_id, mine, 2)

        assert len(calls) == 2
        assert lines(view) == [(theirs, 1), (mine, 2)]
        assert view.total_price == Decimal("21.00")

    @pytest.mark.asyncio
    async def test_gives_up_after_configured_attempts(self, session_maker, user_id, make_product):
        mine = await make_product(price="10", name="Mine")
        theirs = await make_product(price="1", name="Theirs")
        settings = dataclasses.replace(get_settings(), cart_update_attempts=2)

        async with session_maker() as s1, session_maker() as s2:
            engine = CartEngine(s1, settings)
            other = CartEngine(s2)
            original = engine.catalog.unit_prices

            async def always_interfering(product_ids):
                product_ids = list(product_ids)
                await other.add_item(user_id, theirs, 1)
                return await original(product_ids)

            engine.catalog.unit_prices = always_interfering
            with pytest.raises(InternalFailure):
                await engine.add_item(user_id, mine, 2)

        async with session_maker() as s3:
            view = await CartEngine(s3).get_cart(user_id)
        assert lines(view) == [(theirs, 2)]
        assert view.total_price == Decimal("2.00")
