"""
Property-based tests with Hypothesis.

Pricing, status derivation, the stock ledger and lifecycle call sequences.
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st
from sqlalchemy import select

from shared.config.constants import ItemStatus, OrderStatus, StockOperation
from shared.infrastructure.db import unit_of_work
from shared.utils.exceptions import AppException, ValidationError
from shared.utils.schemas import OrderItemInput
from shared.utils.validators import quantize_stock
from rest_api.models import Order
from rest_api.services.domain import IngredientLedger, OrderLifecycle, PricingSnapshot
from rest_api.services.domain.order_feed import PollingOrderStatusFeed, derived_status_clause
from rest_api.services.domain.order_lifecycle import (
    ORDER_TRANSITIONS,
    compute_totals,
    derive_order_status,
    order_status,
)
from tests.conftest import make_ingredient, make_product, order_request, unique_name

line_totals = st.lists(st.integers(min_value=0, max_value=1_000_000), max_size=20)
tax_rates = st.decimals(min_value=0, max_value=1, places=4)
item_statuses = st.lists(st.sampled_from(ItemStatus.PROGRESSION + [ItemStatus.CANCELLED]), max_size=8)
stock_deltas = st.lists(
    st.decimals(min_value=-50, max_value=50, places=3).filter(lambda d: d != 0),
    min_size=1,
    max_size=15,
)


class TestTotalsProperties:

    @given(lines=line_totals, tax_rate=tax_rates)
    def test_total_is_subtotal_plus_tax(self, lines, tax_rate):
        totals = compute_totals(lines, tax_rate)
        assert totals.subtotal_cents == sum(lines)
        assert totals.total_cents == totals.subtotal_cents + totals.tax_cents
        assert totals.tax_cents >= 0

    @given(lines=line_totals, tax_rate=tax_rates)
    def test_tax_within_half_cent(self, lines, tax_rate):
        totals = compute_totals(lines, tax_rate)
        exact = Decimal(sum(lines)) * tax_rate
        assert abs(Decimal(totals.tax_cents) - exact) <= Decimal("0.5")

    @given(lines=line_totals, tax_rate=tax_rates, data=st.data())
    def test_discount_never_makes_total_negative(self, lines, tax_rate, data):
        ceiling = compute_totals(lines, tax_rate).total_cents
        discount = data.draw(st.integers(min_value=0, max_value=ceiling + 100))

        if discount > ceiling:
            with pytest.raises(ValidationError):
                compute_totals(lines, tax_rate, discount)
        else:
            assert compute_totals(lines, tax_rate, discount).total_cents >= 0


class TestStatusProperties:

    @given(stored=st.sampled_from([OrderStatus.PENDING, OrderStatus.COMPLETED, OrderStatus.CANCELLED]), items=item_statuses)
    def test_non_confirmed_status_is_reported_as_stored(self, stored, items):
        assert derive_order_status(stored, items) == stored

    @given(items=item_statuses)
    def test_confirmed_derivation_is_a_known_status(self, items):
        derived = derive_order_status(OrderStatus.CONFIRMED, items)
        assert derived in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED)

    @given(items=item_statuses)
    def test_cancelled_items_are_ignored(self, items):
        live = [s for s in items if s != ItemStatus.CANCELLED]
        assert derive_order_status(OrderStatus.CONFIRMED, items) == derive_order_status(OrderStatus.CONFIRMED, live)

    def test_terminal_statuses_have_no_edges(self):
        for status in OrderStatus.TERMINAL:
            assert ORDER_TRANSITIONS[status] == frozenset()


class TestLedgerProperties:

    @given(start=st.decimals(min_value=0, max_value=100, places=3), deltas=stock_deltas)
    @settings(max_examples=40, suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)
    def test_stock_never_negative_and_matches_history(self, db_session, start, deltas):
        ingredient = make_ingredient(db_session, name=unique_name("Prop"), stock=str(start))
        ledger = IngredientLedger(db_session)
        expected = quantize_stock(start)

        for delta in deltas:
            try:
                ledger.apply_change(ingredient, delta, StockOperation.ADJUSTMENT)
            except ValidationError:
                assert expected + quantize_stock(delta) < 0
            else:
                expected = quantize_stock(expected + delta)
            assert ingredient.current_stock >= 0
            assert quantize_stock(ingredient.current_stock) == expected

        db_session.flush()
        history = list(reversed(ledger.history(ingredient.id, limit=100)))
        assert quantize_stock(start) + sum((h.quantity_delta for h in history), Decimal("0")) == expected
        for previous, current in zip(history, history[1:]):
            assert current.previous_stock == previous.new_stock


order_actions = st.lists(
    st.one_of(
        st.tuples(st.just("transition"), st.sampled_from(OrderStatus.ALL)),
        st.tuples(st.just("advance_item"), st.integers(min_value=0, max_value=3), st.sampled_from(ItemStatus.PROGRESSION[1:])),
        st.tuples(st.just("cancel")),
        st.tuples(st.just("complete_payment")),
        st.tuples(st.just("replace_items"), st.integers(min_value=1, max_value=4)),
    ),
    max_size=15,
)


class TestLifecycleSequences:
    """Random sequences of lifecycle calls, including refused ones."""

    @given(stock=st.integers(min_value=0, max_value=8), quantity=st.integers(min_value=1, max_value=3), actions=order_actions)
    @settings(max_examples=60, suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)
    def test_status_stock_and_reservation_stay_consistent(
        self, db_session, server_actor, untracked_product, stock, quantity, actions
    ):
        ingredient = make_ingredient(db_session, name=unique_name("Seq"), stock=str(stock))
        burger = make_product(db_session, name=unique_name("Burger"), recipe=[(ingredient, "2")])
        lifecycle = OrderLifecycle(db_session)
        ledger = IngredientLedger(db_session)
        with unit_of_work(db_session):
            order = lifecycle.create(
                order_request((burger, quantity), (untracked_product, 1)), server_actor, PricingSnapshot(Decimal("0.10"))
            )

        def apply(action):
            name, *args = action
            if name == "transition":
                lifecycle.transition(order, args[0], server_actor)
            elif name == "advance_item":
                item = order.items[args[0] % len(order.items)]
                lifecycle.advance_item(order, item.id, args[1], server_actor)
            elif name == "cancel":
                lifecycle.cancel(order, server_actor)
            elif name == "complete_payment":
                lifecycle.complete_payment(order, server_actor, "pay-1")
            else:
                lines = [
                    OrderItemInput(product_id=burger.id, quantity=args[0]),
                    OrderItemInput(product_id=untracked_product.id, quantity=1),
                ]
                lifecycle.replace_items(order, lines, server_actor)

        for action in actions:
            before = order_status(order)
            try:
                with unit_of_work(db_session):
                    apply(action)
            except AppException:
                pass

            after = order_status(order)
            if after != before:
                assert after in ORDER_TRANSITIONS[before], f"{action}: {before} -> {after}"

            current = ledger.get(ingredient.id).current_stock
            held = ledger.outstanding_consumption(order.id)
            assert current >= 0
            assert quantize_stock(stock) - quantize_stock(current) == held.get(ingredient.id, Decimal("0"))
            assert order.ingredients_consumed == bool(held)


class TestFeedFilterProperties:

    @given(items=st.lists(st.sampled_from(ItemStatus.PROGRESSION + [ItemStatus.CANCELLED]), min_size=1, max_size=4))
    @settings(max_examples=40, suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)
    def test_sql_filter_matches_derivation(self, db_session, server_actor, untracked_product, items):
        with unit_of_work(db_session):
            order = OrderLifecycle(db_session).create(
                order_request(*[(untracked_product, 1)] * len(items)), server_actor, PricingSnapshot(Decimal("0"))
            )
            order.status = OrderStatus.CONFIRMED
            for item, item_status in zip(order.items, items):
                item.status = item_status
        derived = order_status(order)
        feed = PollingOrderStatusFeed(db_session, poll_interval_seconds=5)

        for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED):
            matched = db_session.scalar(
                select(Order.id).where(Order.id == order.id, derived_status_clause(status))
            )
            assert (matched is not None) == (derived == status), status

        in_queue = order.id in {o.id for o in feed.kitchen_queue().orders}
        assert in_queue == (derived in OrderStatus.KITCHEN_VISIBLE)
