"""
Tests for OrderLifecycle: state machine, derived status, totals and edits.
"""

from decimal import Decimal

import pytest

from rest_api.models import OrderSequence, utcnow
from rest_api.services.domain import (
    ORDER_TRANSITIONS,
    IngredientLedger,
    OrderLifecycle,
    PricingSnapshot,
    compute_totals,
    derive_order_status,
    order_status,
)
from shared.config.constants import ItemStatus, OrderStatus, StockOperation
from shared.utils.exceptions import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import OrderCreateRequest, OrderItemInput
from tests.conftest import make_ingredient, make_product, order_request

PRICING = PricingSnapshot(tax_rate=Decimal("0.11"))


@pytest.fixture
def lifecycle(db_session):
    return OrderLifecycle(db_session)


def new_order(db, lifecycle, actor, *lines, **kwargs):
    order = lifecycle.create(order_request(*lines, **kwargs), actor, PRICING)
    db.commit()
    return order


class TestDerivedStatus:

    def test_stored_statuses_pass_through(self):
        assert derive_order_status("pending", ["pending"]) == "pending"
        assert derive_order_status("cancelled", ["cancelled"]) == "cancelled"
        assert derive_order_status("completed", ["served"]) == "completed"

    @pytest.mark.parametrize(
        "items,expected",
        [
            (["pending", "pending"], "confirmed"),
            (["preparing", "pending"], "preparing"),
            (["ready", "preparing"], "preparing"),
            (["ready", "ready"], "ready"),
            (["served", "ready"], "ready"),
            (["served", "served"], "served"),
            (["served", "cancelled"], "served"),
        ],
    )
    def test_confirmed_phase_is_derived_from_items(self, items, expected):
        assert derive_order_status("confirmed", items) == expected

    def test_one_ready_item_does_not_make_order_ready(
        self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product
    ):
        """Item 1 ready, item 2 preparing: the order reads as preparing."""
        other = make_product(db_session, name="Fries", price_cents=400)
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1), (other, 1))
        lifecycle.confirm(order, server_actor)
        first, second = order.items

        lifecycle.advance_item(order, first.id, ItemStatus.PREPARING, kitchen_actor)
        lifecycle.advance_item(order, second.id, ItemStatus.PREPARING, kitchen_actor)
        lifecycle.advance_item(order, first.id, ItemStatus.READY, kitchen_actor)
        db_session.commit()

        assert first.status == ItemStatus.READY
        assert second.status == ItemStatus.PREPARING
        assert order_status(order) == OrderStatus.PREPARING


class TestTotals:

    def test_tax_rounds_half_up(self):
        totals = compute_totals([1250, 1250], Decimal("0.11"))
        # 2500 * 0.11 = 275
        assert totals.tax_cents == 275
        assert totals.total_cents == 2775

        half = compute_totals([5], Decimal("0.10"))
        # 0.5 cent rounds up
        assert half.tax_cents == 1

    def test_discount_is_subtracted(self):
        totals = compute_totals([1000], Decimal("0.10"), discount_cents=100)
        assert totals.total_cents == 1000

    def test_discount_larger_than_total_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals([1000], Decimal("0.10"), discount_cents=1101)

    def test_order_snapshots_tax_rate(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 3))

        assert order.tax_rate == Decimal("0.11")
        assert order.subtotal_cents == 900
        assert order.tax_cents == 99
        assert order.total_cents == order.subtotal_cents + order.tax_cents - order.discount_cents


class TestCreation:

    def test_create_pending_order(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 2))

        assert order.status == OrderStatus.PENDING
        assert order.version == 1
        assert order.order_number.startswith("ORD")
        assert order.created_by == server_actor.actor_id
        assert [i.position for i in order.items] == [1]
        assert order.items[0].product_name == "Sparkling water"
        assert order.items[0].unit_price_cents == 300
        assert [h.new_status for h in order.status_history] == [OrderStatus.PENDING]

    def test_order_numbers_are_sequential(self, db_session, lifecycle, server_actor, untracked_product):
        first = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        second = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        assert int(second.order_number[-4:]) == int(first.order_number[-4:]) + 1

    def test_sequence_grows_past_four_digits(self, db_session, lifecycle, server_actor, untracked_product):
        day = f"{utcnow():%Y%m%d}"
        db_session.add(OrderSequence(day=day, last_value=9999))
        db_session.commit()

        first = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        second = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))

        assert first.order_number == f"ORD{day}10000"
        assert second.order_number == f"ORD{day}10001"
        assert db_session.get(OrderSequence, day).last_value == 10001

    def test_dine_in_requires_table(self, db_session, lifecycle, server_actor, untracked_product):
        with pytest.raises(ValidationError):
            lifecycle.create(order_request((untracked_product, 1), order_type="dine_in"), server_actor, PRICING)

    def test_unknown_product(self, db_session, lifecycle, server_actor):
        request = OrderCreateRequest(order_type="takeout", items=[OrderItemInput(product_id=999, quantity=1)])
        with pytest.raises(ProductNotFoundError):
            lifecycle.create(request, server_actor, PRICING)

    def test_unavailable_product(self, db_session, lifecycle, server_actor, untracked_product):
        untracked_product.is_available = False
        db_session.commit()
        with pytest.raises(ValidationError):
            lifecycle.create(order_request((untracked_product, 1)), server_actor, PRICING)

    def test_creation_touches_no_stock(self, db_session, lifecycle, server_actor, pizza_setup):
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 2))
        assert ingredient.current_stock == Decimal("5")
        assert order.ingredients_consumed is False


class TestTransitions:

    def test_happy_path_to_completion(self, db_session, lifecycle, server_actor, kitchen_actor, payment_actor, pizza_setup):
        _, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 1))

        lifecycle.transition(order, OrderStatus.CONFIRMED, server_actor)
        lifecycle.transition(order, OrderStatus.PREPARING, kitchen_actor)
        ready_events = lifecycle.transition(order, OrderStatus.READY, kitchen_actor)
        lifecycle.transition(order, OrderStatus.SERVED, server_actor)
        paid_events = lifecycle.complete_payment(order, payment_actor, payment_reference="PAY-1")
        db_session.commit()

        assert order.status == OrderStatus.COMPLETED
        assert order.version == 6
        assert order.served_at is not None
        assert order.completed_at is not None
        assert [e.type for e in ready_events] == ["order_ready"]
        assert paid_events[0].entity["payment_reference"] == "PAY-1"
        assert all(item.status == ItemStatus.SERVED for item in order.items)

    def test_confirm_emits_confirmed_and_low_stock(self, db_session, lifecycle, server_actor, pizza_setup):
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 2))

        events = lifecycle.transition(order, OrderStatus.CONFIRMED, server_actor)

        assert [e.type for e in events] == ["order_confirmed", "low_stock"]
        assert events[1].entity["ingredient_id"] == ingredient.id
        assert events[1].order_id == order.id

    @pytest.mark.parametrize(
        "target",
        [OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED],
    )
    def test_pending_cannot_skip_confirmation(self, db_session, lifecycle, server_actor, untracked_product, target):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.transition(order, target, server_actor)
        assert exc_info.value.context["current_status"] == OrderStatus.PENDING
        assert exc_info.value.context["requested_status"] == target

    def test_confirmed_cannot_jump_to_ready(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(order, OrderStatus.READY, server_actor)

    def test_completion_is_not_a_manual_transition(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(order, OrderStatus.COMPLETED, server_actor)

    def test_payment_requires_served(self, db_session, lifecycle, server_actor, payment_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        with pytest.raises(InvalidTransitionError):
            lifecycle.complete_payment(order, payment_actor)

    def test_terminal_states_have_no_edges(self):
        assert ORDER_TRANSITIONS[OrderStatus.COMPLETED] == frozenset()
        assert ORDER_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()

    def test_version_bumps_once_per_transition(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        db_session.commit()
        assert order.version == 2


class TestCancellation:

    def test_cancel_confirmed_order_restores_stock(self, db_session, lifecycle, server_actor, pizza_setup):
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 1))
        lifecycle.confirm(order, server_actor)
        db_session.commit()
        assert ingredient.current_stock == Decimal("3")

        lifecycle.transition(order, OrderStatus.CANCELLED, server_actor, notes="customer left")
        db_session.commit()

        assert ingredient.current_stock == Decimal("5")
        assert order.status == OrderStatus.CANCELLED
        assert order.ingredients_consumed is False
        assert all(item.status == ItemStatus.CANCELLED for item in order.items)
        operations = [h.operation for h in IngredientLedger(db_session).order_history(order.id)]
        assert operations == [StockOperation.ORDER_CONSUMPTION, StockOperation.ORDER_CANCELLATION]

    def test_cancel_pending_order_touches_no_stock(self, db_session, lifecycle, server_actor, pizza_setup):
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 1))
        lifecycle.cancel(order, server_actor)
        assert ingredient.current_stock == Decimal("5")
        assert IngredientLedger(db_session).order_history(order.id) == []

    def test_cannot_cancel_after_an_item_is_ready(
        self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product
    ):
        other = make_product(db_session, name="Soup", price_cents=700)
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1), (other, 1))
        lifecycle.confirm(order, server_actor)
        first = order.items[0]
        lifecycle.advance_item(order, first.id, ItemStatus.PREPARING, kitchen_actor)
        lifecycle.advance_item(order, first.id, ItemStatus.READY, kitchen_actor)

        # Derived status is still preparing, but food is plated
        assert order_status(order) == OrderStatus.PREPARING
        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel(order, server_actor)

    def test_cancelled_order_cannot_be_cancelled_again(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.cancel(order, server_actor)
        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel(order, server_actor)


class TestItemTransitions:

    def test_item_cannot_skip_steps(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        with pytest.raises(InvalidTransitionError):
            lifecycle.advance_item(order, order.items[0].id, ItemStatus.READY, kitchen_actor)

    def test_item_of_pending_order_cannot_move(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        with pytest.raises(InvalidTransitionError):
            lifecycle.advance_item(order, order.items[0].id, ItemStatus.PREPARING, kitchen_actor)

    def test_unknown_item(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        with pytest.raises(NotFoundError):
            lifecycle.advance_item(order, 12345, ItemStatus.PREPARING, kitchen_actor)

    def test_last_item_ready_emits_order_ready(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        item_id = order.items[0].id

        assert lifecycle.advance_item(order, item_id, ItemStatus.PREPARING, kitchen_actor) == []
        events = lifecycle.advance_item(order, item_id, ItemStatus.READY, kitchen_actor)

        assert [e.type for e in events] == ["order_ready"]
        assert events[0].entity["status"] == OrderStatus.READY

    def test_item_history_is_recorded(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        item_id = order.items[0].id
        lifecycle.advance_item(order, item_id, ItemStatus.PREPARING, kitchen_actor)
        db_session.commit()

        item_rows = [h for h in order.status_history if h.scope == "item"]
        assert [(h.item_id, h.previous_status, h.new_status) for h in item_rows] == [
            (item_id, ItemStatus.PENDING, ItemStatus.PREPARING)
        ]
        assert item_rows[0].actor_role == "KITCHEN"


class TestEditing:

    def test_edit_pending_order_recomputes_totals(self, db_session, lifecycle, server_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))

        lifecycle.replace_items(
            order, [OrderItemInput(product_id=untracked_product.id, quantity=4)], server_actor
        )
        db_session.commit()

        assert [i.quantity for i in order.items] == [4]
        assert order.subtotal_cents == 1200
        assert order.total_cents == 1200 + 132
        assert order.version == 2

    def test_edit_confirmed_order_rereserves(self, db_session, lifecycle, server_actor, pizza_setup):
        """Stock after edit equals pre-edit stock minus the new demand."""
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 1))
        lifecycle.confirm(order, server_actor)
        db_session.commit()
        assert ingredient.current_stock == Decimal("3")

        lifecycle.replace_items(order, [OrderItemInput(product_id=product.id, quantity=2)], server_actor)
        db_session.commit()

        assert ingredient.current_stock == Decimal("1")
        assert order.ingredients_consumed is True
        ledger = IngredientLedger(db_session)
        assert ledger.outstanding_consumption(order.id) == {ingredient.id: Decimal("4")}

        lifecycle.cancel(order, server_actor)
        db_session.commit()
        assert ingredient.current_stock == Decimal("5")

    def test_edit_shortage_rolls_back(self, db_session, lifecycle, server_actor, pizza_setup):
        ingredient, product = pizza_setup
        order = new_order(db_session, lifecycle, server_actor, (product, 1))
        lifecycle.confirm(order, server_actor)
        db_session.commit()

        with pytest.raises(InsufficientStockError):
            lifecycle.replace_items(order, [OrderItemInput(product_id=product.id, quantity=3)], server_actor)
        db_session.rollback()

        db_session.refresh(ingredient)
        db_session.refresh(order)
        assert ingredient.current_stock == Decimal("3")
        assert order.ingredients_consumed is True
        assert [i.quantity for i in order.items] == [1]

    def test_edit_refused_once_preparing(self, db_session, lifecycle, server_actor, kitchen_actor, untracked_product):
        order = new_order(db_session, lifecycle, server_actor, (untracked_product, 1))
        lifecycle.confirm(order, server_actor)
        lifecycle.advance_order(order, OrderStatus.PREPARING, kitchen_actor)

        with pytest.raises(InvalidTransitionError):
            lifecycle.replace_items(
                order, [OrderItemInput(product_id=untracked_product.id, quantity=2)], server_actor
            )
