"""
Order Lifecycle Service.

Owns the order/item state machine. The order row stores only the lifecycle
phase (pending, confirmed, completed, cancelled); while confirmed, the
reported status is derived from the items.

Every public mutation bumps ``Order.version`` exactly once and returns the
notification events to deliver after commit.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.config.constants import HistoryScope, ItemStatus, OrderStatus, OrderType
from shared.config.logging import get_logger, orders_logger, kitchen_logger, payments_logger
from shared.config.settings import Settings
from shared.infrastructure.events import (
    Event,
    ORDER_CONFIRMED,
    ORDER_READY,
    PAYMENT_COMPLETED,
    low_stock_event,
    order_event,
)
from shared.security.auth import ActorContext
from shared.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import OrderCreateRequest, OrderItemInput
from shared.utils.validators import round_cents
from rest_api.models import Order, OrderItem, OrderSequence, OrderStatusHistory, Product, utcnow
from .consumption_engine import OrderConsumptionEngine, Reservation

logger = get_logger(__name__)


# =============================================================================
# State machine
# =============================================================================

# Allowed order edges, keyed by the *derived* status
ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED}),
    OrderStatus.SERVED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ITEM_TRANSITIONS: dict[str, frozenset[str]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.PREPARING}),
    ItemStatus.PREPARING: frozenset({ItemStatus.READY}),
    ItemStatus.READY: frozenset({ItemStatus.SERVED}),
    ItemStatus.SERVED: frozenset(),
    ItemStatus.CANCELLED: frozenset(),
}

_KITCHEN_TARGETS = (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED)


def derive_order_status(stored_status: str, item_statuses: Iterable[str]) -> str:
    """
    Aggregate order status.

    Outside the confirmed phase the stored status is reported as is. While
    confirmed: all items served -> served; all ready or served -> ready;
    any item started -> preparing; otherwise confirmed.
    """
    if stored_status != OrderStatus.CONFIRMED:
        return stored_status

    statuses = [s for s in item_statuses if s != ItemStatus.CANCELLED]
    if not statuses:
        return OrderStatus.CONFIRMED
    if all(s == ItemStatus.SERVED for s in statuses):
        return OrderStatus.SERVED
    if all(s in ItemStatus.PLATED for s in statuses):
        return OrderStatus.READY
    if any(s in ItemStatus.STARTED for s in statuses):
        return OrderStatus.PREPARING
    return OrderStatus.CONFIRMED


def order_status(order: Order) -> str:
    """Derived status of a loaded order."""
    return derive_order_status(order.status, (item.status for item in order.items))


def can_transition(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, frozenset())


# =============================================================================
# Pricing
# =============================================================================


@dataclass(frozen=True)
class PricingSnapshot:
    """Pricing configuration copied onto an order when it is created."""

    tax_rate: Decimal

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingSnapshot":
        return cls(tax_rate=settings.tax_rate)


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int


def compute_totals(line_totals: Iterable[int], tax_rate: Decimal, discount_cents: int = 0) -> Totals:
    """
    Order totals in cents. Tax is rounded half-up on the subtotal.

    Raises:
        ValidationError: If the discount exceeds subtotal plus tax.
    """
    subtotal = sum(line_totals)
    tax = round_cents(Decimal(subtotal) * tax_rate)
    if discount_cents < 0:
        raise ValidationError("discount_cents cannot be negative", field="discount_cents")
    if discount_cents > subtotal + tax:
        raise ValidationError("Discount exceeds order total", field="discount_cents")
    return Totals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        discount_cents=discount_cents,
        total_cents=subtotal + tax - discount_cents,
    )


# =============================================================================
# Lifecycle service
# =============================================================================


class OrderLifecycle:
    """
    Domain service for order state changes.

    Methods flush but never commit; StatusSynchronizer owns the transaction.
    """

    def __init__(self, db: Session, engine: OrderConsumptionEngine | None = None):
        self._db = db
        self._engine = engine or OrderConsumptionEngine(db)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _next_order_number(self) -> str:
        """
        ORD + YYYYMMDD + daily sequence, zero-padded to at least 4 digits.

        The day's counter row is locked FOR UPDATE before it is incremented.
        Two creates racing to insert the first row of a day make one of them
        fail on the primary key; StatusSynchronizer retries that case.
        """
        day = f"{utcnow():%Y%m%d}"
        counter = self._db.scalar(
            select(OrderSequence)
            .where(OrderSequence.day == day)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if counter is None:
            counter = OrderSequence(day=day, last_value=0)
            self._db.add(counter)
        counter.last_value += 1
        self._db.flush()
        return f"ORD{day}{counter.last_value:04d}"

    def _load_products(self, lines: list[OrderItemInput]) -> dict[int, Product]:
        product_ids = {line.product_id for line in lines}
        products = {
            p.id: p
            for p in self._db.scalars(
                select(Product).where(Product.id.in_(product_ids), Product.is_active.is_(True))
            ).all()
        }
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFoundError(line.product_id)
            if not product.is_available:
                raise ValidationError(
                    f"Product '{product.name}' is not available",
                    field="product_id",
                    product_id=product.id,
                )
        return products

    def _build_items(self, lines: list[OrderItemInput]) -> list[OrderItem]:
        products = self._load_products(lines)
        return [
            OrderItem(
                product_id=line.product_id,
                product_name=products[line.product_id].name,
                quantity=line.quantity,
                unit_price_cents=products[line.product_id].price_cents,
                special_instructions=line.special_instructions,
                position=position,
                status=ItemStatus.PENDING,
            )
            for position, line in enumerate(lines, start=1)
        ]

    def _apply_totals(self, order: Order, discount_cents: int) -> None:
        totals = compute_totals(
            (item.line_total_cents for item in order.items), order.tax_rate, discount_cents
        )
        order.subtotal_cents = totals.subtotal_cents
        order.tax_cents = totals.tax_cents
        order.discount_cents = totals.discount_cents
        order.total_cents = totals.total_cents

    def _record(
        self,
        order: Order,
        previous: str | None,
        new: str,
        actor: ActorContext,
        item: OrderItem | None = None,
        notes: str | None = None,
    ) -> None:
        order.status_history.append(
            OrderStatusHistory(
                scope=HistoryScope.ITEM if item is not None else HistoryScope.ORDER,
                item_id=item.id if item is not None else None,
                previous_status=previous,
                new_status=new,
                actor_id=actor.actor_id,
                actor_role=actor.role,
                notes=notes,
            )
        )

    def _touch(self, order: Order, actor: ActorContext) -> None:
        """Bump the concurrency version once per mutation."""
        order.version += 1
        order.set_updated_by(actor.actor_id)

    def _order_event(self, event_type: str, order: Order, actor: ActorContext, **entity) -> Event:
        return order_event(
            event_type,
            order.id,
            order.order_number,
            order_status(order),
            order.version,
            actor_id=actor.actor_id,
            actor_role=actor.role,
            **entity,
        )

    def _low_stock_events(self, order: Order, reservation: Reservation, actor: ActorContext) -> list[Event]:
        return [
            low_stock_event(
                ingredient.id,
                ingredient.name,
                ingredient.current_stock,
                ingredient.minimum_stock,
                ingredient.unit,
                order_id=order.id,
                actor_id=actor.actor_id,
                actor_role=actor.role,
            )
            for ingredient in reservation.low_stock
        ]

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, request: OrderCreateRequest, actor: ActorContext, pricing: PricingSnapshot) -> Order:
        """Create a pending order. No stock is touched until confirmation."""
        table_ref = request.table_ref.strip() if request.table_ref else None
        if request.order_type == OrderType.DINE_IN and not table_ref:
            raise ValidationError("table_ref is required for dine_in orders", field="table_ref")

        order = Order(
            order_number=self._next_order_number(),
            order_type=request.order_type,
            table_ref=table_ref,
            customer_name=request.customer_name,
            notes=request.notes,
            status=OrderStatus.PENDING,
            tax_rate=pricing.tax_rate,
            ingredients_consumed=False,
            version=1,
        )
        order.set_created_by(actor.actor_id)
        order.items = self._build_items(request.items)
        self._apply_totals(order, request.discount_cents)

        self._db.add(order)
        self._db.flush()
        self._record(order, None, OrderStatus.PENDING, actor)
        self._db.flush()

        orders_logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            items=len(order.items),
            total_cents=order.total_cents,
            actor_id=actor.actor_id,
        )
        return order

    # =========================================================================
    # Order-level transitions
    # =========================================================================

    def transition(
        self,
        order: Order,
        target: str,
        actor: ActorContext,
        notes: str | None = None,
    ) -> list[Event]:
        """
        Move an order along an allowed edge.

        Raises:
            InvalidTransitionError: If the edge is not allowed from the derived status.
        """
        current = order_status(order)

        if target == OrderStatus.COMPLETED:
            raise InvalidTransitionError(
                current, target, reason="completion is reported by the payment service", order_id=order.id
            )
        if target == OrderStatus.CANCELLED:
            return self.cancel(order, actor, notes)
        if not can_transition(current, target):
            raise InvalidTransitionError(current, target, order_id=order.id)
        if target == OrderStatus.CONFIRMED:
            return self.confirm(order, actor, notes)
        if target in _KITCHEN_TARGETS:
            return self.advance_order(order, target, actor, notes)

        raise InvalidTransitionError(current, target, order_id=order.id)

    def confirm(self, order: Order, actor: ActorContext, notes: str | None = None) -> list[Event]:
        """pending -> confirmed, reserving ingredient stock all-or-nothing."""
        current = order_status(order)
        if current != OrderStatus.PENDING:
            raise InvalidTransitionError(current, OrderStatus.CONFIRMED, order_id=order.id)

        reservation = self._engine.reserve(order, actor.actor_id)

        order.status = OrderStatus.CONFIRMED
        order.confirmed_at = utcnow()
        self._touch(order, actor)
        self._record(order, current, OrderStatus.CONFIRMED, actor, notes=notes)
        self._db.flush()

        orders_logger.info(
            "Order confirmed",
            order_id=order.id,
            ingredients_consumed=order.ingredients_consumed,
            version=order.version,
        )
        return [
            self._order_event(ORDER_CONFIRMED, order, actor, total_cents=order.total_cents),
            *self._low_stock_events(order, reservation, actor),
        ]

    def cancel(self, order: Order, actor: ActorContext, notes: str | None = None) -> list[Event]:
        """
        Cancel an order and return its reserved stock.

        Refused once any item is ready or served.
        """
        current = order_status(order)
        if current not in OrderStatus.CANCELLABLE:
            raise InvalidTransitionError(current, OrderStatus.CANCELLED, order_id=order.id)
        if any(item.status in ItemStatus.PLATED for item in order.items):
            raise InvalidTransitionError(
                current,
                OrderStatus.CANCELLED,
                reason="items already ready or served",
                order_id=order.id,
            )

        released = self._engine.release(order, actor.actor_id)

        for item in order.items:
            item.status = ItemStatus.CANCELLED
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        self._touch(order, actor)
        self._record(order, current, OrderStatus.CANCELLED, actor, notes=notes)
        self._db.flush()

        orders_logger.info(
            "Order cancelled",
            order_id=order.id,
            previous_status=current,
            ingredients_released=len(released),
            actor_id=actor.actor_id,
        )
        return []

    def advance_order(
        self,
        order: Order,
        target: str,
        actor: ActorContext,
        notes: str | None = None,
    ) -> list[Event]:
        """
        Kitchen transition at order level (preparing, ready, served).

        Every item below the target moves to it.
        """
        current = order_status(order)
        if not can_transition(current, target):
            raise InvalidTransitionError(current, target, order_id=order.id)

        target_rank = ItemStatus.PROGRESSION.index(target)
        for item in order.items:
            if item.status == ItemStatus.CANCELLED:
                continue
            if ItemStatus.PROGRESSION.index(item.status) < target_rank:
                previous_item_status = item.status
                item.status = target
                self._record(order, previous_item_status, target, actor, item=item, notes="order-level transition")

        if target == OrderStatus.SERVED:
            order.served_at = utcnow()
        self._touch(order, actor)
        self._record(order, current, target, actor, notes=notes)
        self._db.flush()

        kitchen_logger.info(
            "Order advanced",
            order_id=order.id,
            previous_status=current,
            status=target,
            version=order.version,
        )
        if target == OrderStatus.READY:
            return [self._order_event(ORDER_READY, order, actor)]
        return []

    # =========================================================================
    # Item-level transitions
    # =========================================================================

    def advance_item(self, order: Order, item_id: int, target: str, actor: ActorContext) -> list[Event]:
        """
        Move one item forward. The order status is recomputed from the items.

        Raises:
            NotFoundError: If the item does not belong to the order.
            InvalidTransitionError: If the order is not confirmed or the edge is not allowed.
        """
        item = next((i for i in order.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Order item", item_id, order_id=order.id)

        if order.status != OrderStatus.CONFIRMED:
            raise InvalidTransitionError(
                item.status, target, reason=f"order is {order.status}", order_id=order.id, item_id=item_id
            )
        if target not in ITEM_TRANSITIONS.get(item.status, frozenset()):
            raise InvalidTransitionError(item.status, target, order_id=order.id, item_id=item_id)

        before = order_status(order)
        previous_item_status = item.status
        item.status = target
        after = order_status(order)

        self._record(order, previous_item_status, target, actor, item=item)
        if after != before:
            self._record(order, before, after, actor, notes="derived from items")
        if after == OrderStatus.SERVED and order.served_at is None:
            order.served_at = utcnow()
        self._touch(order, actor)
        self._db.flush()

        kitchen_logger.info(
            "Item advanced",
            order_id=order.id,
            item_id=item.id,
            previous_status=previous_item_status,
            status=target,
            order_status=after,
        )
        if after == OrderStatus.READY and before != OrderStatus.READY:
            return [self._order_event(ORDER_READY, order, actor)]
        return []

    # =========================================================================
    # Payment
    # =========================================================================

    def complete_payment(
        self,
        order: Order,
        actor: ActorContext,
        payment_reference: str | None = None,
    ) -> list[Event]:
        """served -> completed. Totals are frozen from here on."""
        current = order_status(order)
        if not can_transition(current, OrderStatus.COMPLETED):
            raise InvalidTransitionError(current, OrderStatus.COMPLETED, order_id=order.id)

        order.status = OrderStatus.COMPLETED
        order.completed_at = utcnow()
        self._touch(order, actor)
        notes = f"payment {payment_reference}" if payment_reference else None
        self._record(order, current, OrderStatus.COMPLETED, actor, notes=notes)
        self._db.flush()

        payments_logger.info(
            "Order completed",
            order_id=order.id,
            total_cents=order.total_cents,
            payment_reference=payment_reference,
        )
        return [
            self._order_event(
                PAYMENT_COMPLETED,
                order,
                actor,
                total_cents=order.total_cents,
                payment_reference=payment_reference,
            )
        ]

    # =========================================================================
    # Editing
    # =========================================================================

    def replace_items(
        self,
        order: Order,
        lines: list[OrderItemInput],
        actor: ActorContext,
        discount_cents: int | None = None,
    ) -> list[Event]:
        """
        Replace the item list while the kitchen has not started.

        For a confirmed order the current reservation is released and the new
        item set reserved again; a shortage raises and the caller's rollback
        discards the whole edit. Totals use the order's own tax snapshot.
        """
        current = order_status(order)
        if current not in OrderStatus.EDITABLE:
            raise InvalidTransitionError(
                current, "edit", reason="items can only be edited before preparation starts", order_id=order.id
            )

        new_items = self._build_items(lines)

        self._engine.release(order, actor.actor_id, reason=f"Order {order.order_number} edited")

        order.items.clear()
        self._db.flush()
        order.items.extend(new_items)
        self._apply_totals(order, order.discount_cents if discount_cents is None else discount_cents)
        self._db.flush()

        events: list[Event] = []
        if order.status == OrderStatus.CONFIRMED:
            reservation = self._engine.reserve(order, actor.actor_id)
            events.extend(self._low_stock_events(order, reservation, actor))

        self._touch(order, actor)
        self._record(order, current, current, actor, notes=f"items replaced ({len(new_items)} lines)")
        self._db.flush()

        orders_logger.info(
            "Order items replaced",
            order_id=order.id,
            items=len(new_items),
            total_cents=order.total_cents,
            version=order.version,
        )
        return events
