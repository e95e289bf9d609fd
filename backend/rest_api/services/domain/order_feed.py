"""
Order Status Feed.

Read path for order status. Clients poll; the feed interface keeps the
transition API independent of how updates reach clients, so a push channel
can implement it later.
"""

from abc import ABC, abstractmethod

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import ItemStatus, Limits, OrderStatus
from shared.utils.exceptions import OrderNotFoundError
from shared.utils.schemas import OrderFeedOutput, OrderItemOutput, OrderOutput
from rest_api.models import Order, OrderItem, utcnow
from .order_lifecycle import order_status

# Statuses that exist only as a derivation of the confirmed phase
_DERIVED_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED}
)


def _has_live_item(*conditions):
    """EXISTS over the order's non-cancelled items matching ``conditions``."""
    return (
        select(OrderItem.id)
        .where(OrderItem.order_id == Order.id, OrderItem.status != ItemStatus.CANCELLED, *conditions)
        .exists()
    )


def derived_status_clause(status: str):
    """
    SQL filter equivalent to ``order_status(order) == status`` for the
    statuses derived while an order is confirmed.
    """
    if status == OrderStatus.SERVED:
        clause = and_(_has_live_item(), ~_has_live_item(OrderItem.status != ItemStatus.SERVED))
    elif status == OrderStatus.READY:
        clause = and_(
            _has_live_item(OrderItem.status != ItemStatus.SERVED),
            ~_has_live_item(OrderItem.status.not_in(ItemStatus.PLATED)),
        )
    elif status == OrderStatus.PREPARING:
        clause = and_(
            _has_live_item(OrderItem.status.in_(ItemStatus.STARTED)),
            _has_live_item(OrderItem.status.not_in(ItemStatus.PLATED)),
        )
    else:
        clause = ~_has_live_item(OrderItem.status.in_(ItemStatus.STARTED))
    return and_(Order.status == OrderStatus.CONFIRMED, clause)


def build_order_output(order: Order, poll_interval_seconds: int) -> OrderOutput:
    """Order view with the derived aggregate status."""
    return OrderOutput(
        id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        status=order_status(order),
        table_ref=order.table_ref,
        customer_name=order.customer_name,
        notes=order.notes,
        subtotal_cents=order.subtotal_cents,
        tax_rate=order.tax_rate,
        tax_cents=order.tax_cents,
        discount_cents=order.discount_cents,
        total_cents=order.total_cents,
        ingredients_consumed=order.ingredients_consumed,
        version=order.version,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        confirmed_at=order.confirmed_at,
        served_at=order.served_at,
        completed_at=order.completed_at,
        cancelled_at=order.cancelled_at,
        items=[
            OrderItemOutput(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                line_total_cents=item.line_total_cents,
                special_instructions=item.special_instructions,
                position=item.position,
                status=item.status,
            )
            for item in order.items
        ],
        poll_interval_seconds=poll_interval_seconds,
    )


class OrderStatusFeed(ABC):
    """How clients observe order status."""

    @abstractmethod
    def render(self, order: Order) -> OrderOutput:
        """View of an already loaded order."""

    @abstractmethod
    def get_order(self, order_id: int) -> OrderOutput:
        ...

    @abstractmethod
    def list_orders(
        self,
        status: str | None = None,
        order_type: str | None = None,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> OrderFeedOutput:
        ...

    @abstractmethod
    def kitchen_queue(self) -> OrderFeedOutput:
        """Orders the kitchen is working on, oldest first."""


class PollingOrderStatusFeed(OrderStatusFeed):
    """Reads current state from the database on every poll."""

    def __init__(self, db: Session, poll_interval_seconds: int):
        self._db = db
        self._poll_interval = poll_interval_seconds

    def _feed(self, orders: list[Order], total: int) -> OrderFeedOutput:
        return OrderFeedOutput(
            orders=[self.render(order) for order in orders],
            total=total,
            as_of=utcnow(),
            poll_interval_seconds=self._poll_interval,
        )

    def render(self, order: Order) -> OrderOutput:
        return build_order_output(order, self._poll_interval)

    def get_order(self, order_id: int) -> OrderOutput:
        order = self._db.scalar(
            select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
        )
        if order is None:
            raise OrderNotFoundError(order_id)
        return self.render(order)

    def list_orders(
        self,
        status: str | None = None,
        order_type: str | None = None,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> OrderFeedOutput:
        query = select(Order).options(selectinload(Order.items))
        if order_type:
            query = query.where(Order.order_type == order_type)
        query = query.order_by(Order.created_at.desc(), Order.id.desc())

        if status in _DERIVED_STATUSES:
            query = query.where(derived_status_clause(status))
        elif status:
            query = query.where(Order.status == status)

        total = self._db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
        orders = list(self._db.scalars(query.limit(limit).offset(offset)).all())
        return self._feed(orders, total or 0)

    def kitchen_queue(self) -> OrderFeedOutput:
        queue = list(
            self._db.scalars(
                select(Order)
                .options(selectinload(Order.items))
                .where(or_(*(derived_status_clause(s) for s in OrderStatus.KITCHEN_VISIBLE)))
                .order_by(Order.created_at, Order.id)
            ).all()
        )
        return self._feed(queue, len(queue))
