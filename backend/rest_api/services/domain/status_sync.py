"""
Status Synchronizer.

Request-boundary service for orders. Each mutating call is one unit of work:

    lock order + version guard -> lifecycle transition -> commit -> emit events

and returns the authoritative post-transition view.
"""

from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.config.settings import Settings, get_settings
from shared.infrastructure.db import unit_of_work
from shared.infrastructure.events import Event, NotificationPublisher, emit_events
from shared.security.auth import ActorContext
from shared.utils.exceptions import ConflictError, OrderNotFoundError, OrderNumberConflictError
from shared.utils.schemas import (
    EditItemsRequest,
    ItemTransitionRequest,
    OrderCreateRequest,
    OrderFeedOutput,
    OrderOutput,
    PaymentCompleteRequest,
    StatusHistoryOutput,
    TransitionRequest,
)
from rest_api.models import Order, OrderStatusHistory
from .order_feed import OrderStatusFeed, PollingOrderStatusFeed
from .order_lifecycle import OrderLifecycle, PricingSnapshot

logger = get_logger(__name__)


def _is_order_number_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return "order_sequence" in message or "order_number" in message


class StatusSynchronizer:
    """
    Domain service coordinating concurrent writers on the same order.

    Usage:
        service = StatusSynchronizer(db, publisher)
        view = service.transition_order(order_id, request, actor)
    """

    def __init__(
        self,
        db: Session,
        publisher: NotificationPublisher,
        settings: Settings | None = None,
        feed: OrderStatusFeed | None = None,
    ):
        self._db = db
        self._publisher = publisher
        self._settings = settings or get_settings()
        self._lifecycle = OrderLifecycle(db)
        self._feed = feed or PollingOrderStatusFeed(db, self._settings.poll_interval_seconds)

    @property
    def feed(self) -> OrderStatusFeed:
        return self._feed

    # =========================================================================
    # Helpers
    # =========================================================================

    def _locked_order(self, order_id: int) -> Order:
        order = self._db.scalar(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    @staticmethod
    def _check_version(order: Order, expected_version: int) -> None:
        if order.version != expected_version:
            raise ConflictError(
                f"Order {order.order_number} is at version {order.version}, not {expected_version}",
                expected_version=expected_version,
                actual_version=order.version,
                order_id=order.id,
            )

    def _mutate(
        self,
        order_id: int,
        expected_version: int,
        action: Callable[[Order], list[Event]],
    ) -> OrderOutput:
        with unit_of_work(self._db):
            order = self._locked_order(order_id)
            self._check_version(order, expected_version)
            events = action(order)

        emit_events(self._publisher, events)
        return self._feed.render(order)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_order(self, request: OrderCreateRequest, actor: ActorContext) -> OrderOutput:
        """
        Create a pending order.

        A unique violation on the order number (or on the day's counter row)
        means a concurrent create won the race; the whole unit is retried a
        few times before giving up with OrderNumberConflictError.
        """
        pricing = PricingSnapshot.from_settings(self._settings)
        for attempt in range(1, Limits.ORDER_NUMBER_ATTEMPTS + 1):
            try:
                with unit_of_work(self._db):
                    order = self._lifecycle.create(request, actor, pricing)
            except IntegrityError as exc:
                if not _is_order_number_collision(exc):
                    raise
                logger.warning("Order number collision, retrying", attempt=attempt)
                continue
            return self._feed.render(order)
        raise OrderNumberConflictError(Limits.ORDER_NUMBER_ATTEMPTS, actor_id=actor.actor_id)

    def transition_order(self, order_id: int, request: TransitionRequest, actor: ActorContext) -> OrderOutput:
        return self._mutate(
            order_id,
            request.expected_version,
            lambda order: self._lifecycle.transition(order, request.status, actor, request.notes),
        )

    def transition_item(
        self,
        order_id: int,
        item_id: int,
        request: ItemTransitionRequest,
        actor: ActorContext,
    ) -> OrderOutput:
        return self._mutate(
            order_id,
            request.expected_version,
            lambda order: self._lifecycle.advance_item(order, item_id, request.status, actor),
        )

    def complete_payment(self, order_id: int, request: PaymentCompleteRequest, actor: ActorContext) -> OrderOutput:
        return self._mutate(
            order_id,
            request.expected_version,
            lambda order: self._lifecycle.complete_payment(order, actor, request.payment_reference),
        )

    def edit_items(self, order_id: int, request: EditItemsRequest, actor: ActorContext) -> OrderOutput:
        return self._mutate(
            order_id,
            request.expected_version,
            lambda order: self._lifecycle.replace_items(order, request.items, actor, request.discount_cents),
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(self, order_id: int) -> OrderOutput:
        return self._feed.get_order(order_id)

    def list_orders(
        self,
        status: str | None = None,
        order_type: str | None = None,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> OrderFeedOutput:
        return self._feed.list_orders(status=status, order_type=order_type, limit=limit, offset=offset)

    def kitchen_queue(self) -> OrderFeedOutput:
        return self._feed.kitchen_queue()

    def order_history(self, order_id: int) -> list[StatusHistoryOutput]:
        if self._db.get(Order, order_id) is None:
            raise OrderNotFoundError(order_id)

        rows = self._db.scalars(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.id)
        ).all()
        return [
            StatusHistoryOutput(
                id=row.id,
                scope=row.scope,
                item_id=row.item_id,
                previous_status=row.previous_status,
                new_status=row.new_status,
                actor_id=row.actor_id,
                actor_role=row.actor_role,
                notes=row.notes,
                created_at=row.created_at,
            )
            for row in rows
        ]
