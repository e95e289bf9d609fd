"""
Order Models: Order, OrderItem, OrderStatusHistory, OrderSequence.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK, utcnow

if TYPE_CHECKING:
    from .catalog import Product


class Order(AuditMixin, Base):
    """
    A customer order.

    Only the lifecycle phase is stored in ``status`` (pending, confirmed,
    completed, cancelled). While confirmed, the reported status is derived
    from the item statuses.

    ``version`` is the optimistic concurrency counter. Every UPDATE is
    qualified by the version that was loaded, so SQLAlchemy refuses the
    flush if another writer got there first.
    Inherits: is_active, created_at, updated_at, created_by, updated_by from AuditMixin.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    order_type: Mapped[str] = mapped_column(String(16), nullable=False)
    table_ref: Mapped[Optional[str]] = mapped_column(String(20))
    customer_name: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)

    # Pricing, in cents; tax_rate is the snapshot taken at creation
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # True while a reservation is held; flips back exactly once on reversal
    ingredients_consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    served_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Relationships
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    status_history: Mapped[list["OrderStatusHistory"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
    )

    # Bumped by OrderLifecycle once per mutation; the UPDATE still checks the old value
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    __table_args__ = (
        # Kitchen queue: active orders oldest first
        Index("ix_orders_status_created", "status", "created_at"),
        CheckConstraint("subtotal_cents >= 0", name="chk_orders_subtotal_non_negative"),
        CheckConstraint("discount_cents >= 0", name="chk_orders_discount_non_negative"),
        CheckConstraint("total_cents >= 0", name="chk_orders_total_non_negative"),
        CheckConstraint(
            "total_cents = subtotal_cents + tax_cents - discount_cents",
            name="chk_orders_total_matches",
        ),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}', v={self.version})>"


class OrderItem(Base):
    """
    A single line of an order.
    Stores product name and price at the time of order for historical accuracy.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
        CheckConstraint("unit_price_cents >= 0", name="chk_order_item_price_non_negative"),
    )

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship()

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, product='{self.product_name}', qty={self.quantity}, status='{self.status}')>"


class OrderStatusHistory(Base):
    """
    Append-only audit trail of order and item status changes.
    """

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scope: Mapped[str] = mapped_column(String(8), nullable=False)  # order | item
    item_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("order_item.id", ondelete="SET NULL"), nullable=True
    )
    previous_status: Mapped[Optional[str]] = mapped_column(String(16))
    new_status: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(64))
    actor_role: Mapped[Optional[str]] = mapped_column(String(16))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="status_history")

    def __repr__(self) -> str:
        return (
            f"<OrderStatusHistory(order_id={self.order_id}, scope='{self.scope}', "
            f"{self.previous_status} -> {self.new_status})>"
        )


class OrderSequence(Base):
    """
    Per-day order number counter.

    The row is locked while a number is drawn, so concurrent creates on the
    same day are serialized on it.
    """

    __tablename__ = "order_sequence"

    day: Mapped[str] = mapped_column(String(8), primary_key=True)  # YYYYMMDD
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<OrderSequence(day='{self.day}', last_value={self.last_value})>"
