"""
Ingredient Models: Ingredient, IngredientHistory.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
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
    from .recipe import ProductIngredient

# Stock quantities: up to 999,999,999.999 in the ingredient's unit
StockNumeric = Numeric(12, 3)


class Ingredient(AuditMixin, Base):
    """
    A stock-tracked raw ingredient.
    current_stock is written only through IngredientLedger.apply_change.
    Inherits: is_active, created_at, updated_at, created_by, updated_by from AuditMixin.
    """

    __tablename__ = "ingredient"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)  # g, ml, unit, ...
    current_stock: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False, default=Decimal("0"))
    minimum_stock: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False, default=Decimal("0"))
    unit_cost_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    product_ingredients: Mapped[list["ProductIngredient"]] = relationship(back_populates="ingredient")
    history: Mapped[list["IngredientHistory"]] = relationship(
        back_populates="ingredient", order_by="IngredientHistory.id"
    )

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="chk_ingredient_stock_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="chk_ingredient_minimum_non_negative"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.minimum_stock

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, name='{self.name}', stock={self.current_stock} {self.unit})>"


class IngredientHistory(Base):
    """
    Append-only stock ledger.
    One row per stock change: order consumption, cancellation reversal,
    restock, manual adjustment or spoilage.
    """

    __tablename__ = "ingredient_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    ingredient_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ingredient.id"), nullable=False, index=True
    )
    operation: Mapped[str] = mapped_column(String(32), nullable=False)
    quantity_delta: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False)
    previous_stock: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False)
    new_stock: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False)
    order_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("orders.id"), nullable=True, index=True
    )
    actor_id: Mapped[Optional[str]] = mapped_column(String(64))
    reason: Mapped[Optional[str]] = mapped_column(String(200))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    ingredient: Mapped["Ingredient"] = relationship(back_populates="history")

    __table_args__ = (
        Index("ix_ingredient_history_order_operation", "order_id", "operation"),
    )

    def __repr__(self) -> str:
        return (
            f"<IngredientHistory(id={self.id}, ingredient_id={self.ingredient_id}, "
            f"operation='{self.operation}', delta={self.quantity_delta})>"
        )
