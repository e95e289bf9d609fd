"""
Recipe Models: ProductIngredient.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK
from .ingredient import StockNumeric

if TYPE_CHECKING:
    from .catalog import Product
    from .ingredient import Ingredient


class ProductIngredient(Base):
    """
    Recipe entry: how much of an ingredient one unit of a product consumes.
    A product without entries is not stock-tracked.
    """

    __tablename__ = "product_ingredient"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("ingredient.id"), nullable=False, index=True
    )
    quantity_required: Mapped[Decimal] = mapped_column(StockNumeric, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="recipe_entries")
    ingredient: Mapped["Ingredient"] = relationship(back_populates="product_ingredients")

    __table_args__ = (
        UniqueConstraint("product_id", "ingredient_id", name="uq_product_ingredient"),
        CheckConstraint("quantity_required > 0", name="chk_recipe_quantity_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProductIngredient(product_id={self.product_id}, "
            f"ingredient_id={self.ingredient_id}, qty={self.quantity_required})>"
        )
