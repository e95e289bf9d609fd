"""
Products router.
Minimal catalog: orders snapshot name and price from here.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db, unit_of_work
from shared.security.auth import ActorContext
from shared.utils.schemas import ProductCreate, ProductOutput
from rest_api.models import Product
from rest_api.services.domain import RecipeCatalog
from rest_api.services.permissions import Capability, require_capability


router = APIRouter(prefix="/api/products", tags=["products"])


def product_to_output(product: Product) -> ProductOutput:
    return ProductOutput(
        id=product.id,
        name=product.name,
        price_cents=product.price_cents,
        is_available=product.is_available,
    )


@router.get("", response_model=list[ProductOutput])
def list_products(
    available_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.ORDER_READ)),
) -> list[ProductOutput]:
    products = RecipeCatalog(db).list_products(include_unavailable=not available_only)
    return [product_to_output(p) for p in products]


@router.post("", response_model=ProductOutput, status_code=status.HTTP_201_CREATED)
def create_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_capability(Capability.CATALOG_MANAGE)),
) -> ProductOutput:
    with unit_of_work(db):
        product = RecipeCatalog(db).create_product(body, actor_id=actor.actor_id)
    return product_to_output(product)
