# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_catalog
from storefront.data.database import get_db
from storefront.domain.schemas import CartView, ItemIn, QuantityIn
from storefront.services.cart_service import CartService
from storefront.services.catalog_client import CatalogProvider

router = APIRouter(tags=["carts"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogProvider = Depends(get_catalog),
) -> CartService:
    return CartService(db=db, catalog=catalog)


@router.get("/stores/{store_id}/cart", response_model=CartView)
def get_cart(
    store_id: int,
    customer_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_service),
):
    return svc.get_cart_view(customer_id, store_id)


@router.post("/stores/{store_id}/cart/items", response_model=CartView)
def add_item(
    store_id: int,
    payload: ItemIn,
    customer_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(
        customer_id=customer_id,
        store_id=store_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        notes=payload.notes,
    )


@router.patch("/cart-items/{item_id}", response_model=CartView)
def update_quantity(
    item_id: int,
    payload: QuantityIn,
    customer_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_service),
):
    return svc.update_quantity(customer_id, item_id, payload.quantity)


@router.delete("/cart-items/{item_id}", response_model=CartView)
def remove_item(
    item_id: int,
    customer_id: int = Query(..., gt=0),
    svc: CartService = Depends(get_service),
):
    return svc.remove_item(customer_id, item_id)
