# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import OrderOut, StatusIn
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


def get_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    customer_id: int = Query(..., gt=0),
    store_id: int | None = Query(None),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(customer_id, store_id)


@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    customer_id: int = Query(..., gt=0),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return svc.get_order(customer_id, order_id)


@router.post("/stores/{store_id}/orders/{order_id}/status", response_model=OrderOut)
def advance_status(
    store_id: int,
    order_id: int,
    payload: StatusIn,
    svc: OrderService = Depends(get_service),
):
    return svc.advance_status(store_id, order_id, payload.status)
