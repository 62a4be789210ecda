# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_catalog, get_geocoder, get_lock_service
from storefront.data.database import get_db
from storefront.domain.schemas import Blocked, CheckoutIn, CheckoutResult, DeliveryAddress, ZonePreview
from storefront.services.catalog_client import CatalogProvider
from storefront.services.checkout_service import CheckoutService
from storefront.services.delivery_zone_service import DeliveryZoneResolver
from storefront.services.geocoder import Geocoder
from storefront.services.lock_service import LockService

router = APIRouter(prefix="/stores/{store_id}", tags=["checkout"])


@router.post("/delivery-preview", response_model=ZonePreview | Blocked)
def delivery_preview(
    store_id: int,
    payload: DeliveryAddress,
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    """
    Podglad oplaty za dostawe przed zlozeniem zamowienia.
    """
    return DeliveryZoneResolver(db, geocoder).preview(store_id, payload)


@router.post("/checkout", response_model=CheckoutResult, status_code=201)
def checkout(
    store_id: int,
    payload: CheckoutIn,
    customer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    catalog: CatalogProvider = Depends(get_catalog),
    geocoder: Geocoder = Depends(get_geocoder),
    lock_service: LockService = Depends(get_lock_service),
):
    """
    Tworzy zamówienie z koszyka klienta, płatność przy odbiorze.
    """
    svc = CheckoutService(db, catalog=catalog, geocoder=geocoder, lock_service=lock_service)
    return svc.checkout(customer_id, store_id, payload.address, payload.notes)
