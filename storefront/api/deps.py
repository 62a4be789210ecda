# storefront/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.services.catalog_client import CatalogProvider, get_catalog_provider
from storefront.services.geocoder import Geocoder, NominatimGeocoder
from storefront.services.lock_service import LockService


def get_catalog(db: Session = Depends(get_db)) -> CatalogProvider:
    return get_catalog_provider(db)


def get_geocoder() -> Geocoder:
    return NominatimGeocoder()


def get_lock_service() -> LockService:
    return LockService()
