# storefront/services/catalog_client.py
from decimal import Decimal
from typing import Protocol

import requests
from sqlalchemy.orm import Session

from storefront.domain.schemas import Product
from storefront.repos.store_repo import StoreRepo
from storefront.utils.retry import http_retry
from storefront.utils.settings import CATALOG_SERVICE_URL, HTTP_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogProvider(Protocol):
    def list_active_products(self, store_id: int) -> list[Product]: ...


class DbCatalogProvider:
    """Katalog czytany z tabeli products tej samej bazy."""

    def __init__(self, db: Session):
        self.repo = StoreRepo(db)

    def list_active_products(self, store_id: int) -> list[Product]:
        return [Product.model_validate(p) for p in self.repo.list_active_products(store_id)]


class HttpCatalogClient:
    """Katalog z zewnetrznego catalog-service po HTTP."""

    def __init__(self, base_url: str | None = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def list_active_products(self, store_id: int) -> list[Product]:
        url = f"{self.base_url}/stores/{store_id}/products"
        logger.info(f"CatalogClient GET {url}")

        resp = requests.get(url, params={"active": "true"}, timeout=self.timeout)
        resp.raise_for_status()

        products = []
        for row in resp.json():
            row = dict(row)
            row.setdefault("store_id", store_id)
            row["price"] = Decimal(str(row["price"]))
            product = Product.model_validate(row)
            # serwis moze zignorowac filtr, nieaktywne i tak odrzucamy
            if product.active:
                products.append(product)
        return products


def get_catalog_provider(db: Session) -> CatalogProvider:
    if CATALOG_SERVICE_URL:
        return HttpCatalogClient()
    return DbCatalogProvider(db)
