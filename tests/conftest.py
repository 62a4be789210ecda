import os
import threading
from contextlib import contextmanager
from decimal import Decimal
from math import degrees

# settings czytane przy imporcie, baza testowa zamiast postgresa
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CATALOG_SERVICE_URL"] = ""

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.data.database import build_engine, init_db
from storefront.data.models import DeliveryZoneModel, ProductModel, StoreModel
from storefront.domain.errors import ConcurrencyConflict
from storefront.domain.schemas import DeliveryAddress
from storefront.services.geocoder import EARTH_RADIUS_KM


# adresy znane FakeGeocoderowi, zapytanie -> (lat, lon)
KNOWN_PLACES: dict = {}


def address_at(km: float, **overrides) -> DeliveryAddress:
    """
    Adres na poludniku 0, km na polnoc od sklepu w (0, 0).
    Geokodowanie jego tekstu daje te same wspolrzedne co w payloadzie.
    """
    data = {
        "address": f"Rua das Flores, {km:g}",
        "city": "Cidade",
        "zip_code": "01000-000",
        "latitude": degrees(km / EARTH_RADIUS_KM),
        "longitude": 0.0,
    }
    data.update(overrides)
    address = DeliveryAddress(**data)
    KNOWN_PLACES.setdefault(
        address.normalized().geocode_query(),
        (degrees(km / EARTH_RADIUS_KM), 0.0),
    )
    return address


class FakeGeocoder:
    def __init__(self, places: dict | None = None):
        self.places = places or {}
        self.calls = []

    def geocode(self, query):
        self.calls.append(query)
        if query in self.places:
            return self.places[query]
        return KNOWN_PLACES.get(query)


class InProcessLockService:
    """Zamiennik LockService bez redisa, blokady per koszyk w procesie."""

    def __init__(self, wait: float = 5.0):
        self.wait = wait
        self._locks = {}
        self._guard = threading.Lock()

    @contextmanager
    def cart_lock(self, cart_id):
        with self._guard:
            lock = self._locks.setdefault(cart_id, threading.Lock())
        if not lock.acquire(timeout=self.wait):
            raise ConcurrencyConflict(f"Koszyk {cart_id} jest w trakcie finalizacji")
        try:
            yield
        finally:
            lock.release()


def make_store(db, zones=((3, "5.00"), (10, "8.00")), **overrides):
    data = {"name": "Loja", "slug": f"loja-{db.query(StoreModel).count() + 1}", "latitude": 0.0, "longitude": 0.0}
    data.update(overrides)
    store = StoreModel(**data)
    db.add(store)
    db.flush()

    products = [
        ProductModel(store_id=store.id, name="Pizza", price=Decimal("40.00")),
        ProductModel(store_id=store.id, name="Suco", price=Decimal("7.50")),
    ]
    db.add_all(products)
    db.add_all([
        DeliveryZoneModel(store_id=store.id, radius_km=radius, delivery_fee=Decimal(fee))
        for radius, fee in zones
    ])
    db.commit()
    return store, products


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return make_store(db)


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def lock_service():
    return InProcessLockService()
