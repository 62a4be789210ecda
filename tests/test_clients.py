from decimal import Decimal

import pytest
import requests
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.domain.errors import ConcurrencyConflict, PersistenceFailure
from storefront.services import catalog_client, geocoder
from storefront.services.catalog_client import DbCatalogProvider, HttpCatalogClient, get_catalog_provider
from storefront.services.geocoder import NominatimGeocoder
from storefront.services.lock_service import LockService
from storefront.utils.settings import REDIS_SOCKET_TIMEOUT_SECONDS


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        return self.payload


class TestNominatimGeocoder:
    def test_first_result_coordinates(self, monkeypatch):
        seen = {}

        def fake_get(url, params, headers, timeout):
            seen.update(url=url, params=params, headers=headers)
            return FakeResponse([{"lat": "-23.5", "lon": "-46.6"}, {"lat": "0", "lon": "0"}])

        monkeypatch.setattr(geocoder.requests, "get", fake_get)

        coords = NominatimGeocoder(base_url="http://geo.local/").geocode("Rua A, Cidade")

        assert coords == (-23.5, -46.6)
        assert seen["url"] == "http://geo.local/search"
        assert seen["params"]["q"] == "Rua A, Cidade"
        assert "User-Agent" in seen["headers"]

    def test_no_result(self, monkeypatch):
        monkeypatch.setattr(geocoder.requests, "get", lambda *a, **kw: FakeResponse([]))
        assert NominatimGeocoder(base_url="http://geo.local").geocode("nowhere") is None

    @pytest.mark.parametrize(
        "payload",
        [
            [{"display_name": "Cidade"}],
            [{"lat": "-23.5"}],
            [{"lat": "abc", "lon": "1"}],
            [None],
        ],
    )
    def test_malformed_result_is_not_found(self, monkeypatch, payload):
        monkeypatch.setattr(geocoder.requests, "get", lambda *a, **kw: FakeResponse(payload))
        assert NominatimGeocoder(base_url="http://geo.local").geocode("Rua A") is None

    def test_network_errors_are_retried(self, monkeypatch):
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) < 3:
                raise requests.ConnectionError("down")
            return FakeResponse([{"lat": "1", "lon": "2"}])

        monkeypatch.setattr(geocoder.requests, "get", flaky)

        assert NominatimGeocoder(base_url="http://geo.local").geocode("x") == (1.0, 2.0)
        assert len(calls) == 3


class TestHttpCatalogClient:
    def test_parses_products_and_drops_inactive(self, monkeypatch):
        payload = [
            {"id": 1, "name": "Pizza", "price": 40.5, "active": True},
            {"id": 2, "name": "Old", "price": "10.00", "active": False},
        ]
        seen = {}

        def fake_get(url, params, timeout):
            seen.update(url=url, params=params)
            return FakeResponse(payload)

        monkeypatch.setattr(catalog_client.requests, "get", fake_get)

        products = HttpCatalogClient(base_url="http://catalog.local").list_active_products(5)

        assert [p.id for p in products] == [1]
        assert products[0].price == Decimal("40.5")
        assert products[0].store_id == 5
        assert seen["url"] == "http://catalog.local/stores/5/products"
        assert seen["params"] == {"active": "true"}

    def test_provider_selection(self, db, monkeypatch):
        assert isinstance(get_catalog_provider(db), DbCatalogProvider)

        monkeypatch.setattr(catalog_client, "CATALOG_SERVICE_URL", "http://catalog.local")
        assert isinstance(get_catalog_provider(db), HttpCatalogClient)


class FakeLock:
    def __init__(self, acquired=True, error=None):
        self.acquired = acquired
        self.error = error
        self.released = False
        self.attempts = 0

    def acquire(self, blocking, blocking_timeout):
        self.attempts += 1
        if self.error:
            raise self.error
        return self.acquired

    def release(self):
        self.released = True


class FakeRedis:
    def __init__(self, lock):
        self._lock = lock
        self.keys = []

    def lock(self, name, timeout):
        self.keys.append(name)
        return self._lock


class TestLockService:
    def make(self, lock):
        svc = LockService(url="redis://localhost:6379/0", ttl=5, wait=0.1)
        svc.redis = FakeRedis(lock)
        return svc

    def test_redis_client_has_bounded_timeouts(self):
        svc = LockService(url="redis://localhost:6379/0", socket_timeout=1.5)

        kwargs = svc.redis.connection_pool.connection_kwargs
        assert kwargs["socket_timeout"] == 1.5
        assert kwargs["socket_connect_timeout"] == 1.5

    def test_default_timeouts_come_from_settings(self):
        kwargs = LockService(url="redis://localhost:6379/0").redis.connection_pool.connection_kwargs
        assert kwargs["socket_timeout"] == REDIS_SOCKET_TIMEOUT_SECONDS
        assert kwargs["socket_connect_timeout"] == REDIS_SOCKET_TIMEOUT_SECONDS

    def test_lock_held_for_block_and_released(self):
        lock = FakeLock()
        svc = self.make(lock)

        with svc.cart_lock(17):
            assert not lock.released

        assert lock.released
        assert svc.redis.keys == ["cart:17:checkout-lock"]

    def test_busy_lock_is_conflict(self):
        svc = self.make(FakeLock(acquired=False))

        with pytest.raises(ConcurrencyConflict):
            with svc.cart_lock(1):
                pass

    def test_redis_down_is_persistence_failure(self):
        lock = FakeLock(error=RedisConnectionError("refused"))
        svc = self.make(lock)

        with pytest.raises(PersistenceFailure):
            with svc.cart_lock(1):
                pass
        assert lock.attempts == 3

    def test_released_on_error(self):
        lock = FakeLock()
        svc = self.make(lock)

        with pytest.raises(RuntimeError):
            with svc.cart_lock(1):
                raise RuntimeError("boom")
        assert lock.released
