# storefront/services/lock_service.py
from contextlib import contextmanager
from typing import Iterator

import redis
from redis.exceptions import LockError, RedisError

from storefront.domain.errors import ConcurrencyConflict, PersistenceFailure
from storefront.utils.retry import redis_retry
from storefront.utils.settings import (
    REDIS_URL,
    REDIS_SOCKET_TIMEOUT_SECONDS,
    CHECKOUT_LOCK_TTL_SECONDS,
    CHECKOUT_LOCK_WAIT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class LockService:
    """
    -wylaczna blokada koszyka na czas checkoutu
    -lock redisa z TTL, wiec padniety proces nie blokuje koszyka na zawsze
    -zwalnianie atomowe (token porownywany w lua po stronie redisa)
    """

    def __init__(
        self,
        url: str | None = None,
        ttl: float = CHECKOUT_LOCK_TTL_SECONDS,
        wait: float = CHECKOUT_LOCK_WAIT_SECONDS,
        socket_timeout: float = REDIS_SOCKET_TIMEOUT_SECONDS,
    ):
        # polaczenie i kazda komenda ograniczone w czasie
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self.ttl = ttl
        self.wait = wait

    @redis_retry()
    def _acquire(self, lock) -> bool:
        return lock.acquire(blocking=True, blocking_timeout=self.wait)

    @contextmanager
    def cart_lock(self, cart_id: int) -> Iterator[None]:
        key = f"cart:{cart_id}:checkout-lock"
        lock = self.redis.lock(key, timeout=self.ttl)

        logger.info(f"Acquire lock {key}")
        try:
            acquired = self._acquire(lock)
        except RedisError as e:
            logger.error(f"Redis unavailable while locking {key}: {e}")
            raise PersistenceFailure("Blokada koszyka niedostepna") from e

        if not acquired:
            logger.warning(f"Lock {key} busy for more than {self.wait}s")
            raise ConcurrencyConflict(f"Koszyk {cart_id} jest w trakcie finalizacji")

        try:
            yield
        finally:
            try:
                lock.release()
                logger.info(f"Release lock {key}")
            except LockError as e:
                # TTL minal zanim skonczylismy, lock juz nie nasz
                logger.warning(f"Lock {key} expired before release: {e}")
