# storefront/services/geocoder.py
from math import asin, cos, radians, sin, sqrt
from typing import Protocol

import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import GEOCODER_URL, GEOCODER_USER_AGENT, HTTP_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0

Coordinates = tuple[float, float]


class Geocoder(Protocol):
    def geocode(self, query: str) -> Coordinates | None: ...


def haversine_km(origin: Coordinates, destination: Coordinates) -> float:
    """Odleglosc po kole wielkim w km miedzy dwoma punktami (lat, lon)."""
    lat1, lon1 = map(radians, origin)
    lat2, lon2 = map(radians, destination)

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(a)))


class NominatimGeocoder:
    """
    Geokodowanie przez API zgodne z Nominatim (/search?format=json).
    Brak wyniku lub wynik bez wspolrzednych -> None, bledy sieci sa ponawiane i propagowane.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        user_agent: str = GEOCODER_USER_AGENT,
    ):
        self.base_url = (base_url or GEOCODER_URL).rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

    @http_retry()
    def geocode(self, query: str) -> Coordinates | None:
        url = f"{self.base_url}/search"
        logger.info(f"Geocoder GET {url} q={query!r}")

        resp = requests.get(
            url,
            params={"q": query, "format": "json", "limit": 1},
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        resp.raise_for_status()

        results = resp.json()
        if not results:
            return None

        try:
            return float(results[0]["lat"]), float(results[0]["lon"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Niepoprawna odpowiedz geocodera dla {query!r}: {e}")
            return None
