# storefront/services/delivery_zone_service.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from storefront.data.models.delivery_zone import DeliveryZoneModel
from storefront.data.models.store import StoreModel
from storefront.domain.errors import BlockReason, NotFound, ValidationError
from storefront.domain.schemas import Blocked, DeliveryAddress, ZonePreview
from storefront.repos.store_repo import StoreRepo
from storefront.services.geocoder import Coordinates, Geocoder, haversine_km
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_ADDRESS_FIELDS = ("address", "city", "zip_code")


@dataclass(frozen=True)
class ZoneTier:
    id: int
    radius_km: float
    delivery_fee: Decimal
    created_at: datetime

    @classmethod
    def from_model(cls, zone: DeliveryZoneModel) -> "ZoneTier":
        return cls(
            id=zone.id,
            radius_km=float(zone.radius_km),
            delivery_fee=Decimal(zone.delivery_fee),
            created_at=zone.created_at,
        )


@dataclass(frozen=True)
class ZoneResolution:
    zone: ZoneTier | None = None
    distance_km: float | None = None
    destination: Coordinates | None = None
    reason: BlockReason | None = None

    @property
    def blocked(self) -> bool:
        return self.zone is None


def validate_address(address: DeliveryAddress) -> None:
    missing = [
        name for name in REQUIRED_ADDRESS_FIELDS
        if not (getattr(address, name) or "").strip()
    ]
    if missing:
        raise ValidationError(f"Brak wymaganych pol adresu: {', '.join(missing)}")


def select_zone(zones: Iterable[ZoneTier], distance_km: float) -> ZoneTier | None:
    """
    Najmniejsza strefa z radius_km >= distance_km (granica wlacznie).
    Przy rownym promieniu wygrywa strefa utworzona wczesniej.
    """
    ordered = sorted(zones, key=lambda z: (z.radius_km, z.created_at, z.id))
    for zone in ordered:
        if zone.radius_km >= distance_km:
            return zone
    return None


class DeliveryZoneResolver:
    def __init__(self, db: Session, geocoder: Geocoder):
        self.repo = StoreRepo(db)
        self.geocoder = geocoder

    def _address_coordinates(
        self, address: DeliveryAddress, use_client_coordinates: bool = False
    ) -> Coordinates | None:
        if use_client_coordinates and address.has_coordinates():
            return address.latitude, address.longitude
        return self.geocoder.geocode(address.geocode_query())

    def _store_coordinates(self, store: StoreModel) -> Coordinates | None:
        if store.latitude is not None and store.longitude is not None:
            return store.latitude, store.longitude

        # sklep bez wspolrzednych, probujemy jego adres
        query = DeliveryAddress(
            address=store.address,
            city=store.city,
            state=store.state,
            zip_code=store.zip_code,
        ).geocode_query()
        if not query:
            return None
        return self.geocoder.geocode(query)

    def resolve(
        self,
        store: StoreModel,
        address: DeliveryAddress,
        use_client_coordinates: bool = False,
    ) -> ZoneResolution:
        """
        Strefa dostawy dla adresu. Domyslnie adres jest zawsze geokodowany,
        wspolrzedne z payloadu klienta bierze tylko podglad.
        """
        zones = [ZoneTier.from_model(z) for z in self.repo.list_zones(store.id)]

        if not zones:
            logger.warning(f"Sklep {store.id} nie ma skonfigurowanych stref dostawy")
            return ZoneResolution(reason=BlockReason.NO_ZONES_CONFIGURED)

        destination = self._address_coordinates(address, use_client_coordinates)
        if destination is None:
            logger.warning(f"Nie znaleziono adresu {address.geocode_query()!r}")
            return ZoneResolution(reason=BlockReason.ADDRESS_NOT_FOUND)

        origin = self._store_coordinates(store)
        if origin is None:
            logger.warning(f"Nie znaleziono lokalizacji sklepu {store.id}")
            return ZoneResolution(reason=BlockReason.ADDRESS_NOT_FOUND)

        distance = haversine_km(origin, destination)
        zone = select_zone(zones, distance)

        if zone is None:
            logger.info(f"Adres poza zasiegiem sklepu {store.id}: {distance:.2f} km")
            return ZoneResolution(
                distance_km=distance, destination=destination, reason=BlockReason.OUT_OF_RANGE
            )

        logger.info(
            f"Strefa {zone.id} ({zone.radius_km} km, oplata {zone.delivery_fee}) "
            f"dla odleglosci {distance:.2f} km"
        )
        return ZoneResolution(zone=zone, distance_km=distance, destination=destination)

    def preview(self, store_id: int, address: DeliveryAddress) -> ZonePreview | Blocked:
        validate_address(address)
        address = address.normalized()

        store = self.repo.get_store(store_id)
        if not store:
            raise NotFound("Sklep nie istnieje")

        resolution = self.resolve(store, address, use_client_coordinates=True)
        if resolution.blocked:
            return Blocked(reason=resolution.reason)

        return ZonePreview(
            zone_id=resolution.zone.id,
            fee=resolution.zone.delivery_fee,
            radius_km=resolution.zone.radius_km,
            distance_km=round(resolution.distance_km, 3),
        )
