from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from conftest import address_at, make_store
from storefront.domain.errors import BlockReason, NotFound, ValidationError
from storefront.domain.schemas import Blocked, DeliveryAddress, ZonePreview
from storefront.services.delivery_zone_service import (
    DeliveryZoneResolver,
    ZoneTier,
    select_zone,
    validate_address,
)
from storefront.services.geocoder import haversine_km

T0 = datetime(2024, 1, 1, 12, 0, 0)


def tier(zone_id, radius, fee, created=T0):
    return ZoneTier(id=zone_id, radius_km=radius, delivery_fee=Decimal(fee), created_at=created)


ZONES = [tier(1, 3, "5"), tier(2, 10, "8")]


class TestSelectZone:
    def test_distance_between_tiers_picks_next_radius(self):
        assert select_zone(ZONES, 7) == ZONES[1]

    def test_distance_beyond_all_tiers_selects_nothing(self):
        assert select_zone(ZONES, 12) is None

    def test_radius_is_inclusive_upper_bound(self):
        assert select_zone(ZONES, 10) == ZONES[1]
        assert select_zone(ZONES, 3) == ZONES[0]

    def test_smallest_radius_wins_regardless_of_input_order(self):
        assert select_zone(list(reversed(ZONES)), 1) == ZONES[0]

    def test_equal_radius_prefers_earliest_created(self):
        older = tier(9, 5, "4", created=T0)
        newer = tier(3, 5, "6", created=T0 + timedelta(minutes=1))
        assert select_zone([newer, older], 4) == older

    def test_equal_radius_and_timestamp_falls_back_to_id(self):
        first = tier(1, 5, "4")
        second = tier(2, 5, "6")
        assert select_zone([second, first], 4) == first


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_km((10.0, 20.0), (10.0, 20.0)) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_km((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111.195, abs=0.01)

    def test_known_city_pair(self):
        # Sao Paulo -> Rio de Janeiro, okolo 360 km w linii prostej
        assert haversine_km((-23.5505, -46.6333), (-22.9068, -43.1729)) == pytest.approx(361, abs=5)


class TestValidateAddress:
    def test_complete_address_passes(self):
        validate_address(address_at(1))

    @pytest.mark.parametrize("field", ["address", "city", "zip_code"])
    def test_missing_required_field(self, field):
        with pytest.raises(ValidationError):
            validate_address(address_at(1, **{field: None}))

    def test_blank_field_is_missing(self):
        with pytest.raises(ValidationError):
            validate_address(address_at(1, city="   "))


class TestResolver:
    def test_no_zones_blocks_without_geocoding(self, db, geocoder):
        store, _ = make_store(db, zones=())
        resolution = DeliveryZoneResolver(db, geocoder).resolve(
            store, DeliveryAddress(address="Rua X", city="Y", zip_code="1")
        )

        assert resolution.blocked
        assert resolution.reason == BlockReason.NO_ZONES_CONFIGURED
        assert geocoder.calls == []

    def test_selects_zone_by_distance(self, db, store, geocoder):
        store, _ = store
        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address_at(7))

        assert not resolution.blocked
        assert resolution.zone.radius_km == 10
        assert resolution.zone.delivery_fee == Decimal("8.00")
        assert resolution.distance_km == pytest.approx(7)

    def test_out_of_range(self, db, store, geocoder):
        store, _ = store
        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address_at(12))

        assert resolution.blocked
        assert resolution.reason == BlockReason.OUT_OF_RANGE
        assert resolution.distance_km == pytest.approx(12)

    def test_geocodes_address_without_coordinates(self, db, store, geocoder):
        store, _ = store
        address = DeliveryAddress(address="Rua A, 1", city="Cidade", zip_code="123")
        geocoder.places[address.geocode_query()] = (0.01, 0.0)

        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address)

        assert resolution.zone.radius_km == 3
        assert geocoder.calls == ["Rua A, 1, Cidade, 123"]

    def test_payload_coordinates_ignored_by_default(self, db, store, geocoder):
        store, _ = store
        address = DeliveryAddress(
            address="Rua B, 2", city="Cidade", zip_code="123", latitude=0.0, longitude=0.0
        )
        geocoder.places[address.geocode_query()] = (0.2, 0.0)

        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address)

        assert resolution.reason == BlockReason.OUT_OF_RANGE
        assert resolution.destination == (0.2, 0.0)
        assert geocoder.calls == ["Rua B, 2, Cidade, 123"]

    def test_unknown_address_is_blocked(self, db, store, geocoder):
        store, _ = store
        address = DeliveryAddress(address="Nowhere", city="Void", zip_code="0")

        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address)

        assert resolution.reason == BlockReason.ADDRESS_NOT_FOUND

    def test_store_without_coordinates_geocodes_its_address(self, db, geocoder):
        store, _ = make_store(db, latitude=None, longitude=None, address="Av. Central, 5", city="Cidade")
        geocoder.places["Av. Central, 5, Cidade"] = (0.0, 0.0)

        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address_at(2))

        assert resolution.zone.radius_km == 3

    def test_store_location_unknown_is_blocked(self, db, geocoder):
        store, _ = make_store(db, latitude=None, longitude=None)

        resolution = DeliveryZoneResolver(db, geocoder).resolve(store, address_at(2))

        assert resolution.reason == BlockReason.ADDRESS_NOT_FOUND


class TestPreview:
    def test_preview_returns_fee_and_radius(self, db, store, geocoder):
        store, _ = store
        preview = DeliveryZoneResolver(db, geocoder).preview(store.id, address_at(2))

        assert isinstance(preview, ZonePreview)
        assert preview.fee == Decimal("5.00")
        assert preview.radius_km == 3

    def test_preview_uses_payload_coordinates(self, db, store, geocoder):
        store, _ = store
        DeliveryZoneResolver(db, geocoder).preview(store.id, address_at(2))
        assert geocoder.calls == []

    def test_preview_blocked(self, db, store, geocoder):
        store, _ = store
        preview = DeliveryZoneResolver(db, geocoder).preview(store.id, address_at(50))

        assert isinstance(preview, Blocked)
        assert preview.reason == BlockReason.OUT_OF_RANGE

    def test_preview_unknown_store(self, db, geocoder):
        with pytest.raises(NotFound):
            DeliveryZoneResolver(db, geocoder).preview(999, address_at(1))

    def test_preview_validates_address(self, db, store, geocoder):
        store, _ = store
        with pytest.raises(ValidationError):
            DeliveryZoneResolver(db, geocoder).preview(store.id, DeliveryAddress(city="X"))
