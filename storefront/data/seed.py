# storefront/data/seed.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.database import SessionLocal
from storefront.data.models import DeliveryZoneModel, ProductModel, StoreModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def seed(db: Session | None = None) -> StoreModel | None:
    """Sklep demo z katalogiem i strefami, tylko gdy baza jest pusta."""
    own_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(StoreModel).first():
            return None

        store = StoreModel(
            name="Pizzaria Demo",
            slug="pizzaria-demo",
            address="Av. Paulista, 1000",
            city="Sao Paulo",
            state="SP",
            zip_code="01310-100",
            latitude=-23.5614,
            longitude=-46.6559,
        )
        db.add(store)
        db.flush()

        db.add_all([
            ProductModel(store_id=store.id, name="Margherita", price=Decimal("45.00")),
            ProductModel(store_id=store.id, name="Calabresa", price=Decimal("49.90")),
            ProductModel(store_id=store.id, name="Refrigerante 2L", price=Decimal("12.00")),
        ])

        now = datetime.now(timezone.utc)
        db.add_all([
            DeliveryZoneModel(store_id=store.id, radius_km=3, delivery_fee=Decimal("5.00"), created_at=now),
            DeliveryZoneModel(
                store_id=store.id,
                radius_km=10,
                delivery_fee=Decimal("8.00"),
                created_at=now + timedelta(seconds=1),
            ),
        ])
        db.commit()

        logger.info(f"Seeded demo store {store.id} ({store.slug})")
        return store
    finally:
        if own_session:
            db.close()
