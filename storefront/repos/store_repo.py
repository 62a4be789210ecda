# storefront/repos/store_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.store import StoreModel
from storefront.data.models.product import ProductModel
from storefront.data.models.delivery_zone import DeliveryZoneModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id: int) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def list_zones(self, store_id: int) -> list[DeliveryZoneModel]:
        # rosnaco po promieniu, przy rownym promieniu wygrywa starsza strefa
        return list(
            self.db.execute(
                select(DeliveryZoneModel)
                .where(DeliveryZoneModel.store_id == store_id)
                .order_by(
                    DeliveryZoneModel.radius_km,
                    DeliveryZoneModel.created_at,
                    DeliveryZoneModel.id,
                )
            ).scalars()
        )

    def list_active_products(self, store_id: int) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(ProductModel.store_id == store_id, ProductModel.active.is_(True))
                .order_by(ProductModel.id)
                .execution_options(populate_existing=True)
            ).scalars()
        )
