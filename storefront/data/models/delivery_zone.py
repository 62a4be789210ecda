from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class DeliveryZoneModel(Base):
    __tablename__ = "delivery_zones"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)

    radius_km = Column(Float, nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    store = relationship("StoreModel", back_populates="zones")
