from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Enum, Float
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.status import OrderStatus


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = Column(Integer, nullable=False, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False)

    status = Column(
        Enum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            values_callable=lambda e: [s.value for s in e],
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    total = Column(Numeric(10, 2), nullable=False)

    delivery_address = Column(String, nullable=False)
    delivery_city = Column(String, nullable=True)
    delivery_state = Column(String, nullable=True)
    delivery_zip_code = Column(String, nullable=True)
    delivery_latitude = Column(Float, nullable=True)
    delivery_longitude = Column(Float, nullable=True)
    delivery_zone_id = Column(Integer, ForeignKey("delivery_zones.id", ondelete="SET NULL"), nullable=True)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    customer_notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
