from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)
    # cena z momentu zamowienia, niezalezna od aktualnej ceny produktu
    price = Column(Numeric(10, 2), nullable=False)
    notes = Column(String, nullable=True)

    order = relationship("OrderModel", back_populates="items")
