# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from decimal import Decimal
from datetime import datetime

from storefront.domain.errors import BlockReason
from storefront.domain.status import OrderStatus


class Product(BaseModel):
    """Produkt z katalogu sklepu (tylko odczyt)."""

    id: int
    store_id: int
    name: str
    price: Decimal
    active: bool = True

    model_config = ConfigDict(from_attributes=True)


class CartLine(BaseModel):
    """
    Pozycja koszyka po zlaczeniu z katalogiem.
    product jest None gdy produkt nie jest juz aktywny w sklepie.
    """

    item_id: int
    product_id: int
    quantity: int
    notes: str | None = None
    product: Product | None = None

    @property
    def line_total(self) -> Decimal:
        if self.product is None:
            return Decimal("0.00")
        return self.product.price * self.quantity


class CartView(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int | None
    store_id: int
    customer_id: int
    items: List[CartLine]
    subtotal: Decimal


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(1, description="Ilość produktu")
    notes: str | None = Field(None, max_length=500)


class QuantityIn(BaseModel):
    quantity: int


class DeliveryAddress(BaseModel):
    """
    Adres dostawy. Pola sa opcjonalne na poziomie schematu,
    wymagane pola sprawdza serwis (ValidationError domeny).
    """

    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    def geocode_query(self) -> str:
        parts = [self.address, self.city, self.state, self.zip_code]
        return ", ".join(p.strip() for p in parts if p and p.strip())

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def normalized(self) -> "DeliveryAddress":
        """Kopia z obcietymi bialymi znakami, puste pola jako None."""
        fields = ("address", "city", "state", "zip_code")
        return self.model_copy(update={
            name: (getattr(self, name) or "").strip() or None for name in fields
        })


class ZonePreview(BaseModel):
    status: Literal["ok"] = "ok"
    zone_id: int
    fee: Decimal
    radius_km: float
    distance_km: float


class Blocked(BaseModel):
    status: Literal["blocked"] = "blocked"
    reason: BlockReason


class CheckoutIn(BaseModel):
    """Schema dla finalizacji zamówienia."""

    address: DeliveryAddress
    notes: str | None = Field(None, max_length=1000)


class CheckoutResult(BaseModel):
    order_id: int
    total: Decimal
    delivery_fee: Decimal


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    store_id: int
    customer_id: int
    status: OrderStatus
    status_label: str
    total: Decimal
    delivery_address: str
    delivery_city: str | None = None
    delivery_state: str | None = None
    delivery_zip_code: str | None = None
    delivery_latitude: float | None = None
    delivery_longitude: float | None = None
    delivery_zone_id: int | None = None
    delivery_fee: Decimal
    customer_notes: str | None = None
    items: List[OrderItemOut]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusIn(BaseModel):
    status: OrderStatus


class ErrorOut(BaseModel):
    kind: str
    detail: str
    reason: BlockReason | None = None
