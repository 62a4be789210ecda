#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.store import StoreModel
from storefront.data.models.product import ProductModel
from storefront.data.models.delivery_zone import DeliveryZoneModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel

__all__ = [
    "StoreModel",
    "ProductModel",
    "DeliveryZoneModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
]
