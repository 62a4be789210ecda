# storefront/services/checkout_service.py
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.store import StoreModel
from storefront.domain.errors import (
    ConcurrencyConflict,
    DeliveryBlocked,
    EmptyCart,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from storefront.domain.schemas import CartLine, CheckoutResult, DeliveryAddress
from storefront.domain.status import OrderStatus
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.store_repo import StoreRepo
from storefront.services.cart_service import CartService
from storefront.services.catalog_client import CatalogProvider
from storefront.services.delivery_zone_service import DeliveryZoneResolver, validate_address
from storefront.services.geocoder import Geocoder
from storefront.services.lock_service import LockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


class CheckoutService:
    """
    Serwis zamieniajacy koszyk w zamowienie.
    Caly checkout to jedna transakcja pod wylaczna blokada koszyka:
    albo powstaje zamowienie z pozycjami i koszyk jest pusty, albo nic sie nie zmienia.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogProvider,
        geocoder: Geocoder,
        lock_service: LockService,
    ):
        self.db = db
        self.carts = CartService(db, catalog)
        self.cart_repo = CartRepo(db)
        self.order_repo = OrderRepo(db)
        self.stores = StoreRepo(db)
        self.catalog = catalog
        self.resolver = DeliveryZoneResolver(db, geocoder)
        self.lock_service = lock_service

    def checkout(
        self,
        customer_id: int,
        store_id: int,
        address: DeliveryAddress,
        customer_notes: str | None = None,
    ) -> CheckoutResult:
        """
        Use Case: Zlozenie zamowienia z koszyka klienta w sklepie.

        1. Snapshot cen i ilosci pozycji koszyka
        2. Wybor strefy dostawy dla adresu
        3. total = suma(cena * ilosc) + oplata za dostawe
        4. Zapis zamowienia (pending) i pozycji ze snapshotu
        5. Wyczyszczenie pozycji koszyka (sam koszyk zostaje)
        """
        validate_address(address)
        address = address.normalized()

        try:
            store = self.stores.get_store(store_id)
            if not store:
                raise NotFound("Sklep nie istnieje")

            cart = self.cart_repo.get_cart_by_customer(customer_id, store_id)
            if not cart:
                raise EmptyCart()

            with self.lock_service.cart_lock(cart.id):
                result = self._place_order(cart.id, store, address, customer_notes)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Blad bazy przy checkoucie klienta {customer_id} w sklepie {store_id}: {e}")
            raise PersistenceFailure("Nie udalo sie zapisac zamowienia") from e
        except Exception as e:
            # nic nie zostaje zapisane, koszyk bez zmian
            self.db.rollback()
            logger.warning(f"Checkout klienta {customer_id} w sklepie {store_id} przerwany: {e}")
            raise

        logger.info(
            f"Zamowienie {result.order_id} z koszyka {cart.id}: "
            f"total {result.total}, dostawa {result.delivery_fee}"
        )
        return result

    def _snapshot(self, cart_id: int, store_id: int) -> list[CartLine]:
        items = self.cart_repo.get_cart_items(cart_id)
        if not items:
            raise EmptyCart()

        lines = self.carts.join_lines(items, self.catalog.list_active_products(store_id))

        unavailable = [line.product_id for line in lines if line.product is None]
        if unavailable:
            raise ValidationError(f"Produkty niedostepne: {', '.join(map(str, unavailable))}")

        return lines

    def _place_order(
        self,
        cart_id: int,
        store: StoreModel,
        address: DeliveryAddress,
        customer_notes: str | None,
    ) -> CheckoutResult:
        cart = self.cart_repo.get_cart_for_update(cart_id)

        lines = self._snapshot(cart.id, store.id)

        # wspolrzedne od klienta ignorowane, cena liczona z geokodowanego adresu
        resolution = self.resolver.resolve(store, address)
        if resolution.blocked:
            raise DeliveryBlocked(resolution.reason)

        zone = resolution.zone
        subtotal = sum((line.product.price * line.quantity for line in lines), Decimal("0.00"))
        total = (subtotal + zone.delivery_fee).quantize(CENT)

        order = OrderModel(
            store_id=store.id,
            customer_id=cart.customer_id,
            cart_id=cart.id,
            status=OrderStatus.PENDING,
            total=total,
            delivery_address=address.address,
            delivery_city=address.city,
            delivery_state=address.state,
            delivery_zip_code=address.zip_code,
            delivery_latitude=resolution.destination[0],
            delivery_longitude=resolution.destination[1],
            delivery_zone_id=zone.id,
            delivery_fee=zone.delivery_fee,
            customer_notes=customer_notes or None,
        )
        # cena ze snapshotu, nigdy ponowny odczyt z katalogu
        order.items = [
            OrderItemModel(
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.product.price,
                notes=line.notes,
            )
            for line in lines
        ]
        self.order_repo.add_order(order)

        self.cart_repo.clear_cart_items(cart.id)

        rowcount = self.cart_repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={"version": cart.version + 1},
        )
        if rowcount == 0:
            raise ConcurrencyConflict(
                "Konflikt wspolbieznosci - koszyk zostal zmodyfikowany przez inna operacje"
            )

        self.db.commit()

        return CheckoutResult(order_id=order.id, total=total, delivery_fee=zone.delivery_fee)
