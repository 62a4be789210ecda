# storefront/services/cart_service.py
from decimal import Decimal
from typing import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFound, PersistenceFailure, ValidationError
from storefront.domain.schemas import CartLine, CartView, Product
from storefront.repos.cart_repo import CartRepo
from storefront.repos.store_repo import StoreRepo
from storefront.services.catalog_client import CatalogProvider
from storefront.utils.retry import conflict_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case'y koszyka, jeden koszyk na pare (klient, sklep)
    commands (get_or_create, add, update, remove) modyfikuja stan
    query (view, subtotal) tylko odczyt, bez gwarancji spojnosci z checkoutem
    """

    def __init__(self, db: Session, catalog: CatalogProvider):
        self.repo = CartRepo(db)
        self.stores = StoreRepo(db)
        self.catalog = catalog

    #query - odczyt
    def join_lines(self, items: Iterable[CartItemModel], products: Iterable[Product]) -> list[CartLine]:
        """Jedyne miejsce laczenia pozycji koszyka z produktami katalogu."""
        by_id = {p.id: p for p in products}
        return [
            CartLine(
                item_id=i.id,
                product_id=i.product_id,
                quantity=i.quantity,
                notes=i.notes,
                product=by_id.get(i.product_id),
            )
            for i in items
        ]

    def get_lines(self, cart: CartModel) -> list[CartLine]:
        items = self.repo.get_cart_items(cart.id)
        if not items:
            return []
        return self.join_lines(items, self.catalog.list_active_products(cart.store_id))

    def compute_subtotal(self, cart: CartModel) -> Decimal:
        # aktualne ceny z katalogu, snapshot robi dopiero checkout
        return sum((line.line_total for line in self.get_lines(cart)), Decimal("0.00"))

    def get_cart_view(self, customer_id: int, store_id: int) -> CartView:
        cart = self.repo.get_cart_by_customer(customer_id, store_id)

        if not cart:
            return CartView(
                cart_id=None,
                store_id=store_id,
                customer_id=customer_id,
                items=[],
                subtotal=Decimal("0.00"),
            )

        return self._view(cart)

    def _view(self, cart: CartModel) -> CartView:
        lines = self.get_lines(cart)
        return CartView(
            cart_id=cart.id,
            store_id=cart.store_id,
            customer_id=cart.customer_id,
            items=lines,
            subtotal=sum((line.line_total for line in lines), Decimal("0.00")),
        )

    #commands
    def get_or_create_cart(self, customer_id: int, store_id: int) -> CartModel:
        existing = self.repo.get_cart_by_customer(customer_id, store_id)
        if existing:
            return existing

        if not self.stores.get_store(store_id):
            raise NotFound("Sklep nie istnieje")

        try:
            created = self.repo.create_cart(CartModel(customer_id=customer_id, store_id=store_id, version=1))
        except IntegrityError:
            # rownolegle zapytanie utworzylo koszyk pierwsze, bierzemy jego
            self.repo.rollback()
            existing = self.repo.get_cart_by_customer(customer_id, store_id)
            if existing is None:
                raise
            logger.info(f"Koszyk klienta {customer_id} w sklepie {store_id} utworzony rownolegle: {existing.id}")
            return existing

        logger.info(f"Utworzono nowy koszyk {created.id} dla klienta {customer_id} w sklepie {store_id}")
        return created

    def add_item(
        self,
        customer_id: int,
        store_id: int,
        product_id: int,
        quantity: int = 1,
        notes: str | None = None,
    ) -> CartView:

        # Walidacje
        if quantity <= 0:
            raise ValidationError("Ilosc musi byc wieksza niz 0")

        active_ids = {p.id for p in self.catalog.list_active_products(store_id)}
        if product_id not in active_ids:
            raise NotFound(f"Produkt {product_id} nie jest dostepny w sklepie {store_id}")

        cart = self.get_or_create_cart(customer_id, store_id)

        try:
            self._upsert_item(cart.id, product_id, quantity, notes)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad podczas dodawania produktu {product_id} do koszyka {cart.id}: {e}")
            raise PersistenceFailure("Nie udalo sie zapisac koszyka") from e

        return self._view(cart)

    @conflict_retry(IntegrityError)
    def _upsert_item(self, cart_id: int, product_id: int, quantity: int, notes: str | None) -> None:
        rowcount = self.repo.increment_item_quantity(cart_id, product_id, quantity)

        if rowcount:
            logger.info(f"Produkt {product_id} juz jest w koszyku {cart_id}, zwiekszam ilosc o {quantity}")
        else:
            logger.info(f"Dodaje nowy produkt {product_id} do koszyka {cart_id}")
            try:
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart_id,
                        product_id=product_id,
                        quantity=quantity,
                        notes=notes,
                    )
                )
            except IntegrityError:
                # inna karta przegladarki wstawila ten produkt, ponawiamy jako increment
                self.repo.rollback()
                logger.warning(f"Konflikt przy wstawianiu produktu {product_id} do koszyka {cart_id}, ponawiam")
                raise

        self.repo.commit()

    def _owned_item(self, customer_id: int, item_id: int) -> CartItemModel:
        item = self.repo.get_item(item_id)
        if not item:
            raise NotFound("Pozycja koszyka nie istnieje")

        cart = self.repo.get_cart(item.cart_id)
        if cart.customer_id != customer_id:
            raise PermissionError("Brak dostepu do koszyka")

        return item

    def update_quantity(self, customer_id: int, item_id: int, new_quantity: int) -> CartView:
        # do usuwania jest remove_item
        if new_quantity < 1:
            raise ValidationError("Ilosc musi byc co najmniej 1")

        item = self._owned_item(customer_id, item_id)
        cart = item.cart

        try:
            self.repo.set_item_quantity(item_id, new_quantity)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad podczas zmiany ilosci pozycji {item_id}: {e}")
            raise PersistenceFailure("Nie udalo sie zapisac koszyka") from e

        logger.info(f"Pozycja {item_id} w koszyku {cart.id}: ilosc {new_quantity}")
        return self._view(cart)

    def remove_item(self, customer_id: int, item_id: int) -> CartView:
        item = self._owned_item(customer_id, item_id)
        cart = item.cart

        try:
            self.repo.delete_item(item_id)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad podczas usuwania pozycji {item_id}: {e}")
            raise PersistenceFailure("Nie udalo sie zapisac koszyka") from e

        logger.info(f"Pozycja {item_id} usunieta z koszyka {cart.id}")
        return self._view(cart)
