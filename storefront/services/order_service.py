# storefront/services/order_service.py
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import InvalidStatusTransition, NotFound, PersistenceFailure
from storefront.domain.schemas import OrderItemOut, OrderOut
from storefront.domain.status import OrderStatus, can_transition
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Serwis odpowiedzialny za odczyt zamówień i zmiany ich statusu.
    Tworzeniem zamówień zajmuje się CheckoutService.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)

    @staticmethod
    def to_out(order: OrderModel) -> OrderOut:
        status = OrderStatus(order.status)
        return OrderOut(
            id=order.id,
            store_id=order.store_id,
            customer_id=order.customer_id,
            status=status,
            status_label=status.label,
            total=order.total,
            delivery_address=order.delivery_address,
            delivery_city=order.delivery_city,
            delivery_state=order.delivery_state,
            delivery_zip_code=order.delivery_zip_code,
            delivery_latitude=order.delivery_latitude,
            delivery_longitude=order.delivery_longitude,
            delivery_zone_id=order.delivery_zone_id,
            delivery_fee=order.delivery_fee,
            customer_notes=order.customer_notes,
            items=[OrderItemOut.model_validate(i) for i in order.items],
            created_at=order.created_at,
        )

    def get_order(self, customer_id: int, order_id: int) -> OrderOut:
        """
        Use Case: Pobranie zamówienia klienta (Query).
        """
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFound("Zamówienie nie istnieje")

        if order.customer_id != customer_id:
            raise PermissionError("Brak dostępu do zamówienia")

        return self.to_out(order)

    def list_orders(self, customer_id: int, store_id: int | None = None) -> list[OrderOut]:
        return [self.to_out(o) for o in self.repo.list_orders(customer_id, store_id)]

    def advance_status(self, store_id: int, order_id: int, target: OrderStatus) -> OrderOut:
        """
        Use Case: Zmiana statusu przez sklep (pending -> confirmed -> delivered).
        """
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFound("Zamówienie nie istnieje")

        if order.store_id != store_id:
            raise PermissionError("Zamówienie należy do innego sklepu")

        current = OrderStatus(order.status)
        if not can_transition(current, target):
            raise InvalidStatusTransition(f"Nie można zmienić statusu z {current.value} na {target.value}")

        try:
            rowcount = self.repo.update_order_status(order_id, current, target)
            if rowcount == 0:
                self.repo.rollback()
                raise InvalidStatusTransition("Status zamówienia został zmieniony przez inną operację")
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad zmiany statusu zamowienia {order_id}: {e}")
            raise PersistenceFailure("Nie udalo sie zapisac statusu") from e

        logger.info(f"Zamowienie {order_id}: {current.value} -> {target.value}")
        return self.to_out(self.repo.get_order(order_id))
