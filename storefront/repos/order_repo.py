# storefront/repos/order_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.domain.status import OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # bez commita, transakcja nalezy do checkoutu
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_orders(self, customer_id: int, store_id: int | None = None) -> list[OrderModel]:
        query = (
            select(OrderModel)
            .where(OrderModel.customer_id == customer_id)
            .options(selectinload(OrderModel.items))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        if store_id is not None:
            query = query.where(OrderModel.store_id == store_id)
        return list(self.db.execute(query).scalars())

    def update_order_status(self, order_id: int, current: OrderStatus, target: OrderStatus) -> int:
        # warunek na aktualny status, rownolegla zmiana daje rowcount 0
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == current)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
