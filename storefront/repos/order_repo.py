# storefront/repos/order_repo.py
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel, items: List[OrderItemModel]) -> OrderModel:
        """Stage an order with all of its items, nothing is committed here."""
        order.items.extend(items)
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items))
        ).scalar_one_or_none()

    def get_user_order(self, order_id: str, user_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.user_id == user_id)
            .options(selectinload(OrderModel.items))
        ).scalar_one_or_none()

    def list_user_orders(self, user_id: str) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .options(selectinload(OrderModel.items))
                .order_by(OrderModel.date.desc())
            ).scalars().all()
        )

    def list_orders(self) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .order_by(OrderModel.date.desc())
            ).scalars().all()
        )

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        return order

    def count_orders_with_coupon(self, code: str) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(OrderModel.coupon_code == code)
        ).scalar_one()

    def address_in_use(self, address_id: str) -> bool:
        return self.db.execute(
            select(OrderModel.id).where(OrderModel.address_id == address_id).limit(1)
        ).first() is not None

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
