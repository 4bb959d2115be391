# storefront/repos/cart_repo.py
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: str) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.created_at)
            ).scalars().all()
        )

    def get_cart_item(self, cart_id: str, product_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_cart_item_by_id(self, cart_id: str, item_id: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_cart_items(self, cart_id: str) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(CartItemModel.cart_id == cart_id)
        )
        return result.rowcount

    def update_cart_version(self, cart_id: str, old_version: int, new_data: dict) -> int:
        """UPDATE carts SET ... WHERE id = :id AND version = :old_version, returns rowcount."""
        return (
            self.db.query(CartModel)
            .filter(CartModel.id == cart_id, CartModel.version == old_version)
            .update(new_data, synchronize_session="evaluate")
        )

    def count_carts_with_coupon(self, code: str) -> int:
        return self.db.execute(
            select(func.count(CartModel.id)).where(
                CartModel.applied_coupon.is_(True),
                CartModel.coupon_code == code,
            )
        ).scalar_one()

    def address_in_use(self, address_id: str) -> bool:
        return self.db.execute(
            select(CartModel.id).where(CartModel.shipping_address_id == address_id).limit(1)
        ).first() is not None

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
