# storefront/services/order_service.py
from typing import Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain import pricing
from storefront.domain.caller import Caller
from storefront.domain.enums import DeliveryType, OrderStatus, parse_enum
from storefront.domain.errors import (
    ConflictError,
    NotFoundError,
    UpstreamStoreError,
    ValidationError,
)
from storefront.repos.address_repo import AddressRepo
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#statuses an order can no longer be cancelled from
FINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "date": order.date,
        "total": order.total,
        "shipping": order.shipping,
        "discount": order.discount,
        "delivery_type": order.delivery_type,
        "status": order.status,
        "address_id": order.address_id,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "coupon_code": order.coupon_code,
        "items": [
            {
                "id": i.id,
                "product_id": i.product_id,
                "name": i.name,
                "price": i.price,
                "image": i.image,
                "quantity": i.quantity,
            }
            for i in order.items
        ],
    }


class OrderService:
    """
    Checkout turns the caller's cart into an immutable order; everything
    else here only reads orders or moves their status.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)
        self.carts = CartService(db)
        self.cart_repo = CartRepo(db)
        self.addresses = AddressRepo(db)
        self.catalog = CatalogRepo(db)

    def create_order(
        self,
        caller: Caller,
        address_id: str,
        delivery_type: str,
        payment_method: str,
        payment_status: str,
    ) -> Dict[str, Any]:
        """
        Use Case: checkout of the caller's cart.

        1. Checks delivery, address and payment input
        2. Requires a cart with at least one line
        3. Writes the order and all its items in one transaction
        4. Empties the cart (best effort, reported as `error`)
        """
        user_id = caller.require_user()

        delivery = parse_enum(DeliveryType, delivery_type, "delivery type")

        if delivery is DeliveryType.DELIVERY:
            #falls back to the address stored on the cart
            address_id = address_id or self.carts.find_cart(caller).shipping_address_id
            if not address_id:
                raise ValidationError("Delivery address is required for deliveries")
            if not self.addresses.get_user_address(address_id, user_id):
                raise NotFoundError("Address not found")
        elif delivery is DeliveryType.PICKUP:
            address_id = None
        else:
            raise AssertionError(f"unhandled delivery type {delivery}")

        if not payment_method:
            raise ValidationError("Payment method is required")
        if not payment_status:
            raise ValidationError("Payment status is required")

        cart = self.carts.find_cart(caller)
        lines = self.cart_repo.get_cart_items(cart.id)
        if not lines:
            raise ValidationError("Cart is empty")

        # version seen by checkout, the reset below must not clobber a newer cart
        cart_version = cart.version

        order = OrderModel(
            user_id=user_id,
            date=utcnow(),
            total=cart.total,
            shipping=cart.shipping,
            discount=cart.discount,
            delivery_type=delivery.value,
            status=OrderStatus.PENDING.value,
            address_id=address_id,
            payment_method=payment_method,
            payment_status=payment_status,
            coupon_code=cart.coupon_code if cart.applied_coupon and cart.coupon_code else None,
        )

        items = []
        for line in lines:
            product = self.catalog.get_product(line.product_id)
            items.append(
                OrderItemModel(
                    product_id=line.product_id,
                    name=product.name if product else line.name,
                    price=line.price,
                    image=line.image,
                    quantity=line.quantity,
                )
            )

        try:
            self.repo.add_order(order, items)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to create order for user {user_id}: {e}")
            raise UpstreamStoreError("Failed to create order", detail=str(e))

        logger.info(f"Order {order.id} created from cart {cart.id} with {len(items)} items")

        error = self._reset_cart(cart.id, cart_version)

        created = self.repo.get_order(order.id)
        return {
            "message": "Order created",
            "order": order_to_dict(created),
            "error": error,
        }

    def _reset_cart(self, cart_id: str, version: int) -> str | None:
        try:
            self.cart_repo.delete_cart_items(cart_id)
            rowcount = self.cart_repo.update_cart_version(
                cart_id=cart_id,
                old_version=version,
                new_data={
                    "subtotal": pricing.ZERO,
                    "discount": pricing.ZERO,
                    "shipping": pricing.ZERO,
                    "total": pricing.ZERO,
                    "applied_coupon": False,
                    "coupon_code": "",
                    "shipping_address_id": None,
                    "version": version + 1,
                    "updated_at": utcnow(),
                },
            )
            if rowcount == 0:
                raise ConflictError("Cart was modified during checkout")
            self.cart_repo.commit()
        except (ConflictError, SQLAlchemyError) as e:
            self.cart_repo.rollback()
            logger.warning(f"Order placed but cart {cart_id} was not emptied: {e}")
            return "Order created but the cart could not be emptied"
        return None

    #query
    def list_orders(self, caller: Caller) -> List[Dict[str, Any]]:
        user_id = caller.require_user()
        return [order_to_dict(o) for o in self.repo.list_user_orders(user_id)]

    def list_all_orders(self, caller: Caller) -> List[Dict[str, Any]]:
        caller.require_admin()
        return [order_to_dict(o) for o in self.repo.list_orders()]

    def get_order(self, caller: Caller, order_id: str) -> Dict[str, Any]:
        """
        Use Case: one order of the caller (Query).
        Orders of other users look the same as missing ones.
        """
        user_id = caller.require_user()
        order = self.repo.get_user_order(order_id, user_id)
        if not order:
            raise NotFoundError("Order not found")
        return order_to_dict(order)

    #status
    def update_status(self, caller: Caller, order_id: str, status: str) -> Dict[str, Any]:
        caller.require_admin()
        new_status = parse_enum(OrderStatus, status, "status")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        previous = order.status
        order = self.repo.update_order_status(order, new_status.value)

        logger.info(f"Order {order_id} status {previous} -> {new_status.value}")
        return {
            "message": "Order status updated",
            "order": order_to_dict(order),
        }

    def cancel_order(self, caller: Caller, order_id: str) -> Dict[str, Any]:
        user_id = caller.require_user()
        order = self.repo.get_user_order(order_id, user_id)
        if not order:
            raise NotFoundError("Order not found")

        current = parse_enum(OrderStatus, order.status, "status")
        if current in FINAL_STATUSES:
            raise ValidationError(f"Order cannot be cancelled, it is already {current.value}")

        order = self.repo.update_order_status(order, OrderStatus.CANCELLED.value)

        logger.info(f"Order {order_id} cancelled by user {user_id}")
        return {
            "message": "Order cancelled",
            "order": order_to_dict(order),
        }
