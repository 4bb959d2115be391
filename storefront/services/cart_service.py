from typing import Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain import pricing
from storefront.domain.caller import Caller
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.repos.address_repo import AddressRepo
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.coupon_repo import CouponRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def item_to_dict(item: CartItemModel) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "name": item.name,
        "price": item.price,
        "image": item.image,
        "quantity": item.quantity,
    }


class CartService:
    """
    Use cases of the cart domain.
    commands (add, update, remove, clear, shipping address) change state and
    always end with a totals write guarded by the cart version
    query (get) only reads, creating the cart lazily
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.coupons = CouponRepo(db)
        self.addresses = AddressRepo(db)
        self.users = UserRepo(db)

    def cart_to_dict(self, cart: CartModel) -> Dict[str, Any]:
        items = self.repo.get_cart_items(cart.id)
        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "subtotal": cart.subtotal,
            "shipping": cart.shipping,
            "discount": cart.discount,
            "total": cart.total,
            "applied_coupon": cart.applied_coupon,
            "coupon_code": cart.coupon_code or "",
            "shipping_address_id": cart.shipping_address_id,
            "items": [item_to_dict(i) for i in items],
            "updated_at": cart.updated_at,
        }

    #query
    def get_cart(self, caller: Caller) -> Dict[str, Any]:
        cart = self.get_or_create_cart(caller)
        return self.cart_to_dict(cart)

    def get_or_create_cart(self, caller: Caller) -> CartModel:
        user_id = caller.require_user()

        existing = self.repo.get_cart_by_user(user_id)
        if existing:
            return existing

        if not self.users.get_user(user_id):
            raise NotFoundError("User not found")

        try:
            created = self.repo.create_cart(
                CartModel(
                    user_id=user_id,
                    subtotal=pricing.ZERO,
                    shipping=pricing.ZERO,
                    discount=pricing.ZERO,
                    total=pricing.ZERO,
                    applied_coupon=False,
                    coupon_code="",
                    version=1,
                )
            )
        except IntegrityError:
            #unique user_id: another request created the cart first
            self.repo.rollback()
            existing = self.repo.get_cart_by_user(user_id)
            if existing is None:
                raise
            logger.info(f"Cart for user {user_id} was created concurrently, reusing {existing.id}")
            return existing

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def find_cart(self, caller: Caller) -> CartModel:
        user_id = caller.require_user()
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            raise NotFoundError("Cart not found")
        return cart

    #totals
    def write_totals(
        self,
        cart: CartModel,
        applied_coupon: bool | None = None,
        coupon_code: str | None = None,
        shipping=None,
        **changes,
    ) -> pricing.Totals:
        """
        Re-derive subtotal/discount/total from the stored items and coupon and
        write them with a compare-and-swap on the cart version.

        Optional arguments change the coupon fields, shipping or any other
        cart column (`changes`) in the same write. Nothing is committed here;
        a version mismatch rolls the session back and raises ConflictError.
        """
        version = cart.version
        applied = cart.applied_coupon if applied_coupon is None else applied_coupon
        code = (cart.coupon_code or "") if coupon_code is None else coupon_code
        shipping = cart.shipping if shipping is None else shipping

        items = self.repo.get_cart_items(cart.id)
        coupon = self.coupons.get_by_code(code) if applied and code else None
        totals = pricing.price_cart(items, coupon, shipping)

        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=version,
            new_data={
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "shipping": totals.shipping,
                "total": totals.total,
                "applied_coupon": applied,
                "coupon_code": code,
                "version": version + 1,
                "updated_at": utcnow(),
                **changes,
            },
        )

        # UPDATE carts SET version = 3 WHERE id = :id AND version = 2
        if rowcount == 0:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another operation, try again")

        return totals

    #commands
    def add_item(self, caller: Caller, product_id: str, quantity: int) -> Dict[str, Any]:
        caller.require_user()

        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")

        product = self.catalog.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")

        cart = self.get_or_create_cart(caller)

        existing_item = self.repo.get_cart_item(cart.id, product_id)
        if existing_item:
            logger.info(
                f"Product {product_id} already in cart {cart.id}, quantity "
                f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
            item = self.repo.add_cart_item(existing_item)
        else:
            logger.info(f"Adding product {product_id} to cart {cart.id}")
            item = self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    image=product.image or "",
                    quantity=quantity,
                )
            )

        self.write_totals(cart)
        self.repo.commit()

        return {
            "message": "Item added to cart",
            "item": item_to_dict(item),
            "cart": self.cart_to_dict(cart),
        }

    def update_item(self, caller: Caller, item_id: str, quantity: int) -> Dict[str, Any]:
        caller.require_user()

        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")

        cart = self.find_cart(caller)
        item = self.repo.get_cart_item_by_id(cart.id, item_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        item.quantity = quantity
        self.repo.add_cart_item(item)

        self.write_totals(cart)
        self.repo.commit()

        logger.info(f"Item {item_id} in cart {cart.id} set to quantity {quantity}")

        return {
            "message": "Item updated",
            "item": item_to_dict(item),
            "cart": self.cart_to_dict(cart),
        }

    def remove_item(self, caller: Caller, item_id: str) -> Dict[str, Any]:
        cart = self.find_cart(caller)
        item = self.repo.get_cart_item_by_id(cart.id, item_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        self.repo.delete_cart_item(item)

        self.write_totals(cart)
        self.repo.commit()

        logger.info(f"Item {item_id} removed from cart {cart.id}")

        return {
            "message": "Item removed",
            "cart": self.cart_to_dict(cart),
        }

    def clear(self, caller: Caller) -> Dict[str, Any]:
        cart = self.find_cart(caller)

        version = cart.version
        coupon_code = cart.coupon_code if cart.applied_coupon else ""

        removed = self.repo.delete_cart_items(cart.id)

        #only the shipping stays
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=version,
            new_data={
                "subtotal": pricing.ZERO,
                "discount": pricing.ZERO,
                "total": pricing.total(pricing.ZERO, pricing.ZERO, cart.shipping),
                "applied_coupon": False,
                "coupon_code": "",
                "version": version + 1,
                "updated_at": utcnow(),
            },
        )
        if rowcount == 0:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another operation, try again")

        self.repo.commit()

        logger.info(f"Cart {cart.id} cleared, {removed} items removed")

        error = self.release_coupon(coupon_code) if coupon_code else None

        return {
            "message": "Cart cleared",
            "cart": self.cart_to_dict(cart),
            "error": error,
        }

    def release_coupon(self, code: str) -> str | None:
        """
        Give one use of `code` back after the cart stopped carrying it.
        Runs after the cart commit, a failure only leaves the counter stale
        (the reconcile task fixes it) and is returned as a message.
        """
        try:
            self.coupons.decrement_usage(code)
            self.coupons.commit()
        except SQLAlchemyError as e:
            self.coupons.rollback()
            logger.warning(f"Failed to release usage of coupon {code}: {e}")
            return "Coupon usage counter could not be updated"
        return None

    def set_shipping_address(self, caller: Caller, address_id: str) -> Dict[str, Any]:
        user_id = caller.require_user()

        address = self.addresses.get_user_address(address_id, user_id)
        if not address:
            raise NotFoundError("Address not found")

        cart = self.get_or_create_cart(caller)

        self.write_totals(cart, shipping_address_id=address.id)
        self.repo.commit()

        logger.info(f"Cart {cart.id} ships to address {address.id}")

        return {
            "message": "Shipping address updated",
            "cart": self.cart_to_dict(cart),
        }

    def clear_shipping_address(self, caller: Caller) -> Dict[str, Any]:
        cart = self.find_cart(caller)

        self.write_totals(cart, shipping_address_id=None)
        self.repo.commit()

        logger.info(f"Cart {cart.id} shipping address cleared")

        return {
            "message": "Shipping address removed",
            "cart": self.cart_to_dict(cart),
        }
