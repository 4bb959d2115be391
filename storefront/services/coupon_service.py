from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.coupon import CouponModel
from storefront.domain import pricing
from storefront.domain.caller import Caller
from storefront.domain.enums import DiscountType, parse_enum
from storefront.domain.errors import (
    ConflictError,
    ExpiredError,
    MinimumPurchaseError,
    NotFoundError,
    UsageExceededError,
    ValidationError,
)
from storefront.domain.schemas import CouponCreate, CouponUpdate
from storefront.repos.cart_repo import CartRepo
from storefront.repos.coupon_repo import CouponRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    #sqlite hands datetimes back naive, they are stored in UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < now


def coupon_to_dict(coupon: CouponModel) -> Dict[str, Any]:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "min_purchase": coupon.min_purchase,
        "expires_at": coupon.expires_at,
        "is_active": coupon.is_active,
        "max_uses": coupon.max_uses,
        "times_used": coupon.times_used,
    }


class CouponService:
    """
    Coupon rules and the usage ledger.
    validate only reads, apply/remove change the caller's cart and then
    move the usage counter with single conditional updates
    """

    def __init__(self, db: Session):
        self.repo = CouponRepo(db)
        self.carts = CartService(db)
        self.cart_repo = CartRepo(db)
        self.orders = OrderRepo(db)

    #query
    def validate(self, code: str, base) -> Dict[str, Any]:
        """
        Check every eligibility rule of `code` against the amount `base`.

        Raises NotFoundError, ExpiredError, UsageExceededError or
        MinimumPurchaseError, in that order. Returns the coupon and the
        discount it would grant on `base`.
        """
        coupon = self.repo.get_active_by_code(code)
        if not coupon:
            raise NotFoundError("Coupon not found or inactive")

        if is_expired(coupon.expires_at):
            raise ExpiredError("Coupon expired")

        if coupon.max_uses is not None and coupon.times_used >= coupon.max_uses:
            raise UsageExceededError("Coupon reached its maximum number of uses")

        base = pricing.to_money(base)
        if base < pricing.to_money(coupon.min_purchase):
            raise MinimumPurchaseError(
                "Minimum purchase for this coupon not reached",
                min_purchase=coupon.min_purchase,
            )

        return {
            "coupon": coupon,
            "discount": pricing.discount(coupon.discount_type, coupon.discount_value, base),
        }

    def check(self, code: str, cart_total) -> Dict[str, Any]:
        """Validation report for the public endpoint, rule failures are not errors there."""
        if not code:
            raise ValidationError("Coupon code is required")

        try:
            result = self.validate(code, cart_total)
        except MinimumPurchaseError as e:
            return {"message": e.message, "valid": False, "min_purchase": e.min_purchase}
        except (ExpiredError, UsageExceededError) as e:
            return {"message": e.message, "valid": False}

        return {
            "message": "Coupon is valid",
            "valid": True,
            "coupon": coupon_to_dict(result["coupon"]),
            "discount": result["discount"],
        }

    #commands
    def apply(self, caller: Caller, code: str) -> Dict[str, Any]:
        caller.require_user()
        code = (code or "").strip()
        if not code:
            raise ValidationError("Coupon code is required")

        cart = self.carts.find_cart(caller)
        if cart.applied_coupon and cart.coupon_code == code:
            raise ValidationError("Coupon is already applied to this cart")

        #validate against what the cart holds now, not a client supplied total
        current = pricing.subtotal(self.cart_repo.get_cart_items(cart.id))
        result = self.validate(code, current)
        coupon = result["coupon"]

        previous = cart.coupon_code if cart.applied_coupon else ""

        self.carts.write_totals(cart, applied_coupon=True, coupon_code=coupon.code)
        self.cart_repo.commit()

        logger.info(f"Coupon {coupon.code} applied to cart {cart.id}")

        error = self._claim(coupon)
        if previous:
            error = self.carts.release_coupon(previous) or error

        return {
            "message": "Coupon applied",
            "cart": self.carts.cart_to_dict(cart),
            "error": error,
        }

    def _claim(self, coupon: CouponModel) -> str | None:
        coupon_id, code = coupon.id, coupon.code
        try:
            rowcount = self.repo.increment_usage(coupon_id)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.warning(f"Failed to count usage of coupon {code}: {e}")
            return "Coupon applied but its usage counter could not be updated"

        if rowcount == 0:
            #cap reached between validate and increment
            logger.warning(f"Coupon {code} reached max_uses concurrently, counter not updated")
            return "Coupon applied but it reached its maximum number of uses"
        return None

    def remove(self, caller: Caller) -> Dict[str, Any]:
        cart = self.carts.find_cart(caller)
        if not cart.applied_coupon or not cart.coupon_code:
            raise ValidationError("No coupon applied to this cart")

        code = cart.coupon_code

        self.carts.write_totals(cart, applied_coupon=False, coupon_code="")
        self.cart_repo.commit()

        logger.info(f"Coupon {code} removed from cart {cart.id}")

        error = self.carts.release_coupon(code)

        return {
            "message": "Coupon removed",
            "cart": self.carts.cart_to_dict(cart),
            "error": error,
        }

    #admin
    def list_coupons(self, caller: Caller) -> List[Dict[str, Any]]:
        caller.require_admin()
        return [coupon_to_dict(c) for c in self.repo.list_coupons()]

    def get_coupon(self, caller: Caller, coupon_id: str) -> Dict[str, Any]:
        caller.require_admin()
        return coupon_to_dict(self._find(coupon_id))

    def _find(self, coupon_id: str) -> CouponModel:
        coupon = self.repo.get_coupon(coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")
        return coupon

    def create_coupon(self, caller: Caller, payload: CouponCreate) -> Dict[str, Any]:
        caller.require_admin()

        code = payload.code.strip()
        if not code:
            raise ValidationError("Coupon code is required")
        kind = parse_enum(DiscountType, payload.discount_type, "discount type")
        if payload.discount_value <= 0:
            raise ValidationError("Discount value must be greater than zero")
        if payload.min_purchase < 0:
            raise ValidationError("Minimum purchase cannot be negative")
        if payload.max_uses is not None and payload.max_uses < 1:
            raise ValidationError("Max uses must be at least one")

        if self.repo.code_taken(code):
            raise ConflictError("A coupon with this code already exists")

        coupon = self.repo.add_coupon(
            CouponModel(
                code=code,
                discount_type=kind.value,
                discount_value=Decimal(payload.discount_value),
                min_purchase=Decimal(payload.min_purchase),
                expires_at=payload.expires_at,
                is_active=payload.is_active,
                max_uses=payload.max_uses,
                times_used=0,
            )
        )
        self.repo.commit()

        logger.info(f"Coupon {coupon.code} created")
        return coupon_to_dict(coupon)

    def update_coupon(self, caller: Caller, coupon_id: str, payload: CouponUpdate) -> Dict[str, Any]:
        caller.require_admin()
        coupon = self._find(coupon_id)

        changes = payload.model_dump(exclude_unset=True)

        if changes.get("code") is not None:
            code = changes["code"].strip()
            if not code:
                raise ValidationError("Coupon code is required")
            if code != coupon.code and self.repo.code_taken(code, exclude_id=coupon.id):
                raise ConflictError("A coupon with this code already exists")
            if code != coupon.code and self.cart_repo.count_carts_with_coupon(coupon.code):
                raise ConflictError("Coupon code cannot change while carts have it applied")
            coupon.code = code
        if changes.get("discount_type") is not None:
            coupon.discount_type = parse_enum(
                DiscountType, changes["discount_type"], "discount type"
            ).value
        if changes.get("discount_value") is not None:
            if changes["discount_value"] <= 0:
                raise ValidationError("Discount value must be greater than zero")
            coupon.discount_value = changes["discount_value"]
        if changes.get("min_purchase") is not None:
            if changes["min_purchase"] < 0:
                raise ValidationError("Minimum purchase cannot be negative")
            coupon.min_purchase = changes["min_purchase"]
        if "expires_at" in changes:
            coupon.expires_at = changes["expires_at"]
        if changes.get("is_active") is not None:
            coupon.is_active = changes["is_active"]
        if "max_uses" in changes:
            if changes["max_uses"] is not None and changes["max_uses"] < 1:
                raise ValidationError("Max uses must be at least one")
            coupon.max_uses = changes["max_uses"]

        coupon.updated_at = utcnow()
        self.repo.commit()

        logger.info(f"Coupon {coupon.id} updated: {sorted(changes)}")
        return coupon_to_dict(coupon)

    def delete_coupon(self, caller: Caller, coupon_id: str) -> Dict[str, Any]:
        caller.require_admin()
        coupon = self._find(coupon_id)

        if self.cart_repo.count_carts_with_coupon(coupon.code):
            raise ConflictError("Coupon cannot be deleted while carts have it applied")

        self.repo.delete_coupon(coupon)
        self.repo.commit()

        logger.info(f"Coupon {coupon_id} deleted")
        return {"message": "Coupon deleted"}

    #bookkeeping
    def reconcile_usage(self) -> int:
        """
        Recount times_used from the rows that actually carry each code:
        carts with the coupon applied plus orders placed with it, capped at
        max_uses. Returns how many coupons were corrected.
        """
        fixed = 0
        for coupon in self.repo.list_coupons():
            used = self.cart_repo.count_carts_with_coupon(coupon.code)
            used += self.orders.count_orders_with_coupon(coupon.code)
            if coupon.max_uses is not None:
                used = min(used, coupon.max_uses)

            if used != coupon.times_used:
                logger.info(f"Coupon {coupon.code} times_used {coupon.times_used} -> {used}")
                coupon.times_used = used
                fixed += 1

        self.repo.commit()
        return fixed
