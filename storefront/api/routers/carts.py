# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.schemas import (
    CartOut,
    CartResult,
    CouponCodeIn,
    ItemIn,
    ItemQuantityIn,
    ShippingAddressIn,
)
from storefront.services.cart_service import CartService
from storefront.services.coupon_service import CouponService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return CartService(db).get_cart(caller)


@router.delete("", response_model=CartResult)
def clear_cart(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return CartService(db).clear(caller)


@router.post("/items", response_model=CartResult, status_code=201)
def add_item(
    payload: ItemIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CartService(db).add_item(caller, payload.product_id, payload.quantity)


@router.put("/items/{item_id}", response_model=CartResult)
def update_item(
    item_id: str,
    payload: ItemQuantityIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CartService(db).update_item(caller, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=CartResult)
def remove_item(
    item_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CartService(db).remove_item(caller, item_id)


@router.post("/coupon", response_model=CartResult)
def apply_coupon(
    payload: CouponCodeIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CouponService(db).apply(caller, payload.code)


@router.delete("/coupon", response_model=CartResult)
def remove_coupon(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return CouponService(db).remove(caller)


@router.put("/shipping-address", response_model=CartResult)
def set_shipping_address(
    payload: ShippingAddressIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CartService(db).set_shipping_address(caller, payload.address_id)


@router.delete("/shipping-address", response_model=CartResult)
def clear_shipping_address(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return CartService(db).clear_shipping_address(caller)
