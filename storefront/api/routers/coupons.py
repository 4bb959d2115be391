from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import (
    CouponCreate,
    CouponOut,
    CouponUpdate,
    CouponValidateIn,
    CouponValidationOut,
    MessageOut,
)
from storefront.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponValidationOut)
def validate_coupon(payload: CouponValidateIn, db: Session = Depends(get_db)):
    # rule failures are a 200 with valid=false, only an unknown code is a 404
    try:
        return CouponService(db).check(payload.code, payload.cart_total)
    except NotFoundError as e:
        return JSONResponse(status_code=404, content={"message": e.message, "valid": False})


@router.get("", response_model=List[CouponOut])
def list_coupons(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return CouponService(db).list_coupons(caller)


@router.post("", response_model=CouponOut, status_code=201)
def create_coupon(
    payload: CouponCreate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CouponService(db).create_coupon(caller, payload)


@router.get("/{coupon_id}", response_model=CouponOut)
def get_coupon(
    coupon_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CouponService(db).get_coupon(caller, coupon_id)


@router.put("/{coupon_id}", response_model=CouponOut)
def update_coupon(
    coupon_id: str,
    payload: CouponUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CouponService(db).update_coupon(caller, coupon_id, payload)


@router.delete("/{coupon_id}", response_model=MessageOut)
def delete_coupon(
    coupon_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CouponService(db).delete_coupon(caller, coupon_id)
