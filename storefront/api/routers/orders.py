# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.schemas import OrderCreate, OrderOut, OrderResult, OrderStatusUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("", response_model=List[OrderOut])
def list_orders(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return OrderService(db).list_orders(caller)


@router.post("", response_model=OrderResult, status_code=201)
def create_order(
    payload: OrderCreate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return OrderService(db).create_order(
        caller,
        address_id=payload.address_id,
        delivery_type=payload.delivery_type,
        payment_method=payload.payment_method,
        payment_status=payload.payment_status,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return OrderService(db).get_order(caller, order_id)


@router.delete("/{order_id}", response_model=OrderResult)
def cancel_order(
    order_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return OrderService(db).cancel_order(caller, order_id)


@router.put("/{order_id}/status", response_model=OrderResult)
def update_status(
    order_id: str,
    payload: OrderStatusUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return OrderService(db).update_status(caller, order_id, payload.status)


@admin_router.get("", response_model=List[OrderOut])
def list_all_orders(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return OrderService(db).list_all_orders(caller)
