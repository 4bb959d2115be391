from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller, get_lock_service
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.schemas import (
    AddressIn,
    AddressOut,
    AddressResult,
    AddressUpdate,
    MessageOut,
)
from storefront.services.address_service import AddressService
from storefront.services.lock_service import LockService

router = APIRouter(prefix="/addresses", tags=["addresses"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> AddressService:
    return AddressService(db=db, lock_service=lock_service)


@router.get("", response_model=List[AddressOut])
def list_addresses(
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.list_addresses(caller)


@router.post("", response_model=AddressOut, status_code=201)
def create_address(
    payload: AddressIn,
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.create_address(caller, payload)


@router.get("/{address_id}", response_model=AddressOut)
def get_address(
    address_id: str,
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.get_address(caller, address_id)


@router.put("/{address_id}", response_model=AddressOut)
def update_address(
    address_id: str,
    payload: AddressUpdate,
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.update_address(caller, address_id, payload)


@router.put("/{address_id}/default", response_model=AddressResult)
def set_default(
    address_id: str,
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.set_default(caller, address_id)


@router.delete("/{address_id}", response_model=MessageOut)
def delete_address(
    address_id: str,
    caller: Caller = Depends(get_caller),
    svc: AddressService = Depends(get_service),
):
    return svc.delete_address(caller, address_id)
