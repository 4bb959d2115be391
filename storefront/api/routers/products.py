from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.schemas import MessageOut, ProductIn, ProductOut, ProductUpdate
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductOut])
def list_products(
    category_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_products(category_id)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).create_product(caller, payload)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return CatalogService(db).get_product(product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).update_product(caller, product_id, payload)


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).delete_product(caller, product_id)
