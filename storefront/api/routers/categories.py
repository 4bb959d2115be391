from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_caller
from storefront.data.database import get_db
from storefront.domain.caller import Caller
from storefront.domain.schemas import CategoryIn, CategoryOut, CategoryUpdate, MessageOut
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return CatalogService(db).list_categories()


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryIn,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).create_category(caller, payload)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: str, db: Session = Depends(get_db)):
    return CatalogService(db).get_category(category_id)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).update_category(caller, category_id, payload)


@router.delete("/{category_id}", response_model=MessageOut)
def delete_category(
    category_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).delete_category(caller, category_id)
