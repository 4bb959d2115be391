import re
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.domain.caller import Caller
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.schemas import CategoryIn, CategoryUpdate, ProductIn, ProductUpdate
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def product_to_dict(product: ProductModel) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description or "",
        "price": product.price,
        "image": product.image or "",
        "category_id": product.category_id,
        "category_name": product.category_name,
    }


def category_to_dict(category: CategoryModel) -> Dict[str, Any]:
    return {"id": category.id, "name": category.name, "slug": category.slug}


class CatalogService:
    """Products and categories, the source of the snapshots carts take."""

    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    def _category(self, category_id: str) -> CategoryModel:
        category = self.repo.get_category(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def _product(self, product_id: str) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    #products
    def list_products(self, category_id: str | None = None) -> List[Dict[str, Any]]:
        if category_id:
            self._category(category_id)
        return [product_to_dict(p) for p in self.repo.list_products(category_id)]

    def get_product(self, product_id: str) -> Dict[str, Any]:
        return product_to_dict(self._product(product_id))

    def create_product(self, caller: Caller, payload: ProductIn) -> Dict[str, Any]:
        caller.require_admin()

        if payload.price <= 0:
            raise ValidationError("Price must be greater than zero")

        category = self._category(payload.category_id) if payload.category_id else None

        product = self.repo.add_product(
            ProductModel(
                name=payload.name,
                description=payload.description,
                price=payload.price,
                image=payload.image,
                category_id=category.id if category else None,
                category_name=category.name if category else None,
            )
        )

        logger.info(f"Product {product.id} created")
        return product_to_dict(product)

    def update_product(self, caller: Caller, product_id: str, payload: ProductUpdate) -> Dict[str, Any]:
        caller.require_admin()
        product = self._product(product_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        if "price" in changes and changes["price"] <= 0:
            raise ValidationError("Price must be greater than zero")

        if "category_id" in changes:
            category = self._category(changes.pop("category_id"))
            product.category_id = category.id
            product.category_name = category.name

        for field, value in changes.items():
            setattr(product, field, value)
        product.updated_at = utcnow()

        self.repo.commit()

        logger.info(f"Product {product_id} updated")
        return product_to_dict(product)

    def delete_product(self, caller: Caller, product_id: str) -> Dict[str, Any]:
        caller.require_admin()
        product = self._product(product_id)

        #order items are snapshots without a FK, only live carts block
        if self.repo.product_in_carts(product.id):
            raise ConflictError("Product cannot be deleted, it is in shopping carts")

        self.repo.delete_product(product)

        logger.info(f"Product {product_id} deleted")
        return {"message": "Product deleted"}

    #categories
    def list_categories(self) -> List[Dict[str, Any]]:
        return [category_to_dict(c) for c in self.repo.list_categories()]

    def get_category(self, category_id: str) -> Dict[str, Any]:
        return category_to_dict(self._category(category_id))

    def create_category(self, caller: Caller, payload: CategoryIn) -> Dict[str, Any]:
        caller.require_admin()

        name = payload.name.strip()
        if not name:
            raise ValidationError("Category name is required")
        if self.repo.category_name_taken(name):
            raise ConflictError("A category with this name already exists")

        slug = slugify(payload.slug or name)
        if not slug:
            raise ValidationError("Category slug cannot be empty")
        if self.repo.category_slug_taken(slug):
            raise ConflictError("A category with this slug already exists")

        category = self.repo.add_category(CategoryModel(name=name, slug=slug))

        logger.info(f"Category {category.id} ({category.slug}) created")
        return category_to_dict(category)

    def update_category(self, caller: Caller, category_id: str, payload: CategoryUpdate) -> Dict[str, Any]:
        """
        Rename a category and/or change its slug. Products carry the
        category name as a copy, a rename rewrites it in the same commit.
        """
        caller.require_admin()
        category = self._category(category_id)

        renamed = 0
        if payload.name is not None:
            name = payload.name.strip()
            if not name:
                raise ValidationError("Category name is required")
            if self.repo.category_name_taken(name, exclude_id=category.id):
                raise ConflictError("A category with this name already exists")
            if name != category.name:
                category.name = name
                renamed = self.repo.rename_category_products(category.id, name)

        if payload.slug is not None:
            slug = slugify(payload.slug)
            if not slug:
                raise ValidationError("Category slug cannot be empty")
            if self.repo.category_slug_taken(slug, exclude_id=category.id):
                raise ConflictError("A category with this slug already exists")
            category.slug = slug

        category.updated_at = utcnow()
        self.repo.commit()

        logger.info(f"Category {category_id} updated, {renamed} products renamed")
        return category_to_dict(category)

    def delete_category(self, caller: Caller, category_id: str) -> Dict[str, Any]:
        caller.require_admin()
        category = self._category(category_id)

        if self.repo.category_has_products(category.id):
            raise ConflictError("Category cannot be deleted, it still has products")

        self.repo.delete_category(category)

        logger.info(f"Category {category_id} deleted")
        return {"message": "Category deleted"}
