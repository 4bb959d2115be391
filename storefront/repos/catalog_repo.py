# storefront/repos/catalog_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    #products
    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def list_products(self, category_id: str | None = None) -> List[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.created_at.desc())
        if category_id:
            stmt = stmt.where(ProductModel.category_id == category_id)
        return list(self.db.execute(stmt).scalars().all())

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete_product(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.commit()

    def product_in_carts(self, product_id: str) -> bool:
        return self.db.execute(
            select(CartItemModel.id).where(CartItemModel.product_id == product_id).limit(1)
        ).first() is not None

    #categories
    def get_category(self, category_id: str) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def list_categories(self) -> List[CategoryModel]:
        return list(
            self.db.execute(select(CategoryModel).order_by(CategoryModel.name)).scalars().all()
        )

    def category_name_taken(self, name: str, exclude_id: str | None = None) -> bool:
        stmt = select(CategoryModel.id).where(CategoryModel.name == name)
        if exclude_id:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def category_slug_taken(self, slug: str, exclude_id: str | None = None) -> bool:
        stmt = select(CategoryModel.id).where(CategoryModel.slug == slug)
        if exclude_id:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def rename_category_products(self, category_id: str, name: str) -> int:
        """Rewrite the denormalized category name; the caller commits."""
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.category_id == category_id)
            .values(category_name=name)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def category_has_products(self, category_id: str) -> bool:
        return self.db.execute(
            select(ProductModel.id).where(ProductModel.category_id == category_id).limit(1)
        ).first() is not None

    def add_category(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category: CategoryModel) -> None:
        self.db.delete(category)
        self.db.commit()

    def commit(self) -> None:
        self.db.commit()
