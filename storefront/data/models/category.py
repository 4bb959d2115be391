from sqlalchemy import Column, String, DateTime

from storefront.data.database import Base, new_id, utcnow


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, unique=True)
    slug = Column(String, nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
