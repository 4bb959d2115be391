from sqlalchemy import Column, ForeignKey, String, Text, DateTime, Numeric

from storefront.data.database import Base, new_id, utcnow


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(String, nullable=False, default="")

    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    category_name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
