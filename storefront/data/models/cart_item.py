from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id, utcnow


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)

    #snapshot taken when the product was added
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="u_cart_product"),)
