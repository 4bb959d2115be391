#storefront/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id, utcnow


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    #one cart per user
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)

    applied_coupon = Column(Boolean, nullable=False, default=False)
    coupon_code = Column(String, nullable=False, default="")
    shipping_address_id = Column(String(36), ForeignKey("addresses.id"), nullable=True)

    #optimistic locking token, bumped by every totals write
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )
