from sqlalchemy import Column, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id, utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    #copied from the cart at checkout, never recomputed
    total = Column(Numeric(10, 2), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)

    delivery_type = Column(String(16), nullable=False)  # pickup, delivery
    status = Column(String(16), nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    address_id = Column(String(36), ForeignKey("addresses.id"), nullable=True)

    payment_method = Column(String, nullable=False)
    payment_status = Column(String, nullable=False)
    coupon_code = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.created_at",
    )
