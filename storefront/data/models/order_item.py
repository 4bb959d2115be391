from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, DateTime
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id, utcnow


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    #no FK on purpose: products may be deleted after the order is placed
    product_id = Column(String(36), nullable=False, index=True)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    order = relationship("OrderModel", back_populates="items")
