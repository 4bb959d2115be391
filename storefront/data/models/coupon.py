from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean

from storefront.data.database import Base, new_id, utcnow


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=new_id)
    code = Column(String(64), nullable=False, unique=True, index=True)

    discount_type = Column(String(16), nullable=False)  # percentage, fixed
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_purchase = Column(Numeric(10, 2), nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    max_uses = Column(Integer, nullable=True)
    times_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
