from sqlalchemy import Column, ForeignKey, String, DateTime, Boolean

from storefront.data.database import Base, new_id, utcnow


class AddressModel(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    postal_code = Column(String(16), nullable=False)
    street = Column(String, nullable=False)
    number = Column(String(16), nullable=False)
    complement = Column(String, nullable=True)
    neighborhood = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)

    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
