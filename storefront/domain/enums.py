# storefront/domain/enums.py
from enum import Enum
from typing import Type, TypeVar

from storefront.domain.errors import ValidationError

E = TypeVar("E", bound=Enum)


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DeliveryType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


def parse_enum(enum_cls: Type[E], value, field: str) -> E:
    """Turn a raw string into a member of `enum_cls` or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field}. Use one of: {allowed}")
