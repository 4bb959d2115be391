# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field


# -------------------------------------------------------------------
# users
# -------------------------------------------------------------------
class UserCreate(BaseModel):
    """Registers a user already known to the authentication gateway."""

    id: str | None = Field(None, min_length=1, max_length=36)
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)


class UserRead(BaseModel):
    id: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# catalog
# -------------------------------------------------------------------
class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = None
    slug: str | None = None


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: Decimal
    image: str = ""
    category_id: str | None = None


class ProductUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    image: str | None = None
    category_id: str | None = None


class ProductOut(BaseModel):
    id: str
    name: str
    description: str
    price: Decimal
    image: str
    category_id: str | None = None
    category_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# cart
# -------------------------------------------------------------------
class ItemIn(BaseModel):
    """Adds a product to the caller's cart."""

    product_id: str = Field(..., min_length=1)
    quantity: int = 1


class ItemQuantityIn(BaseModel):
    quantity: int


class CouponCodeIn(BaseModel):
    code: str = ""


class ShippingAddressIn(BaseModel):
    address_id: str = Field(..., min_length=1)


class CartItemOut(BaseModel):
    id: str
    product_id: str
    name: str
    price: Decimal
    image: str
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: str
    user_id: str
    subtotal: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    applied_coupon: bool
    coupon_code: str
    shipping_address_id: str | None = None
    items: List[CartItemOut] = []
    updated_at: datetime | None = None


class CartResult(BaseModel):
    message: str
    cart: CartOut
    item: CartItemOut | None = None
    error: str | None = None


# -------------------------------------------------------------------
# coupons
# -------------------------------------------------------------------
class CouponCreate(BaseModel):
    code: str = ""
    discount_type: str
    discount_value: Decimal
    min_purchase: Decimal = Decimal("0")
    expires_at: datetime | None = None
    is_active: bool = True
    max_uses: int | None = None


class CouponUpdate(BaseModel):
    code: str | None = None
    discount_type: str | None = None
    discount_value: Decimal | None = None
    min_purchase: Decimal | None = None
    expires_at: datetime | None = None
    is_active: bool | None = None
    max_uses: int | None = None


class CouponOut(BaseModel):
    id: str
    code: str
    discount_type: str
    discount_value: Decimal
    min_purchase: Decimal
    expires_at: datetime | None = None
    is_active: bool
    max_uses: int | None = None
    times_used: int

    model_config = ConfigDict(from_attributes=True)


class CouponValidateIn(BaseModel):
    code: str = ""
    cart_total: Decimal = Decimal("0")


class CouponValidationOut(BaseModel):
    message: str
    valid: bool
    coupon: CouponOut | None = None
    discount: Decimal | None = None
    min_purchase: Decimal | None = None


# -------------------------------------------------------------------
# orders
# -------------------------------------------------------------------
class OrderCreate(BaseModel):
    """Checkout payload, the cart itself is taken from the caller."""

    address_id: str = ""
    delivery_type: str = ""
    payment_method: str = ""
    payment_status: str = ""


class OrderStatusUpdate(BaseModel):
    status: str


class OrderItemOut(BaseModel):
    id: str
    product_id: str
    name: str
    price: Decimal
    image: str
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: str
    user_id: str
    date: datetime
    total: Decimal
    shipping: Decimal
    discount: Decimal
    delivery_type: str
    status: str
    address_id: str | None = None
    payment_method: str
    payment_status: str
    coupon_code: str | None = None
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderResult(BaseModel):
    message: str
    order: OrderOut
    error: str | None = None


# -------------------------------------------------------------------
# addresses
# -------------------------------------------------------------------
class AddressIn(BaseModel):
    postal_code: str = ""
    street: str = ""
    number: str = ""
    complement: str | None = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    is_default: bool = False


class AddressUpdate(BaseModel):
    postal_code: str | None = None
    street: str | None = None
    number: str | None = None
    complement: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    is_default: bool | None = None


class AddressOut(BaseModel):
    id: str
    user_id: str
    postal_code: str
    street: str
    number: str
    complement: str | None = None
    neighborhood: str
    city: str
    state: str
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


class MessageOut(BaseModel):
    message: str
    error: str | None = None


class AddressResult(BaseModel):
    message: str
    address: AddressOut
