#every model has to be imported here so SQLAlchemy registers it in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.data.models.address import AddressModel
from storefront.data.models.coupon import CouponModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "AddressModel",
    "CouponModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
]
