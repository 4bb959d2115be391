# storefront/api/__init__.py
from fastapi import APIRouter

from storefront.api.routers import (
    addresses,
    carts,
    categories,
    coupons,
    orders,
    products,
    users,
)

api_router = APIRouter(prefix="/api")
api_router.include_router(products.router)
api_router.include_router(categories.router)
api_router.include_router(users.router)
api_router.include_router(carts.router)
api_router.include_router(orders.router)
api_router.include_router(orders.admin_router)
api_router.include_router(addresses.router)
api_router.include_router(coupons.router)
