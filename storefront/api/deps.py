# storefront/api/deps.py
from functools import lru_cache

from fastapi import Header

from storefront.domain.caller import Caller
from storefront.services.lock_service import LockService

TRUTHY = ("1", "true", "yes")


def get_caller(
    x_user_id: str = Header(default=""),
    x_user_admin: str = Header(default=""),
) -> Caller:
    """Identity forwarded by the authentication gateway in front of the service."""
    return Caller(
        user_id=x_user_id.strip(),
        is_admin=x_user_admin.strip().lower() in TRUTHY,
    )


@lru_cache
def get_lock_service() -> LockService:
    return LockService()
