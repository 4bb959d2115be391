# storefront/domain/caller.py
from dataclasses import dataclass

from storefront.domain.errors import ForbiddenError, UnauthorizedError


@dataclass(frozen=True)
class Caller:
    """Identity resolved by the authentication gateway for one request."""

    user_id: str = ""
    is_admin: bool = False

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)

    def require_user(self) -> str:
        if not self.authenticated:
            raise UnauthorizedError("User is not authenticated")
        return self.user_id

    def require_admin(self) -> str:
        user_id = self.require_user()
        if not self.is_admin:
            raise ForbiddenError("Only administrators can perform this operation")
        return user_id
