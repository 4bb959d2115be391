from typing import Dict, Any, List

from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.address import AddressModel
from storefront.domain.caller import Caller
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.domain.schemas import AddressIn, AddressUpdate
from storefront.repos.address_repo import AddressRepo
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("postal_code", "street", "number", "neighborhood", "city", "state")


def address_to_dict(address: AddressModel) -> Dict[str, Any]:
    return {
        "id": address.id,
        "user_id": address.user_id,
        "postal_code": address.postal_code,
        "street": address.street,
        "number": address.number,
        "complement": address.complement,
        "neighborhood": address.neighborhood,
        "city": address.city,
        "state": address.state,
        "is_default": address.is_default,
    }


class AddressService:
    """
    Address book of the caller.
    Every write that can touch is_default runs under the per-user lock and
    commits the clear and the set together, so a user never has two
    default addresses.
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = AddressRepo(db)
        self.users = UserRepo(db)
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.lock_service = lock_service

    @staticmethod
    def lock_key(user_id: str) -> str:
        return f"user:{user_id}:addresses"

    def _find(self, user_id: str, address_id: str) -> AddressModel:
        address = self.repo.get_user_address(address_id, user_id)
        if not address:
            raise NotFoundError("Address not found")
        return address

    def _clear_defaults(self, user_id: str, keep_id: str | None = None) -> int:
        cleared = 0
        for other in self.repo.list_user_defaults(user_id):
            if other.id == keep_id:
                continue
            other.is_default = False
            cleared += 1
        return cleared

    #query
    def list_addresses(self, caller: Caller) -> List[Dict[str, Any]]:
        user_id = caller.require_user()
        if not self.users.get_user(user_id):
            raise NotFoundError("User not found")
        return [address_to_dict(a) for a in self.repo.list_user_addresses(user_id)]

    def get_address(self, caller: Caller, address_id: str) -> Dict[str, Any]:
        user_id = caller.require_user()
        return address_to_dict(self._find(user_id, address_id))

    #commands
    def create_address(self, caller: Caller, payload: AddressIn) -> Dict[str, Any]:
        user_id = caller.require_user()

        missing = [f for f in REQUIRED_FIELDS if not getattr(payload, f)]
        if missing:
            raise ValidationError(
                "All fields are required except complement",
                detail=", ".join(missing),
            )
        if not self.users.get_user(user_id):
            raise NotFoundError("User not found")

        with self.lock_service.hold(self.lock_key(user_id)):
            if payload.is_default:
                self._clear_defaults(user_id)

            address = self.repo.add_address(
                AddressModel(
                    user_id=user_id,
                    postal_code=payload.postal_code,
                    street=payload.street,
                    number=payload.number,
                    complement=payload.complement or None,
                    neighborhood=payload.neighborhood,
                    city=payload.city,
                    state=payload.state,
                    is_default=payload.is_default,
                )
            )
            self.repo.commit()

        logger.info(f"Address {address.id} created for user {user_id} (default={payload.is_default})")
        return address_to_dict(address)

    def update_address(self, caller: Caller, address_id: str, payload: AddressUpdate) -> Dict[str, Any]:
        user_id = caller.require_user()
        changes = payload.model_dump(exclude_unset=True)

        for field in REQUIRED_FIELDS:
            if field in changes and not changes[field]:
                raise ValidationError(f"Field {field} cannot be empty")

        with self.lock_service.hold(self.lock_key(user_id)):
            address = self._find(user_id, address_id)

            if changes.get("is_default"):
                self._clear_defaults(user_id, keep_id=address.id)

            for field, value in changes.items():
                if value is None and field != "complement":
                    continue
                setattr(address, field, value)
            address.updated_at = utcnow()

            self.repo.commit()

        logger.info(f"Address {address_id} updated: {sorted(changes)}")
        return address_to_dict(address)

    def set_default(self, caller: Caller, address_id: str) -> Dict[str, Any]:
        user_id = caller.require_user()

        with self.lock_service.hold(self.lock_key(user_id)):
            address = self._find(user_id, address_id)
            cleared = self._clear_defaults(user_id, keep_id=address.id)
            address.is_default = True
            self.repo.commit()

        logger.info(f"Address {address_id} is now default for user {user_id}, {cleared} cleared")
        return {
            "message": "Default address updated",
            "address": address_to_dict(address),
        }

    def delete_address(self, caller: Caller, address_id: str) -> Dict[str, Any]:
        user_id = caller.require_user()

        with self.lock_service.hold(self.lock_key(user_id)):
            address = self._find(user_id, address_id)

            if self.carts.address_in_use(address.id):
                raise ConflictError("Address cannot be deleted, it is used by a cart")
            if self.orders.address_in_use(address.id):
                raise ConflictError("Address cannot be deleted, it is used by an order")

            was_default = address.is_default
            self.repo.delete_address(address)

            promoted = None
            if was_default:
                remaining = self.repo.list_user_addresses(user_id)
                if remaining:
                    promoted = remaining[0]
                    promoted.is_default = True

            self.repo.commit()

        if promoted is not None:
            logger.info(f"Address {address_id} deleted, {promoted.id} promoted to default")
        else:
            logger.info(f"Address {address_id} deleted")

        return {"message": "Address deleted"}
