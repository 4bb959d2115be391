# storefront/repos/address_repo.py
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.address import AddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user_address(self, address_id: str, user_id: str) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel).where(
                AddressModel.id == address_id,
                AddressModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def list_user_addresses(self, user_id: str) -> List[AddressModel]:
        return list(
            self.db.execute(
                select(AddressModel)
                .where(AddressModel.user_id == user_id)
                .order_by(AddressModel.created_at)
            ).scalars().all()
        )

    def list_user_defaults(self, user_id: str) -> List[AddressModel]:
        return list(
            self.db.execute(
                select(AddressModel).where(
                    AddressModel.user_id == user_id,
                    AddressModel.is_default.is_(True),
                )
            ).scalars().all()
        )

    def add_address(self, address: AddressModel) -> AddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete_address(self, address: AddressModel) -> None:
        self.db.delete(address)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()
