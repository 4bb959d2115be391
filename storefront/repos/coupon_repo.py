# storefront/repos/coupon_repo.py
from typing import List

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.coupon import CouponModel


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_coupon(self, coupon_id: str) -> CouponModel | None:
        return self.db.get(CouponModel, coupon_id)

    def get_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(CouponModel.code == code)
        ).scalar_one_or_none()

    def get_active_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(
                CouponModel.code == code,
                CouponModel.is_active.is_(True),
            )
        ).scalar_one_or_none()

    def code_taken(self, code: str, exclude_id: str | None = None) -> bool:
        stmt = select(CouponModel.id).where(CouponModel.code == code)
        if exclude_id:
            stmt = stmt.where(CouponModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def list_coupons(self) -> List[CouponModel]:
        return list(
            self.db.execute(
                select(CouponModel).order_by(CouponModel.created_at.desc())
            ).scalars().all()
        )

    def add_coupon(self, coupon: CouponModel) -> CouponModel:
        self.db.add(coupon)
        self.db.flush()
        return coupon

    def delete_coupon(self, coupon: CouponModel) -> None:
        self.db.delete(coupon)
        self.db.flush()

    #counter updates are single statements, never read-modify-write
    def increment_usage(self, coupon_id: str) -> int:
        """Bump times_used unless max_uses is already reached, returns rowcount."""
        return self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                or_(
                    CouponModel.max_uses.is_(None),
                    CouponModel.times_used < CouponModel.max_uses,
                ),
            )
            .values(times_used=CouponModel.times_used + 1)
            .execution_options(synchronize_session=False)
        ).rowcount

    def decrement_usage(self, code: str) -> int:
        """Lower times_used by one, floored at zero, returns rowcount."""
        return self.db.execute(
            update(CouponModel)
            .where(CouponModel.code == code, CouponModel.times_used > 0)
            .values(times_used=CouponModel.times_used - 1)
            .execution_options(synchronize_session=False)
        ).rowcount

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
