# storefront/tasks/reconcile.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.coupon_service import CouponService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.reconcile.reconcile_coupon_usage_task")
def reconcile_coupon_usage_task():
    logger.info("Coupon usage reconcile task started")

    db = SessionLocal()
    try:
        fixed = CouponService(db).reconcile_usage()
        logger.info(f"Coupon usage reconciled, {fixed} counters corrected")
        return fixed
    finally:
        db.close()
