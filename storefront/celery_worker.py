# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    COUPON_RECONCILE_INTERVAL_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

#tasks live in their own modules, celery has to import them to register
celery_app.conf.imports = (
    "storefront.tasks.reconcile",
)

celery_app.conf.beat_schedule = {
    "reconcile-coupon-usage": {
        "task": "storefront.tasks.reconcile.reconcile_coupon_usage_task",
        "schedule": COUPON_RECONCILE_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
