# storefront/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")
LOCK_TTL_SECONDS = int(os.getenv("LOCK_TTL_SECONDS", 30))
COUPON_RECONCILE_INTERVAL_SECONDS = float(os.getenv("COUPON_RECONCILE_INTERVAL_SECONDS", 15*60))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
