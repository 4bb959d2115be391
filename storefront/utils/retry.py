# storefront/utils/retry.py
import logging

import redis
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def redis_retry(attempts: int = 3):
    """Retry transient redis failures; store writes are never retried."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
