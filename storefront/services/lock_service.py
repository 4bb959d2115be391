import uuid
from contextlib import contextmanager

import redis

from storefront.domain.errors import ConflictError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import LOCK_TTL_SECONDS, REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete in one lua call, so a lock can only be released by its owner
#redis runs the script atomically, nothing can slip in between GET and DEL
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Single-writer locks per aggregate (a user's address book, ...).
    -acquire with SET NX EX, the ttl frees locks of crashed workers
    -release only by the owner token
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def key(resource: str) -> str:
        return f"lock:{resource}"

    @redis_retry()
    def acquire_lock(self, resource: str, owner: str, ttl: int) -> bool:
        key = self.key(resource)
        logger.debug(f"Acquire lock {key} for {owner}")
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release_lock(self, resource: str, owner: str) -> bool:
        key = self.key(resource)
        logger.debug(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)

    @contextmanager
    def hold(self, resource: str, ttl: int = LOCK_TTL_SECONDS):
        owner = uuid.uuid4().hex
        if not self.acquire_lock(resource, owner, ttl):
            raise ConflictError(
                "Resource is being modified by another request, try again",
                detail=resource,
            )
        try:
            yield
        finally:
            try:
                self.release_lock(resource, owner)
            except redis.RedisError as e:
                #the ttl still frees it
                logger.warning(f"Failed to release lock {resource}: {e}")
