import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError

from cartorder.domain.errors import ConflictError
from cartorder.utils.retry import lock_wait_retry, redis_retry
from cartorder.utils.settings import (
    CART_LOCK_TTL_SECONDS,
    LOCK_WAIT_ATTEMPTS,
    LOCK_WAIT_SECONDS,
    REDIS_URL,
)
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)

#LUA compare and delete, atomic
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis runs the script as one uninterruptible step, nobody can
#slip in between GET and DEL, so only the holder frees its own lock


class LockService:
    """
    - per-customer cart lock (SET NX EX)
    - release only by the holder token (lua)
    - bounded wait, the lock expires by itself if the holder dies
    """

    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        wait_attempts: int = LOCK_WAIT_ATTEMPTS,
        wait_seconds: float = LOCK_WAIT_SECONDS,
    ):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.wait_attempts = wait_attempts
        self.wait_seconds = wait_seconds

    @staticmethod
    def _key(customer_id: int) -> str:
        return f"cart:{customer_id}:lock"

    @redis_retry()
    def acquire_cart_lock(self, customer_id: int, token: str, ttl: int) -> bool:
        key = self._key(customer_id)
        #SET cart:1:lock "<token>" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True,
                ex=ttl,
            )
        )

    @redis_retry()
    def release_cart_lock(self, customer_id: int, token: str) -> bool:
        key = self._key(customer_id)
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    def _wait_for_lock(self, customer_id: int, token: str, ttl: int) -> bool:
        waiter = lock_wait_retry(self.wait_attempts, self.wait_seconds)
        return waiter(self.acquire_cart_lock)(customer_id, token, ttl)

    @contextmanager
    def cart_lock(self, customer_id: int, ttl: int = CART_LOCK_TTL_SECONDS):
        token = uuid.uuid4().hex
        if not self._wait_for_lock(customer_id, token, ttl):
            logger.warning(f"Cart lock for customer {customer_id} still busy, giving up")
            raise ConflictError(f"Cart of customer {customer_id} is being modified, try again")

        logger.debug(f"Acquired cart lock for customer {customer_id}")
        try:
            yield token
        finally:
            try:
                self.release_cart_lock(customer_id, token)
            except RedisError as e:
                #TTL frees it anyway
                logger.warning(f"Failed to release cart lock for customer {customer_id}: {e}")
