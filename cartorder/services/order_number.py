# cartorder/services/order_number.py
from datetime import datetime, timezone

import redis

from cartorder.utils.retry import redis_retry
from cartorder.utils.settings import ORDER_NUMBER_PREFIX, ORDER_SEQUENCE_TTL_SECONDS, REDIS_URL
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class OrderNumberService:
    """
    Human readable order numbers: ORD20261017000042.

    The sequence is a redis INCR on a per-day key, so two checkouts on the
    same day always get different numbers. Gaps are fine (rolled back
    checkouts burn their number).
    """

    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        prefix: str = ORDER_NUMBER_PREFIX,
        ttl: int = ORDER_SEQUENCE_TTL_SECONDS,
    ):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.prefix = prefix
        self.ttl = ttl

    @redis_retry()
    def next_sequence(self, day: str) -> int:
        key = f"order_seq:{day}"
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.ttl)
        seq, _ = pipe.execute()
        return int(seq)

    def next_order_number(self, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        day = now.strftime("%Y%m%d")
        seq = self.next_sequence(day)
        number = f"{self.prefix}{day}{seq:06d}"
        logger.info(f"Minted order number {number}")
        return number
