"""Redis async connection pool and notification channel naming."""

import redis.asyncio as aioredis

from fleetride.config import settings
from fleetride.domain.enums import RecipientType

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


def notification_channel(recipient_type: RecipientType, recipient_id: int) -> str:
    """Pub/sub channel a recipient's live-notification transport subscribes to."""
    return f"notifications:{recipient_type.value}:{recipient_id}"
