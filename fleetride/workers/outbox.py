"""
Notification Outbox Dispatcher
==============================

Runs every ``OUTBOX_INTERVAL_SECONDS`` (default 5 s).

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance drains the outbox
  at a time across multiple API processes.
* **SELECT … FOR UPDATE SKIP LOCKED** on ``notifications`` keeps a slow
  cycle and a fresh one from publishing the same row twice.

Algorithm per cycle
-------------------
1. Fetch the oldest undispatched notifications below the attempt cap.
2. Publish each as JSON on ``notifications:<recipient_type>:<recipient_id>``.
3. Stamp ``dispatched_at`` on success; bump ``attempts`` on failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetride.config import settings
from fleetride.infrastructure.database import async_session_factory
from fleetride.infrastructure.locks import DistributedLock
from fleetride.infrastructure.models import NotificationModel
from fleetride.infrastructure.redis_client import get_redis, notification_channel
from fleetride.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_outbox_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Outbox dispatcher started (interval=%ds)", settings.outbox_interval_seconds
    )


async def stop_outbox_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Outbox dispatcher stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: drain the outbox then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_dispatch_cycle()
        except Exception:
            logger.exception("Unhandled error in outbox cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.outbox_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


def _payload(notification: NotificationModel) -> str:
    return json.dumps(
        {
            "id": notification.id,
            "type": notification.type.value,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data,
            "created_at": (
                notification.created_at.isoformat()
                if notification.created_at
                else None
            ),
        }
    )


async def run_dispatch_cycle(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    redis: aioredis.Redis | None = None,
) -> int:
    """Execute one dispatch cycle.  Returns the number of rows published."""
    session_factory = session_factory or async_session_factory
    redis = redis or await get_redis()
    lock = DistributedLock(redis, "notification_outbox", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0

    published = 0
    try:
        async with session_factory() as session:
            async with session.begin():
                pending = await NotificationRepository(
                    session
                ).get_undispatched_for_update(
                    settings.outbox_batch_size, settings.outbox_max_attempts
                )
                for notification in pending:
                    channel = notification_channel(
                        notification.recipient_type, notification.recipient_id
                    )
                    try:
                        await redis.publish(channel, _payload(notification))
                    except RedisError:
                        notification.attempts += 1
                        logger.warning(
                            "Publishing notification %d failed (attempt %d/%d)",
                            notification.id,
                            notification.attempts,
                            settings.outbox_max_attempts,
                        )
                        continue
                    notification.dispatched_at = datetime.now(timezone.utc)
                    published += 1

        if published:
            logger.info("Outbox cycle: %d notifications published", published)
    except Exception:
        logger.exception("Error in outbox cycle")
    finally:
        await lock.release()

    return published
