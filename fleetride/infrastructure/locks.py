"""
Redis-based distributed lock.

Used by the notification outbox dispatcher so that only one API process
drains the outbox at a time.  Acquire is ``SET NX PX`` with an owner token;
release is a Lua script that only deletes the key while the caller still
owns it, so an expired holder can never drop a lock that has since passed
to someone else.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

class LockNotAcquired(RuntimeError):
    pass


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, name: str, ttl_seconds: float = 30
    ):
        self.redis = client
        self.key = f"lock:{name}"
        self.ttl_ms = int(ttl_seconds * 1000)
        self.token = uuid.uuid4().hex
        self.held = False

    async def acquire(self) -> bool:
        """Single non-blocking attempt.  Returns True on success."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, px=self.ttl_ms)
        )
        return self.held

    async def release(self) -> None:
        if not self.held:
            return
        await self.redis.eval(_RELEASE, 1, self.key, self.token)
        self.held = False

    async def __aenter__(self) -> "DistributedLock":
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
