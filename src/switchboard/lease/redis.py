"""Lease store backed by a single Redis key.

Uses plain GET / SET / DEL. SET is issued without NX or an expiry so the
store keeps the same last-write-wins behaviour as the annotation store and
expiry stays the claim protocol's decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from switchboard.lease.store import LeaseStoreError

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from switchboard.config import Settings


class RedisLeaseStore:
    """Lease store over one Redis key."""

    def __init__(self, client: Redis, key: str) -> None:
        self.client = client
        self.key = key

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisLeaseStore:
        client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.store_timeout,
            socket_connect_timeout=settings.store_timeout,
        )
        return cls(client, settings.redis_key)

    async def get(self) -> str | None:
        try:
            value = await self.client.get(self.key)
        except RedisError as e:
            raise LeaseStoreError("get", str(e)) from e
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else value

    async def set(self, value: str) -> None:
        try:
            await self.client.set(self.key, value)
        except RedisError as e:
            raise LeaseStoreError("set", str(e)) from e

    async def clear(self) -> None:
        try:
            await self.client.delete(self.key)
        except RedisError as e:
            raise LeaseStoreError("clear", str(e)) from e

    async def close(self) -> None:
        await self.client.aclose()
