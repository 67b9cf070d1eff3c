"""Key-value persistence for the active undo batch.

There is a single slot under one fixed key. The serialized record carries its
own expiry; stores with native TTL support also expire the key so a stale
batch cannot outlive the undo window.
"""

from __future__ import annotations

from typing import Protocol

import redis
from loguru import logger

from app.config.settings import settings

UNDO_STORAGE_KEY = "bulk-edit-undo-data"


class UndoStore(Protocol):
    def load(self) -> str | None: ...

    def save(self, payload: str, ttl_seconds: int) -> None: ...

    def clear(self) -> None: ...


class InMemoryUndoStore:
    """Process-local slot. Expiry is enforced by the manager, not here."""

    def __init__(self) -> None:
        self._payload: str | None = None

    def load(self) -> str | None:
        return self._payload

    def save(self, payload: str, ttl_seconds: int) -> None:  # noqa: ARG002
        self._payload = payload

    def clear(self) -> None:
        self._payload = None


class RedisUndoStore:
    """Redis-backed slot, so an undo batch survives a restart within its window.

    Redis failures are logged and treated as an empty slot; the manager keeps
    its own in-process copy of the record.
    """

    def __init__(self, client: redis.Redis | None = None, key: str = UNDO_STORAGE_KEY):
        self._client = client or redis.from_url(settings.redis_url, decode_responses=True)
        self.key = key

    def load(self) -> str | None:
        try:
            value = self._client.get(self.key)
        except redis.RedisError as e:
            logger.warning("Redis undo read failed", key=self.key, error=str(e), event="undo_store_read_failed")
            return None
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    def save(self, payload: str, ttl_seconds: int) -> None:
        try:
            self._client.set(self.key, payload, ex=max(1, ttl_seconds))
        except redis.RedisError as e:
            logger.warning("Redis undo write failed", key=self.key, error=str(e), event="undo_store_write_failed")

    def clear(self) -> None:
        try:
            self._client.delete(self.key)
        except redis.RedisError as e:
            logger.warning("Redis undo delete failed", key=self.key, error=str(e), event="undo_store_delete_failed")


def create_undo_store(backend: str | None = None, key: str | None = None) -> UndoStore:
    """Build the undo store configured in settings (``UNDO_BACKEND``)."""
    backend = backend or settings.undo_backend
    key = key or settings.undo_storage_key
    if backend == "redis":
        logger.info("Using Redis undo store", key=key)
        return RedisUndoStore(key=key)
    return InMemoryUndoStore()
