"""Timestamped cache records on top of a storage driver.

Records are written whole on every successful fetch and never patched.
Absent, unreadable, garbled, or expired records all read back as a plain miss.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from pynagare._hashing import encode_key
from pynagare.exceptions import NagareStorageError
from pynagare.storage.driver import StorageDriver

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class StorageItem(BaseModel, Generic[T]):
    """One cached resource value with its freshness timestamps (epoch ms).

    ``stale_at <= expires_at`` is the intended usage but is not enforced.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    data: T
    updated_at: int
    stale_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return self.expires_at < now

    def is_stale(self, now: int) -> bool:
        return now >= self.stale_at


class CacheStore:
    """Read/write cache records keyed by encoded storage keys."""

    def __init__(
        self,
        storage: StorageDriver,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._storage = storage
        self._clock = clock

    @property
    def storage(self) -> StorageDriver:
        return self._storage

    async def set(
        self,
        key: Any,
        data: T,
        *,
        stale_time: int = 0,
        cache_time: int = 0,
    ) -> StorageItem[T]:
        """Persist *data* under *key* and return the written record.

        Overwrites any previous record for the same key.
        """
        storage_key = encode_key(key)
        now = self._clock()
        item: StorageItem[T] = StorageItem(
            data=data,
            updated_at=now,
            stale_at=now + stale_time,
            expires_at=now + cache_time,
        )
        try:
            await self._storage.set_item(storage_key, item.model_dump_json(by_alias=True))
        except OSError as exc:
            raise NagareStorageError(f"Failed to write cache record: {exc}", storage_key=storage_key) from exc
        return item

    async def get(self, key: Any) -> StorageItem[Any] | None:
        """Return the live record for *key*, or ``None`` on a miss."""
        storage_key = encode_key(key)
        try:
            raw = await self._storage.get_item(storage_key)
        except Exception:
            _logger.debug("Cache read failed key=%s", storage_key, exc_info=True)
            return None
        if raw is None:
            _logger.debug("Cache miss key=%s", storage_key)
            return None

        try:
            item = StorageItem[Any].model_validate_json(raw)
        except ValidationError:
            _logger.debug("Ignoring malformed cache record key=%s", storage_key)
            return None

        if item.is_expired(self._clock()):
            _logger.debug("Ignoring expired cache record key=%s", storage_key)
            return None
        return item

    async def remove(self, key: Any) -> None:
        await self._storage.remove_item(encode_key(key))

    async def clear(self) -> None:
        await self._storage.clear()
