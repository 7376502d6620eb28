"""JSON file storage driver.

Stores each record as an individual file under ``<root>/<storage_id>/``.
File I/O runs in a worker thread so the event loop never blocks on disk.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

_logger = logging.getLogger(__name__)


class JsonFileDriver:
    """Persistent storage driver keeping one ``.json`` file per key."""

    def __init__(self, root: str | Path, storage_id: str = "default") -> None:
        self.storage_id = storage_id
        self._root = Path(root).expanduser() / storage_id

    @property
    def root(self) -> Path:
        return self._root

    async def get_item(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    def _entry_path(self, key: str) -> Path:
        """Return file path for a storage key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"

    def _read(self, key: str) -> str | None:
        path = self._entry_path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            _logger.warning("Failed to read storage entry %s: %s", key, exc)
            return None

    def _write(self, key: str, value: str) -> None:
        path = self._entry_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers must never observe a partial record.
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def _remove(self, key: str) -> None:
        self._entry_path(key).unlink(missing_ok=True)

    def _clear(self) -> None:
        if not self._root.is_dir():
            return
        for path in self._root.glob("*.json"):
            path.unlink(missing_ok=True)
