"""In-memory storage driver (default)."""

from __future__ import annotations


class MemoryDriver:
    """Process-local storage scoped to one storage id.

    Records live as long as the driver instance.
    """

    def __init__(self, storage_id: str = "default") -> None:
        self.storage_id = storage_id
        self._items: dict[str, str] = {}

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
