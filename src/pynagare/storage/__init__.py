"""Storage driver layer.

The cache engine talks to persistence only through the async
:class:`StorageDriver` protocol (string keys, string values). Which backend
is used is a client configuration choice.
"""

from __future__ import annotations

from pynagare.config import NagareConfig
from pynagare.storage.driver import StorageDriver
from pynagare.storage.json_file import JsonFileDriver
from pynagare.storage.memory import MemoryDriver


def create_storage_driver(config: NagareConfig) -> StorageDriver:
    """Instantiate the storage backend named by *config*."""
    if config.storage_driver == "memory":
        return MemoryDriver(config.storage_id)

    # NagareConfig validation guarantees storage_path for the file driver.
    assert config.storage_path is not None  # noqa: S101
    return JsonFileDriver(config.storage_path, config.storage_id)


__all__ = [
    "JsonFileDriver",
    "MemoryDriver",
    "StorageDriver",
    "create_storage_driver",
]
