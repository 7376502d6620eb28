"""Client configuration for pynagare."""

from __future__ import annotations

import dataclasses
import os
import secrets
from collections.abc import Mapping
from typing import Any

from pynagare.exceptions import NagareConfigError

#: Default time (ms) before a cached record is evicted.
DEFAULT_CACHE_TIME: int = 5 * 60 * 1000
#: Default time (ms) before a cached record is considered stale.
DEFAULT_STALE_TIME: int = 0
#: Default interval (ms) of the background staleness check.
DEFAULT_STALE_CHECK_INTERVAL: int = 1000

STORAGE_DRIVERS: frozenset[str] = frozenset({"memory", "file"})


def _generate_storage_id() -> str:
    return f"query-client-{secrets.token_hex(4)}"


def _env_int(env: Mapping[str, str], name: str) -> int | None:
    value = env.get(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError as exc:
        raise NagareConfigError(f"{name} must be an integer number of milliseconds, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class NagareConfig:
    """Client configuration.

    Parameters
    ----------
    storage_id : str
        Namespace for the storage backend. Defaults to a random
        ``query-client-<hex>`` identifier so two clients never share
        records unless asked to.
    storage_driver : str
        Storage backend name: ``"memory"`` (default) or ``"file"``.
    storage_path : str or None
        Root directory for the ``"file"`` driver.
    cache_time : int
        Milliseconds until a cached record expires and is no longer served.
    stale_time : int
        Milliseconds until a cached record is considered stale. ``0`` means
        every record is stale as soon as it is written.
    stale_check_interval : int
        Milliseconds between background staleness checks of a live query.
    """

    storage_id: str = dataclasses.field(default_factory=_generate_storage_id)
    storage_driver: str = "memory"
    storage_path: str | None = None
    cache_time: int = DEFAULT_CACHE_TIME
    stale_time: int = DEFAULT_STALE_TIME
    stale_check_interval: int = DEFAULT_STALE_CHECK_INTERVAL

    def __post_init__(self) -> None:
        if self.storage_driver not in STORAGE_DRIVERS:
            raise NagareConfigError(
                f"Unknown storage driver {self.storage_driver!r} (expected one of {sorted(STORAGE_DRIVERS)})"
            )
        if self.storage_driver == "file" and not self.storage_path:
            raise NagareConfigError("storage_path is required for the 'file' storage driver")
        if self.stale_check_interval <= 0:
            raise NagareConfigError("stale_check_interval must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> NagareConfig:
        """Create configuration from environment variables.

        Reads optional ``NAGARE_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        NagareConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "NAGARE_STORAGE_ID": "storage_id",
            "NAGARE_STORAGE_DRIVER": "storage_driver",
            "NAGARE_STORAGE_PATH": "storage_path",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Durations are numeric, handle separately
        _ENV_DURATION_MAP = {
            "NAGARE_CACHE_TIME": "cache_time",
            "NAGARE_STALE_TIME": "stale_time",
            "NAGARE_STALE_CHECK_INTERVAL": "stale_check_interval",
        }
        for env_key, field_name in _ENV_DURATION_MAP.items():
            if field_name in overrides:
                continue
            duration = _env_int(env, env_key)
            if duration is not None:
                config_kwargs[field_name] = duration

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
