from __future__ import annotations

import pytest

from pynagare.config import DEFAULT_CACHE_TIME, NagareConfig
from pynagare.exceptions import NagareConfigError

_ENV_VARS = (
    "NAGARE_STORAGE_ID",
    "NAGARE_STORAGE_DRIVER",
    "NAGARE_STORAGE_PATH",
    "NAGARE_CACHE_TIME",
    "NAGARE_STALE_TIME",
    "NAGARE_STALE_CHECK_INTERVAL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = NagareConfig()

    assert config.storage_id.startswith("query-client-")
    assert config.storage_driver == "memory"
    assert config.cache_time == DEFAULT_CACHE_TIME == 300_000
    assert config.stale_time == 0
    assert config.stale_check_interval == 1000


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("NAGARE_STORAGE_ID", "shared")
    monkeypatch.setenv("NAGARE_STORAGE_DRIVER", "file")
    monkeypatch.setenv("NAGARE_STORAGE_PATH", str(tmp_path))
    monkeypatch.setenv("NAGARE_CACHE_TIME", "60000")
    monkeypatch.setenv("NAGARE_STALE_TIME", " 5000 ")

    config = NagareConfig.from_env()

    assert config.storage_id == "shared"
    assert config.storage_driver == "file"
    assert config.storage_path == str(tmp_path)
    assert config.cache_time == 60_000
    assert config.stale_time == 5_000
    assert config.stale_check_interval == 1000


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NAGARE_STORAGE_ID", "from-env")
    monkeypatch.setenv("NAGARE_STALE_TIME", "not-a-number")

    config = NagareConfig.from_env(storage_id="explicit", stale_time=10)

    assert config.storage_id == "explicit"
    assert config.stale_time == 10


def test_from_env_rejects_non_integer_duration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NAGARE_CACHE_TIME", "5m")

    with pytest.raises(NagareConfigError, match="NAGARE_CACHE_TIME"):
        NagareConfig.from_env()


def test_unknown_driver_rejected() -> None:
    with pytest.raises(NagareConfigError, match="Unknown storage driver"):
        NagareConfig(storage_driver="redis")


def test_file_driver_requires_path() -> None:
    with pytest.raises(NagareConfigError, match="storage_path"):
        NagareConfig(storage_driver="file")


@pytest.mark.parametrize("interval", [0, -1])
def test_stale_check_interval_must_be_positive(interval: int) -> None:
    with pytest.raises(NagareConfigError):
        NagareConfig(stale_check_interval=interval)
