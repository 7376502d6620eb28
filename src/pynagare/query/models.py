"""Query options, context, and response snapshots."""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare._abort import AbortSignal

if TYPE_CHECKING:
    from pynagare.config import NagareConfig
    from pynagare.observable import Subscriber

T = TypeVar("T")


class QueryCycle(StrEnum):
    """Checkpoints of a query run at which a snapshot is emitted."""

    INITIAL = "initial"
    START = "start"
    POST_CACHE_POPULATION = "post-cache-population"
    PRE_FETCH = "pre-fetch"
    END = "end"
    ON_STALE = "on-stale"


@dataclass(frozen=True, slots=True)
class QueryResponse(Generic[T]):
    """Immutable snapshot of a query's state."""

    query_key: Any
    data: T | None
    error: BaseException | None
    is_idle: bool
    is_loading: bool
    is_fetching: bool
    is_success: bool
    is_error: bool
    is_refresh: bool
    is_stale: bool
    from_cache: bool
    cycle: QueryCycle
    created_at: int
    updated_at: int | None
    refresh: Callable[[], Awaitable[None]] = dataclasses.field(repr=False, compare=False)
    cancel: Callable[[], None] = dataclasses.field(repr=False, compare=False)


@dataclass(frozen=True)
class QueryOptions(Generic[T]):
    """Per-query settings; ``None`` durations inherit the client config."""

    cache_time: int | None = None
    stale_time: int | None = None
    stale_check_interval: int | None = None
    observe: tuple[str, ...] | None = None
    on_subscribe: Callable[[QueryContext[T]], object] | None = None
    on_unsubscribe: Callable[[QueryContext[T]], object] | None = None
    on_success: Callable[[QueryContext[T], T], object] | None = None
    on_error: Callable[[QueryContext[T], Exception], object] | None = None
    on_cancel: Callable[[QueryContext[T]], object] | None = None

    def resolve(self, config: NagareConfig) -> QueryOptions[T]:
        """Fill unset durations from *config*."""
        return dataclasses.replace(
            self,
            cache_time=config.cache_time if self.cache_time is None else self.cache_time,
            stale_time=config.stale_time if self.stale_time is None else self.stale_time,
            stale_check_interval=(
                config.stale_check_interval if self.stale_check_interval is None else self.stale_check_interval
            ),
        )


@dataclass(frozen=True, slots=True)
class QueryContext(Generic[T]):
    """Passed to the query function and every query callback."""

    query_key: Any
    signal: AbortSignal
    options: QueryOptions[T]
    subscriber: Subscriber[QueryResponse[T]] | None = None


QueryFn = Callable[[QueryContext[T]], Awaitable[T]]
