"""High-level client: cache, notification bus, and query/mutation factories."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pynagare.cache import CacheStore, StorageItem, now_ms
from pynagare.config import NagareConfig
from pynagare.mutation.models import MutationContext, MutationFn, MutationOptions
from pynagare.mutation.observable import MutationObservable
from pynagare.notifications import NotificationBus, NotificationEvent, NotificationType
from pynagare.query.models import QueryContext, QueryFn, QueryOptions
from pynagare.query.observable import QueryObservable
from pynagare.storage import StorageDriver, create_storage_driver

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class NagareClient:
    """Owns the shared cache and the notification bus for its queries.

    Usage::

        async with NagareClient() as client:
            todos = client.query(["todos", {"page": 1}], fetch_todos, stale_time=30_000)
            async for response in todos:
                render(response)
    """

    def __init__(
        self,
        config: NagareConfig | None = None,
        *,
        storage: StorageDriver | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config or NagareConfig()
        self._storage = storage if storage is not None else create_storage_driver(self._config)
        self._clock = clock
        self._cache = CacheStore(self._storage, clock=clock)
        self._notifications = NotificationBus()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> NagareClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Dispose the notification bus; live engines stop hearing commands."""
        self._notifications.close()

    @property
    def config(self) -> NagareConfig:
        return self._config

    @property
    def clock(self) -> Callable[[], int]:
        return self._clock

    @property
    def storage(self) -> StorageDriver:
        return self._storage

    @property
    def storage_id(self) -> str:
        return self._config.storage_id

    @property
    def notifications(self) -> NotificationBus:
        return self._notifications

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def query(
        self,
        query_key: Any,
        query_fn: QueryFn[T] | None = None,
        *,
        cache_time: int | None = None,
        stale_time: int | None = None,
        stale_check_interval: int | None = None,
        observe: Iterable[str] | None = None,
        on_subscribe: Callable[[QueryContext[T]], object] | None = None,
        on_unsubscribe: Callable[[QueryContext[T]], object] | None = None,
        on_success: Callable[[QueryContext[T], T], object] | None = None,
        on_error: Callable[[QueryContext[T], Exception], object] | None = None,
        on_cancel: Callable[[QueryContext[T]], object] | None = None,
    ) -> QueryObservable[T]:
        """Build a query session for *query_key* fetched by *query_fn*."""
        options: QueryOptions[T] = QueryOptions(
            cache_time=cache_time,
            stale_time=stale_time,
            stale_check_interval=stale_check_interval,
            observe=tuple(observe) if observe is not None and not isinstance(observe, str) else observe,
            on_subscribe=on_subscribe,
            on_unsubscribe=on_unsubscribe,
            on_success=on_success,
            on_error=on_error,
            on_cancel=on_cancel,
        )
        return QueryObservable(self, query_key, query_fn, options)

    def mutation(
        self,
        mutation_key: Any,
        mutation_fn: MutationFn[T] | None = None,
        *,
        observe: Iterable[str] | None = None,
        mutate_on_init: bool = False,
        on_subscribe: Callable[[MutationContext[T]], object] | None = None,
        on_unsubscribe: Callable[[MutationContext[T]], object] | None = None,
        on_mutate: Callable[[MutationContext[T]], object] | None = None,
        on_success: Callable[[MutationContext[T], T], object] | None = None,
        on_error: Callable[[MutationContext[T], Exception], object] | None = None,
        on_cancel: Callable[[MutationContext[T]], object] | None = None,
    ) -> MutationObservable[T]:
        """Build a mutation session for *mutation_key* performed by *mutation_fn*."""
        options: MutationOptions[T] = MutationOptions(
            observe=tuple(observe) if observe is not None and not isinstance(observe, str) else observe,
            mutate_on_init=mutate_on_init,
            on_subscribe=on_subscribe,
            on_unsubscribe=on_unsubscribe,
            on_mutate=on_mutate,
            on_success=on_success,
            on_error=on_error,
            on_cancel=on_cancel,
        )
        return MutationObservable(self, mutation_key, mutation_fn, options)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    async def get_cache_data(self, key: Any) -> StorageItem[Any] | None:
        """Return the unexpired record for *key*, or ``None``."""
        return await self._cache.get(key)

    async def set_cache_data(
        self,
        key: Any,
        data: T,
        *,
        stale_time: int | None = None,
        cache_time: int | None = None,
    ) -> StorageItem[T]:
        """Write *data* for *key*; unset durations fall back to the client config."""
        return await self._cache.set(
            key,
            data,
            stale_time=self._config.stale_time if stale_time is None else stale_time,
            cache_time=self._config.cache_time if cache_time is None else cache_time,
        )

    async def remove_cache_data(self, key: Any) -> None:
        await self._cache.remove(key)

    async def clear_cache(self) -> None:
        await self._cache.clear()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def publish(self, event_type: NotificationType, key: Any = None, payload: Any = None) -> None:
        """Publish a command; ``key=None`` addresses every live engine of that kind."""
        self._notifications.publish(NotificationEvent(type=event_type, key=key, payload=payload))

    def cancel_query(self, key: Any = None) -> None:
        self.publish(NotificationType.QUERY_CANCEL, key)

    def cancel_all_queries(self) -> None:
        self.publish(NotificationType.QUERY_CANCEL)

    def refresh_query(self, key: Any = None) -> None:
        """Force live queries for *key* to refetch; needs a running event loop."""
        self.publish(NotificationType.QUERY_REFRESH, key)

    def refresh_all_queries(self) -> None:
        self.publish(NotificationType.QUERY_REFRESH)

    def cancel_mutation(self, key: Any = None) -> None:
        self.publish(NotificationType.MUTATION_CANCEL, key)

    def cancel_all_mutations(self) -> None:
        self.publish(NotificationType.MUTATION_CANCEL)
