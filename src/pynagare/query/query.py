"""Query state machine: one remote resource's fetch lifecycle.

A run reads the cache, optionally serves the cached value, fetches when the
value is stale (or on refresh, or after an error), writes the result back,
and emits a snapshot at each cycle checkpoint::

    START -> [POST_CACHE_POPULATION] -> [PRE_FETCH] -> END

While active, a background timer re-evaluates staleness and emits
``ON_STALE`` whenever the timer (and only the timer) observes a flip.
Runs are not serialized: overlapping ``run()`` calls on one instance each do
their own cache read and fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare._engine import Engine, resolve_result, validate_observe
from pynagare.exceptions import NagareConfigError
from pynagare.notifications import NotificationEvent, NotificationType
from pynagare.query.models import QueryContext, QueryCycle, QueryFn, QueryOptions, QueryResponse

if TYPE_CHECKING:
    from pynagare.client import NagareClient
    from pynagare.observable import Subscriber

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Query(Engine[T, QueryResponse[T]], Generic[T]):
    """State machine owning one resource's cache population and fetches."""

    _kind = "query"

    def __init__(
        self,
        client: NagareClient | None,
        query_key: Any,
        query_fn: QueryFn[T] | None,
        options: QueryOptions[T] | None = None,
        *,
        subscriber: Subscriber[QueryResponse[T]] | None = None,
    ) -> None:
        if not callable(query_fn):
            raise NagareConfigError("Query function is required")
        if client is None:
            raise NagareConfigError("Query requires a client")

        self._options: QueryOptions[T] = (options or QueryOptions()).resolve(client.config)
        self._query_fn = query_fn
        self._clock = client.clock

        self._data: T | None = None
        self._error: Exception | None = None
        self._is_fetching = False
        self._is_success = False
        self._is_error = False
        self._is_refresh = False
        self._from_cache = False
        self._is_stale = True
        self._created_at = self._clock()
        self._updated_at: int | None = None
        self._stale_at: int | None = None
        self._expires_at: int | None = None

        super().__init__(
            client,
            query_key,
            observe=validate_observe(self._options.observe, QueryResponse),
        )
        self._initial_response = self._build_response(QueryCycle.INITIAL)

        if subscriber is not None:
            self.register_subscriber(subscriber)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def options(self) -> QueryOptions[T]:
        return self._options

    @property
    def initial_response(self) -> QueryResponse[T]:
        return self._initial_response

    @property
    def is_loading(self) -> bool:
        """A cold first load: fetching with nothing cached, fetched, or refreshing."""
        return self._is_fetching and not self._from_cache and self._updated_at is None and not self._is_refresh

    @property
    def is_idle(self) -> bool:
        return not (
            self._data is not None
            or self._from_cache
            or self._is_refresh
            or self._is_fetching
            or self._is_success
            or self._is_error
        )

    @property
    def is_stale(self) -> bool:
        return self._is_stale

    def _compute_stale(self) -> bool:
        if self._stale_at is None:
            return True
        return self._clock() >= self._stale_at

    def _set_stale_at(self, stale_at: int | None) -> None:
        # Field updates re-derive staleness silently; only the timer emits ON_STALE.
        self._stale_at = stale_at
        self._is_stale = self._compute_stale()

    def check_staleness(self) -> bool:
        """Re-evaluate staleness; return True when the flag flipped."""
        stale = self._compute_stale()
        if stale == self._is_stale:
            return False
        self._is_stale = stale
        return True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Serve the cached value if fresh enough, fetching otherwise."""
        await self._call_query_fn(is_refresh=False)

    async def refresh(self) -> None:
        """Fetch regardless of staleness."""
        await self._call_query_fn(is_refresh=True)

    def get_context(self) -> QueryContext[T]:
        return QueryContext(
            query_key=self._key,
            signal=self.signal,
            options=self._options,
            subscriber=self._subscriber,
        )

    async def _call_query_fn(self, *, is_refresh: bool) -> None:
        cache_item = await self._client.get_cache_data(self._key)
        self._is_refresh = is_refresh

        self._emit(QueryCycle.START)

        try:
            if not is_refresh and cache_item is not None:
                self._data = cache_item.data
                self._updated_at = cache_item.updated_at
                self._expires_at = cache_item.expires_at
                self._set_stale_at(cache_item.stale_at)
                self._from_cache = True

                self._emit(QueryCycle.POST_CACHE_POPULATION)

            if self._is_stale or is_refresh or self._is_error:
                self._is_fetching = True
                self._emit(QueryCycle.PRE_FETCH)
                await self._fetch()
        finally:
            self._emit(QueryCycle.END)

    async def _fetch(self) -> None:
        context = self.get_context()
        _logger.debug("Fetching query key=%s refresh=%s", self._encoded_key, self._is_refresh)
        try:
            data = await resolve_result(self._query_fn(context))

            item = await self._client.set_cache_data(
                self._key,
                data,
                stale_time=self._options.stale_time,
                cache_time=self._options.cache_time,
            )

            self._updated_at = item.updated_at
            self._expires_at = item.expires_at
            self._set_stale_at(item.stale_at)
            self._from_cache = False
            self._is_success = True
            self._is_error = False
            self._error = None
            self._data = data

            if self._options.on_success is not None:
                self._options.on_success(context, data)
        except Exception as exc:
            _logger.debug("Query fetch failed key=%s: %s", self._encoded_key, exc)
            self._error = exc
            self._is_error = True
            self._notify_error(self._options.on_error, context, exc)
        finally:
            self._is_fetching = False

    # ------------------------------------------------------------------
    # Engine hooks
    # ------------------------------------------------------------------

    def _build_response(self, cycle: QueryCycle) -> QueryResponse[T]:
        return QueryResponse(
            query_key=self._key,
            data=self._data,
            error=self._error,
            is_idle=self.is_idle,
            is_loading=self.is_loading,
            is_fetching=self._is_fetching,
            is_success=self._is_success,
            is_error=self._is_error,
            is_refresh=self._is_refresh,
            is_stale=self._is_stale,
            from_cache=self._from_cache,
            cycle=cycle,
            created_at=self._created_at,
            updated_at=self._updated_at,
            refresh=self.refresh,
            cancel=self.cancel,
        )

    def _on_activate(self) -> None:
        task = self.spawn(self._watch_staleness())
        self._require_subscriber().add(task.cancel)

    async def _watch_staleness(self) -> None:
        interval = self._options.stale_check_interval
        assert interval is not None  # noqa: S101
        while True:
            await asyncio.sleep(interval / 1000)
            if self.check_staleness():
                self._emit(QueryCycle.ON_STALE)

    def _on_cancel_callback(self) -> Callable[[Any], object] | None:
        return self._options.on_cancel

    def _handles_kind(self, event: NotificationEvent) -> bool:
        return event.type.is_query

    def _reduce(self, event: NotificationEvent) -> bool:
        if event.type == NotificationType.QUERY_CANCEL:
            self.cancel()
            return True
        if event.type == NotificationType.QUERY_REFRESH:
            # Engines nobody subscribed to yet stay idle.
            if not self.activated:
                _logger.debug("Ignoring refresh for inactive query key=%s", self._encoded_key)
                return True
            self.spawn(self.refresh())
            return True
        return False
