"""Observable session wrapping a :class:`Query`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare.exceptions import NagareConfigError
from pynagare.observable import ObservableSession
from pynagare.query.models import QueryFn, QueryOptions, QueryResponse
from pynagare.query.query import Query

if TYPE_CHECKING:
    from pynagare.client import NagareClient

T = TypeVar("T")


class QueryObservable(ObservableSession[QueryResponse[T], Query[T]], Generic[T]):
    """Stream of :class:`QueryResponse` snapshots for one key.

    Subscribing runs the query; unsubscribing cancels it.
    """

    def __init__(
        self,
        client: NagareClient | None,
        query_key: Any,
        query_fn: QueryFn[T] | None,
        options: QueryOptions[T] | None = None,
    ) -> None:
        if client is None:
            raise NagareConfigError("Client not provided")
        if not callable(query_fn):
            raise NagareConfigError("Query function not provided")
        if query_key is None:
            raise NagareConfigError("Query key not provided")

        self._client = client
        self._query_key = query_key
        self._query_fn = query_fn
        self._options: QueryOptions[T] = options or QueryOptions()
        super().__init__()

    def _create_engine(self) -> Query[T]:
        return Query(self._client, self._query_key, self._query_fn, self._options)

    def _on_subscribe(self, engine: Query[T]) -> None:
        if self._options.on_subscribe is not None:
            self._options.on_subscribe(engine.get_context())

    def _on_unsubscribe(self, engine: Query[T]) -> None:
        if self._options.on_unsubscribe is not None:
            self._options.on_unsubscribe(engine.get_context())

    def _start(self, engine: Query[T]) -> None:
        engine.spawn(engine.run())
