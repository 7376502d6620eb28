"""Subscription plumbing shared by query and mutation sessions.

An :class:`ObservableSession` builds its engine eagerly so the ``INITIAL``
snapshot is readable before anyone subscribes. Subscribing attaches a
:class:`Subscriber` to that engine (draining anything it buffered), starts
it, and returns the subscriber as the handle used to detach.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare.exceptions import NagareError

if TYPE_CHECKING:
    from pynagare._engine import Engine

_logger = logging.getLogger(__name__)

R = TypeVar("R")
E = TypeVar("E", bound="Engine[Any, Any]")

Teardown = Callable[[], object]

_DONE = object()


class Subscriber(Generic[R]):
    """Push-side handle for one observer of a session.

    ``next`` delivers snapshots until the subscriber is stopped.
    ``unsubscribe`` runs registered teardowns in registration order;
    teardowns added after that run immediately.
    """

    def __init__(
        self,
        on_next: Callable[[R], object] | None = None,
        on_error: Callable[[BaseException], object] | None = None,
        on_complete: Callable[[], object] | None = None,
    ) -> None:
        self._on_next = on_next
        self._on_error = on_error
        self._on_complete = on_complete
        self._teardowns: list[Teardown] = []
        self._closed = False
        self._stopped = False

    @property
    def closed(self) -> bool:
        return self._closed

    def next(self, value: R) -> None:
        if self._closed or self._stopped:
            return
        self._call(self._on_next, value)

    def error(self, exc: BaseException) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._call(self._on_error, exc)

    def complete(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._call(self._on_complete)

    def add(self, teardown: Teardown) -> None:
        if self._closed:
            teardown()
            return
        self._teardowns.append(teardown)

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        teardowns, self._teardowns = self._teardowns, []
        # Every teardown runs; a failing one must not leave the rest attached.
        for teardown in teardowns:
            self._call(teardown)
        self._stopped = True

    @staticmethod
    def _call(callback: Callable[..., object] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            _logger.warning("Subscriber callback failed", exc_info=True)


#: What callers hold on to in order to detach.
Subscription = Subscriber


class ObservableSession(ABC, Generic[R, E]):
    """Lazily-activated stream of engine snapshots."""

    def __init__(self) -> None:
        self._engine: E = self._create_engine()

    @abstractmethod
    def _create_engine(self) -> E:
        """Build a fresh, not-yet-activated engine."""

    @abstractmethod
    def _start(self, engine: E) -> None:
        """Kick off work once *engine* has a live subscriber."""

    def _on_subscribe(self, engine: E) -> None:  # noqa: B027
        pass

    def _on_unsubscribe(self, engine: E) -> None:  # noqa: B027
        pass

    @property
    def engine(self) -> E:
        return self._engine

    @property
    def initial_response(self) -> R:
        """The ``INITIAL`` snapshot, available without subscribing."""
        return self._engine.initial_response

    def subscribe(
        self,
        on_next: Callable[[R], object] | None = None,
        on_error: Callable[[BaseException], object] | None = None,
        on_complete: Callable[[], object] | None = None,
    ) -> Subscription[R]:
        """Attach an observer and start the engine.

        Must be called from a running event loop. Each subscription gets
        its own engine; the first one reuses the engine built at
        construction time.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError as exc:
            raise NagareError("subscribe() must be called from a running event loop") from exc

        engine = self._engine
        if engine.activated:
            engine = self._create_engine()
            self._engine = engine

        subscriber: Subscriber[R] = Subscriber(on_next, on_error, on_complete)
        self._on_subscribe(engine)
        subscriber.add(lambda: self._teardown(engine, subscriber))
        engine.register_subscriber(subscriber)
        self._start(engine)
        return subscriber

    def _teardown(self, engine: E, subscriber: Subscriber[R]) -> None:
        try:
            self._on_unsubscribe(engine)
        finally:
            try:
                engine.cancel()
            finally:
                subscriber.complete()

    async def __aiter__(self) -> AsyncIterator[R]:
        """Iterate over delivered snapshots until the stream completes.

        Leaving the ``async for`` loop unsubscribes.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue()
        subscription = self.subscribe(
            queue.put_nowait,
            on_complete=lambda: queue.put_nowait(_DONE),
        )
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    return
                yield item
        finally:
            subscription.unsubscribe()
