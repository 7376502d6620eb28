"""Behaviour shared by the query and mutation state machines.

An engine has a two-phase lifecycle. While *constructed*, every side effect
that needs a subscriber (snapshot delivery, teardown registration) is queued.
:meth:`Engine.register_subscriber` *activates* it: the queue drains once, in
FIFO order, and later effects apply directly.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare._abort import AbortController, AbortSignal
from pynagare._hashing import encode_key
from pynagare.exceptions import NagareConfigError, NagareError
from pynagare.notifications import NotificationEvent
from pynagare.observable import Subscriber

if TYPE_CHECKING:
    from pynagare.client import NagareClient

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

#: Response fields that are bound callables rather than state.
_CALLABLE_FIELDS = frozenset({"refresh", "cancel"})


async def resolve_result(value: T | Awaitable[T]) -> T:
    """Await *value* if the user function handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def validate_observe(observe: Iterable[str] | None, response_type: type[Any]) -> tuple[str, ...] | None:
    """Check an ``observe`` allowlist against the response dataclass fields."""
    if observe is None:
        return None
    if isinstance(observe, str):
        raise NagareConfigError("observe must be a collection of field names, not a string")
    names = tuple(observe)
    known = {f.name for f in dataclasses.fields(response_type)} - _CALLABLE_FIELDS
    unknown = [name for name in names if name not in known]
    if unknown:
        raise NagareConfigError(f"Unknown observe field(s) {unknown} (expected any of {sorted(known)})")
    return names


class Engine(ABC, Generic[T, R]):
    """Base state machine: buffering, selective emission, bus wiring."""

    _kind = "engine"

    def __init__(
        self,
        client: NagareClient | None,
        key: Any,
        *,
        observe: tuple[str, ...] | None,
    ) -> None:
        if client is None:
            raise NagareConfigError(f"{type(self).__name__} requires a client")
        if key is None:
            raise NagareConfigError(f"{type(self).__name__} key is required")

        self._client = client
        self._key = key
        self._encoded_key = encode_key(key)
        self._observe = observe
        self._abort_controller = AbortController()

        self._subscriber: Subscriber[R] | None = None
        self._pending: deque[Callable[[], None]] = deque()
        self._last_delivered: R | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        unsubscribe = client.notifications.subscribe(self._accepts, self._on_notification)
        self._when_active(lambda: self._require_subscriber().add(unsubscribe))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def key(self) -> Any:
        return self._key

    @property
    def encoded_key(self) -> str:
        return self._encoded_key

    @property
    def signal(self) -> AbortSignal:
        return self._abort_controller.signal

    @property
    def activated(self) -> bool:
        return self._subscriber is not None

    @property
    def subscriber(self) -> Subscriber[R] | None:
        return self._subscriber

    @property
    @abstractmethod
    def initial_response(self) -> R:
        """Snapshot computed at construction, before any subscriber."""

    def register_subscriber(self, subscriber: Subscriber[R]) -> None:
        """Attach the live subscriber and flush everything queued so far."""
        if self._subscriber is not None:
            raise NagareError(f"{type(self).__name__} already has a subscriber")
        self._subscriber = subscriber
        while self._pending:
            self._pending.popleft()()
        self._on_activate()

    def _on_activate(self) -> None:  # noqa: B027
        """Hook run right after the pending queue drained."""

    def _notify_error(self, callback: Callable[..., object] | None, context: Any, exc: Exception) -> None:
        """Hand *exc* to a user ``on_error`` callback; its own failure is only logged."""
        if callback is None:
            return
        try:
            callback(context, exc)
        except Exception:
            _logger.warning("on_error callback failed for %s key=%s", self._kind, self._encoded_key, exc_info=True)

    def _require_subscriber(self) -> Subscriber[R]:
        if self._subscriber is None:
            raise NagareError(f"{type(self).__name__} has no subscriber")
        return self._subscriber

    def _when_active(self, effect: Callable[[], None]) -> None:
        if self._subscriber is None:
            self._pending.append(effect)
            return
        effect()

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* as a background task tied to this engine."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        _logger.warning("Background task failed for %s key=%s", self._kind, self._encoded_key, exc_info=exc)
        if self._subscriber is not None:
            self._subscriber.error(exc)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    @abstractmethod
    def _build_response(self, cycle: Any) -> R:
        """Full snapshot of the current state tagged with *cycle*."""

    def _emit(self, cycle: Any) -> None:
        response = self._build_response(cycle)
        self._when_active(lambda: self._deliver(response))

    def _deliver(self, response: R) -> None:
        if not self._has_observed_change(response):
            return
        self._last_delivered = response
        self._require_subscriber().next(response)

    def _has_observed_change(self, response: R) -> bool:
        # The first snapshot always goes out.
        last = self._last_delivered
        if last is None or self._observe is None:
            return True
        return any(getattr(response, name) != getattr(last, name) for name in self._observe)

    # ------------------------------------------------------------------
    # Cancellation and notifications
    # ------------------------------------------------------------------

    @abstractmethod
    def get_context(self) -> Any:
        """Context handed to user functions and callbacks."""

    @abstractmethod
    def _on_cancel_callback(self) -> Callable[[Any], object] | None: ...

    def cancel(self) -> None:
        """Abort the signal and notify ``on_cancel``.

        In-flight awaits are not interrupted; the user function is expected
        to watch the signal.
        """
        self._abort_controller.abort()
        on_cancel = self._on_cancel_callback()
        if on_cancel is not None:
            on_cancel(self.get_context())

    @abstractmethod
    def _handles_kind(self, event: NotificationEvent) -> bool: ...

    def _accepts(self, event: NotificationEvent) -> bool:
        return self._handles_kind(event) and event.targets(self._encoded_key)

    def _on_notification(self, event: NotificationEvent) -> None:
        if not self._reduce(event):
            _logger.warning("Unknown event type for %s key=%s: %s", self._kind, self._encoded_key, event.type)

    @abstractmethod
    def _reduce(self, event: NotificationEvent) -> bool:
        """Apply *event*; return False when its type is not handled."""
