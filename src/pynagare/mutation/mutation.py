"""Mutation state machine: one write action's lifecycle.

``mutate()`` walks ``MUTATE -> START -> END``. Unlike queries, mutations
never touch the cache and rethrow failures to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare._engine import Engine, resolve_result, validate_observe
from pynagare.exceptions import NagareConfigError
from pynagare.mutation.models import MutationContext, MutationCycle, MutationFn, MutationOptions, MutationResponse
from pynagare.notifications import NotificationEvent, NotificationType

if TYPE_CHECKING:
    from pynagare.client import NagareClient
    from pynagare.observable import Subscriber

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Mutation(Engine[T, MutationResponse[T]], Generic[T]):
    _kind = "mutation"

    def __init__(
        self,
        client: NagareClient | None,
        mutation_key: Any,
        mutation_fn: MutationFn[T] | None,
        options: MutationOptions[T] | None = None,
        *,
        subscriber: Subscriber[MutationResponse[T]] | None = None,
    ) -> None:
        if not callable(mutation_fn):
            raise NagareConfigError("Mutation function is required")

        self._options: MutationOptions[T] = options or MutationOptions()
        self._mutation_fn = mutation_fn

        self._data: T | None = None
        self._error: Exception | None = None
        self._is_loading = False
        self._is_success = False
        self._is_error = False

        super().__init__(
            client,
            mutation_key,
            observe=validate_observe(self._options.observe, MutationResponse),
        )
        self._initial_response = self._build_response(MutationCycle.INITIAL)

        if subscriber is not None:
            self.register_subscriber(subscriber)

    @property
    def options(self) -> MutationOptions[T]:
        return self._options

    @property
    def initial_response(self) -> MutationResponse[T]:
        return self._initial_response

    @property
    def is_idle(self) -> bool:
        return not (self._data is not None or self._is_loading or self._is_success or self._is_error)

    def get_context(self) -> MutationContext[T]:
        return MutationContext(
            signal=self.signal,
            options=self._options,
            subscriber=self._subscriber,
        )

    async def mutate(self) -> T:
        """Invoke the mutation function; failures are re-raised."""
        context = self.get_context()
        if self._options.on_mutate is not None:
            self._options.on_mutate(context)
        self._emit(MutationCycle.MUTATE)

        self._is_loading = True
        self._emit(MutationCycle.START)

        try:
            data = await resolve_result(self._mutation_fn(context))
            self._is_error = False
            self._is_success = True
            self._error = None
            self._data = data

            if self._options.on_success is not None:
                self._options.on_success(context, data)

            return data
        except Exception as exc:
            _logger.debug("Mutation failed key=%s: %s", self._encoded_key, exc)
            self._is_success = False
            self._is_error = True
            self._error = exc
            self._notify_error(self._options.on_error, context, exc)
            raise
        finally:
            self._is_loading = False
            self._emit(MutationCycle.END)

    def _build_response(self, cycle: MutationCycle) -> MutationResponse[T]:
        return MutationResponse(
            mutation_key=self._key,
            data=self._data,
            error=self._error,
            is_idle=self.is_idle,
            is_loading=self._is_loading,
            is_success=self._is_success,
            is_error=self._is_error,
            cycle=cycle,
            cancel=self.cancel,
        )

    def _on_cancel_callback(self) -> Callable[[Any], object] | None:
        return self._options.on_cancel

    def _handles_kind(self, event: NotificationEvent) -> bool:
        return event.type.is_mutation

    def _reduce(self, event: NotificationEvent) -> bool:
        if event.type == NotificationType.MUTATION_CANCEL:
            self.cancel()
            return True
        return False
