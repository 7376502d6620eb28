"""Mutation options, context, and response snapshots."""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare._abort import AbortSignal

if TYPE_CHECKING:
    from pynagare.observable import Subscriber

T = TypeVar("T")


class MutationCycle(StrEnum):
    INITIAL = "initial"
    MUTATE = "mutate"
    START = "start"
    END = "end"


@dataclass(frozen=True, slots=True)
class MutationResponse(Generic[T]):
    """Immutable snapshot of a mutation's state."""

    mutation_key: Any
    data: T | None
    error: BaseException | None
    is_idle: bool
    is_loading: bool
    is_success: bool
    is_error: bool
    cycle: MutationCycle
    cancel: Callable[[], None] = dataclasses.field(repr=False, compare=False)


@dataclass(frozen=True)
class MutationOptions(Generic[T]):
    observe: tuple[str, ...] | None = None
    mutate_on_init: bool = False
    on_subscribe: Callable[[MutationContext[T]], object] | None = None
    on_unsubscribe: Callable[[MutationContext[T]], object] | None = None
    on_mutate: Callable[[MutationContext[T]], object] | None = None
    on_success: Callable[[MutationContext[T], T], object] | None = None
    on_error: Callable[[MutationContext[T], Exception], object] | None = None
    on_cancel: Callable[[MutationContext[T]], object] | None = None


@dataclass(frozen=True, slots=True)
class MutationContext(Generic[T]):
    """Passed to the mutation function and every mutation callback."""

    signal: AbortSignal
    options: MutationOptions[T]
    subscriber: Subscriber[MutationResponse[T]] | None = None


MutationFn = Callable[[MutationContext[T]], Awaitable[T]]
