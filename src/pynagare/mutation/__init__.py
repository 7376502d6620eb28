"""Mutation state machine and its observable session."""

from __future__ import annotations

from pynagare.mutation.models import MutationContext, MutationCycle, MutationFn, MutationOptions, MutationResponse
from pynagare.mutation.mutation import Mutation
from pynagare.mutation.observable import MutationObservable

__all__ = [
    "Mutation",
    "MutationContext",
    "MutationCycle",
    "MutationFn",
    "MutationObservable",
    "MutationOptions",
    "MutationResponse",
]
