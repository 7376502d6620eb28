"""Query state machine and its observable session."""

from __future__ import annotations

from pynagare.query.models import QueryContext, QueryCycle, QueryFn, QueryOptions, QueryResponse
from pynagare.query.observable import QueryObservable
from pynagare.query.query import Query

__all__ = [
    "Query",
    "QueryContext",
    "QueryCycle",
    "QueryFn",
    "QueryObservable",
    "QueryOptions",
    "QueryResponse",
]
