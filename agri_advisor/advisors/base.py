"""Advisor capability contract."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterable, Iterator, Optional, Tuple

from ..domain.enums import ContextFieldName
from ..schemas import AdvisorResult, ContextField, RecommendationContext


_CANCEL_EVENT: ContextVar[Optional[threading.Event]] = ContextVar(
    "advisor_cancel_event", default=None
)


@contextmanager
def cancellation_scope(event: threading.Event) -> Iterator[None]:
    token = _CANCEL_EVENT.set(event)
    try:
        yield
    finally:
        _CANCEL_EVENT.reset(token)


def cancellation_requested() -> bool:
    """Cooperative check for long-running advisors; True once their deadline passed."""
    event = _CANCEL_EVENT.get()
    return bool(event and event.is_set())


class AdvisorCapability(ABC):
    """A pluggable unit producing suggestions for one domain.

    Implementations must not keep state between calls: the dispatcher invokes
    them concurrently, and a call abandoned at the deadline may still finish
    in the background.
    """

    name: str = ""
    display_name: str = ""
    relevant_fields: Tuple[str, ...] = ()

    @abstractmethod
    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return self.display_name or self.name.replace("_", " ").title()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionAdvisor(AdvisorCapability):
    """Adapts a plain callable to the capability contract."""

    def __init__(
        self,
        name: str,
        func: Callable[[RecommendationContext], AdvisorResult],
        *,
        relevant_fields: Iterable[str] = (),
        display_name: Optional[str] = None,
    ) -> None:
        if not name:
            raise ValueError("advisor name must not be empty")
        self.name = name
        self.display_name = display_name or ""
        self.relevant_fields = tuple(ContextFieldName(f).value for f in relevant_fields)
        self._func = func

    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        return self._func(context)


def input_quality(fields: Iterable[ContextField]) -> Tuple[float, bool, list]:
    """Confidence multiplier, staleness flag and notes for the inputs an advisor read.

    Missing inputs cost more than substituted ones; stale inputs are reported
    so the dispatcher can mark the invocation as degraded.
    """
    multiplier = 1.0
    stale = False
    notes = []
    for field in fields:
        if not field.available:
            multiplier *= 0.75
        elif field.substituted:
            multiplier *= 0.9
        if field.available and field.stale:
            stale = True
            notes.append(f"{field.source.value} data is stale")
    return multiplier, stale, notes
