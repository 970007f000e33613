"""Concurrent fan-out of one context to the advisors bound to an intent."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Sequence, Tuple

from ...advisors.base import cancellation_scope
from ...domain.registry import AdvisorBinding
from ...observability.logging_utils import log_event, log_warning, with_trace
from ...schemas import AdvisorOutcome, AdvisorResult, PartialFailure, RecommendationContext


@dataclass(frozen=True)
class DispatchOutcome:
    outcomes: Mapping[str, AdvisorOutcome]
    advisor_budget: float
    elapsed_ms: int
    timed_out: Tuple[str, ...] = ()


class Dispatcher:
    """Invokes every binding concurrently under a shared deadline.

    Each advisor gets ``min(remaining request budget, ceiling)`` seconds.
    Anything still running at that point is recorded as a timeout, its
    future is cancelled and the cooperative cancel flag is raised; the
    dispatcher returns without waiting for the worker to acknowledge.
    """

    def __init__(
        self,
        advisor_timeout_ceiling: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if advisor_timeout_ceiling <= 0:
            raise ValueError("advisor_timeout_ceiling must be positive")
        self._ceiling = advisor_timeout_ceiling
        self._clock = clock

    def dispatch(
        self,
        bindings: Sequence[AdvisorBinding],
        context: RecommendationContext,
        deadline: float,
    ) -> DispatchOutcome:
        started = self._clock()
        budget = max(0.0, min(deadline - started, self._ceiling))
        log_event(
            "dispatch.start",
            advisors=[b.name for b in bindings],
            budget_seconds=round(budget, 3),
        )
        if not bindings:
            return DispatchOutcome(outcomes={}, advisor_budget=budget, elapsed_ms=0)

        cancel_event = threading.Event()
        executor = ThreadPoolExecutor(max_workers=len(bindings), thread_name_prefix="advisor")
        collected: Dict[str, AdvisorOutcome] = {}
        timed_out = []
        try:
            futures = {
                binding.name: executor.submit(
                    with_trace(self._invoke), binding, context, cancel_event
                )
                for binding in bindings
            }
            done, _ = wait(list(futures.values()), timeout=budget)
            elapsed_ms = int((self._clock() - started) * 1000)
            for binding in bindings:
                future = futures[binding.name]
                if future in done:
                    collected[binding.name] = future.result()
                    continue
                future.cancel()
                timed_out.append(binding.name)
                collected[binding.name] = PartialFailure.timeout(
                    binding.name, budget, elapsed_ms=elapsed_ms
                )
                log_warning("advisor.timeout", advisor=binding.name, budget_seconds=budget)
            if timed_out:
                cancel_event.set()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        elapsed_ms = int((self._clock() - started) * 1000)
        log_event(
            "dispatch.done",
            elapsed_ms=elapsed_ms,
            timed_out=timed_out,
            failed=[
                name
                for name, outcome in collected.items()
                if isinstance(outcome, PartialFailure) and outcome.lost
            ],
        )
        return DispatchOutcome(
            outcomes=collected,
            advisor_budget=budget,
            elapsed_ms=elapsed_ms,
            timed_out=tuple(timed_out),
        )

    def _invoke(
        self,
        binding: AdvisorBinding,
        context: RecommendationContext,
        cancel_event: threading.Event,
    ) -> AdvisorOutcome:
        started = self._clock()
        with cancellation_scope(cancel_event):
            try:
                result = binding.capability.invoke(context)
            except Exception as exc:
                elapsed_ms = int((self._clock() - started) * 1000)
                log_warning(
                    "advisor.failed",
                    advisor=binding.name,
                    error_kind=type(exc).__name__,
                    error=str(exc),
                )
                return PartialFailure.error(
                    binding.name, type(exc).__name__, str(exc), elapsed_ms=elapsed_ms
                )
        elapsed_ms = int((self._clock() - started) * 1000)
        if not isinstance(result, AdvisorResult):
            log_warning(
                "advisor.failed",
                advisor=binding.name,
                error_kind="invalid_result",
                result_type=type(result).__name__,
            )
            return PartialFailure.error(
                binding.name,
                "invalid_result",
                f"expected AdvisorResult, got {type(result).__name__}",
                elapsed_ms=elapsed_ms,
            )
        log_event(
            "advisor.completed",
            advisor=binding.name,
            elapsed_ms=elapsed_ms,
            suggestions=len(result.suggestions),
            confidence=result.confidence,
        )
        if result.data_freshness == "stale":
            return PartialFailure.degraded(
                binding.name,
                result,
                result.freshness_note or "advisor reported stale input data",
                elapsed_ms=elapsed_ms,
            )
        return result
