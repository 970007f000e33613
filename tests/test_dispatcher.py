import importlib.util
import sys
import threading
import time
import unittest
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_MISSING_PYDANTIC_SETTINGS = importlib.util.find_spec("pydantic_settings") is None

if not _MISSING_PYDANTIC_SETTINGS:
    from agri_advisor.advisors import FunctionAdvisor, cancellation_requested
    from agri_advisor.application.services.dispatcher import Dispatcher
    from agri_advisor.domain.enums import FailureKind
    from agri_advisor.domain.registry import AdvisorRegistry
    from agri_advisor.schemas import (
        AdvisorResult,
        PartialFailure,
        RecommendationContext,
        Suggestion,
    )


def _context():
    return RecommendationContext(
        user_id="u1",
        region="semi-arid-A",
        season="monsoon",
        resolved_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
    )


def _result(confidence=0.8, freshness="fresh"):
    return AdvisorResult(
        suggestions=(Suggestion(title="Sow sorghum", suitability_score=0.9),),
        confidence=confidence,
        data_freshness=freshness,
        freshness_note="weather data is stale" if freshness == "stale" else None,
    )


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class DispatcherTests(unittest.TestCase):
    def _bindings(self, *advisors):
        registry = AdvisorRegistry()
        for advisor in advisors:
            registry.register("crop_recommendation", advisor)
        return registry.capabilities_for("crop_recommendation")

    def test_collects_results_in_binding_order(self) -> None:
        def slow(ctx):
            time.sleep(0.05)
            return _result(0.7)

        bindings = self._bindings(
            FunctionAdvisor("slow", slow), FunctionAdvisor("fast", lambda ctx: _result(0.9))
        )
        outcome = Dispatcher(1.0).dispatch(bindings, _context(), time.monotonic() + 2.0)
        self.assertEqual(list(outcome.outcomes), ["slow", "fast"])
        self.assertEqual(outcome.outcomes["slow"].confidence, 0.7)
        self.assertEqual(outcome.timed_out, ())

    def test_advisors_run_concurrently(self) -> None:
        barrier = threading.Barrier(3, timeout=1.0)

        def waiter(ctx):
            barrier.wait()
            return _result()

        bindings = self._bindings(
            *(FunctionAdvisor(f"a{i}", waiter) for i in range(3))
        )
        outcome = Dispatcher(2.0).dispatch(bindings, _context(), time.monotonic() + 2.0)
        self.assertTrue(all(isinstance(o, AdvisorResult) for o in outcome.outcomes.values()))

    def test_error_is_isolated_to_one_advisor(self) -> None:
        def broken(ctx):
            raise KeyError("rainfall")

        bindings = self._bindings(
            FunctionAdvisor("broken", broken), FunctionAdvisor("ok", lambda ctx: _result())
        )
        outcome = Dispatcher(1.0).dispatch(bindings, _context(), time.monotonic() + 1.0)
        failure = outcome.outcomes["broken"]
        self.assertIsInstance(failure, PartialFailure)
        self.assertEqual(failure.kind, FailureKind.ERROR)
        self.assertEqual(failure.error_kind, "KeyError")
        self.assertIsInstance(outcome.outcomes["ok"], AdvisorResult)

    def test_invalid_return_value_is_error(self) -> None:
        bindings = self._bindings(FunctionAdvisor("bad", lambda ctx: {"confidence": 1}))
        outcome = Dispatcher(1.0).dispatch(bindings, _context(), time.monotonic() + 1.0)
        self.assertEqual(outcome.outcomes["bad"].error_kind, "invalid_result")

    def test_stale_result_is_degraded_but_retained(self) -> None:
        bindings = self._bindings(FunctionAdvisor("stale", lambda ctx: _result(freshness="stale")))
        outcome = Dispatcher(1.0).dispatch(bindings, _context(), time.monotonic() + 1.0)
        failure = outcome.outcomes["stale"]
        self.assertEqual(failure.kind, FailureKind.DEGRADED)
        self.assertFalse(failure.lost)
        self.assertEqual(failure.result.confidence, 0.8)
        self.assertEqual(failure.reason, "weather data is stale")

    def test_deadline_marks_pending_as_timeout_without_waiting(self) -> None:
        observed = threading.Event()

        def sleepy(ctx):
            for _ in range(200):
                if cancellation_requested():
                    observed.set()
                    return _result()
                time.sleep(0.01)
            return _result()

        bindings = self._bindings(
            FunctionAdvisor("sleepy", sleepy), FunctionAdvisor("quick", lambda ctx: _result())
        )
        started = time.monotonic()
        outcome = Dispatcher(5.0).dispatch(bindings, _context(), started + 0.2)
        elapsed = time.monotonic() - started

        self.assertLess(elapsed, 0.6)
        self.assertEqual(outcome.timed_out, ("sleepy",))
        self.assertEqual(outcome.outcomes["sleepy"].kind, FailureKind.TIMEOUT)
        self.assertIsInstance(outcome.outcomes["quick"], AdvisorResult)
        self.assertTrue(observed.wait(1.0))

    def test_advisor_ceiling_bounds_each_call(self) -> None:
        def slow(ctx):
            time.sleep(0.5)
            return _result()

        bindings = self._bindings(FunctionAdvisor("slow", slow))
        outcome = Dispatcher(0.1).dispatch(bindings, _context(), time.monotonic() + 10.0)
        self.assertAlmostEqual(outcome.advisor_budget, 0.1, places=2)
        self.assertEqual(outcome.outcomes["slow"].kind, FailureKind.TIMEOUT)

    def test_expired_deadline_times_out_everything(self) -> None:
        def slow(ctx):
            time.sleep(0.1)
            return _result()

        bindings = self._bindings(FunctionAdvisor("a", slow))
        outcome = Dispatcher(1.0).dispatch(bindings, _context(), time.monotonic() - 1.0)
        self.assertEqual(outcome.advisor_budget, 0.0)
        self.assertEqual(outcome.outcomes["a"].kind, FailureKind.TIMEOUT)


if __name__ == "__main__":
    unittest.main()
