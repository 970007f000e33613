"""Entry point of the orchestration core: intent + inputs -> Recommendation."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from ...domain.aggregator import aggregate
from ...domain.errors import AdvisoryError
from ...domain.explanation import build_disclaimer, build_sources, compose_explanation
from ...domain.normalizers import normalize_intent
from ...domain.policy import DegradationPolicy
from ...domain.registry import AdvisorBinding, AdvisorRegistry
from ...observability.logging_utils import log_event, log_warning
from ...schemas import CropHistory, EngineSettings, Recommendation, RecommendationRequest
from .context_resolver import ContextResolver
from .dispatcher import Dispatcher


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class RecommendationEngine:
    """Registry lookup -> context resolution -> dispatch -> aggregation -> explanation.

    The registry, policy and settings are injected once at startup. The
    policy is validated against the registry here, so an unmapped
    ``(intent, field)`` surfaces as a ``ConfigurationError`` before any
    request is served.
    """

    def __init__(
        self,
        registry: AdvisorRegistry,
        resolver: ContextResolver,
        policy: DegradationPolicy,
        settings: Optional[EngineSettings] = None,
        *,
        dispatcher: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.registry = registry
        self.resolver = resolver
        self.policy = policy
        self._dispatcher = dispatcher or Dispatcher(
            self.settings.advisor_timeout_ceiling, clock=monotonic
        )
        self._clock = clock
        self._id_factory = id_factory
        self._monotonic = monotonic
        policy.validate(registry)

    def register_advisor(self, intent: Any, capability: Any, required: bool = False) -> AdvisorBinding:
        """Administrative path; rolled back if the policy does not cover the new fields."""
        binding = self.registry.register(intent, capability, required)
        try:
            self.policy.validate(self.registry)
        except AdvisoryError:
            self.registry.deregister(binding.intent, binding.name)
            raise
        log_event("registry.registered", intent=binding.intent, advisor=binding.name, required=required)
        return binding

    def record_history(self, user_id: str, history: CropHistory) -> bool:
        """Store what a farmer reports having grown; later requests read it back."""
        return "history" in self.resolver.record(user_id, {"history": history})

    def generate_recommendation(self, intent: Any, request: RecommendationRequest) -> Recommendation:
        intent_key = normalize_intent(intent)
        started = self._monotonic()
        deadline = started + self.settings.request_deadline
        try:
            bindings = self.registry.capabilities_for(intent_key)
            relevant = self.registry.relevant_fields(intent_key)
            context = self.resolver.resolve_for(
                intent_key,
                request,
                self.policy,
                relevant,
                timeout=self.settings.context_fetch_timeout,
            )
            dispatched = self._dispatcher.dispatch(bindings, context, deadline)
            merged = aggregate(
                intent_key,
                bindings,
                dispatched.outcomes,
                self.policy,
                self.settings,
                advisor_budget=dispatched.advisor_budget,
            )
        except AdvisoryError as exc:
            log_warning(
                "recommendation.failed",
                intent=intent_key,
                error=exc.code,
                detail=str(exc),
                elapsed_ms=int((self._monotonic() - started) * 1000),
            )
            raise

        recommendation = Recommendation(
            id=self._id_factory(),
            intent=intent_key,
            suggestions=list(merged.suggestions),
            confidence=merged.confidence,
            explanation=compose_explanation(
                intent_key,
                bindings,
                merged,
                context,
                relevant,
                self.settings.uncertainty_threshold,
            ),
            disclaimer=build_disclaimer(merged, context, relevant),
            sources=build_sources(bindings, merged, context, relevant),
            created_at=self._clock(),
        )
        log_event(
            "recommendation.ready",
            intent=intent_key,
            recommendation_id=recommendation.id,
            suggestions=len(recommendation.suggestions),
            confidence=recommendation.confidence,
            elapsed_ms=int((self._monotonic() - started) * 1000),
        )
        return recommendation
