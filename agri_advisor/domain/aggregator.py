"""Merge per-advisor outcomes into one ranked, confidence-scored list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from ..schemas import AdvisorOutcome, AdvisorResult, EngineSettings, PartialFailure, RankedSuggestion
from .enums import DegradationAction, FailureKind
from .errors import InsufficientData, RequestTimeout
from .policy import DegradationPolicy
from .registry import AdvisorBinding


@dataclass(frozen=True)
class Aggregate:
    suggestions: Tuple[RankedSuggestion, ...]
    confidence: float
    survivors: Tuple[Tuple[AdvisorBinding, AdvisorResult], ...]
    lost: Tuple[Tuple[AdvisorBinding, PartialFailure], ...]
    degraded: Tuple[Tuple[AdvisorBinding, PartialFailure], ...]
    base_confidence: float
    penalty: float


def split_outcomes(bindings: Sequence[AdvisorBinding], outcomes: Mapping[str, AdvisorOutcome]):
    survivors, lost, degraded = [], [], []
    for binding in bindings:
        outcome = outcomes.get(binding.name)
        if outcome is None:
            outcome = PartialFailure.error(binding.name, "not_dispatched", "advisor was not invoked")
        if isinstance(outcome, PartialFailure):
            if outcome.lost:
                lost.append((binding, outcome))
                continue
            degraded.append((binding, outcome))
            survivors.append((binding, outcome.result))
        else:
            survivors.append((binding, outcome))
    return survivors, lost, degraded


def composite_confidence(
    survivors: Sequence[Tuple[AdvisorBinding, AdvisorResult]],
    missing_optional: int,
    settings: EngineSettings,
) -> Tuple[float, float, float]:
    """Return ``(confidence, base, penalty)``.

    base is the suggestion-count weighted mean of advisor confidences; each
    missing optional advisor multiplies it by the penalty factor. The result
    is clamped to ``[confidence_floor, 1.0]``.
    """
    weighted = [(len(result.suggestions), result.confidence) for _, result in survivors]
    total = sum(weight for weight, _ in weighted)
    if total:
        base = sum(weight * conf for weight, conf in weighted) / total
    elif weighted:
        base = sum(conf for _, conf in weighted) / len(weighted)
    else:
        base = 0.0
    penalty = settings.degradation_penalty_factor ** missing_optional
    confidence = min(1.0, max(settings.confidence_floor, base * penalty))
    return round(confidence, 4), base, penalty


def rank_suggestions(
    survivors: Sequence[Tuple[AdvisorBinding, AdvisorResult]], cap: int
) -> Tuple[RankedSuggestion, ...]:
    entries = []
    for binding, result in survivors:
        for position, suggestion in enumerate(result.suggestions):
            score = round(suggestion.suitability_score * result.confidence, 6)
            entries.append((-score, binding.order, position, binding, suggestion, result.confidence, score))
    # Ties fall back to registration order, then the advisor's own ordering.
    entries.sort(key=lambda entry: entry[:3])
    ranked: List[RankedSuggestion] = []
    for rank, (_, _, _, binding, suggestion, advisor_confidence, score) in enumerate(
        entries[:cap], start=1
    ):
        ranked.append(
            RankedSuggestion(
                rank=rank,
                title=suggestion.title,
                description=suggestion.description,
                priority=suggestion.priority,
                suitability_score=suggestion.suitability_score,
                advisor=binding.name,
                advisor_confidence=advisor_confidence,
                composite_score=score,
                details=dict(suggestion.details),
            )
        )
    return tuple(ranked)


def _drop_empty_required(survivors, lost, degraded):
    """Required advisors that answered with nothing count as lost."""
    empty = [binding for binding, result in survivors if binding.required and not result.suggestions]
    if not empty:
        return survivors, lost, degraded
    names = {binding.name for binding in empty}
    survivors = [(b, r) for b, r in survivors if b.name not in names]
    degraded = [(b, f) for b, f in degraded if b.name not in names]
    lost = list(lost) + [
        (
            binding,
            PartialFailure.error(binding.name, "empty_result", "required advisor returned no suggestions"),
        )
        for binding in empty
    ]
    lost.sort(key=lambda entry: entry[0].order)
    return survivors, lost, degraded


def aggregate(
    intent: str,
    bindings: Sequence[AdvisorBinding],
    outcomes: Mapping[str, AdvisorOutcome],
    policy: DegradationPolicy,
    settings: EngineSettings,
    advisor_budget: Optional[float] = None,
) -> Aggregate:
    survivors, lost, degraded = _drop_empty_required(*split_outcomes(bindings, outcomes))

    if not survivors and lost and all(f.kind == FailureKind.TIMEOUT for _, f in lost):
        budget = settings.advisor_timeout_ceiling if advisor_budget is None else advisor_budget
        raise RequestTimeout(intent, budget, pending=[b.name for b, _ in lost])

    fatal = [
        (binding, failure)
        for binding, failure in lost
        if policy.decide_advisor_loss(intent, binding) == DegradationAction.FAIL_REQUEST
    ]
    if fatal:
        raise InsufficientData(
            intent,
            missing_capabilities=[binding.name for binding, _ in fatal],
            reason="; ".join(f"{b.name} {f.kind.value}: {f.reason}" for b, f in fatal),
        )

    suggestions = rank_suggestions(survivors, settings.suggestion_cap)
    if not suggestions:
        raise InsufficientData(
            intent,
            missing_capabilities=[binding.name for binding, _ in lost],
            reason="no advisor produced a suggestion",
        )

    # Only optional advisors are penalised; a required loss that reached here was waived by policy.
    missing_optional = sum(1 for binding, _ in lost if not binding.required)
    confidence, base, penalty = composite_confidence(survivors, missing_optional, settings)
    return Aggregate(
        suggestions=suggestions,
        confidence=confidence,
        survivors=tuple(survivors),
        lost=tuple(lost),
        degraded=tuple(degraded),
        base_confidence=base,
        penalty=penalty,
    )
