"""Structured explanation, disclaimer and source listing for a recommendation.

Everything here is pure data assembly; rendering prose from it is left to
downstream consumers.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..schemas import Explanation, KeyFactor, RecommendationContext, SourceRecord
from .aggregator import Aggregate
from .enums import IMPACT_RANK, FailureKind
from .registry import AdvisorBinding


def rank_factors(aggregate: Aggregate) -> List[KeyFactor]:
    merged: Dict[str, dict] = {}
    for binding, result in aggregate.survivors:
        for factor in result.factors:
            key = factor.name.strip().lower()
            entry = merged.get(key)
            if entry is None:
                merged[key] = {
                    "name": factor.name,
                    "impact": factor.impact,
                    "detail": factor.detail,
                    "advisors": [binding.name],
                    "mentions": 1,
                    "first": len(merged),
                }
                continue
            if IMPACT_RANK[factor.impact] < IMPACT_RANK[entry["impact"]]:
                entry["impact"] = factor.impact
            if entry["detail"] is None:
                entry["detail"] = factor.detail
            if binding.name not in entry["advisors"]:
                entry["advisors"].append(binding.name)
            entry["mentions"] += 1
    ordered = sorted(
        merged.values(),
        key=lambda e: (IMPACT_RANK[e["impact"]], -e["mentions"], e["first"]),
    )
    return [
        KeyFactor(
            name=e["name"],
            impact=e["impact"],
            detail=e["detail"],
            advisors=e["advisors"],
            mentions=e["mentions"],
        )
        for e in ordered
    ]


def _failure_text(kind: FailureKind, error_kind) -> str:
    if kind == FailureKind.TIMEOUT:
        return "advisor timed out"
    return f"advisor error: {error_kind or 'unknown'}"


def build_uncertainties(
    aggregate: Aggregate,
    context: RecommendationContext,
    relevant_fields: Sequence[str],
    threshold: float,
) -> List[str]:
    notes: List[str] = []
    if aggregate.confidence < threshold:
        notes.append(
            f"Composite confidence {aggregate.confidence:.2f} is below the {threshold:.2f} threshold."
        )
    for binding, failure in aggregate.lost:
        notes.append(f"No {binding.name} advice: {failure.kind.value} ({failure.reason}).")
    for binding, failure in aggregate.degraded:
        notes.append(f"{binding.label} advice relied on degraded data: {failure.reason}.")
    for name in relevant_fields:
        field = context.field(name)
        if field.substituted:
            notes.append(f"{name.capitalize()} uses regional default values instead of measured data.")
        elif not field.available:
            notes.append(f"{name.capitalize()} data missing: {field.failure_reason or 'not provided'}.")
        elif field.stale:
            notes.append(f"{name.capitalize()} data is stale ({field.source.value}).")
    return notes


def build_disclaimer(
    aggregate: Aggregate,
    context: RecommendationContext,
    relevant_fields: Sequence[str],
) -> str:
    sentences: List[str] = []
    for binding, failure in aggregate.lost:
        sentences.append(
            f"{binding.label} data unavailable ({_failure_text(failure.kind, failure.error_kind)})."
        )
    for binding, failure in aggregate.degraded:
        sentences.append(f"{binding.label} advice is based on degraded data ({failure.reason}).")
    for name in relevant_fields:
        field = context.field(name)
        label = name.capitalize()
        if field.substituted:
            sentences.append(f"{label} data was not available; regional default values were used.")
        elif not field.available:
            sentences.append(f"{label} data unavailable; advice was produced without it.")
        elif field.stale:
            stamp = field.fetched_at.strftime("%Y-%m-%d %H:%M UTC") if field.fetched_at else "unknown"
            sentences.append(f"{label} data may be out of date (last updated {stamp}).")
    return " ".join(sentences)


def build_sources(
    bindings: Sequence[AdvisorBinding],
    aggregate: Aggregate,
    context: RecommendationContext,
    relevant_fields: Sequence[str],
) -> List[SourceRecord]:
    records: List[SourceRecord] = []
    for name in relevant_fields:
        field = context.field(name)
        if field.substituted:
            freshness = "substituted"
        elif not field.available:
            freshness = "missing"
        elif field.stale:
            freshness = "stale"
        else:
            freshness = "fresh"
        records.append(
            SourceRecord(
                name=name,
                kind="context",
                source=field.source.value,
                freshness=freshness,
                fetched_at=field.fetched_at,
                detail=field.failure_reason,
            )
        )
    lost = {binding.name: failure for binding, failure in aggregate.lost}
    degraded = {binding.name: failure for binding, failure in aggregate.degraded}
    for binding in bindings:
        if binding.name in lost:
            failure = lost[binding.name]
            freshness, detail = "failed", f"{failure.kind.value}: {failure.reason}"
        elif binding.name in degraded:
            freshness, detail = "degraded", degraded[binding.name].reason
        else:
            freshness, detail = "fresh", None
        records.append(
            SourceRecord(
                name=binding.name,
                kind="advisor",
                source="required" if binding.required else "optional",
                freshness=freshness,
                detail=detail,
            )
        )
    return records


def compose_explanation(
    intent: str,
    bindings: Sequence[AdvisorBinding],
    aggregate: Aggregate,
    context: RecommendationContext,
    relevant_fields: Sequence[str],
    threshold: float,
) -> Explanation:
    top = aggregate.suggestions[0]
    summary = (
        f"{len(aggregate.suggestions)} suggestion(s) for {intent.replace('_', ' ')} in "
        f"{context.region} ({context.season.value}) from {len(aggregate.survivors)} of "
        f"{len(bindings)} advisor(s). Top: {top.title} ({top.advisor}). "
        f"Confidence {aggregate.confidence:.2f}."
    )
    return Explanation(
        summary=summary,
        key_factors=rank_factors(aggregate),
        uncertainties=build_uncertainties(aggregate, context, relevant_fields, threshold),
    )
