"""Best-effort resolution of the per-request context bundle."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ...domain.enums import ContextFieldName, DataSource, DegradationAction, Season
from ...domain.errors import InsufficientData
from ...domain.normalizers import EnumNormalizer
from ...domain.policy import DegradationPolicy
from ...domain.regional_defaults import RegionalDefaults
from ...infra.context_cache import MemoryContextCache
from ...infra.data_sources import ContextSource
from ...observability.logging_utils import log_event, log_warning, with_trace
from ...schemas import ContextField, RecommendationContext, RecommendationRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContextResolver:
    """Wraps the upstream data sources behind one contract.

    ``resolve`` never raises for partial data: every field comes back either
    populated (with its provenance) or explicitly missing with a reason.
    ``resolve_for`` additionally applies a degradation policy for one intent.
    """

    def __init__(
        self,
        sources: Mapping[str, ContextSource],
        *,
        regional_defaults: Optional[RegionalDefaults] = None,
        cache: Optional[MemoryContextCache] = None,
        fetch_timeout: float = 2.0,
        stale_after_seconds: int = 21600,
        default_region: str = "global",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sources = {ContextFieldName(name).value: src for name, src in sources.items()}
        self._defaults = regional_defaults or RegionalDefaults(fallback_region=default_region)
        self._cache = cache
        self._fetch_timeout = fetch_timeout
        self._stale_after = stale_after_seconds
        self._default_region = default_region
        self._clock = clock

    def resolve(
        self,
        user_id: str,
        region: Optional[str],
        season,
        overrides: Optional[Mapping[str, object]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> RecommendationContext:
        region = region or self._default_region
        season = Season(EnumNormalizer.normalize(Season, season)).value
        now = self._clock()
        overrides = dict(overrides or {})
        fields: Dict[str, ContextField] = {}

        for name in ContextFieldName:
            value = overrides.get(name.value)
            if value is not None:
                fields[name.value] = ContextField.provided(value, DataSource.USER_INPUT, now)

        to_fetch = [
            name for name in self._sources if name not in fields
        ]
        if to_fetch:
            budget = self._fetch_timeout if timeout is None else min(timeout, self._fetch_timeout)
            executor = ThreadPoolExecutor(
                max_workers=len(to_fetch), thread_name_prefix="context-fetch"
            )
            try:
                futures = {
                    name: executor.submit(
                        with_trace(self._fetch_one), name, user_id, region, season
                    )
                    for name in to_fetch
                }
                done, _ = wait(list(futures.values()), timeout=max(budget, 0.0))
                for name, future in futures.items():
                    if future in done:
                        fields[name] = future.result()
                    else:
                        future.cancel()
                        fields[name] = self._fallback(
                            name, user_id, region, season, f"timed out after {budget:.2f}s"
                        )
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        for name in ContextFieldName:
            if name.value not in fields:
                fields[name.value] = ContextField.missing("not provided")

        return RecommendationContext(
            user_id=user_id,
            region=region,
            season=season,
            resolved_at=now,
            **fields,
        )

    def resolve_for(
        self,
        intent: str,
        request: RecommendationRequest,
        policy: DegradationPolicy,
        relevant_fields: Iterable[str],
        *,
        timeout: Optional[float] = None,
    ) -> RecommendationContext:
        supplied = request.user_supplied()
        context = self.resolve(
            request.user_id,
            request.region,
            request.season,
            supplied,
            timeout=timeout,
        )
        self.record(request.user_id, supplied)
        return self.apply_policy(intent, context, policy, relevant_fields)

    def record(self, user_id: str, values: Mapping[str, object]) -> List[str]:
        """Hand user-reported values to sources that keep them; returns the fields stored.

        Storage problems are logged and skipped; they never fail a request.
        """
        recorded = []
        for name, value in values.items():
            source = self._sources.get(ContextFieldName(name).value)
            if source is None or value is None:
                continue
            try:
                stored = source.record(user_id, value)
            except Exception as exc:
                log_warning(
                    "context.record.failed",
                    field=name,
                    error_kind=type(exc).__name__,
                    error=str(exc),
                )
                continue
            if stored:
                recorded.append(name)
        if recorded:
            log_event("context.recorded", user_id=user_id, fields=recorded)
        return recorded

    def apply_policy(
        self,
        intent: str,
        context: RecommendationContext,
        policy: DegradationPolicy,
        relevant_fields: Iterable[str],
    ) -> RecommendationContext:
        for name in relevant_fields:
            field = context.field(name)
            if field.available and not field.stale:
                continue
            action = policy.decide(intent, name)
            reason = field.failure_reason or (
                f"stale {field.source.value} data" if field.stale else "no data"
            )
            if action == DegradationAction.FAIL_REQUEST:
                log_warning(
                    "context.required_missing", intent=intent, field=name, reason=reason
                )
                raise InsufficientData(intent, missing_fields=[name], reason=reason)
            if action == DegradationAction.SUBSTITUTE_REGIONAL_DEFAULT:
                default = self._defaults.lookup(name, context.region, context.season.value)
                if default is None:
                    log_warning(
                        "context.substitute_unavailable",
                        intent=intent,
                        field=name,
                        region=context.region,
                    )
                    continue
                context = context.with_field(
                    name,
                    ContextField.provided(
                        default,
                        DataSource.REGIONAL_DEFAULT,
                        self._clock(),
                        failure_reason=reason,
                    ),
                )
                log_event(
                    "context.substituted", intent=intent, field=name, region=context.region
                )
        return context

    def _fetch_one(self, name: str, user_id: str, region: str, season: str) -> ContextField:
        source = self._sources[name]
        try:
            value = source.fetch(user_id, region, season)
        except Exception as exc:
            return self._fallback(name, user_id, region, season, f"{type(exc).__name__}: {exc}")
        if value is None:
            return self._fallback(name, user_id, region, season, "no data")
        fetched_at = self._clock()
        if self._cache is not None:
            key = self._cache.make_key(name, user_id, region, season)
            self._cache.set(key, value, fetched_at)
        return ContextField.provided(value, DataSource.SERVICE, fetched_at)

    def _fallback(
        self, name: str, user_id: str, region: str, season: str, reason: str
    ) -> ContextField:
        cached = None
        if self._cache is not None:
            cached = self._cache.get(self._cache.make_key(name, user_id, region, season))
        if cached is not None:
            age = (self._clock() - cached.fetched_at).total_seconds()
            stale = age > self._stale_after
            log_event(
                "context.fetch.cached", field=name, region=region, age_seconds=int(age), stale=stale
            )
            return ContextField.provided(
                cached.value,
                DataSource.CACHED,
                cached.fetched_at,
                stale=stale,
                failure_reason=reason,
            )
        log_warning("context.fetch.failed", field=name, region=region, reason=reason)
        return ContextField.missing(reason)
