"""Startup wiring of the default engine from AppConfig."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from ..advisors import CropAdvisor, FertilizerAdvisor, IrrigationAdvisor, SustainabilityAdvisor
from ..domain.enums import Intent
from ..domain.policy import DegradationPolicy, default_policy, load_policy
from ..domain.regional_defaults import RegionalDefaults
from ..domain.registry import AdvisorRegistry
from ..infra.config import AppConfig, get_config
from ..infra.context_cache import MemoryContextCache
from ..infra.data_sources import build_history_source, build_soil_source, build_weather_source
from ..infra.history_store import CropHistoryStore
from .services.context_resolver import ContextResolver
from .services.recommendation_engine import RecommendationEngine


def build_default_registry() -> AdvisorRegistry:
    crop = CropAdvisor()
    irrigation = IrrigationAdvisor()
    fertilizer = FertilizerAdvisor()
    sustainability = SustainabilityAdvisor()

    registry = AdvisorRegistry()
    registry.register(Intent.CROP_RECOMMENDATION, crop, required=True)
    registry.register(Intent.CROP_RECOMMENDATION, sustainability, required=False)
    registry.register(Intent.IRRIGATION_ADVICE, irrigation, required=True)
    registry.register(Intent.IRRIGATION_ADVICE, sustainability, required=False)
    registry.register(Intent.FERTILIZER_ADVICE, fertilizer, required=True)
    registry.register(Intent.FERTILIZER_ADVICE, crop, required=False)
    registry.register(Intent.SUSTAINABILITY_ADVICE, sustainability, required=True)
    return registry


def build_policy(cfg: AppConfig) -> DegradationPolicy:
    if cfg.degradation_policy_path:
        return load_policy(cfg.degradation_policy_path)
    return default_policy()


def build_resolver(
    cfg: AppConfig, history_store: Optional[CropHistoryStore] = None
) -> ContextResolver:
    settings = cfg.engine_settings()
    return ContextResolver(
        {
            "weather": build_weather_source(cfg),
            "soil": build_soil_source(cfg),
            "history": build_history_source(history_store),
        },
        regional_defaults=RegionalDefaults(fallback_region=cfg.default_region),
        cache=MemoryContextCache(
            max_items=cfg.context_cache_max_items,
            ttl_seconds=cfg.context_cache_ttl_seconds,
        ),
        fetch_timeout=settings.context_fetch_timeout,
        stale_after_seconds=settings.stale_after_seconds,
        default_region=cfg.default_region,
    )


def build_engine(cfg: Optional[AppConfig] = None) -> RecommendationEngine:
    cfg = cfg or get_config()
    return RecommendationEngine(
        build_default_registry(),
        build_resolver(cfg),
        build_policy(cfg),
        cfg.engine_settings(),
    )


@lru_cache(maxsize=1)
def build_default_engine() -> RecommendationEngine:
    return build_engine()
