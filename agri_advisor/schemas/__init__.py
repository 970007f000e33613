from .models import (
    AdvisorOutcome,
    AdvisorResult,
    ContextField,
    CropHistory,
    Explanation,
    Factor,
    KeyFactor,
    PartialFailure,
    RankedSuggestion,
    Recommendation,
    RecommendationContext,
    RecommendationRequest,
    SoilInfo,
    SourceRecord,
    Suggestion,
    UserPreferences,
    WeatherSnapshot,
)
from .settings import EngineSettings

__all__ = [
    "AdvisorOutcome",
    "AdvisorResult",
    "ContextField",
    "CropHistory",
    "EngineSettings",
    "Explanation",
    "Factor",
    "KeyFactor",
    "PartialFailure",
    "RankedSuggestion",
    "Recommendation",
    "RecommendationContext",
    "RecommendationRequest",
    "SoilInfo",
    "SourceRecord",
    "Suggestion",
    "UserPreferences",
    "WeatherSnapshot",
]
