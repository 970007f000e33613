"""
Recommendation orchestration core for agricultural advisory.
"""

from .application.bootstrap import build_default_engine, build_engine
from .application.services.recommendation_engine import RecommendationEngine
from .domain.enums import Intent, Season
from .domain.errors import (
    ConfigurationError,
    InsufficientData,
    NoAdvisorsConfigured,
    RequestTimeout,
)
from .schemas import Recommendation, RecommendationRequest

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "InsufficientData",
    "Intent",
    "NoAdvisorsConfigured",
    "Recommendation",
    "RecommendationEngine",
    "RecommendationRequest",
    "RequestTimeout",
    "Season",
    "build_default_engine",
    "build_engine",
]
