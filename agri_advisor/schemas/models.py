from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.enums import ContextFieldName, DataSource, FailureKind, Impact, Season
from ..domain.normalizers import EnumNormalizer, normalize_intent


Priority = Literal["low", "medium", "high"]
Freshness = Literal["fresh", "stale"]


class WeatherSnapshot(BaseModel):
    """Seasonal weather outlook for the request's region."""

    model_config = ConfigDict(frozen=True)

    temperature_c: Optional[float] = Field(default=None, description="Mean air temperature.")
    temperature_max_c: Optional[float] = None
    temperature_min_c: Optional[float] = None
    rainfall_mm: Optional[float] = Field(
        default=None, ge=0.0, description="Expected seasonal rainfall."
    )
    forecast_rain_mm_7d: Optional[float] = Field(default=None, ge=0.0)
    humidity: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    evapotranspiration_mm: Optional[float] = Field(
        default=None, ge=0.0, description="Reference evapotranspiration per day (ET0)."
    )
    condition: Optional[str] = None


class SoilInfo(BaseModel):
    """Soil test summary for the farm or region."""

    model_config = ConfigDict(frozen=True)

    soil_type: Optional[str] = Field(
        default=None, description="Texture class, e.g. sandy, loam, clay."
    )
    ph: Optional[float] = Field(default=None, ge=0.0, le=14.0)
    organic_matter_pct: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    nitrogen_kg_ha: Optional[float] = Field(default=None, ge=0.0)
    phosphorus_kg_ha: Optional[float] = Field(default=None, ge=0.0)
    potassium_kg_ha: Optional[float] = Field(default=None, ge=0.0)
    moisture_pct: Optional[float] = Field(default=None, ge=0.0, le=100.0)

    @field_validator("soil_type", mode="before")
    @classmethod
    def _norm_soil_type(cls, v):
        return str(v).strip().lower() if v else v


class CropHistory(BaseModel):
    """Crops previously grown on the plot, most recent first."""

    model_config = ConfigDict(frozen=True)

    previous_crops: Tuple[str, ...] = ()
    last_harvest: Optional[date] = None

    @field_validator("previous_crops", mode="before")
    @classmethod
    def _norm_crops(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(item).strip().lower() for item in v if str(item).strip())

    @property
    def last_crop(self) -> Optional[str]:
        return self.previous_crops[0] if self.previous_crops else None


class UserPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    farm_size_ha: Optional[float] = Field(default=None, gt=0.0)
    irrigation_available: Optional[bool] = None
    organic_only: bool = False
    preferred_crops: Tuple[str, ...] = ()
    budget: Optional[Priority] = None

    @field_validator("preferred_crops", mode="before")
    @classmethod
    def _norm_crops(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(item).strip().lower() for item in v if str(item).strip())


ContextValue = Union[WeatherSnapshot, SoilInfo, CropHistory, UserPreferences]


class ContextField(BaseModel):
    """One optional context input together with its provenance."""

    model_config = ConfigDict(frozen=True)

    value: Optional[ContextValue] = None
    source: DataSource = DataSource.MISSING
    fetched_at: Optional[datetime] = None
    stale: bool = False
    substituted: bool = False
    failure_reason: Optional[str] = None

    @model_validator(mode="after")
    def _check_provenance(self) -> "ContextField":
        if self.value is None and self.source != DataSource.MISSING:
            raise ValueError(f"field without value must be marked missing, got {self.source}")
        if self.value is not None and self.source == DataSource.MISSING:
            raise ValueError("field marked missing cannot carry a value")
        if self.substituted and self.source != DataSource.REGIONAL_DEFAULT:
            raise ValueError("substituted fields must come from regional defaults")
        return self

    @classmethod
    def missing(cls, reason: Optional[str] = None) -> "ContextField":
        return cls(source=DataSource.MISSING, failure_reason=reason)

    @classmethod
    def provided(
        cls,
        value: ContextValue,
        source: DataSource,
        fetched_at: Optional[datetime] = None,
        *,
        stale: bool = False,
        failure_reason: Optional[str] = None,
    ) -> "ContextField":
        return cls(
            value=value,
            source=source,
            fetched_at=fetched_at,
            stale=stale,
            substituted=source == DataSource.REGIONAL_DEFAULT,
            failure_reason=failure_reason,
        )

    @property
    def available(self) -> bool:
        return self.value is not None


class RecommendationContext(BaseModel):
    """Resolved inputs for one request. Shared read-only by concurrent advisors."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    region: str
    season: Season
    weather: ContextField = Field(default_factory=ContextField)
    soil: ContextField = Field(default_factory=ContextField)
    history: ContextField = Field(default_factory=ContextField)
    preferences: ContextField = Field(default_factory=ContextField)
    resolved_at: datetime

    @field_validator("season", mode="before")
    @classmethod
    def _norm_season(cls, v):
        return EnumNormalizer.normalize(Season, v)

    def field(self, name: Union[str, ContextFieldName]) -> ContextField:
        return getattr(self, ContextFieldName(name).value)

    def value(self, name: Union[str, ContextFieldName]) -> Optional[ContextValue]:
        return self.field(name).value

    def with_field(
        self, name: Union[str, ContextFieldName], field: ContextField
    ) -> "RecommendationContext":
        return self.model_copy(update={ContextFieldName(name).value: field})

    def missing_fields(self) -> List[str]:
        return [f.value for f in ContextFieldName if not self.field(f).available]

    def stale_fields(self) -> List[str]:
        return [f.value for f in ContextFieldName if self.field(f).stale]

    def substituted_fields(self) -> List[str]:
        return [f.value for f in ContextFieldName if self.field(f).substituted]


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    priority: Priority = "medium"
    suitability_score: float = Field(..., ge=0.0, le=1.0)
    details: Dict[str, Any] = Field(default_factory=dict)


class Factor(BaseModel):
    """An input an advisor relied on, with its estimated influence."""

    model_config = ConfigDict(frozen=True)

    name: str
    impact: Impact = Impact.MEDIUM
    detail: Optional[str] = None

    @field_validator("impact", mode="before")
    @classmethod
    def _norm_impact(cls, v):
        return EnumNormalizer.normalize(Impact, v)


class AdvisorResult(BaseModel):
    """Output of one advisor invocation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    suggestions: Tuple[Suggestion, ...] = ()
    confidence: float = Field(..., ge=0.0, le=1.0)
    factors: Tuple[Factor, ...] = ()
    data_freshness: Freshness = "fresh"
    freshness_note: Optional[str] = None


class PartialFailure(BaseModel):
    """Non-fatal outcome of one advisor invocation."""

    model_config = ConfigDict(frozen=True)

    advisor: str
    kind: FailureKind
    error_kind: Optional[str] = None
    reason: str = ""
    elapsed_ms: Optional[int] = None
    result: Optional[AdvisorResult] = Field(
        default=None, description="Retained output of a degraded invocation."
    )

    @model_validator(mode="after")
    def _check_result(self) -> "PartialFailure":
        if self.kind == FailureKind.DEGRADED and self.result is None:
            raise ValueError("degraded outcome must retain its advisor result")
        if self.kind != FailureKind.DEGRADED and self.result is not None:
            raise ValueError(f"{self.kind.value} outcome cannot carry a result")
        return self

    @classmethod
    def timeout(cls, advisor: str, budget_seconds: float, elapsed_ms: Optional[int] = None):
        return cls(
            advisor=advisor,
            kind=FailureKind.TIMEOUT,
            reason=f"no result within {budget_seconds:.2f}s",
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def error(cls, advisor: str, error_kind: str, reason: str, elapsed_ms: Optional[int] = None):
        return cls(
            advisor=advisor,
            kind=FailureKind.ERROR,
            error_kind=error_kind,
            reason=reason,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def degraded(
        cls, advisor: str, result: AdvisorResult, reason: str, elapsed_ms: Optional[int] = None
    ):
        return cls(
            advisor=advisor,
            kind=FailureKind.DEGRADED,
            reason=reason,
            elapsed_ms=elapsed_ms,
            result=result,
        )

    @property
    def lost(self) -> bool:
        """True when the invocation produced nothing usable."""
        return self.kind in (FailureKind.TIMEOUT, FailureKind.ERROR)


AdvisorOutcome = Union[AdvisorResult, PartialFailure]


class RankedSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int = Field(..., ge=1)
    title: str
    description: str = ""
    priority: Priority = "medium"
    suitability_score: float
    advisor: str
    advisor_confidence: float
    composite_score: float
    details: Dict[str, Any] = Field(default_factory=dict)


class KeyFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    impact: Impact
    detail: Optional[str] = None
    advisors: List[str] = Field(default_factory=list)
    mentions: int = 1


class Explanation(BaseModel):
    """Structured reasoning data; prose rendering happens outside the core."""

    model_config = ConfigDict(frozen=True)

    summary: str = ""
    key_factors: List[KeyFactor] = Field(default_factory=list)
    uncertainties: List[str] = Field(default_factory=list)


class SourceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: Literal["context", "advisor"]
    source: str
    freshness: Literal["fresh", "stale", "substituted", "missing", "failed", "degraded"]
    fetched_at: Optional[datetime] = None
    detail: Optional[str] = None


class Recommendation(BaseModel):
    """Final aggregate returned to the caller. Immutable."""

    model_config = ConfigDict(frozen=True)

    id: str
    intent: str
    suggestions: List[RankedSuggestion] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    explanation: Explanation
    disclaimer: str = ""
    sources: List[SourceRecord] = Field(default_factory=list)
    created_at: datetime


class RecommendationRequest(BaseModel):
    """Caller-side inputs: a classified intent plus the raw context inputs."""

    intent: str
    user_id: str = Field(default="anonymous")
    region: Optional[str] = Field(
        default=None, description="Region identifier; falls back to DEFAULT_REGION."
    )
    season: Season
    weather: Optional[WeatherSnapshot] = None
    soil: Optional[SoilInfo] = None
    history: Optional[CropHistory] = None
    preferences: Optional[UserPreferences] = None

    @field_validator("intent", mode="before")
    @classmethod
    def _norm_intent(cls, v):
        return normalize_intent(v)

    @field_validator("season", mode="before")
    @classmethod
    def _norm_season(cls, v):
        return EnumNormalizer.normalize(Season, v)

    def user_supplied(self) -> Dict[str, ContextValue]:
        supplied = {
            ContextFieldName.WEATHER.value: self.weather,
            ContextFieldName.SOIL.value: self.soil,
            ContextFieldName.HISTORY.value: self.history,
            ContextFieldName.PREFERENCES.value: self.preferences,
        }
        return {name: value for name, value in supplied.items() if value is not None}
