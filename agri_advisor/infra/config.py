from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..schemas.settings import EngineSettings


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_region: str = Field(default="global", validation_alias="DEFAULT_REGION")
    fastapi_port: int = Field(default=8000, validation_alias="FASTAPI_PORT")
    log_path: Optional[str] = Field(default=None, validation_alias="LOG_PATH")

    advisor_timeout_ceiling_seconds: float = Field(
        default=3.0, validation_alias="ADVISOR_TIMEOUT_CEILING_SECONDS"
    )
    request_deadline_seconds: float = Field(
        default=10.0, validation_alias="REQUEST_DEADLINE_SECONDS"
    )
    suggestion_cap: int = Field(default=10, validation_alias="SUGGESTION_CAP")
    confidence_floor: float = Field(default=0.2, validation_alias="CONFIDENCE_FLOOR")
    degradation_penalty_factor: float = Field(
        default=0.8, validation_alias="DEGRADATION_PENALTY_FACTOR"
    )
    uncertainty_threshold: float = Field(
        default=0.6, validation_alias="UNCERTAINTY_THRESHOLD"
    )
    context_fetch_timeout_seconds: float = Field(
        default=2.0, validation_alias="CONTEXT_FETCH_TIMEOUT_SECONDS"
    )
    context_stale_after_seconds: int = Field(
        default=21600, validation_alias="CONTEXT_STALE_AFTER_SECONDS"
    )
    degradation_policy_path: Optional[str] = Field(
        default=None, validation_alias="DEGRADATION_POLICY_PATH"
    )

    weather_provider: str = Field(
        default="mock", validation_alias="WEATHER_PROVIDER"
    )
    weather_api_url: Optional[str] = Field(
        default=None, validation_alias="WEATHER_API_URL"
    )
    weather_api_key: Optional[str] = Field(
        default=None, validation_alias="WEATHER_API_KEY"
    )
    soil_provider: str = Field(default="mock", validation_alias="SOIL_PROVIDER")
    soil_api_url: Optional[str] = Field(default=None, validation_alias="SOIL_API_URL")
    soil_api_key: Optional[str] = Field(default=None, validation_alias="SOIL_API_KEY")
    intranet_timeout_seconds: float = Field(
        default=5.0, validation_alias="INTRANET_TIMEOUT_SECONDS"
    )

    history_store: str = Field(default="memory", validation_alias="HISTORY_STORE")
    history_store_path: Optional[str] = Field(
        default=None, validation_alias="HISTORY_STORE_PATH"
    )
    history_store_ttl_days: int = Field(
        default=365, validation_alias="HISTORY_STORE_TTL_DAYS"
    )
    context_cache_ttl_seconds: int = Field(
        default=86400, validation_alias="CONTEXT_CACHE_TTL_SECONDS"
    )
    context_cache_max_items: int = Field(
        default=256, validation_alias="CONTEXT_CACHE_MAX_ITEMS"
    )

    @field_validator("weather_provider", "soil_provider", mode="after")
    @classmethod
    def normalize_source_provider(cls, value: str) -> str:
        return value.lower() if value else value

    @field_validator("history_store", mode="after")
    @classmethod
    def normalize_history_store(cls, value: str) -> str:
        return value.lower() if value else value

    def engine_settings(self) -> EngineSettings:
        """Freeze the engine tunables; the result is shared by every request."""
        return EngineSettings(
            advisor_timeout_ceiling=self.advisor_timeout_ceiling_seconds,
            request_deadline=self.request_deadline_seconds,
            suggestion_cap=self.suggestion_cap,
            confidence_floor=self.confidence_floor,
            degradation_penalty_factor=self.degradation_penalty_factor,
            uncertainty_threshold=self.uncertainty_threshold,
            context_fetch_timeout=self.context_fetch_timeout_seconds,
            stale_after_seconds=self.context_stale_after_seconds,
        )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig()
