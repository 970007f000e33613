from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EngineSettings(BaseModel):
    """Startup-time tunables of the orchestration core. Never mutated per request."""

    model_config = ConfigDict(frozen=True)

    advisor_timeout_ceiling: float = Field(
        default=3.0, gt=0, description="Upper bound for a single advisor call, seconds."
    )
    request_deadline: float = Field(
        default=10.0, gt=0, description="End-to-end budget for one request, seconds."
    )
    suggestion_cap: int = Field(default=10, ge=1)
    confidence_floor: float = Field(default=0.2, ge=0.0, le=1.0)
    degradation_penalty_factor: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Multiplier applied once per missing optional advisor.",
    )
    uncertainty_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    context_fetch_timeout: float = Field(default=2.0, gt=0)
    stale_after_seconds: int = Field(default=21600, ge=0)

    @model_validator(mode="after")
    def _check_budgets(self) -> "EngineSettings":
        if self.context_fetch_timeout >= self.request_deadline:
            raise ValueError(
                "context_fetch_timeout must leave budget for advisors "
                f"(got {self.context_fetch_timeout} >= {self.request_deadline})"
            )
        return self
