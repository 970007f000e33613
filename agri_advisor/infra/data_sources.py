"""Upstream context data sources (weather, soil, crop history)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import BaseModel, ValidationError

from ..domain.regional_defaults import REGION_PROFILES
from ..schemas import CropHistory, SoilInfo, WeatherSnapshot
from .config import AppConfig, get_config
from .history_store import CropHistoryStore, build_history_store


class ContextFetchError(RuntimeError):
    """Raised by a source when it cannot provide its field."""


class ContextSource(ABC):
    """Fetches one context field. Implementations raise on failure."""

    name = "source"

    @abstractmethod
    def fetch(self, user_id: str, region: str, season: str) -> Optional[Any]:
        raise NotImplementedError

    def record(self, user_id: str, value: Any) -> bool:
        """Persist a user-reported value; returns False for read-only sources."""
        return False


def normalize_provider(value: Optional[str]) -> str:
    return (value or "mock").lower()


def build_intranet_headers(api_key: Optional[str]) -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


class IntranetSource(ContextSource):
    """POSTs ``{user_id, region, season}`` to an internal data API."""

    def __init__(
        self,
        name: str,
        model: Type[BaseModel],
        api_url: Optional[str],
        api_key: Optional[str],
        timeout: float,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.name = name
        self._model = model
        self._api_url = api_url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def fetch(self, user_id: str, region: str, season: str) -> Optional[Any]:
        if not self._api_url:
            raise ContextFetchError(f"{self.name}: intranet provider not configured")
        try:
            with httpx.Client(
                timeout=self._timeout, trust_env=False, transport=self._transport
            ) as client:
                response = client.post(
                    self._api_url,
                    json={"user_id": user_id, "region": region, "season": season},
                    headers=build_intranet_headers(self._api_key),
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ContextFetchError(f"{self.name}: intranet request failed: {exc}") from exc

        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if not payload:
            return None
        try:
            return self._model.model_validate(payload)
        except ValidationError as exc:
            raise ContextFetchError(f"{self.name}: malformed payload: {exc}") from exc


class MockWeatherSource(ContextSource):
    """Regional seasonal outlook with a fixed one-week forecast."""

    name = "weather"

    def fetch(self, user_id: str, region: str, season: str) -> Optional[Any]:
        profile = REGION_PROFILES.get((region or "").lower())
        if profile is None:
            raise ContextFetchError(f"weather: no station data for region {region!r}")
        snapshot = profile.weather.get(season)
        if snapshot is None:
            return None
        forecast = round((snapshot.rainfall_mm or 0.0) / 13.0, 1)
        return snapshot.model_copy(update={"forecast_rain_mm_7d": forecast})


class MockSoilSource(ContextSource):
    name = "soil"

    def fetch(self, user_id: str, region: str, season: str) -> Optional[Any]:
        profile = REGION_PROFILES.get((region or "").lower())
        if profile is None:
            raise ContextFetchError(f"soil: no soil survey for region {region!r}")
        return profile.soil


class HistorySource(ContextSource):
    name = "history"

    def __init__(self, store: CropHistoryStore) -> None:
        self._store = store

    def fetch(self, user_id: str, region: str, season: str) -> Optional[CropHistory]:
        return self._store.get(user_id)

    def record(self, user_id: str, value: Any) -> bool:
        if not isinstance(value, CropHistory) or not value.previous_crops:
            return False
        self._store.record(user_id, value)
        return True


def build_weather_source(cfg: Optional[AppConfig] = None) -> ContextSource:
    cfg = cfg or get_config()
    provider = normalize_provider(cfg.weather_provider)
    if provider == "intranet":
        return IntranetSource(
            "weather",
            WeatherSnapshot,
            cfg.weather_api_url,
            cfg.weather_api_key,
            cfg.intranet_timeout_seconds,
        )
    return MockWeatherSource()


def build_soil_source(cfg: Optional[AppConfig] = None) -> ContextSource:
    cfg = cfg or get_config()
    provider = normalize_provider(cfg.soil_provider)
    if provider == "intranet":
        return IntranetSource(
            "soil",
            SoilInfo,
            cfg.soil_api_url,
            cfg.soil_api_key,
            cfg.intranet_timeout_seconds,
        )
    return MockSoilSource()


def build_history_source(store: Optional[CropHistoryStore] = None) -> ContextSource:
    return HistorySource(store or build_history_store())
