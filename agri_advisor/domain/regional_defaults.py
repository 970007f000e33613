"""Seasonal regional averages used when a context field is explicitly substituted."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..schemas import CropHistory, SoilInfo, WeatherSnapshot
from .enums import ContextFieldName, Season


@dataclass(frozen=True)
class RegionProfile:
    region: str
    weather: Dict[str, WeatherSnapshot]
    soil: SoilInfo
    history: CropHistory = field(default_factory=CropHistory)


REGION_PROFILES: Dict[str, RegionProfile] = {
    "semi-arid-a": RegionProfile(
        region="semi-arid-a",
        weather={
            "monsoon": WeatherSnapshot(
                temperature_c=29.0, temperature_max_c=35.0, temperature_min_c=23.0,
                rainfall_mm=520.0, humidity=62.0, evapotranspiration_mm=5.5,
                condition="scattered showers",
            ),
            "winter": WeatherSnapshot(
                temperature_c=19.0, temperature_max_c=27.0, temperature_min_c=10.0,
                rainfall_mm=60.0, humidity=45.0, evapotranspiration_mm=3.2,
                condition="dry",
            ),
            "summer": WeatherSnapshot(
                temperature_c=34.0, temperature_max_c=42.0, temperature_min_c=26.0,
                rainfall_mm=40.0, humidity=30.0, evapotranspiration_mm=7.5,
                condition="hot and dry",
            ),
        },
        soil=SoilInfo(
            soil_type="sandy_loam", ph=7.8, organic_matter_pct=0.6,
            nitrogen_kg_ha=180.0, phosphorus_kg_ha=12.0, potassium_kg_ha=220.0,
            moisture_pct=12.0,
        ),
        history=CropHistory(previous_crops=("pearl_millet", "chickpea")),
    ),
    "humid-coastal-b": RegionProfile(
        region="humid-coastal-b",
        weather={
            "monsoon": WeatherSnapshot(
                temperature_c=28.0, temperature_max_c=31.0, temperature_min_c=24.0,
                rainfall_mm=1900.0, humidity=85.0, evapotranspiration_mm=4.0,
                condition="heavy rain",
            ),
            "winter": WeatherSnapshot(
                temperature_c=24.0, temperature_max_c=29.0, temperature_min_c=19.0,
                rainfall_mm=150.0, humidity=70.0, evapotranspiration_mm=3.5,
                condition="mild",
            ),
        },
        soil=SoilInfo(
            soil_type="clay_loam", ph=5.8, organic_matter_pct=1.8,
            nitrogen_kg_ha=260.0, phosphorus_kg_ha=22.0, potassium_kg_ha=180.0,
            moisture_pct=32.0,
        ),
        history=CropHistory(previous_crops=("rice", "rice")),
    ),
    "temperate-c": RegionProfile(
        region="temperate-c",
        weather={
            "spring": WeatherSnapshot(
                temperature_c=14.0, temperature_max_c=20.0, temperature_min_c=7.0,
                rainfall_mm=220.0, humidity=65.0, evapotranspiration_mm=3.0,
                condition="variable",
            ),
            "autumn": WeatherSnapshot(
                temperature_c=12.0, temperature_max_c=17.0, temperature_min_c=6.0,
                rainfall_mm=260.0, humidity=75.0, evapotranspiration_mm=1.8,
                condition="cool and wet",
            ),
        },
        soil=SoilInfo(
            soil_type="loam", ph=6.5, organic_matter_pct=3.2,
            nitrogen_kg_ha=300.0, phosphorus_kg_ha=30.0, potassium_kg_ha=200.0,
            moisture_pct=25.0,
        ),
        history=CropHistory(previous_crops=("wheat", "potato")),
    ),
    "global": RegionProfile(
        region="global",
        weather={
            "spring": WeatherSnapshot(
                temperature_c=18.0, rainfall_mm=250.0, humidity=60.0,
                evapotranspiration_mm=3.5, condition="average",
            ),
            "summer": WeatherSnapshot(
                temperature_c=27.0, rainfall_mm=300.0, humidity=55.0,
                evapotranspiration_mm=5.0, condition="average",
            ),
            "monsoon": WeatherSnapshot(
                temperature_c=27.0, rainfall_mm=800.0, humidity=75.0,
                evapotranspiration_mm=4.5, condition="average",
            ),
            "autumn": WeatherSnapshot(
                temperature_c=16.0, rainfall_mm=220.0, humidity=65.0,
                evapotranspiration_mm=2.5, condition="average",
            ),
            "winter": WeatherSnapshot(
                temperature_c=10.0, rainfall_mm=150.0, humidity=65.0,
                evapotranspiration_mm=1.8, condition="average",
            ),
        },
        soil=SoilInfo(
            soil_type="loam", ph=6.8, organic_matter_pct=1.5,
            nitrogen_kg_ha=240.0, phosphorus_kg_ha=20.0, potassium_kg_ha=180.0,
            moisture_pct=20.0,
        ),
    ),
}


class RegionalDefaults:
    """Lookup of regional averages; unknown regions fall back to ``fallback_region``."""

    def __init__(
        self,
        profiles: Optional[Dict[str, RegionProfile]] = None,
        fallback_region: str = "global",
    ) -> None:
        self._profiles = dict(profiles if profiles is not None else REGION_PROFILES)
        self._fallback_region = fallback_region.lower()

    def _profile(self, region: str) -> Optional[RegionProfile]:
        key = (region or "").strip().lower()
        return self._profiles.get(key) or self._profiles.get(self._fallback_region)

    def lookup(self, field_name: str, region: str, season: str):
        """Default value for ``field_name`` or None when no regional average exists."""
        profile = self._profile(region)
        if profile is None:
            return None
        name = ContextFieldName(field_name)
        season = Season(season).value
        if name == ContextFieldName.WEATHER:
            snapshot = profile.weather.get(season)
            if snapshot is None:
                fallback = self._profiles.get(self._fallback_region)
                snapshot = fallback.weather.get(season) if fallback else None
            return snapshot
        if name == ContextFieldName.SOIL:
            return profile.soil
        if name == ContextFieldName.HISTORY:
            return profile.history if profile.history.previous_crops else None
        return None
