from __future__ import annotations

from ..domain.knowledge_base import SOIL_WATER_HOLDING_MM, canonical_soil_type
from ..schemas import AdvisorResult, Factor, RecommendationContext, Suggestion
from .base import AdvisorCapability, input_quality


BASE_CONFIDENCE = 0.8
ROOT_ZONE_M = 0.6
ALLOWED_DEPLETION = 0.5
RAIN_SKIP_MM = 25.0


class IrrigationAdvisor(AdvisorCapability):
    name = "irrigation"
    display_name = "Irrigation"
    relevant_fields = ("weather", "soil", "preferences")

    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        weather = context.weather.value
        soil = context.soil.value
        prefs = context.preferences.value

        et0 = weather.evapotranspiration_mm if weather and weather.evapotranspiration_mm else 4.0
        soil_type = canonical_soil_type(soil.soil_type) if soil else ""
        holding = SOIL_WATER_HOLDING_MM.get(soil_type, 150.0) * ROOT_ZONE_M
        readily_available = holding * ALLOWED_DEPLETION
        interval_days = max(1, int(readily_available // et0))
        depth_mm = round(readily_available, 1)

        suggestions = []
        forecast_rain = weather.forecast_rain_mm_7d if weather else None
        if forecast_rain is not None and forecast_rain >= RAIN_SKIP_MM:
            suggestions.append(
                Suggestion(
                    title="Postpone the next irrigation",
                    description=(
                        f"About {forecast_rain:.0f} mm of rain is forecast this week; "
                        "skip one irrigation cycle and re-check soil moisture afterwards."
                    ),
                    priority="high",
                    suitability_score=0.9,
                    details={"forecast_rain_mm_7d": forecast_rain},
                )
            )
        suggestions.append(
            Suggestion(
                title=f"Irrigate every {interval_days} days",
                description=(
                    f"Apply roughly {depth_mm} mm per irrigation to refill the root zone "
                    f"at an evapotranspiration rate of {et0:.1f} mm/day."
                ),
                priority="high",
                suitability_score=0.85 if soil is not None else 0.7,
                details={"interval_days": interval_days, "depth_mm": depth_mm, "et0_mm": et0},
            )
        )
        moisture = soil.moisture_pct if soil else None
        if moisture is not None and moisture < 15.0:
            suggestions.append(
                Suggestion(
                    title="Pre-sowing irrigation",
                    description=f"Soil moisture is {moisture:.0f}%; irrigate before sowing.",
                    priority="high",
                    suitability_score=0.8,
                    details={"moisture_pct": moisture},
                )
            )
        if soil_type in ("sandy", "sandy_loam") or et0 >= 6.0:
            drip_ready = bool(prefs and prefs.irrigation_available)
            suggestions.append(
                Suggestion(
                    title="Switch to drip irrigation" if drip_ready else "Mulch to cut evaporation",
                    description=(
                        "Light soils and high evaporative demand lose water quickly; "
                        + ("drip lines keep the root zone moist with less water."
                           if drip_ready else "crop residue mulch reduces surface losses.")
                    ),
                    priority="medium",
                    suitability_score=0.75 if drip_ready else 0.65,
                    details={"soil_type": soil_type or None, "et0_mm": et0},
                )
            )

        multiplier, stale, notes = input_quality([context.weather, context.soil])
        factors = [
            Factor(name="evapotranspiration", impact="high", detail=f"{et0:.1f} mm/day"),
            Factor(name="soil type", impact="high" if soil else "low", detail=soil_type or None),
        ]
        if forecast_rain is not None:
            factors.append(Factor(name="rain forecast", impact="medium", detail=f"{forecast_rain} mm"))
        if moisture is not None:
            factors.append(Factor(name="soil moisture", impact="medium", detail=f"{moisture}%"))
        return AdvisorResult(
            suggestions=tuple(suggestions),
            confidence=round(BASE_CONFIDENCE * multiplier, 4),
            factors=tuple(factors),
            data_freshness="stale" if stale else "fresh",
            freshness_note="; ".join(notes) or None,
        )
