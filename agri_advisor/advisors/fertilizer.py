from __future__ import annotations

from typing import Optional

from ..domain.knowledge_base import CROP_PROFILES, CropProfile, get_profile
from ..schemas import AdvisorResult, Factor, RecommendationContext, Suggestion
from .base import AdvisorCapability, input_quality


BASE_CONFIDENCE = 0.8
LEGUME_N_CREDIT_KG = 20.0
HEAVY_RAIN_MM = 30.0

# Soil-test thresholds (kg/ha available) below which a nutrient is applied.
N_LOW, P_LOW, K_LOW = 280.0, 25.0, 150.0


def target_crop(context: RecommendationContext) -> Optional[CropProfile]:
    prefs = context.preferences.value
    if prefs is not None:
        for crop in prefs.preferred_crops:
            profile = get_profile(crop)
            if profile is not None:
                return profile
    season = context.season.value
    return next((p for p in CROP_PROFILES.values() if season in p.seasons), None)


class FertilizerAdvisor(AdvisorCapability):
    name = "fertilizer"
    display_name = "Fertilizer"
    relevant_fields = ("soil", "history", "weather", "preferences")

    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        soil = context.soil.value
        history = context.history.value
        weather = context.weather.value
        prefs = context.preferences.value
        crop = target_crop(context)
        if crop is None:
            return AdvisorResult(suggestions=(), confidence=0.0)

        organic = bool(prefs and prefs.organic_only)
        suggestions = []
        factors = [Factor(name="target crop", impact="medium", detail=crop.name)]

        nitrogen = crop.nitrogen_kg_ha
        if soil is not None and soil.nitrogen_kg_ha is not None:
            nitrogen *= 1.0 - min(soil.nitrogen_kg_ha, N_LOW * 2) / (N_LOW * 2)
            nitrogen = max(nitrogen, crop.nitrogen_kg_ha * 0.4 if soil.nitrogen_kg_ha < N_LOW else 0.0)
            factors.append(Factor(name="soil nitrogen", impact="high", detail=f"{soil.nitrogen_kg_ha} kg/ha"))
        if history is not None and history.last_crop:
            last = CROP_PROFILES.get(history.last_crop)
            if last is not None and last.family == "fabaceae":
                nitrogen = max(0.0, nitrogen - LEGUME_N_CREDIT_KG)
                factors.append(Factor(name="crop rotation", impact="medium", detail="legume nitrogen credit"))
        if nitrogen > 0:
            split = weather is not None and (weather.forecast_rain_mm_7d or 0.0) >= HEAVY_RAIN_MM
            suggestions.append(
                Suggestion(
                    title="Apply nitrogen" + (" in split doses" if split else ""),
                    description=(
                        f"Supply about {nitrogen:.0f} kg N/ha for {crop.name.replace('_', ' ')}"
                        + (" as compost or manure" if organic else "")
                        + ("; split it to avoid leaching under forecast rain." if split else ".")
                    ),
                    priority="high",
                    suitability_score=0.85 if soil is not None else 0.65,
                    details={"nutrient": "N", "dose_kg_ha": round(nitrogen, 1), "split": split},
                )
            )
            if split:
                factors.append(Factor(name="rain forecast", impact="medium"))

        if soil is None or soil.phosphorus_kg_ha is None or soil.phosphorus_kg_ha < P_LOW:
            suggestions.append(
                Suggestion(
                    title="Apply phosphorus at sowing",
                    description=(
                        f"Band {crop.phosphorus_kg_ha:.0f} kg P2O5/ha near the seed row"
                        + (" using rock phosphate." if organic else ".")
                    ),
                    priority="medium",
                    suitability_score=0.75 if soil is not None else 0.55,
                    details={"nutrient": "P", "dose_kg_ha": crop.phosphorus_kg_ha},
                )
            )
        if soil is not None and soil.potassium_kg_ha is not None and soil.potassium_kg_ha < K_LOW:
            suggestions.append(
                Suggestion(
                    title="Apply potash",
                    description=f"Soil potassium is low; add {crop.potassium_kg_ha:.0f} kg K2O/ha.",
                    priority="medium",
                    suitability_score=0.7,
                    details={"nutrient": "K", "dose_kg_ha": crop.potassium_kg_ha},
                )
            )
        if soil is not None and soil.ph is not None:
            factors.append(Factor(name="soil pH", impact="medium", detail=str(soil.ph)))
            if soil.ph < 5.5:
                suggestions.append(
                    Suggestion(
                        title="Lime the field",
                        description="Acidic soil limits nutrient uptake; apply agricultural lime.",
                        priority="medium",
                        suitability_score=0.7,
                        details={"ph": soil.ph},
                    )
                )
            elif soil.ph > 8.0:
                suggestions.append(
                    Suggestion(
                        title="Apply gypsum",
                        description="Alkaline soil; gypsum improves structure and micronutrient availability.",
                        priority="low",
                        suitability_score=0.6,
                        details={"ph": soil.ph},
                    )
                )

        multiplier, stale, notes = input_quality([context.soil, context.history])
        return AdvisorResult(
            suggestions=tuple(suggestions),
            confidence=round(BASE_CONFIDENCE * multiplier, 4),
            factors=tuple(factors),
            data_freshness="stale" if stale else "fresh",
            freshness_note="; ".join(notes) or None,
        )
