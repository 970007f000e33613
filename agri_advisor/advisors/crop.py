from __future__ import annotations

from typing import List, Optional, Tuple

from ..domain.knowledge_base import CROP_PROFILES, CropProfile, canonical_soil_type
from ..schemas import AdvisorResult, Factor, RecommendationContext, Suggestion
from .base import AdvisorCapability, input_quality


BASE_CONFIDENCE = 0.85
MAX_SUGGESTIONS = 5


def range_fit(value: Optional[float], bounds: Tuple[float, float]) -> Optional[float]:
    """1.0 inside ``bounds``, decaying linearly with relative distance outside."""
    if value is None:
        return None
    low, high = bounds
    if low <= value <= high:
        return 1.0
    if value < low:
        return max(0.0, 1.0 - (low - value) / max(low, 1.0))
    return max(0.0, 1.0 - (value - high) / max(high, 1.0))


def priority_for(score: float) -> str:
    if score >= 0.75:
        return "high"
    if score >= 0.5:
        return "medium"
    return "low"


class CropAdvisor(AdvisorCapability):
    name = "crop"
    display_name = "Crop"
    relevant_fields = ("weather", "soil", "history", "preferences")

    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        weather = context.weather.value
        soil = context.soil.value
        history = context.history.value
        prefs = context.preferences.value
        season = context.season.value

        scored: List[Tuple[float, CropProfile, dict]] = []
        for profile in CROP_PROFILES.values():
            if season not in profile.seasons:
                continue
            score, details = self._score(profile, weather, soil, history, prefs)
            scored.append((score, profile, details))
        scored.sort(key=lambda item: (-item[0], item[1].name))

        suggestions = [
            Suggestion(
                title=f"Grow {profile.name.replace('_', ' ')}",
                description=(
                    f"{profile.name.replace('_', ' ').capitalize()} suits the {season} season "
                    f"in {context.region} (water need: {profile.water_need})."
                ),
                priority=priority_for(score),
                suitability_score=score,
                details={"crop": profile.name, **details},
            )
            for score, profile, details in scored[:MAX_SUGGESTIONS]
        ]

        multiplier, stale, notes = input_quality(
            [context.weather, context.soil, context.history]
        )
        factors = [Factor(name="season", impact="high", detail=season)]
        if weather is not None:
            factors.append(
                Factor(name="rainfall", impact="high", detail=f"{weather.rainfall_mm} mm")
            )
            factors.append(
                Factor(name="temperature", impact="high", detail=f"{weather.temperature_c} C")
            )
        if soil is not None:
            factors.append(Factor(name="soil pH", impact="medium", detail=str(soil.ph)))
            factors.append(Factor(name="soil type", impact="medium", detail=soil.soil_type))
        if history is not None and history.last_crop:
            factors.append(
                Factor(name="crop rotation", impact="low", detail=f"after {history.last_crop}")
            )
        if prefs is not None and prefs.preferred_crops:
            factors.append(
                Factor(name="user preference", impact="low", detail=",".join(prefs.preferred_crops))
            )
        return AdvisorResult(
            suggestions=tuple(suggestions),
            confidence=round(BASE_CONFIDENCE * multiplier, 4),
            factors=tuple(factors),
            data_freshness="stale" if stale else "fresh",
            freshness_note="; ".join(notes) or None,
        )

    def _score(self, profile, weather, soil, history, prefs):
        fits = []
        details = {}
        if weather is not None:
            rain = range_fit(weather.rainfall_mm, profile.rainfall_mm)
            if rain is not None and rain < 1.0 and prefs is not None and prefs.irrigation_available:
                if weather.rainfall_mm < profile.rainfall_mm[0]:
                    rain = max(rain, 0.8)
            temp = range_fit(weather.temperature_c, profile.temperature_c)
            for key, fit in (("rainfall_fit", rain), ("temperature_fit", temp)):
                if fit is not None:
                    fits.append(fit)
                    details[key] = round(fit, 3)
        if soil is not None:
            ph = range_fit(soil.ph, profile.ph)
            if ph is not None:
                fits.append(ph)
                details["ph_fit"] = round(ph, 3)
            soil_type = canonical_soil_type(soil.soil_type)
            if soil_type:
                texture = 1.0 if soil_type in profile.soil_types else 0.6
                fits.append(texture)
                details["soil_type_fit"] = texture
        score = sum(fits) / len(fits) if fits else 0.5

        if history is not None and history.last_crop:
            last = CROP_PROFILES.get(history.last_crop)
            if history.last_crop == profile.name:
                score *= 0.8
                details["rotation"] = "repeat crop"
            elif last is not None and last.family == profile.family and profile.family != "fabaceae":
                score *= 0.9
                details["rotation"] = "same family"
            elif last is not None and last.family != "fabaceae" and profile.family == "fabaceae":
                score *= 1.05
                details["rotation"] = "legume break"
        if prefs is not None and profile.name in prefs.preferred_crops:
            score += 0.05
            details["preferred"] = True
        return round(min(1.0, max(0.0, score)), 4), details
