from __future__ import annotations

from ..domain.knowledge_base import COVER_CROPS, CROP_PROFILES
from ..schemas import AdvisorResult, Factor, RecommendationContext, Suggestion
from .base import AdvisorCapability, input_quality


BASE_CONFIDENCE = 0.75
LOW_ORGANIC_MATTER_PCT = 1.0
DRY_SEASON_RAIN_MM = 500.0


class SustainabilityAdvisor(AdvisorCapability):
    name = "sustainability"
    display_name = "Sustainability"
    relevant_fields = ("history", "soil", "weather", "preferences")

    def invoke(self, context: RecommendationContext) -> AdvisorResult:
        history = context.history.value
        soil = context.soil.value
        weather = context.weather.value
        prefs = context.preferences.value
        suggestions = []
        factors = []

        families = [
            CROP_PROFILES[c].family for c in (history.previous_crops if history else ()) if c in CROP_PROFILES
        ]
        if len(families) >= 2 and families[0] == families[1]:
            suggestions.append(
                Suggestion(
                    title="Break the rotation with a legume",
                    description=(
                        f"The last two crops were both {families[0]}; a legume such as "
                        "chickpea or groundnut restores nitrogen and breaks pest cycles."
                    ),
                    priority="high",
                    suitability_score=0.85,
                    details={"previous_families": families[:2]},
                )
            )
            factors.append(Factor(name="crop rotation", impact="high", detail="monoculture"))
        if families:
            covers = COVER_CROPS.get(families[0], ())
            if covers:
                suggestions.append(
                    Suggestion(
                        title=f"Sow a {covers[0]} cover crop",
                        description=f"Cover the fallow period with {' or '.join(covers)}.",
                        priority="medium",
                        suitability_score=0.7,
                        details={"cover_crops": list(covers)},
                    )
                )
                factors.append(Factor(name="previous crop", impact="medium", detail=families[0]))

        organic_matter = soil.organic_matter_pct if soil else None
        if organic_matter is not None and organic_matter < LOW_ORGANIC_MATTER_PCT:
            suggestions.append(
                Suggestion(
                    title="Retain crop residue",
                    description=(
                        f"Organic matter is {organic_matter}%; incorporate residue instead of burning it."
                    ),
                    priority="high",
                    suitability_score=0.8,
                    details={"organic_matter_pct": organic_matter},
                )
            )
            factors.append(Factor(name="soil organic matter", impact="high", detail=f"{organic_matter}%"))

        rainfall = weather.rainfall_mm if weather else None
        if rainfall is not None and rainfall < DRY_SEASON_RAIN_MM:
            suggestions.append(
                Suggestion(
                    title="Harvest rainwater in farm ponds",
                    description="Low seasonal rainfall; store runoff for protective irrigation.",
                    priority="medium",
                    suitability_score=0.65,
                    details={"rainfall_mm": rainfall},
                )
            )
            factors.append(Factor(name="rainfall", impact="medium", detail=f"{rainfall} mm"))

        if prefs is not None and prefs.organic_only:
            factors.append(Factor(name="user preference", impact="low", detail="organic only"))
        suggestions.append(
            Suggestion(
                title="Adopt reduced tillage",
                description="Minimum tillage conserves soil moisture and structure.",
                priority="low",
                suitability_score=0.55,
                details={},
            )
        )

        multiplier, stale, notes = input_quality([context.history, context.soil])
        return AdvisorResult(
            suggestions=tuple(suggestions),
            confidence=round(BASE_CONFIDENCE * multiplier, 4),
            factors=tuple(factors),
            data_freshness="stale" if stale else "fresh",
            freshness_note="; ".join(notes) or None,
        )
