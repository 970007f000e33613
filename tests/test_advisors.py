import importlib.util
import sys
import threading
import unittest
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_MISSING_PYDANTIC_SETTINGS = importlib.util.find_spec("pydantic_settings") is None

if not _MISSING_PYDANTIC_SETTINGS:
    from agri_advisor.advisors import (
        CropAdvisor,
        FertilizerAdvisor,
        FunctionAdvisor,
        IrrigationAdvisor,
        SustainabilityAdvisor,
    )
    from agri_advisor.advisors.base import cancellation_requested, cancellation_scope
    from agri_advisor.domain.enums import DataSource
    from agri_advisor.domain.knowledge_base import CROP_PROFILES
    from agri_advisor.schemas import (
        ContextField,
        CropHistory,
        RecommendationContext,
        SoilInfo,
        UserPreferences,
        WeatherSnapshot,
    )


T0 = datetime(2026, 6, 1, 6, 0, tzinfo=timezone.utc)


def _context(season="monsoon", weather=None, soil=None, history=None, prefs=None, **fields):
    def wrap(value):
        if value is None:
            return ContextField.missing("not provided")
        return ContextField.provided(value, DataSource.SERVICE, T0)

    payload = {
        "weather": wrap(weather),
        "soil": wrap(soil),
        "history": wrap(history),
        "preferences": wrap(prefs),
    }
    payload.update(fields)
    return RecommendationContext(
        user_id="u1", region="semi-arid-a", season=season, resolved_at=T0, **payload
    )


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class BuiltInAdvisorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.weather = WeatherSnapshot(
            temperature_c=29.0, rainfall_mm=450.0, evapotranspiration_mm=6.5
        )
        self.soil = SoilInfo(
            soil_type="Sandy Loam", ph=7.6, organic_matter_pct=0.6,
            nitrogen_kg_ha=100.0, moisture_pct=10.0,
        )

    def test_crop_advisor_only_suggests_in_season_crops(self) -> None:
        result = CropAdvisor().invoke(
            _context(weather=self.weather, soil=self.soil, history=CropHistory(previous_crops=["rice"]))
        )
        self.assertTrue(0 < len(result.suggestions) <= 5)
        for suggestion in result.suggestions:
            self.assertIn("monsoon", CROP_PROFILES[suggestion.details["crop"]].seasons)
        scores = [s.suitability_score for s in result.suggestions]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertAlmostEqual(result.confidence, 0.85)
        self.assertEqual(result.data_freshness, "fresh")

    def test_missing_inputs_lower_advisor_confidence(self) -> None:
        full = CropAdvisor().invoke(_context(weather=self.weather, soil=self.soil))
        partial = CropAdvisor().invoke(_context(weather=self.weather))
        self.assertLess(partial.confidence, full.confidence)

    def test_stale_input_is_reported(self) -> None:
        stale_weather = ContextField.provided(
            self.weather, DataSource.CACHED, T0, stale=True, failure_reason="timeout"
        )
        context = _context(soil=self.soil).with_field("weather", stale_weather)
        result = IrrigationAdvisor().invoke(context)
        self.assertEqual(result.data_freshness, "stale")
        self.assertIn("cached", result.freshness_note)

    def test_irrigation_postpones_before_forecast_rain(self) -> None:
        weather = self.weather.model_copy(update={"forecast_rain_mm_7d": 40.0})
        result = IrrigationAdvisor().invoke(_context(weather=weather, soil=self.soil))
        titles = [s.title for s in result.suggestions]
        self.assertEqual(titles[0], "Postpone the next irrigation")
        self.assertIn("Pre-sowing irrigation", titles)
        self.assertIn("Mulch to cut evaporation", titles)
        soil_factor = next(f for f in result.factors if f.name == "soil type")
        self.assertEqual(soil_factor.detail, "sandy_loam")

    def test_irrigation_prefers_drip_when_available(self) -> None:
        result = IrrigationAdvisor().invoke(
            _context(
                weather=self.weather,
                soil=self.soil,
                prefs=UserPreferences(irrigation_available=True),
            )
        )
        self.assertIn("Switch to drip irrigation", [s.title for s in result.suggestions])

    def test_fertilizer_targets_preferred_crop(self) -> None:
        result = FertilizerAdvisor().invoke(
            _context(
                soil=self.soil,
                history=CropHistory(previous_crops=["chickpea"]),
                prefs=UserPreferences(preferred_crops=["Maize"]),
            )
        )
        target = next(f for f in result.factors if f.name == "target crop")
        self.assertEqual(target.detail, "maize")
        self.assertIn("crop rotation", [f.name for f in result.factors])
        self.assertTrue(any(s.title.startswith("Apply nitrogen") for s in result.suggestions))

    def test_sustainability_flags_monoculture(self) -> None:
        result = SustainabilityAdvisor().invoke(
            _context(
                weather=self.weather,
                soil=self.soil,
                history=CropHistory(previous_crops=["rice", "wheat"]),
            )
        )
        titles = [s.title for s in result.suggestions]
        self.assertEqual(titles[0], "Break the rotation with a legume")
        self.assertIn("Sow a cowpea cover crop", titles)
        self.assertIn("Retain crop residue", titles)
        self.assertIn("Harvest rainwater in farm ponds", titles)
        self.assertEqual(titles[-1], "Adopt reduced tillage")

    def test_advisors_tolerate_an_empty_context(self) -> None:
        context = _context()
        for advisor in (
            CropAdvisor(),
            IrrigationAdvisor(),
            FertilizerAdvisor(),
            SustainabilityAdvisor(),
        ):
            with self.subTest(advisor=advisor.name):
                result = advisor.invoke(context)
                self.assertGreaterEqual(result.confidence, 0.0)
                self.assertLessEqual(result.confidence, 1.0)


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class CapabilityContractTests(unittest.TestCase):
    def test_function_advisor_validates_fields(self) -> None:
        with self.assertRaises(ValueError):
            FunctionAdvisor("x", lambda ctx: None, relevant_fields=("moon_phase",))
        with self.assertRaises(ValueError):
            FunctionAdvisor("", lambda ctx: None)

    def test_label_defaults_to_title_cased_name(self) -> None:
        self.assertEqual(FunctionAdvisor("pest_watch", lambda ctx: None).label, "Pest Watch")
        self.assertEqual(
            FunctionAdvisor("pests", lambda ctx: None, display_name="Pests").label, "Pests"
        )

    def test_cancellation_flag_is_scoped(self) -> None:
        event = threading.Event()
        self.assertFalse(cancellation_requested())
        with cancellation_scope(event):
            self.assertFalse(cancellation_requested())
            event.set()
            self.assertTrue(cancellation_requested())
        self.assertFalse(cancellation_requested())


if __name__ == "__main__":
    unittest.main()
