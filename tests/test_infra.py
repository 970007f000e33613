import importlib.util
import json
import os
import sys
import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_MISSING_PYDANTIC_SETTINGS = importlib.util.find_spec("pydantic_settings") is None

if not _MISSING_PYDANTIC_SETTINGS:
    import httpx
    from pydantic import ValidationError

    from agri_advisor.infra.config import AppConfig
    from agri_advisor.infra.context_cache import MemoryContextCache
    from agri_advisor.infra.data_sources import (
        ContextFetchError,
        ContextSource,
        HistorySource,
        IntranetSource,
        MockSoilSource,
        MockWeatherSource,
        build_intranet_headers,
        build_soil_source,
        build_weather_source,
    )
    from agri_advisor.infra.history_store import (
        MAX_CROPS,
        InMemoryCropHistoryStore,
        SqliteCropHistoryStore,
    )
    from agri_advisor.schemas import CropHistory, EngineSettings, SoilInfo, WeatherSnapshot


T0 = datetime(2026, 6, 1, 6, 0, tzinfo=timezone.utc)


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class ConfigTests(unittest.TestCase):
    def test_engine_settings_follow_environment(self) -> None:
        env = {
            "REQUEST_DEADLINE_SECONDS": "4.5",
            "ADVISOR_TIMEOUT_CEILING_SECONDS": "1.5",
            "DEGRADATION_PENALTY_FACTOR": "0.7",
            "CONFIDENCE_FLOOR": "0.1",
            "SUGGESTION_CAP": "3",
            "CONTEXT_FETCH_TIMEOUT_SECONDS": "1.0",
            "WEATHER_PROVIDER": "INTRANET",
        }
        with mock.patch.dict(os.environ, env):
            cfg = AppConfig()
        settings = cfg.engine_settings()
        self.assertEqual(settings.request_deadline, 4.5)
        self.assertEqual(settings.advisor_timeout_ceiling, 1.5)
        self.assertEqual(settings.degradation_penalty_factor, 0.7)
        self.assertEqual(settings.confidence_floor, 0.1)
        self.assertEqual(settings.suggestion_cap, 3)
        self.assertEqual(cfg.weather_provider, "intranet")

    def test_out_of_range_tunables_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            EngineSettings(degradation_penalty_factor=0.0)
        with self.assertRaises(ValidationError):
            EngineSettings(confidence_floor=1.5)
        with self.assertRaises(ValidationError):
            EngineSettings(request_deadline=1.0, context_fetch_timeout=2.0)

    def test_settings_are_frozen(self) -> None:
        settings = EngineSettings()
        with self.assertRaises(ValidationError):
            settings.suggestion_cap = 99


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class ContextCacheTests(unittest.TestCase):
    def test_evicts_least_recently_used(self) -> None:
        cache = MemoryContextCache(max_items=2, ttl_seconds=60)
        cache.set("a", 1, T0)
        cache.set("b", 2, T0)
        self.assertEqual(cache.get("a").value, 1)
        cache.set("c", 3, T0)
        self.assertIsNone(cache.get("b"))
        self.assertEqual(cache.get("c").fetched_at, T0)

    def test_key_ignores_region_case(self) -> None:
        self.assertEqual(
            MemoryContextCache.make_key("soil", "u1", "Semi-Arid-A", "monsoon"),
            MemoryContextCache.make_key("soil", "u1", "semi-arid-a", "monsoon"),
        )


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class HistoryStoreTests(unittest.TestCase):
    def _check_store(self, store) -> None:
        history = CropHistory(previous_crops=["Rice", "wheat"], last_harvest=date(2026, 4, 2))
        self.assertIsNone(store.get("u1"))
        store.record("u1", history)
        self.assertEqual(store.get("u1"), history)
        store.record("u1", CropHistory(previous_crops=["maize"]))
        self.assertEqual(store.get("u1").previous_crops, ("maize",))
        self.assertIsNone(store.get("u1").last_harvest)
        store.delete("u1")
        self.assertIsNone(store.get("u1"))

    def test_memory_store(self) -> None:
        self._check_store(InMemoryCropHistoryStore(ttl_seconds=60))

    def test_sqlite_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self._check_store(
                SqliteCropHistoryStore(path=Path(tmp) / "history.sqlite3", ttl_seconds=60)
            )

    def test_sqlite_history_survives_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "history.sqlite3"
            SqliteCropHistoryStore(path=path, ttl_seconds=60).record(
                "u1", CropHistory(previous_crops=["groundnut", "pearl_millet"])
            )
            reopened = SqliteCropHistoryStore(path=path, ttl_seconds=60)
            self.assertEqual(reopened.get("u1").previous_crops, ("groundnut", "pearl_millet"))

    def test_only_recent_crops_are_kept(self) -> None:
        store = InMemoryCropHistoryStore(ttl_seconds=60)
        store.record("u1", CropHistory(previous_crops=[f"crop{i}" for i in range(MAX_CROPS + 5)]))
        crops = store.get("u1").previous_crops
        self.assertEqual(len(crops), MAX_CROPS)
        self.assertEqual(crops[0], "crop0")

    def test_expired_entries_are_dropped(self) -> None:
        for store in (
            InMemoryCropHistoryStore(ttl_seconds=60),
            SqliteCropHistoryStore(path=Path(self._tmpdir()) / "h.sqlite3", ttl_seconds=60),
        ):
            with self.subTest(store=type(store).__name__):
                store.record("u1", CropHistory(previous_crops=["rice"]))
                with mock.patch("agri_advisor.infra.history_store.time.time", return_value=10**12):
                    self.assertIsNone(store.get("u1"))

    def _tmpdir(self) -> str:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return tmp.name

    def test_history_source_writes_through_to_store(self) -> None:
        store = InMemoryCropHistoryStore(ttl_seconds=60)
        source = HistorySource(store)
        self.assertTrue(source.record("u1", CropHistory(previous_crops=["sorghum"])))
        self.assertFalse(source.record("u1", CropHistory()))
        self.assertFalse(MockSoilSource().record("u1", SoilInfo(soil_type="clay")))
        self.assertEqual(source.fetch("u1", "semi-arid-a", "monsoon").last_crop, "sorghum")

    def test_context_source_requires_fetch(self) -> None:
        class Incomplete(ContextSource):
            pass

        with self.assertRaises(TypeError):
            Incomplete()


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class DataSourceTests(unittest.TestCase):
    def test_mock_sources_use_regional_profiles(self) -> None:
        weather = MockWeatherSource().fetch("u1", "Semi-Arid-A", "monsoon")
        self.assertEqual(weather.rainfall_mm, 520.0)
        self.assertEqual(weather.forecast_rain_mm_7d, 40.0)
        self.assertEqual(MockSoilSource().fetch("u1", "semi-arid-a", "monsoon").soil_type, "sandy_loam")
        self.assertIsNone(MockWeatherSource().fetch("u1", "temperate-c", "monsoon"))
        with self.assertRaises(ContextFetchError):
            MockSoilSource().fetch("u1", "atlantis", "monsoon")

    def test_intranet_source_posts_request_and_parses_payload(self) -> None:
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"data": {"soil_type": "Clay", "ph": 6.1}})

        source = IntranetSource(
            "soil",
            SoilInfo,
            "http://intranet.local/soil",
            "secret",
            timeout=1.0,
            transport=httpx.MockTransport(handler),
        )
        soil = source.fetch("u1", "semi-arid-a", "winter")
        self.assertEqual(soil, SoilInfo(soil_type="clay", ph=6.1))
        self.assertEqual(seen["body"], {"user_id": "u1", "region": "semi-arid-a", "season": "winter"})
        self.assertEqual(seen["auth"], "Bearer secret")

    def test_intranet_failures_raise_fetch_error(self) -> None:
        cases = {
            "http": lambda request: httpx.Response(503),
            "payload": lambda request: httpx.Response(200, json={"ph": 99}),
        }
        for label, handler in cases.items():
            with self.subTest(case=label):
                source = IntranetSource(
                    "soil",
                    SoilInfo,
                    "http://intranet.local/soil",
                    None,
                    timeout=1.0,
                    transport=httpx.MockTransport(handler),
                )
                with self.assertRaises(ContextFetchError):
                    source.fetch("u1", "semi-arid-a", "winter")
        with self.assertRaises(ContextFetchError):
            IntranetSource("weather", WeatherSnapshot, None, None, 1.0).fetch("u1", "r", "winter")

    def test_builders_pick_provider(self) -> None:
        with mock.patch.dict(os.environ, {"WEATHER_PROVIDER": "Intranet", "SOIL_PROVIDER": "mock"}):
            cfg = AppConfig()
        self.assertIsInstance(build_weather_source(cfg), IntranetSource)
        self.assertIsInstance(build_soil_source(cfg), MockSoilSource)
        self.assertEqual(build_intranet_headers(None), {"Accept": "application/json"})


if __name__ == "__main__":
    unittest.main()
