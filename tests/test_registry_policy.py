import importlib.util
import json
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_MISSING_PYDANTIC_SETTINGS = importlib.util.find_spec("pydantic_settings") is None

if not _MISSING_PYDANTIC_SETTINGS:
    from agri_advisor.advisors import FunctionAdvisor
    from agri_advisor.domain.enums import DegradationAction, Intent
    from agri_advisor.domain.errors import (
        ConfigurationError,
        NoAdvisorsConfigured,
        UnmappedDegradationCase,
    )
    from agri_advisor.domain.policy import DegradationPolicy, default_policy, load_policy
    from agri_advisor.domain.registry import AdvisorRegistry
    from agri_advisor.schemas import AdvisorResult


def _advisor(name, fields=("weather",)):
    return FunctionAdvisor(
        name, lambda ctx: AdvisorResult(confidence=0.5), relevant_fields=fields
    )


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class AdvisorRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = AdvisorRegistry()

    def test_capabilities_keep_registration_order(self) -> None:
        self.registry.register(Intent.CROP_RECOMMENDATION, _advisor("crop"), required=True)
        self.registry.register("crop_recommendation", _advisor("sustainability"))
        bindings = self.registry.capabilities_for(Intent.CROP_RECOMMENDATION)
        self.assertEqual([b.name for b in bindings], ["crop", "sustainability"])
        self.assertEqual([b.order for b in bindings], [0, 1])
        self.assertTrue(bindings[0].required)
        self.assertFalse(bindings[1].required)

    def test_unknown_intent_raises_no_advisors(self) -> None:
        with self.assertRaises(NoAdvisorsConfigured) as ctx:
            self.registry.capabilities_for("pest_alert")
        self.assertEqual(ctx.exception.intent, "pest_alert")

    def test_duplicate_name_is_configuration_error(self) -> None:
        self.registry.register("irrigation_advice", _advisor("irrigation"))
        with self.assertRaises(ConfigurationError):
            self.registry.register("irrigation_advice", _advisor("irrigation"))

    def test_rejects_object_without_invoke(self) -> None:
        class NotAnAdvisor:
            name = "broken"

        with self.assertRaises(ConfigurationError):
            self.registry.register("irrigation_advice", NotAnAdvisor())

    def test_new_intent_is_registered_by_name(self) -> None:
        self.registry.register("Pest Alert", _advisor("pests"))
        self.assertIn("pest_alert", self.registry.intents())

    def test_snapshot_is_unaffected_by_later_registration(self) -> None:
        self.registry.register("irrigation_advice", _advisor("irrigation"))
        snapshot = self.registry.capabilities_for("irrigation_advice")
        self.registry.register("irrigation_advice", _advisor("sustainability"))
        self.assertEqual(len(snapshot), 1)
        self.assertEqual(len(self.registry.capabilities_for("irrigation_advice")), 2)

    def test_deregister_removes_binding(self) -> None:
        self.registry.register("fertilizer_advice", _advisor("fertilizer"))
        self.registry.register("fertilizer_advice", _advisor("crop"))
        self.registry.deregister("fertilizer_advice", "crop")
        self.assertEqual(
            [b.name for b in self.registry.capabilities_for("fertilizer_advice")],
            ["fertilizer"],
        )
        self.registry.deregister("fertilizer_advice", "fertilizer")
        with self.assertRaises(NoAdvisorsConfigured):
            self.registry.capabilities_for("fertilizer_advice")
        with self.assertRaises(ConfigurationError):
            self.registry.deregister("fertilizer_advice", "fertilizer")

    def test_relevant_fields_union_in_first_seen_order(self) -> None:
        self.registry.register("crop_recommendation", _advisor("crop", ("weather", "soil")))
        self.registry.register("crop_recommendation", _advisor("other", ("history", "soil")))
        self.assertEqual(
            self.registry.relevant_fields("crop_recommendation"),
            ("weather", "soil", "history"),
        )


@unittest.skipUnless(
    not _MISSING_PYDANTIC_SETTINGS, "pydantic_settings is not installed"
)
class DegradationPolicyTests(unittest.TestCase):
    def test_default_policy_substitutes_soil_for_irrigation(self) -> None:
        policy = default_policy()
        self.assertEqual(
            policy.decide(Intent.IRRIGATION_ADVICE, "soil"),
            DegradationAction.SUBSTITUTE_REGIONAL_DEFAULT,
        )
        self.assertEqual(
            policy.decide("crop_recommendation", "crop_history"),
            DegradationAction.PROCEED_WITH_DISCLAIMER,
        )

    def test_unmapped_pair_raises(self) -> None:
        policy = DegradationPolicy({"irrigation_advice": {"weather": "fail_request"}})
        with self.assertRaises(UnmappedDegradationCase) as ctx:
            policy.decide("irrigation_advice", "soil")
        self.assertEqual(ctx.exception.field, "soil")

    def test_validate_checks_totality_over_registry(self) -> None:
        registry = AdvisorRegistry()
        registry.register("irrigation_advice", _advisor("irrigation", ("weather", "soil")))
        partial = DegradationPolicy({"irrigation_advice": {"weather": "fail_request"}})
        with self.assertRaises(UnmappedDegradationCase):
            partial.validate(registry)
        complete = DegradationPolicy(
            {"irrigation_advice": {"weather": "fail_request", "soil": "proceed_with_disclaimer"}}
        )
        complete.validate(registry)

    def test_unknown_action_or_field_is_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            DegradationPolicy({"irrigation_advice": {"weather": "ignore"}})
        with self.assertRaises(ConfigurationError):
            DegradationPolicy({"irrigation_advice": {"moon_phase": "fail_request"}})

    def test_advisor_loss_follows_required_flag_unless_overridden(self) -> None:
        registry = AdvisorRegistry()
        required = registry.register("crop_recommendation", _advisor("crop"), required=True)
        optional = registry.register("crop_recommendation", _advisor("sustainability"))
        policy = DegradationPolicy(
            {"crop_recommendation": {"weather": "proceed_with_disclaimer"}},
            advisor_overrides={"crop_recommendation": {"sustainability": "fail_request"}},
        )
        self.assertEqual(
            policy.decide_advisor_loss("crop_recommendation", required),
            DegradationAction.FAIL_REQUEST,
        )
        self.assertEqual(
            policy.decide_advisor_loss("crop_recommendation", optional),
            DegradationAction.FAIL_REQUEST,
        )
        self.assertEqual(
            default_policy().decide_advisor_loss("crop_recommendation", optional),
            DegradationAction.PROCEED_WITH_DISCLAIMER,
        )

    def test_advisor_cannot_be_substituted(self) -> None:
        with self.assertRaises(ConfigurationError):
            DegradationPolicy(
                {},
                advisor_overrides={"crop_recommendation": {"crop": "substitute_regional_default"}},
            )

    def test_load_policy_round_trips_json_file(self) -> None:
        payload = default_policy().to_mapping()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "policy.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            loaded = load_policy(path)
        self.assertEqual(loaded.to_mapping(), payload)

    def test_load_policy_reports_bad_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "policy.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                load_policy(path)
            with self.assertRaises(ConfigurationError):
                load_policy(Path(tmp) / "missing.json")
        with self.assertRaises(ConfigurationError):
            DegradationPolicy.from_mapping({"advisors": {}})


if __name__ == "__main__":
    unittest.main()
