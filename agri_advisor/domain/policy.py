"""Declarative rulebook for missing or stale inputs and lost advisors."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .enums import ContextFieldName, DegradationAction, Intent
from .errors import ConfigurationError, UnmappedDegradationCase
from .normalizers import normalize_field_name, normalize_intent


RuleKey = Tuple[str, str]

_PROCEED = DegradationAction.PROCEED_WITH_DISCLAIMER
_SUBSTITUTE = DegradationAction.SUBSTITUTE_REGIONAL_DEFAULT
_FAIL = DegradationAction.FAIL_REQUEST


DEFAULT_RULES: Dict[str, Dict[str, DegradationAction]] = {
    Intent.CROP_RECOMMENDATION.value: {
        "weather": _SUBSTITUTE,
        "soil": _SUBSTITUTE,
        "history": _PROCEED,
        "preferences": _PROCEED,
    },
    Intent.IRRIGATION_ADVICE.value: {
        "weather": _SUBSTITUTE,
        "soil": _SUBSTITUTE,
        "history": _PROCEED,
        "preferences": _PROCEED,
    },
    Intent.FERTILIZER_ADVICE.value: {
        "weather": _PROCEED,
        "soil": _SUBSTITUTE,
        "history": _PROCEED,
        "preferences": _PROCEED,
    },
    Intent.SUSTAINABILITY_ADVICE.value: {
        "weather": _PROCEED,
        "soil": _PROCEED,
        "history": _PROCEED,
        "preferences": _PROCEED,
    },
}


def _coerce_action(value: Any) -> DegradationAction:
    try:
        return DegradationAction(value)
    except ValueError as exc:
        raise ConfigurationError(f"unknown degradation action {value!r}") from exc


class DegradationPolicy:
    """Static mapping ``(intent, field) -> DegradationAction``.

    Unmapped pairs are configuration errors; :meth:`validate` checks the
    mapping is total over what a registry declares relevant.
    """

    def __init__(
        self,
        rules: Mapping[Any, Mapping[Any, Any]],
        advisor_overrides: Optional[Mapping[Any, Mapping[str, Any]]] = None,
    ) -> None:
        compiled: Dict[RuleKey, DegradationAction] = {}
        for intent, fields in rules.items():
            intent_key = normalize_intent(intent)
            for field, action in fields.items():
                try:
                    field_key = normalize_field_name(field)
                except ValueError as exc:
                    raise ConfigurationError(
                        f"unknown context field {field!r} for intent {intent_key!r}"
                    ) from exc
                compiled[(intent_key, field_key)] = _coerce_action(action)
        overrides: Dict[RuleKey, DegradationAction] = {}
        for intent, advisors in (advisor_overrides or {}).items():
            intent_key = normalize_intent(intent)
            for advisor, action in advisors.items():
                coerced = _coerce_action(action)
                if coerced == _SUBSTITUTE:
                    raise ConfigurationError(
                        f"advisor {advisor!r} cannot be substituted by a regional default"
                    )
                overrides[(intent_key, advisor)] = coerced
        self._rules = compiled
        self._advisor_overrides = overrides

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "DegradationPolicy":
        if not isinstance(payload, Mapping) or "rules" not in payload:
            raise ConfigurationError("degradation policy must define a 'rules' mapping")
        return cls(payload["rules"], payload.get("advisors"))

    def decide(self, intent: Any, field: Union[str, ContextFieldName]) -> DegradationAction:
        intent_key = normalize_intent(intent)
        field_key = normalize_field_name(field)
        action = self._rules.get((intent_key, field_key))
        if action is None:
            raise UnmappedDegradationCase(intent_key, field_key)
        return action

    def decide_advisor_loss(self, intent: Any, binding: Any) -> DegradationAction:
        """Action when ``binding``'s advisor timed out or errored."""
        override = self._advisor_overrides.get((normalize_intent(intent), binding.name))
        if override is not None:
            return override
        return _FAIL if binding.required else _PROCEED

    def validate(self, registry: Any) -> None:
        for intent in registry.intents():
            for field in registry.relevant_fields(intent):
                self.decide(intent, field)

    def to_mapping(self) -> Dict[str, Any]:
        rules: Dict[str, Dict[str, str]] = {}
        for (intent, field), action in sorted(self._rules.items()):
            rules.setdefault(intent, {})[field] = action.value
        advisors: Dict[str, Dict[str, str]] = {}
        for (intent, advisor), action in sorted(self._advisor_overrides.items()):
            advisors.setdefault(intent, {})[advisor] = action.value
        return {"rules": rules, "advisors": advisors}


def default_policy() -> DegradationPolicy:
    return DegradationPolicy(DEFAULT_RULES)


def load_policy(path: Union[str, Path]) -> DegradationPolicy:
    policy_path = Path(path)
    try:
        payload = json.loads(policy_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot load degradation policy {policy_path}: {exc}") from exc
    return DegradationPolicy.from_mapping(payload)
