"""Error taxonomy of the orchestration core."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class AdvisoryError(Exception):
    """Base class for every typed failure raised by the core."""

    code = "advisory_error"

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class ConfigurationError(AdvisoryError):
    """Registry or policy misconfiguration; detected at startup or registration."""

    code = "configuration_error"


class NoAdvisorsConfigured(ConfigurationError):
    code = "no_advisors_configured"

    def __init__(self, intent: str):
        self.intent = intent
        super().__init__(f"no advisors registered for intent {intent!r}")

    def to_payload(self) -> Dict[str, Any]:
        return {**super().to_payload(), "intent": self.intent}


class UnmappedDegradationCase(ConfigurationError):
    code = "unmapped_degradation_case"

    def __init__(self, intent: str, field: str):
        self.intent = intent
        self.field = field
        super().__init__(
            f"degradation policy has no rule for intent {intent!r}, field {field!r}"
        )

    def to_payload(self) -> Dict[str, Any]:
        return {**super().to_payload(), "intent": self.intent, "field": self.field}


class InsufficientData(AdvisoryError):
    """A required capability or context field is unavailable; no partial result."""

    code = "insufficient_data"

    def __init__(
        self,
        intent: str,
        *,
        missing_capabilities: Sequence[str] = (),
        missing_fields: Sequence[str] = (),
        reason: Optional[str] = None,
    ):
        self.intent = intent
        self.missing_capabilities: List[str] = list(missing_capabilities)
        self.missing_fields: List[str] = list(missing_fields)
        self.reason = reason
        parts = []
        if self.missing_capabilities:
            parts.append("capabilities=" + ",".join(self.missing_capabilities))
        if self.missing_fields:
            parts.append("fields=" + ",".join(self.missing_fields))
        if reason:
            parts.append(reason)
        detail = "; ".join(parts) or "no usable advisor output"
        super().__init__(f"insufficient data for {intent!r}: {detail}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            **super().to_payload(),
            "intent": self.intent,
            "missing_capabilities": self.missing_capabilities,
            "missing_fields": self.missing_fields,
            "reason": self.reason,
        }


class RequestTimeout(AdvisoryError):
    """Every advisor ran out of its time budget; nothing came back."""

    code = "timeout"

    def __init__(self, intent: str, budget_seconds: float, pending: Sequence[str] = ()):
        self.intent = intent
        self.budget_seconds = budget_seconds
        self.pending: List[str] = list(pending)
        super().__init__(
            f"no advisor for {intent!r} returned within its {budget_seconds:.2f}s budget "
            f"(pending: {', '.join(self.pending) or '-'})"
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            **super().to_payload(),
            "intent": self.intent,
            "budget_seconds": self.budget_seconds,
            "pending": self.pending,
        }
