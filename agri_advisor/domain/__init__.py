from __future__ import annotations

from typing import Any


_EXPORTS = {
    "AdvisorBinding": "registry",
    "AdvisorRegistry": "registry",
    "ConfigurationError": "errors",
    "DegradationPolicy": "policy",
    "InsufficientData": "errors",
    "NoAdvisorsConfigured": "errors",
    "RequestTimeout": "errors",
    "UnmappedDegradationCase": "errors",
    "aggregate": "aggregator",
    "compose_explanation": "explanation",
    "default_policy": "policy",
    "load_policy": "policy",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(f"{__name__}.{module_name}"), name)
