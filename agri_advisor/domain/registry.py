"""Intent -> advisor bindings."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from types import MappingProxyType
from typing import Any, List, Mapping, Tuple

from .errors import ConfigurationError, NoAdvisorsConfigured
from .normalizers import normalize_intent


@dataclass(frozen=True)
class AdvisorBinding:
    intent: str
    capability: Any
    required: bool
    order: int

    @property
    def name(self) -> str:
        return self.capability.name

    @property
    def label(self) -> str:
        return getattr(self.capability, "label", None) or self.name


class AdvisorRegistry:
    """Maps intents to ordered advisor bindings.

    Writers rebuild the mapping under ``_write_lock`` and swap the reference;
    readers never lock and keep whatever snapshot they dereferenced, so a
    registration never changes a request that is already in flight.
    """

    def __init__(self) -> None:
        self._bindings: Mapping[str, Tuple[AdvisorBinding, ...]] = MappingProxyType({})
        self._write_lock = Lock()

    def register(self, intent: Any, capability: Any, required: bool = False) -> AdvisorBinding:
        name = getattr(capability, "name", None)
        if not name or not callable(getattr(capability, "invoke", None)):
            raise ConfigurationError(
                f"capability {capability!r} must expose a name and invoke(context)"
            )
        key = normalize_intent(intent)
        with self._write_lock:
            current = self._bindings.get(key, ())
            if any(b.name == name for b in current):
                raise ConfigurationError(
                    f"advisor {name!r} is already registered for intent {key!r}"
                )
            order = max((b.order for b in current), default=-1) + 1
            binding = AdvisorBinding(
                intent=key, capability=capability, required=bool(required), order=order
            )
            updated = dict(self._bindings)
            updated[key] = current + (binding,)
            self._bindings = MappingProxyType(updated)
        return binding

    def deregister(self, intent: Any, name: str) -> None:
        key = normalize_intent(intent)
        with self._write_lock:
            current = self._bindings.get(key, ())
            remaining = tuple(b for b in current if b.name != name)
            if len(remaining) == len(current):
                raise ConfigurationError(f"advisor {name!r} is not registered for {key!r}")
            updated = dict(self._bindings)
            if remaining:
                updated[key] = remaining
            else:
                updated.pop(key, None)
            self._bindings = MappingProxyType(updated)

    def capabilities_for(self, intent: Any) -> Tuple[AdvisorBinding, ...]:
        key = normalize_intent(intent)
        bindings = self._bindings.get(key, ())
        if not bindings:
            raise NoAdvisorsConfigured(key)
        return bindings

    def intents(self) -> List[str]:
        return sorted(self._bindings)

    def relevant_fields(self, intent: Any) -> Tuple[str, ...]:
        """Context fields read by any advisor bound to ``intent``, in first-seen order."""
        seen: List[str] = []
        for binding in self.capabilities_for(intent):
            for field in getattr(binding.capability, "relevant_fields", ()):
                if field not in seen:
                    seen.append(field)
        return tuple(seen)
