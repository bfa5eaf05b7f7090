"""
Environment registry: the closed set of deployment targets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple

from .errors import UnknownEnvironmentError
from .parameters import Value, freeze_value, shape_of


@dataclass(frozen=True)
class EnvironmentRegistry:
    """Ordered set of valid environment names plus registry-wide fallbacks."""

    environments: Tuple[str, ...]
    defaults: Mapping[str, Value] = field(default_factory=dict)

    def __post_init__(self) -> None:
        names = tuple(self.environments)
        if not names:
            raise ValueError("Environment registry must declare at least one environment")
        seen = set()
        for name in names:
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Invalid environment name: {name!r}")
            if name in seen:
                raise ValueError(f"Duplicate environment name: {name!r}")
            seen.add(name)
        for key, value in self.defaults.items():
            if shape_of(value) is None:
                raise TypeError(f"Unsupported default for {key!r}: {value!r}")
        object.__setattr__(self, "environments", names)
        object.__setattr__(
            self,
            "defaults",
            MappingProxyType({k: freeze_value(v) for k, v in self.defaults.items()}),
        )

    @classmethod
    def of(cls, *names: str, defaults: Optional[Mapping[str, Value]] = None) -> "EnvironmentRegistry":
        return cls(environments=tuple(names), defaults=dict(defaults or {}))

    def is_valid(self, name: Any) -> bool:
        return isinstance(name, str) and name in self.environments

    def list_environments(self) -> Tuple[str, ...]:
        return self.environments

    def require(self, name: str) -> str:
        if not self.is_valid(name):
            raise UnknownEnvironmentError(name, self.environments)
        return name

    def default_for(self, parameter: str) -> Optional[Value]:
        return self.defaults.get(parameter)

    def unknown(self, names: Sequence[str]) -> Tuple[str, ...]:
        """Names from the given sequence that are not registered, in input order."""
        return tuple(n for n in names if not self.is_valid(n))
