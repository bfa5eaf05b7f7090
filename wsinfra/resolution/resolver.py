"""
Resolver: computes the effective configuration for one active environment.

The active environment is always an explicit argument. Resolution is total
over the declared parameter set: every map contributes exactly one value or
the whole call fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .errors import DuplicateParameterError
from .parameters import ParameterMap, Value, thaw_value
from .registry import EnvironmentRegistry


@dataclass(frozen=True, eq=False)
class ResolvedConfiguration(Mapping[str, Value]):
    """Read-only parameter name -> value mapping for a single environment."""

    environment: str
    parameters: Mapping[str, Value] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def __getitem__(self, key: str) -> Value:
        return self.parameters[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.parameters)

    def __len__(self) -> int:
        return len(self.parameters)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResolvedConfiguration):
            return self.environment == other.environment and dict(
                self.parameters
            ) == dict(other.parameters)
        return NotImplemented

    def as_dict(self) -> Dict[str, Any]:
        """Plain, independent copy suitable for JSON serialization."""
        return {k: thaw_value(v) for k, v in self.parameters.items()}


ParameterMaps = Union[Iterable[ParameterMap], Mapping[str, ParameterMap]]


def as_parameter_list(parameter_maps: ParameterMaps) -> List[ParameterMap]:
    """Normalize maps to a list, rejecting duplicate parameter names."""
    if isinstance(parameter_maps, Mapping):
        maps = list(parameter_maps.values())
    else:
        maps = list(parameter_maps)
    seen = set()
    for m in maps:
        if m.name in seen:
            raise DuplicateParameterError(m.name)
        seen.add(m.name)
    return maps


def effective_fallback(
    pmap: ParameterMap, registry: EnvironmentRegistry
) -> Optional[Value]:
    """The map's own fallback, else the registry-wide default (may be None)."""
    if pmap.fallback is not None:
        return pmap.fallback
    return registry.default_for(pmap.name)


def resolve(
    active_environment: str,
    parameter_maps: ParameterMaps,
    registry: EnvironmentRegistry,
) -> ResolvedConfiguration:
    """Resolve every parameter map for active_environment.

    Raises UnknownEnvironmentError before any lookup when the environment is
    not registered, and propagates MissingParameterError from lookups.
    """
    env = registry.require(active_environment)
    maps = as_parameter_list(parameter_maps)
    values: Dict[str, Value] = {}
    for pmap in maps:
        values[pmap.name] = pmap.lookup(env, effective_fallback(pmap, registry))
    return ResolvedConfiguration(environment=env, parameters=values)
