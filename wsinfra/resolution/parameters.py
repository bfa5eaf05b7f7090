"""
Per-environment parameter maps.

A ParameterMap holds one value per environment for a single named
parameter, plus an optional fallback used when an environment has no entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .errors import MissingParameterError

Scalar = Union[str, int, float]
Value = Union[Scalar, Mapping[str, str]]


class Shape(str, Enum):
    STRING = "string"
    NUMBER = "number"
    SCALAR = "scalar"
    MAP = "map"

    def accepts(self, value: Any) -> bool:
        actual = shape_of(value)
        if actual is None:
            return False
        if self is Shape.SCALAR:
            return actual in (Shape.STRING, Shape.NUMBER)
        return actual is self


def shape_of(value: Any) -> Optional[Shape]:
    """Return the concrete shape of a value, or None if it is not a valid Value."""
    # bool is an int subclass but never a valid parameter value
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return Shape.STRING
    if isinstance(value, (int, float)):
        return Shape.NUMBER
    if isinstance(value, Mapping):
        if all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
            return Shape.MAP
    return None


def freeze_value(value: Value) -> Value:
    """Return a read-only copy of nested maps; scalars are returned as-is."""
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value


def thaw_value(value: Value) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    return value


def _check_value(parameter: str, where: str, value: Any) -> None:
    if shape_of(value) is None:
        raise TypeError(
            f"Parameter {parameter!r} has unsupported value for {where}: {value!r} "
            "(expected string, number or map of strings)"
        )


@dataclass(frozen=True)
class ParameterMap:
    name: str
    values: Mapping[str, Value] = field(default_factory=dict)
    fallback: Optional[Value] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Parameter name must not be empty")
        for env, value in self.values.items():
            _check_value(self.name, f"environment {env!r}", value)
        if self.fallback is not None:
            _check_value(self.name, "fallback", self.fallback)
        frozen = {env: freeze_value(v) for env, v in self.values.items()}
        object.__setattr__(self, "values", MappingProxyType(frozen))
        if self.fallback is not None:
            object.__setattr__(self, "fallback", freeze_value(self.fallback))

    def lookup(self, env: str, fallback: Optional[Value] = None) -> Value:
        """Return the entry for env, else fallback, else raise MissingParameterError."""
        if env in self.values:
            return self.values[env]
        if fallback is not None:
            return freeze_value(fallback)
        raise MissingParameterError(self.name, env)

    def has_entry(self, env: str) -> bool:
        return env in self.values

    def shape(self) -> Optional[Shape]:
        """Common shape of declared values and fallback; None when nothing is declared."""
        declared = list(self.values.values())
        if self.fallback is not None:
            declared.append(self.fallback)
        shapes = {shape_of(v) for v in declared}
        if not shapes:
            return None
        if shapes == {Shape.STRING, Shape.NUMBER}:
            return Shape.SCALAR
        if len(shapes) > 1:
            raise TypeError(
                f"Parameter {self.name!r} mixes scalar and map values across environments"
            )
        return shapes.pop()
