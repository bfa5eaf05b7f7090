"""
Configuration validator.

Checks resolved configurations against a schema and checks declarations for
coverage gaps. Every violation is collected in a single pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import ConfigurationInvalidError, SchemaViolationError
from .parameters import ParameterMap, Shape, shape_of
from .registry import EnvironmentRegistry
from .resolver import ParameterMaps, ResolvedConfiguration, as_parameter_list, effective_fallback


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    shape: Shape = Shape.SCALAR
    required: bool = True


@dataclass(frozen=True)
class ConfigSchema:
    parameters: Tuple[ParameterSpec, ...]

    def __post_init__(self) -> None:
        specs = tuple(self.parameters)
        names = [p.name for p in specs]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate schema entries: {', '.join(dupes)}")
        object.__setattr__(self, "parameters", specs)

    @classmethod
    def of(cls, *specs: ParameterSpec) -> "ConfigSchema":
        return cls(parameters=tuple(specs))

    @classmethod
    def from_parameter_maps(
        cls,
        parameter_maps: ParameterMaps,
        registry: Optional[EnvironmentRegistry] = None,
    ) -> "ConfigSchema":
        """Every declared parameter is required with the shape of its values."""
        specs: List[ParameterSpec] = []
        for pmap in as_parameter_list(parameter_maps):
            shape = pmap.shape()
            if shape is None and registry is not None:
                shape = shape_of(registry.default_for(pmap.name))
            specs.append(ParameterSpec(pmap.name, shape or Shape.SCALAR, True))
        return cls(parameters=tuple(specs))

    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    def get(self, name: str) -> Optional[ParameterSpec]:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None

    def merged(self, other: "ConfigSchema") -> "ConfigSchema":
        """Union of two schemas; entries in other override same-named entries."""
        by_name: Dict[str, ParameterSpec] = {p.name: p for p in self.parameters}
        for spec in other.parameters:
            by_name[spec.name] = spec
        return ConfigSchema(parameters=tuple(by_name.values()))


@dataclass(frozen=True)
class ValidationResult:
    violations: Tuple[SchemaViolationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations

    def messages(self) -> List[str]:
        return [v.message for v in self.violations]

    def of_kind(self, kind: str) -> Tuple[SchemaViolationError, ...]:
        return tuple(v for v in self.violations if v.kind == kind)

    def combined(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(violations=self.violations + other.violations)

    def raise_for_violations(self) -> None:
        if self.violations:
            raise ConfigurationInvalidError(self.violations)


ConfigLike = Union[ResolvedConfiguration, Mapping[str, object]]


def validate(
    config: ConfigLike,
    schema: ConfigSchema,
    registry: Optional[EnvironmentRegistry] = None,
) -> ValidationResult:
    """Check presence, shape, and drift; optionally the environment itself."""
    violations: List[SchemaViolationError] = []
    environment = getattr(config, "environment", None)

    if registry is not None and not registry.is_valid(environment):
        violations.append(
            SchemaViolationError(
                SchemaViolationError.UNKNOWN_ENVIRONMENT,
                None,
                f"Unknown environment: {environment!r}",
                environment=environment,
            )
        )

    for spec in schema.parameters:
        if spec.name not in config:
            if spec.required:
                violations.append(
                    SchemaViolationError(
                        SchemaViolationError.MISSING,
                        spec.name,
                        f"Missing required parameter: {spec.name}",
                        environment=environment,
                    )
                )
            continue
        value = config[spec.name]
        if not spec.shape.accepts(value):
            actual = shape_of(value)
            got = actual.value if actual is not None else type(value).__name__
            violations.append(
                SchemaViolationError(
                    SchemaViolationError.SHAPE_MISMATCH,
                    spec.name,
                    f"Parameter {spec.name} expected {spec.shape.value}, got {got}",
                    environment=environment,
                )
            )

    known = set(schema.names())
    for name in config:
        if name not in known:
            violations.append(
                SchemaViolationError(
                    SchemaViolationError.UNEXPECTED,
                    name,
                    f"Unexpected parameter: {name}",
                    environment=environment,
                )
            )

    return ValidationResult(violations=tuple(violations))


def check_declarations(
    registry: EnvironmentRegistry, parameter_maps: ParameterMaps
) -> ValidationResult:
    """Report (parameter, environment) gaps with no fallback, and unregistered keys."""
    violations: List[SchemaViolationError] = []
    maps: Iterable[ParameterMap] = as_parameter_list(parameter_maps)
    for pmap in maps:
        has_fallback = effective_fallback(pmap, registry) is not None
        for env in registry.list_environments():
            if not pmap.has_entry(env) and not has_fallback:
                violations.append(
                    SchemaViolationError(
                        SchemaViolationError.MISSING,
                        pmap.name,
                        f"Parameter {pmap.name} has no value for {env} and no fallback",
                        environment=env,
                    )
                )
        for env in registry.unknown(list(pmap.values)):
            violations.append(
                SchemaViolationError(
                    SchemaViolationError.UNKNOWN_ENVIRONMENT,
                    pmap.name,
                    f"Parameter {pmap.name} declares a value for unknown environment {env}",
                    environment=env,
                )
            )
    return ValidationResult(violations=tuple(violations))
