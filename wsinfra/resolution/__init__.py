"""
Environment resolution core.

Pure, I/O-free helpers: registry, parameter maps, resolver and validator.
"""

from .errors import (
    ConfigurationInvalidError,
    DeclarationError,
    DuplicateParameterError,
    MissingParameterError,
    ResolutionError,
    SchemaViolationError,
    UnknownEnvironmentError,
)
from .parameters import ParameterMap, Shape, Value, shape_of
from .registry import EnvironmentRegistry
from .resolver import ResolvedConfiguration, resolve
from .validator import (
    ConfigSchema,
    ParameterSpec,
    ValidationResult,
    check_declarations,
    validate,
)

__all__ = [
    "ConfigSchema",
    "ConfigurationInvalidError",
    "DeclarationError",
    "DuplicateParameterError",
    "EnvironmentRegistry",
    "MissingParameterError",
    "ParameterMap",
    "ParameterSpec",
    "ResolutionError",
    "ResolvedConfiguration",
    "SchemaViolationError",
    "Shape",
    "UnknownEnvironmentError",
    "ValidationResult",
    "Value",
    "check_declarations",
    "resolve",
    "shape_of",
    "validate",
]
