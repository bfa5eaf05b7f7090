"""
Error taxonomy for environment resolution and validation.

Every error carries the offending environment and/or parameter name so a
front end can report precise diagnostics before provisioning starts.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple


class ResolutionError(Exception):
    """Base class for failures raised while resolving a configuration."""


class UnknownEnvironmentError(ResolutionError):
    def __init__(self, environment: str, known: Iterable[str] = ()) -> None:
        self.environment = environment
        self.known: Tuple[str, ...] = tuple(known)
        msg = f"Unknown environment: {environment!r}"
        if self.known:
            msg += f" (expected one of: {', '.join(self.known)})"
        super().__init__(msg)


class MissingParameterError(ResolutionError):
    def __init__(self, parameter: str, environment: str) -> None:
        self.parameter = parameter
        self.environment = environment
        super().__init__(
            f"Missing parameter {parameter!r} for environment {environment!r} "
            "and no fallback declared"
        )


class DuplicateParameterError(ResolutionError):
    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Parameter declared more than once: {parameter!r}")


class SchemaViolationError(ResolutionError):
    """A single validation finding; collected inside a ValidationResult."""

    MISSING = "missing"
    SHAPE_MISMATCH = "shape_mismatch"
    UNEXPECTED = "unexpected"
    UNKNOWN_ENVIRONMENT = "unknown_environment"

    def __init__(
        self,
        kind: str,
        parameter: Optional[str],
        message: str,
        environment: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.parameter = parameter
        self.environment = environment
        self.message = message
        super().__init__(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaViolationError):
            return NotImplemented
        return (self.kind, self.parameter, self.environment, self.message) == (
            other.kind,
            other.parameter,
            other.environment,
            other.message,
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.parameter, self.environment, self.message))

    def __repr__(self) -> str:
        return (
            f"SchemaViolationError(kind={self.kind!r}, parameter={self.parameter!r}, "
            f"environment={self.environment!r})"
        )


class ConfigurationInvalidError(ResolutionError):
    def __init__(self, violations: Sequence[SchemaViolationError]) -> None:
        self.violations: Tuple[SchemaViolationError, ...] = tuple(violations)
        lines = [f"Configuration invalid ({len(self.violations)} violation(s)):"]
        lines.extend(f"  - {v.message}" for v in self.violations)
        super().__init__("\n".join(lines))


class DeclarationError(ValueError):
    """Raised by loaders when a declaration file is structurally invalid."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
