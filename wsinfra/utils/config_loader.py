"""
Declaration loader: files -> EnvironmentRegistry + ParameterMaps.

Two sources are supported:

- a YAML (or JSON) declaration holding the environment list, registry
  defaults, per-parameter maps with fallbacks and an optional schema;
- a directory of per-environment .tfvars files, where each file provides
  one environment's value for every key it declares.

Files are read once; everything downstream is pure.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from wsinfra.resolution import (
    ConfigSchema,
    DeclarationError,
    EnvironmentRegistry,
    ParameterMap,
    ParameterSpec,
    Shape,
    Value,
)

DEFAULT_DECLARATION_FILE = "environments.yaml"
DEFAULTS_TFVARS = "defaults"

_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d*([eE][-+]?\d+)?")


@dataclass(frozen=True)
class Declaration:
    registry: EnvironmentRegistry
    parameter_maps: Tuple[ParameterMap, ...]
    schema: Optional[ConfigSchema] = None
    source: str = ""

    def effective_schema(self) -> ConfigSchema:
        """Declared schema, or one derived from the parameter maps."""
        if self.schema is not None:
            return self.schema
        return ConfigSchema.from_parameter_maps(self.parameter_maps, self.registry)


# ---------------------------------------------------------------------------
# tfvars
# ---------------------------------------------------------------------------


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _strip_comment(line: str) -> str:
    """Drop '#' and '//' comments that are not inside a quoted string."""
    quote = ""
    for i, ch in enumerate(line):
        if quote:
            if ch == quote and line[i - 1] != "\\":
                quote = ""
            continue
        if ch in ('"', "'"):
            quote = ch
        elif ch == "#" or line.startswith("//", i):
            return line[:i]
    return line


def _split_outside_quotes(text: str, seps: str) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    quote = ""
    for ch in text:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in ('"', "'"):
            quote = ch
            buf.append(ch)
        elif ch in seps:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))
    return [p.strip() for p in parts if p.strip()]


def _parse_tfvars(content: str) -> Dict[str, str]:
    """Small tfvars parser for key = value pairs.

    Supports strings, numbers and { k = v } maps, the latter either on one
    line or spanning several. Returns raw (unconverted) right-hand sides;
    the lines of a multi-line map are kept newline-separated.
    """
    vars_map: Dict[str, str] = {}
    pending_key: Optional[str] = None
    pending: List[str] = []
    for raw in content.splitlines():
        line = _strip_comment(raw).strip()
        if not line:
            continue
        if pending_key is not None:
            pending.append(line)
            if line.endswith("}"):
                vars_map[pending_key] = "\n".join(pending)
                pending_key, pending = None, []
            continue
        if "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = _strip_quotes(key.strip())
        val = val.strip()
        if val.startswith("{") and not val.endswith("}"):
            pending_key, pending = key, [val]
            continue
        vars_map[key] = val
    if pending_key is not None:
        raise ValueError(f"Unterminated map for var: {pending_key}")
    return vars_map


def _to_number(value: str) -> Optional[float]:
    if _INT_RE.fullmatch(value):
        return int(value)
    if _FLOAT_RE.fullmatch(value):
        return float(value)
    return None


def _to_scalar(raw: str) -> Value:
    if len(raw) >= 2 and raw[0] in ('"', "'") and raw[-1] == raw[0]:
        return raw[1:-1]
    number = _to_number(raw)
    if number is not None:
        return number
    if raw.startswith("["):
        raise ValueError(f"List values are not supported: {raw}")
    return raw


def _to_map(raw: str) -> Dict[str, str]:
    body = raw.strip()[1:-1]
    out: Dict[str, str] = {}
    for item in _split_outside_quotes(body, ",\n"):
        if "=" not in item:
            raise ValueError(f"Invalid map entry: {item}")
        k, v = item.split("=", 1)
        out[_strip_quotes(k.strip())] = str(_to_scalar(v.strip()))
    return out


def _to_value(raw: str) -> Value:
    if raw.startswith("{"):
        return _to_map(raw)
    return _to_scalar(raw)


def _read_tfvars(path: Path) -> Dict[str, Value]:
    if not path.exists():
        raise FileNotFoundError(f"tfvars file not found: {path}")
    content = path.read_text(encoding="utf-8")
    try:
        return {k: _to_value(v) for k, v in _parse_tfvars(content).items()}
    except ValueError as ex:
        raise DeclarationError(str(path), str(ex)) from ex


def load_tfvars_dir(
    vars_dir: Path, environments: Optional[Sequence[str]] = None
) -> Declaration:
    """Build parameter maps from one <env>.tfvars file per environment.

    When environments is None they are discovered from the file names
    (sorted). An optional defaults.tfvars supplies registry-wide fallbacks.
    """
    vars_dir = Path(vars_dir)
    if not vars_dir.is_dir():
        raise FileNotFoundError(f"tfvars directory not found: {vars_dir}")

    if environments is None:
        environments = sorted(
            p.stem for p in vars_dir.glob("*.tfvars") if p.stem != DEFAULTS_TFVARS
        )
    defaults_path = vars_dir / f"{DEFAULTS_TFVARS}.tfvars"
    defaults = _read_tfvars(defaults_path) if defaults_path.exists() else {}

    per_env: Dict[str, Dict[str, Value]] = {}
    for env in environments:
        per_env[env] = _read_tfvars(vars_dir / f"{env}.tfvars")

    names: List[str] = []
    for env_vars in [*per_env.values(), defaults]:
        for key in env_vars:
            if key not in names:
                names.append(key)

    try:
        registry = EnvironmentRegistry(environments=tuple(environments), defaults=defaults)
        maps = tuple(
            ParameterMap(
                name=name,
                values={env: v[name] for env, v in per_env.items() if name in v},
            )
            for name in names
        )
    except (TypeError, ValueError) as ex:
        raise DeclarationError(str(vars_dir), str(ex)) from ex
    return Declaration(registry=registry, parameter_maps=maps, source=str(vars_dir))


# ---------------------------------------------------------------------------
# YAML / JSON declaration
# ---------------------------------------------------------------------------


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Declaration file not found: {path}")
    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8") as fh:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(fh)
        elif suffix == ".json":
            data = json.load(fh)
        else:
            raise DeclarationError(str(path), f"unsupported format {path.suffix}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DeclarationError(
            str(path), f"root must be a mapping, got {type(data).__name__}"
        )
    return data


_LONG_FORM_KEYS = {"values", "fallback"}


def _is_long_form(spec: Mapping[str, Any]) -> bool:
    return bool(_LONG_FORM_KEYS & set(spec))


def _build_parameter_map(name: str, spec: Any) -> ParameterMap:
    if not isinstance(spec, Mapping):
        raise ValueError(f"parameters.{name} must be a mapping")
    if _is_long_form(spec):
        extra = sorted(str(k) for k in set(spec) - _LONG_FORM_KEYS)
        if extra:
            raise ValueError(f"parameters.{name}: unexpected keys {extra} next to values/fallback")
        values = spec.get("values")
        if values is None:
            values = {}
        if not isinstance(values, Mapping):
            raise ValueError(f"parameters.{name}.values must be a mapping")
        fallback = spec.get("fallback")
    else:
        values, fallback = spec, None
    return ParameterMap(
        name=str(name),
        values={str(env): v for env, v in values.items()},
        fallback=fallback,
    )


def _build_schema(raw: Mapping[str, Any]) -> ConfigSchema:
    specs: List[ParameterSpec] = []
    for name, entry in raw.items():
        required = True
        if isinstance(entry, Mapping):
            shape_name = entry.get("shape", Shape.SCALAR.value)
            required = entry.get("required", True)
            if not isinstance(required, bool):
                raise ValueError(f"schema.{name}.required must be a boolean")
        else:
            shape_name = entry
        try:
            shape = Shape(shape_name)
        except ValueError as ex:
            allowed = ", ".join(s.value for s in Shape)
            raise ValueError(
                f"schema.{name}: unsupported shape {shape_name!r} (expected {allowed})"
            ) from ex
        specs.append(ParameterSpec(str(name), shape, required))
    return ConfigSchema(parameters=tuple(specs))


def load_declaration(path: Path) -> Declaration:
    path = Path(path)
    data = _load_file(path)

    envs = data.get("environments")
    if not isinstance(envs, list) or not envs:
        raise DeclarationError(str(path), "environments must be a non-empty list")
    defaults = data.get("defaults") or {}
    params = data.get("parameters") or {}
    schema_raw = data.get("schema")
    if not isinstance(defaults, Mapping):
        raise DeclarationError(str(path), "defaults must be a mapping")
    if not isinstance(params, Mapping):
        raise DeclarationError(str(path), "parameters must be a mapping")
    if schema_raw is not None and not isinstance(schema_raw, Mapping):
        raise DeclarationError(str(path), "schema must be a mapping")

    try:
        registry = EnvironmentRegistry(
            environments=tuple(envs), defaults={str(k): v for k, v in defaults.items()}
        )
        maps = tuple(_build_parameter_map(name, spec) for name, spec in params.items())
        declared = {m.name for m in maps}
        # defaults-only parameters resolve from the registry default
        maps += tuple(ParameterMap(name=k) for k in registry.defaults if k not in declared)
        schema = _build_schema(schema_raw) if schema_raw is not None else None
    except (TypeError, ValueError) as ex:
        raise DeclarationError(str(path), str(ex)) from ex
    return Declaration(
        registry=registry, parameter_maps=maps, schema=schema, source=str(path)
    )


def load_sources(
    *,
    repo_root: Path,
    declaration_file: Optional[str] = None,
    tfvars_dir: Optional[str] = None,
) -> Declaration:
    """Pick the declaration source from arguments, then env vars, then defaults.

    An explicit argument disables both env var lookups.
    """
    if tfvars_dir:
        return load_tfvars_dir((repo_root / tfvars_dir).resolve())
    if declaration_file:
        return load_declaration((repo_root / declaration_file).resolve())

    tfvars_dir = (os.getenv("TFVARS_DIR") or "").strip()
    if tfvars_dir:
        return load_tfvars_dir((repo_root / tfvars_dir).resolve())

    declaration_env = (os.getenv("DECLARATION_FILE") or "").strip()
    declaration_file = declaration_env or DEFAULT_DECLARATION_FILE
    return load_declaration((repo_root / declaration_file).resolve())
