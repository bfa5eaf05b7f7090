"""
Preflight validation helpers.

Pure, minimal functions to validate required environment variables
and format actionable error messages for users.
"""

from __future__ import annotations

from typing import List, Mapping

from wsinfra.resolution import ValidationResult


def missing_env(env: Mapping[str, str], keys: List[str]) -> List[str]:
    """Return the list of keys missing (or blank) in the provided environment mapping."""
    return [k for k in keys if not (env.get(k) or "").strip()]


def format_missing_env_message(missing: List[str]) -> str:
    """Format a friendly, actionable message for missing env vars."""
    if not missing:
        return ""
    lines: List[str] = []
    lines.append("Preflight check failed: missing environment variables")
    lines.append("")
    lines.append("Missing:")
    for k in missing:
        lines.append(f"  - {k}")
    lines.append("")
    lines.append("How to set them in your shell (current session):")
    for k in missing:
        lines.append(f"  export {k}=\"<value>\"")
    lines.append("")
    lines.append("Or select the environment via the CLI: wsinfra synth --env <name>")
    return "\n".join(lines)


def format_validation_message(result: ValidationResult, header: str) -> str:
    """Render every violation of a result under a one-line header."""
    if result.ok:
        return ""
    lines: List[str] = [f"{header} ({len(result.violations)} violation(s))"]
    for v in result.violations:
        lines.append(f"  - [{v.kind}] {v.message}")
    return "\n".join(lines)
