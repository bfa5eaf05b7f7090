from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from wsinfra.resolution import (
    ResolutionError,
    ResolvedConfiguration,
    ValidationResult,
    check_declarations,
    resolve,
)
from wsinfra.stacks.aws_stack import (
    app_stack_id,
    build_stack_config,
    state_stack_id,
    validate_for_stack,
)
from wsinfra.utils.config_loader import Declaration, load_sources
from wsinfra.utils.shell import CmdError, cdktf
from wsinfra.utils.validation import format_validation_message


def _project_root(args: argparse.Namespace) -> Path:
    return Path(args.project_dir).resolve()


def _load(args: argparse.Namespace) -> Declaration:
    return load_sources(
        repo_root=_project_root(args),
        declaration_file=args.declaration,
        tfvars_dir=args.tfvars_dir,
    )


def _format_value(value) -> str:
    if isinstance(value, dict):
        inner = ", ".join(f'{k} = "{v}"' for k, v in value.items())
        return "{ " + inner + " }" if inner else "{}"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def render_config(config: ResolvedConfiguration, fmt: str) -> str:
    data = config.as_dict()
    if fmt == "json":
        return json.dumps({"environment": config.environment, "parameters": data}, indent=2)
    lines = [f"# environment: {config.environment}"]
    lines.extend(f"{k} = {_format_value(v)}" for k, v in data.items())
    return "\n".join(lines)


def check(
    declaration: Declaration, env: str, strict: bool = False
) -> Tuple[ResolvedConfiguration, ValidationResult]:
    """Resolve env and collect every finding. Returns (config, result)."""
    coverage = check_declarations(declaration.registry, declaration.parameter_maps)
    if coverage.violations and not strict:
        for msg in coverage.messages():
            print(f"Warning: {msg}", file=sys.stderr)
        coverage = ValidationResult()
    config = resolve(env, declaration.parameter_maps, declaration.registry)
    result = coverage.combined(validate_for_stack(config, declaration))
    if result.ok:
        # well-shaped values the stacks still reject raise ValueError here
        build_stack_config(config)
    return config, result


def envs(args: argparse.Namespace) -> int:
    declaration = _load(args)
    for name in declaration.registry.list_environments():
        print(name)
    return 0


def resolve_cmd(args: argparse.Namespace) -> int:
    declaration = _load(args)
    config = resolve(args.env, declaration.parameter_maps, declaration.registry)
    print(render_config(config, args.format))
    return 0


def validate_cmd(args: argparse.Namespace) -> int:
    declaration = _load(args)
    config, result = check(declaration, args.env, strict=args.strict)
    if not result.ok:
        print(format_validation_message(result, f"Validation failed for {args.env}"), file=sys.stderr)
        return 2
    print(f"OK: {config.environment} ({len(config)} parameters)")
    return 0


def _cdktf_env(args: argparse.Namespace) -> Dict[str, str]:
    root = _project_root(args)
    env = {"DEPLOY_ENV": args.env}
    # blank values count as unset, so an inherited source cannot win
    if args.tfvars_dir:
        env["TFVARS_DIR"] = str((root / args.tfvars_dir).resolve())
        env["DECLARATION_FILE"] = ""
    elif args.declaration:
        env["DECLARATION_FILE"] = str((root / args.declaration).resolve())
        env["TFVARS_DIR"] = ""
    return env


def _preflight(args: argparse.Namespace) -> bool:
    _, result = check(_load(args), args.env)
    if not result.ok:
        print(format_validation_message(result, f"Validation failed for {args.env}"), file=sys.stderr)
        return False
    return True


def infra_synth(args: argparse.Namespace) -> int:
    if not _preflight(args):
        return 2
    print(f"Synthesizing CDKTF for {args.env}...")
    cdktf(_project_root(args), ["synth"], env=_cdktf_env(args))
    return 0


def infra_deploy(args: argparse.Namespace) -> int:
    if not _preflight(args):
        return 2
    stacks = [state_stack_id(args.env), app_stack_id(args.env)]
    cmd: List[str] = ["deploy", *stacks]
    if args.auto_approve:
        cmd.append("--auto-approve")
    print(f"Deploying CDKTF stacks: {', '.join(stacks)}")
    cdktf(_project_root(args), cmd, env=_cdktf_env(args))
    print("CDKTF deploy completed.")
    return 0


def infra_destroy(args: argparse.Namespace) -> int:
    if not _preflight(args):
        return 2
    stacks = [app_stack_id(args.env)]
    if args.include_state:
        stacks.append(state_stack_id(args.env))
    cmd: List[str] = ["destroy", *stacks]
    if args.auto_approve:
        cmd.append("--auto-approve")
    print(f"Destroying CDKTF stacks: {', '.join(stacks)}")
    cdktf(_project_root(args), cmd, env=_cdktf_env(args))
    print("Destroy completed.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wsinfra", description="Workspace-scoped infrastructure CLI"
    )
    parser.add_argument("--project-dir", default=".")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--declaration", help="YAML/JSON declaration file")
    src.add_argument("--tfvars-dir", help="Directory of <env>.tfvars files")
    sub = parser.add_subparsers(dest="cmd", required=True)

    e = sub.add_parser("envs", help="List registered environments")
    e.set_defaults(func=envs)

    r = sub.add_parser("resolve", help="Print the resolved configuration")
    r.add_argument("--env", required=True)
    r.add_argument("--format", choices=["json", "text"], default="json")
    r.set_defaults(func=resolve_cmd)

    v = sub.add_parser("validate", help="Resolve and validate an environment")
    v.add_argument("--env", required=True)
    v.add_argument(
        "--strict",
        action="store_true",
        help="Treat coverage gaps in other environments as failures",
    )
    v.set_defaults(func=validate_cmd)

    s = sub.add_parser("synth", help="Synthesize CDKTF stacks for an environment")
    s.add_argument("--env", required=True)
    s.set_defaults(func=infra_synth)

    d = sub.add_parser("deploy", help="Deploy state and app stacks via CDKTF")
    d.add_argument("--env", required=True)
    d.add_argument("--auto-approve", action="store_true")
    d.set_defaults(func=infra_deploy)

    x = sub.add_parser("destroy", help="Destroy the app stack via CDKTF")
    x.add_argument("--env", required=True)
    x.add_argument("--auto-approve", action="store_true")
    x.add_argument(
        "--include-state",
        action="store_true",
        help="Also destroy the state bucket and lock table",
    )
    x.set_defaults(func=infra_destroy)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (ResolutionError, CmdError, OSError, TypeError, ValueError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
