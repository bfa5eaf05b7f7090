"""
CDKTF entrypoint for the workspace-scoped AWS infrastructure.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from constructs import Construct
from cdktf import App, S3Backend, TerraformOutput, TerraformStack

from cdktf_cdktf_provider_aws.provider import AwsProvider

from wsinfra.iac_types import InfrastructureConfig
from wsinfra.modules.instance.instance import provision_instance
from wsinfra.modules.lock_table.lock_table import provision_lock_table
from wsinfra.modules.state_bucket.state_bucket import provision_state_bucket
from wsinfra.resolution import ResolutionError, check_declarations, resolve
from wsinfra.stacks.aws_stack import (
    app_stack_id,
    build_stack_config,
    state_stack_id,
    synth_config_json,
    validate_for_stack,
)
from wsinfra.utils.config_loader import load_sources
from wsinfra.utils.validation import (
    format_missing_env_message,
    format_validation_message,
    missing_env,
)

STATE_KEY = "terraform.tfstate"


class StateStack(TerraformStack):
    """Bucket and lock table that hold the remote state of the app stack."""

    def __init__(self, scope: Construct, id: str, config: InfrastructureConfig) -> None:
        super().__init__(scope, id)

        AwsProvider(self, "aws", region=config.region)

        provision_state_bucket(self, config.state_bucket, config.environment)
        provision_lock_table(
            scope=self, config=config.lock_table, environment=config.environment
        )


class AppStack(TerraformStack):
    """Environment-scoped resources, stored in the state bucket."""

    def __init__(self, scope: Construct, id: str, config: InfrastructureConfig) -> None:
        super().__init__(scope, id)

        S3Backend(
            self,
            bucket=config.state_bucket.bucket_name,
            key=f"{config.environment}/{STATE_KEY}",
            region=config.region,
            dynamodb_table=config.lock_table.table_name,
            encrypt=True,
        )

        AwsProvider(self, "aws", region=config.region)

        provision_instance(scope=self, cfg=config)

        TerraformOutput(
            self, "config_json", value=json.dumps(synth_config_json(config), sort_keys=True)
        )


def main() -> None:
    # cdktf runs the app from the project directory (see cdktf.json)
    repo_root = Path.cwd()

    # Preflight: the active environment must be selected explicitly
    missing = missing_env(env=os.environ, keys=["DEPLOY_ENV"])
    if missing:
        print(format_missing_env_message(missing), file=sys.stderr)
        sys.exit(2)
    active_env = os.environ["DEPLOY_ENV"].strip()

    try:
        declaration = load_sources(repo_root=repo_root)
    except (OSError, ValueError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    # Gaps in other environments do not block this one
    for msg in check_declarations(declaration.registry, declaration.parameter_maps).messages():
        print(f"Warning: {msg}", file=sys.stderr)

    try:
        resolved = resolve(active_env, declaration.parameter_maps, declaration.registry)
        result = validate_for_stack(resolved, declaration)
    except (ResolutionError, TypeError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    if not result.ok:
        print(format_validation_message(result, "Validation failed"), file=sys.stderr)
        sys.exit(2)

    app = App()
    try:
        cfg = build_stack_config(resolved)
        StateStack(app, state_stack_id(active_env), cfg)
        AppStack(app, app_stack_id(active_env), cfg)
    except ValueError as ex:
        # Surface a concise, friendly message instead of a long traceback
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    try:
        app.synth()
    except Exception as ex:  # noqa: BLE001 - present actionable error
        print("Synthesis failed.", file=sys.stderr)
        print(str(ex), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
