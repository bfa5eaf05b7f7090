"""
AWS stack config helpers.

This module adapts a validated ResolvedConfiguration into the strongly-typed
InfrastructureConfig used by the CDKTF stacks, and declares which
parameters the stacks need.
"""

import re
from dataclasses import asdict
from typing import Any, Dict, Tuple

from wsinfra.iac_types import (
    InfrastructureConfig,
    InstanceConfig,
    LockTableConfig,
    StateBucketConfig,
)
from wsinfra.resolution import (
    ConfigSchema,
    ParameterSpec,
    ResolvedConfiguration,
    Shape,
    ValidationResult,
    validate,
)
from wsinfra.utils.config_loader import Declaration

STACK_SCHEMA = ConfigSchema.of(
    ParameterSpec("name_prefix", Shape.STRING),
    ParameterSpec("region", Shape.STRING),
    ParameterSpec("instance_type", Shape.STRING),
    ParameterSpec("ami_id", Shape.STRING),
    ParameterSpec("tags", Shape.MAP, required=False),
    ParameterSpec("lock_table_billing_mode", Shape.STRING, required=False),
    ParameterSpec("state_bucket_versioning", Shape.SCALAR, required=False),
)

LOCK_TABLE_HASH_KEY = "LockID"
BILLING_MODES = ("PAY_PER_REQUEST", "PROVISIONED")
# S3: 3-63 chars of lowercase letters, digits, dots and hyphens
_BUCKET_NAME_RE = re.compile(r"[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]")


def _to_bool(value: Any) -> bool:
    text = str(value).lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _build_names(prefix: str, env: str) -> Tuple[str, str, str]:
    instance = f"{prefix}-{env}-instance"
    bucket = f"{prefix}-{env}-tfstate".lower().replace("_", "-")
    if not _BUCKET_NAME_RE.fullmatch(bucket):
        raise ValueError(
            f"State bucket name {bucket!r} is not a valid S3 bucket name; "
            "check name_prefix and the environment name"
        )
    table = f"{prefix}-{env}-tflock"
    return instance, bucket, table


def state_stack_id(environment: str) -> str:
    return f"state-{environment}"


def app_stack_id(environment: str) -> str:
    return f"app-{environment}"


def stack_schema_for(declaration: Declaration) -> ConfigSchema:
    """Declared schema extended with the parameters the stacks require."""
    return declaration.effective_schema().merged(STACK_SCHEMA)


def validate_for_stack(
    config: ResolvedConfiguration, declaration: Declaration
) -> ValidationResult:
    return validate(config, stack_schema_for(declaration), declaration.registry)


def build_stack_config(config: ResolvedConfiguration) -> InfrastructureConfig:
    """Map resolved parameters onto typed stack config.

    Expects a configuration that already passed validate_for_stack; raises
    ValueError for values that are well-shaped but unusable.
    """
    env = config.environment
    prefix = str(config["name_prefix"])
    instance_name, bucket_name, table_name = _build_names(prefix, env)

    billing_mode = str(config.get("lock_table_billing_mode", "PAY_PER_REQUEST"))
    if billing_mode not in BILLING_MODES:
        raise ValueError(
            f"lock_table_billing_mode must be one of {', '.join(BILLING_MODES)}: {billing_mode}"
        )

    tags = dict(config.get("tags", {}))
    tags.setdefault("Environment", env)
    tags.setdefault("Name", instance_name)

    return InfrastructureConfig(
        environment=env,
        name_prefix=prefix,
        region=str(config["region"]),
        instance=InstanceConfig(
            name=instance_name,
            ami_id=str(config["ami_id"]),
            instance_type=str(config["instance_type"]),
            tags=tags,
        ),
        state_bucket=StateBucketConfig(
            bucket_name=bucket_name,
            versioning=_to_bool(config.get("state_bucket_versioning", "true")),
            sse_algorithm="AES256",
        ),
        lock_table=LockTableConfig(
            table_name=table_name,
            billing_mode=billing_mode,
            hash_key=LOCK_TABLE_HASH_KEY,
        ),
    )


def synth_config_json(config: InfrastructureConfig) -> Dict[str, Any]:
    """Convert dataclasses to plain dict for diagnostics or outputs."""
    return asdict(config)
