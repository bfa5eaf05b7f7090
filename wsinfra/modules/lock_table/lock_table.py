"""
Lock table module.

Creates the DynamoDB table Terraform uses to lock remote state.
"""

from __future__ import annotations

from constructs import Construct

from cdktf import TerraformOutput
from cdktf_cdktf_provider_aws.dynamodb_table import DynamodbTable

from wsinfra.iac_types import LockTableConfig


def provision_lock_table(
    *, scope: Construct, config: LockTableConfig, environment: str
) -> DynamodbTable:
    """Provision the lock table keyed by the Terraform lock id."""
    provisioned = config.billing_mode == "PROVISIONED"
    table = DynamodbTable(
        scope,
        "lockTable",
        name=config.table_name,
        billing_mode=config.billing_mode,
        hash_key=config.hash_key,
        attribute=[{"name": config.hash_key, "type": "S"}],
        **({"read_capacity": 1, "write_capacity": 1} if provisioned else {}),
        tags={"Environment": environment, "Purpose": "terraform-lock"},
    )

    TerraformOutput(scope, "lock_table_name", value=table.name)

    return table
