"""
Compute instance module.

Creates the single EC2 instance whose size and image vary per environment.
"""

from __future__ import annotations

from constructs import Construct

from cdktf import TerraformOutput
from cdktf_cdktf_provider_aws.instance import Instance

from wsinfra.iac_types import InfrastructureConfig


def provision_instance(*, scope: Construct, cfg: InfrastructureConfig) -> Instance:
    """Provision the instance described by cfg.instance and return it."""
    instance = Instance(
        scope,
        "instance",
        ami=cfg.instance.ami_id,
        instance_type=cfg.instance.instance_type,
        tags=dict(cfg.instance.tags),
    )

    TerraformOutput(scope, "instance_id", value=instance.id)
    TerraformOutput(scope, "instance_public_ip", value=instance.public_ip)

    return instance
