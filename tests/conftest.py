"""
Shared fixtures: a three-environment registry and the parameter maps used
across resolver, validator and stack tests. No fixture touches the
filesystem unless it takes tmp_path.
"""

import textwrap
from pathlib import Path

import pytest

from wsinfra.resolution import EnvironmentRegistry, ParameterMap


@pytest.fixture
def registry() -> EnvironmentRegistry:
    return EnvironmentRegistry.of("dev", "staging", "prod")


@pytest.fixture
def instance_type_map() -> ParameterMap:
    return ParameterMap(
        name="instance_type",
        values={"dev": "t2.micro", "staging": "t2.medium", "prod": "t2.xlarge"},
    )


@pytest.fixture
def ami_map() -> ParameterMap:
    # no staging entry and no fallback
    return ParameterMap(name="ami_id", values={"dev": "ami-dev", "prod": "ami-prod"})


@pytest.fixture
def stack_maps():
    return [
        ParameterMap("name_prefix", fallback="acme"),
        ParameterMap("region", values={"prod": "eu-west-1"}, fallback="us-east-1"),
        ParameterMap(
            "instance_type",
            values={"dev": "t2.micro", "staging": "t2.medium", "prod": "t2.xlarge"},
        ),
        ParameterMap("ami_id", fallback="ami-0abc"),
        ParameterMap("tags", values={"prod": {"tier": "critical"}}, fallback={}),
    ]


@pytest.fixture
def declaration_file(tmp_path: Path) -> Path:
    path = tmp_path / "environments.yaml"
    path.write_text(
        textwrap.dedent(
            """\
            environments: [dev, staging, prod]
            defaults:
              name_prefix: acme
              region: us-east-1
            parameters:
              instance_type:
                values: {dev: t2.micro, staging: t2.medium, prod: t2.xlarge}
                fallback: t2.micro
              ami_id:
                dev: ami-dev
                staging: ami-staging
                prod: ami-prod
              tags:
                values:
                  prod: {team: platform, tier: critical}
                fallback: {team: platform}
            """
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def tfvars_dir(tmp_path: Path) -> Path:
    vars_dir = tmp_path / "vars"
    vars_dir.mkdir()
    (vars_dir / "defaults.tfvars").write_text(
        'name_prefix = "acme"\nregion = "us-east-1"\n', encoding="utf-8"
    )
    (vars_dir / "dev.tfvars").write_text(
        '# dev sizing\ninstance_type = "t2.micro"\nami_id = "ami-dev"\n',
        encoding="utf-8",
    )
    (vars_dir / "prod.tfvars").write_text(
        textwrap.dedent(
            """\
            instance_type = "t2.xlarge"   # bigger
            ami_id        = "ami-prod"
            disk_gb       = 100
            tags = {
              team = "platform"
              tier = "critical"
            }
            """
        ),
        encoding="utf-8",
    )
    return vars_dir
