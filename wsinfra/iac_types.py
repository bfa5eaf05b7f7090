from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class InstanceConfig:
    name: str
    ami_id: str
    instance_type: str  # e.g., t2.micro
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StateBucketConfig:
    bucket_name: str
    versioning: bool
    sse_algorithm: str  # AES256 or aws:kms


@dataclass(frozen=True)
class LockTableConfig:
    table_name: str
    billing_mode: str  # PAY_PER_REQUEST or PROVISIONED
    hash_key: str


@dataclass(frozen=True)
class InfrastructureConfig:
    environment: str
    name_prefix: str
    region: str
    instance: InstanceConfig
    state_bucket: StateBucketConfig
    lock_table: LockTableConfig
