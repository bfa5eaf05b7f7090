"""
State bucket module.

Provisions the S3 bucket that stores remote Terraform state for one
environment: versioned, encrypted at rest, and closed to public access.
"""

from constructs import Construct

from cdktf import TerraformOutput
from cdktf_cdktf_provider_aws.s3_bucket import S3Bucket
from cdktf_cdktf_provider_aws.s3_bucket_public_access_block import (
    S3BucketPublicAccessBlock,
)
from cdktf_cdktf_provider_aws.s3_bucket_server_side_encryption_configuration import (
    S3BucketServerSideEncryptionConfigurationA,
)
from cdktf_cdktf_provider_aws.s3_bucket_versioning import S3BucketVersioningA

from wsinfra.iac_types import StateBucketConfig


def provision_state_bucket(
    scope: Construct, config: StateBucketConfig, environment: str
) -> S3Bucket:
    """Provision the state bucket and its guard rails."""
    bucket = S3Bucket(
        scope,
        "stateBucket",
        bucket=config.bucket_name,
        tags={"Environment": environment, "Purpose": "terraform-state"},
    )

    S3BucketVersioningA(
        scope,
        "stateBucketVersioning",
        bucket=bucket.id,
        versioning_configuration={
            "status": "Enabled" if config.versioning else "Suspended"
        },
    )

    S3BucketServerSideEncryptionConfigurationA(
        scope,
        "stateBucketEncryption",
        bucket=bucket.id,
        rule=[
            {
                "apply_server_side_encryption_by_default": {
                    "sse_algorithm": config.sse_algorithm
                }
            }
        ],
    )

    S3BucketPublicAccessBlock(
        scope,
        "stateBucketPublicAccess",
        bucket=bucket.id,
        block_public_acls=True,
        block_public_policy=True,
        ignore_public_acls=True,
        restrict_public_buckets=True,
    )

    TerraformOutput(scope, "state_bucket_name", value=bucket.bucket)

    return bucket
