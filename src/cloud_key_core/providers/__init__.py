"""Key provider adapters for the supported identity providers."""

from .aiven import AIVEN_PROVIDER_NAME, AivenKeyProvider
from .aws import AWS_PROVIDER_NAME, AwsKeyProvider
from .aws_kms import AWS_KMS_PROVIDER_NAME, AwsKmsKeyProvider
from .base import KeyProvider
from .gcp import GCP_PROVIDER_NAME, GcpKeyProvider

__all__ = [
    "AIVEN_PROVIDER_NAME",
    "AWS_KMS_PROVIDER_NAME",
    "AWS_PROVIDER_NAME",
    "GCP_PROVIDER_NAME",
    "AivenKeyProvider",
    "AwsKeyProvider",
    "AwsKmsKeyProvider",
    "GcpKeyProvider",
    "KeyProvider",
]
