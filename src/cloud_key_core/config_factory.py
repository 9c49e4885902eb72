"""Configuration factory functions for creating provider adapters.

This module builds the provider adapters and the registry from environment
variables and keyword arguments, without using global state.

Environment Variables:
    CLOUD_KEY_AWS_REGION: AWS region for the IAM client. Falls back to AWS_REGION, then "us-east-1"
    CLOUD_KEY_AWS_PROFILE: AWS profile for the boto3 session. Falls back to AWS_PROFILE. Default: None
    CLOUD_KEY_AWS_ENDPOINT_URL: AWS endpoint URL for LocalStack testing. Default: None
    CLOUD_KEY_AIVEN_ENDPOINT: Aiven access token endpoint. Default: "https://api.aiven.io/v1/access_token"
    CLOUD_KEY_AIVEN_TIMEOUT: Aiven HTTP timeout in seconds. Default: "30"
"""

import os
from typing import TypedDict, Unpack

from cloud_key_core.client import KeyClient
from cloud_key_core.providers import (
    AIVEN_PROVIDER_NAME,
    AWS_KMS_PROVIDER_NAME,
    AWS_PROVIDER_NAME,
    GCP_PROVIDER_NAME,
    AivenKeyProvider,
    AwsKeyProvider,
    AwsKmsKeyProvider,
    GcpKeyProvider,
)
from cloud_key_core.providers.aiven import AIVEN_TOKEN_ENDPOINT
from cloud_key_core.providers.aws import DEFAULT_REGION
from cloud_key_core.registry import ProviderRegistry


class ConfigKwargs(TypedDict, total=False):
    """Type definition for configuration kwargs."""

    # AWS provider kwargs
    aws_region: str
    aws_profile: str
    aws_endpoint_url: str
    # Aiven provider kwargs
    aiven_endpoint: str
    aiven_timeout: float


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def _get_aws_region() -> str:
    """Get AWS region with precedence: CLOUD_KEY_AWS_REGION > AWS_REGION > default."""
    return (
        os.getenv("CLOUD_KEY_AWS_REGION")
        or os.getenv("AWS_REGION")
        or DEFAULT_REGION
    )


def create_aws_provider(
    aws_region: str | None = None,
    aws_profile: str | None = None,
    aws_endpoint_url: str | None = None,
) -> AwsKeyProvider:
    """Create an AWS key provider, filling unset options from the environment."""
    if aws_region is None:
        aws_region = _get_aws_region()
    if aws_profile is None:
        aws_profile = os.getenv("CLOUD_KEY_AWS_PROFILE", os.getenv("AWS_PROFILE"))
    if aws_endpoint_url is None:
        aws_endpoint_url = os.getenv("CLOUD_KEY_AWS_ENDPOINT_URL")
    return AwsKeyProvider(
        region=aws_region, profile_name=aws_profile, endpoint_url=aws_endpoint_url
    )


def create_aws_kms_provider(
    aws_region: str | None = None,
    aws_profile: str | None = None,
    aws_endpoint_url: str | None = None,
) -> AwsKmsKeyProvider:
    """Create an AWS KMS key provider sharing the AWS IAM settings."""
    iam = create_aws_provider(aws_region, aws_profile, aws_endpoint_url)
    return AwsKmsKeyProvider(
        region=iam.region, profile_name=iam.profile_name, endpoint_url=iam.endpoint_url
    )


def create_aiven_provider(
    aiven_endpoint: str | None = None,
    aiven_timeout: float | None = None,
) -> AivenKeyProvider:
    """Create an Aiven key provider, filling unset options from the environment."""
    if aiven_endpoint is None:
        aiven_endpoint = os.getenv("CLOUD_KEY_AIVEN_ENDPOINT", AIVEN_TOKEN_ENDPOINT)
    if aiven_timeout is None:
        aiven_timeout = _get_env_float("CLOUD_KEY_AIVEN_TIMEOUT", 30.0)
    return AivenKeyProvider(endpoint=aiven_endpoint, timeout=aiven_timeout)


def create_registry(**kwargs: Unpack[ConfigKwargs]) -> ProviderRegistry:
    """Create a registry holding the built-in adapters.

    Args:
        **kwargs: Overrides for individual adapter options.

    Returns:
        Registry with the AWS IAM, AWS KMS, GCP and Aiven adapters registered.
    """
    aws_kwargs = {k: v for k, v in kwargs.items() if k.startswith("aws_")}
    aiven_kwargs = {k: v for k, v in kwargs.items() if k.startswith("aiven_")}
    return ProviderRegistry(
        {
            AWS_PROVIDER_NAME: create_aws_provider(**aws_kwargs),  # type: ignore[arg-type]
            AWS_KMS_PROVIDER_NAME: create_aws_kms_provider(**aws_kwargs),  # type: ignore[arg-type]
            GCP_PROVIDER_NAME: GcpKeyProvider(),
            AIVEN_PROVIDER_NAME: create_aiven_provider(**aiven_kwargs),  # type: ignore[arg-type]
        }
    )


def create_key_client(**kwargs: Unpack[ConfigKwargs]) -> KeyClient:
    """Create a key client over a freshly built registry."""
    return KeyClient(create_registry(**kwargs))
