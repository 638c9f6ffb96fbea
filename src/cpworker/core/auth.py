"""Authentication helpers for AWS CodePipeline.

This module centralizes creation of the boto3 CodePipeline client used by
the worker. Credentials and region are resolved through boto3's standard
chain (environment, shared config, instance profile); configuration
problems are turned into a single AuthError with a readable message.
"""

import boto3
from botocore.exceptions import BotoCoreError, NoRegionError, ProfileNotFound


class AuthError(RuntimeError):
    """Raised when an AWS client cannot be created."""


def _format_auth_error(exc: Exception, profile: str | None) -> str:
    """Return a user-friendly auth error message."""
    if isinstance(exc, ProfileNotFound):
        return (
            f"AWS profile '{profile}' was not found.\n"
            "Check ~/.aws/config or pass a different --profile."
        )
    if isinstance(exc, NoRegionError):
        return "No AWS region configured. Pass --region or set AWS_REGION."
    return f"AWS client setup failed: {exc}"


def get_client(profile: str | None = None, region: str | None = None):
    """
    Create and return a boto3 CodePipeline client.

    The client is created once per process and shared by all job threads;
    boto3 low-level clients are thread-safe.
    """
    try:
        session = boto3.session.Session(profile_name=profile, region_name=region)
        return session.client("codepipeline")
    except (ProfileNotFound, NoRegionError, BotoCoreError) as exc:
        raise AuthError(_format_auth_error(exc, profile)) from exc
