"""AWS session helpers."""

import boto3
from botocore.exceptions import ClientError

from server_infra.core.settings import DeploymentSettings


def create_session(settings: DeploymentSettings) -> boto3.session.Session:
    """Create a boto3 session for the configured account and region."""
    if settings.aws_profile:
        return boto3.session.Session(
            profile_name=settings.aws_profile,
            region_name=settings.aws_region,
        )

    return boto3.session.Session(region_name=settings.aws_region)


def get_identity(session: boto3.session.Session) -> dict[str, str]:
    """Fetch the current AWS identity."""
    client = session.client("sts")
    try:
        response = client.get_caller_identity()
    except ClientError as exc:
        raise RuntimeError(f"Failed to read AWS identity: {exc}") from exc

    return {
        "Account": str(response.get("Account", "")),
        "Arn": str(response.get("Arn", "")),
        "UserId": str(response.get("UserId", "")),
    }
