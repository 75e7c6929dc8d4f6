"""IAM role helpers for ECS deployment."""

import json
import logging
from collections.abc import Callable
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import RoleSpec, TaskSpec

logger = logging.getLogger(__name__)


def ensure_roles(
    session: Any,
    task: TaskSpec,
    reporter: Callable[[str], None],
) -> tuple[str, str]:
    """Ensure execution and task roles exist with their declared grants."""
    iam = session.client("iam")

    reporter(f"Ensuring task execution role {task.execution_role.name}")
    exec_role_arn = ensure_role(iam, task.execution_role)

    reporter(f"Ensuring task role {task.task_role.name}")
    task_role_arn = ensure_role(iam, task.task_role)

    return exec_role_arn, task_role_arn


def ensure_service_linked_role(session: Any, reporter: Callable[[str], None]) -> None:
    """Ensure the ECS service-linked role exists before services are created."""
    iam = session.client("iam")
    role_name = "AWSServiceRoleForECS"
    try:
        iam.get_role(RoleName=role_name)
        logger.debug("Service-linked role %s already exists", role_name)
        return
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "NoSuchEntity":
            raise RuntimeError(f"Failed to read service-linked role: {exc}") from exc

    reporter("Creating ECS service-linked role")
    try:
        iam.create_service_linked_role(AWSServiceName="ecs.amazonaws.com")
    except ClientError as exc:
        raise RuntimeError(f"Failed to create service-linked role: {exc}") from exc


def ensure_role(iam: Any, role: RoleSpec) -> str:
    """Create a role if needed, refresh its inline policy and return its ARN."""
    role_arn = _ensure_role(iam, role.name, role.trust_policy())
    _put_inline_policy(iam, role.name, policy_name(role), role.policy_document())
    return role_arn


def policy_name(role: RoleSpec) -> str:
    """Return the inline policy name used for a role."""
    return f"{role.name}Policy"


def _ensure_role(iam: Any, role_name: str, trust_policy: dict[str, Any]) -> str:
    """Create a role if needed and return its ARN."""
    try:
        response = iam.get_role(RoleName=role_name)
        logger.debug("Role %s already exists", role_name)
        return cast(str, response["Role"]["Arn"])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "NoSuchEntity":
            raise RuntimeError(f"Failed to read role {role_name}: {exc}") from exc

    try:
        response = iam.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=json.dumps(trust_policy),
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to create role {role_name}: {exc}") from exc
    logger.info("Created role %s", role_name)
    return cast(str, response["Role"]["Arn"])


def _put_inline_policy(
    iam: Any,
    role_name: str,
    policy_name: str,
    policy_doc: dict[str, Any],
) -> None:
    """Attach or update an inline policy."""
    try:
        iam.put_role_policy(
            RoleName=role_name,
            PolicyName=policy_name,
            PolicyDocument=json.dumps(policy_doc),
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to update policy for role {role_name}: {exc}") from exc
