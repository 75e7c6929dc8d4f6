"""ECS task and cluster helpers."""

import logging
from collections.abc import Callable
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import (
    ClusterSpec,
    ContainerSpec,
    LogConfiguration,
    TaskSpec,
)

logger = logging.getLogger(__name__)


def ensure_log_group(session: Any, log_config: LogConfiguration) -> None:
    """Ensure a CloudWatch log group exists with the declared retention."""
    logs = session.client("logs")
    try:
        logs.create_log_group(logGroupName=log_config.log_group_name)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "ResourceAlreadyExistsException":
            raise RuntimeError(f"Failed to create log group: {exc}") from exc

    try:
        logs.put_retention_policy(
            logGroupName=log_config.log_group_name,
            retentionInDays=log_config.retention_days,
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to set log retention: {exc}") from exc


def register_task_definition(
    session: Any,
    task: TaskSpec,
    exec_role_arn: str,
    task_role_arn: str,
    reporter: Callable[[str], None],
) -> str:
    """Register a new revision of the task definition."""
    reporter(f"Ensuring CloudWatch log group {task.container.logging.log_group_name}")
    ensure_log_group(session, task.container.logging)

    reporter(f"Registering task definition {task.family}")
    ecs = session.client("ecs")
    try:
        response = ecs.register_task_definition(
            family=task.family,
            networkMode="awsvpc",
            requiresCompatibilities=["FARGATE"],
            cpu=str(task.cpu),
            memory=str(task.memory),
            executionRoleArn=exec_role_arn,
            taskRoleArn=task_role_arn,
            containerDefinitions=[container_definition(task.container)],
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to register task definition {task.family}: {exc}") from exc
    task_definition_arn = cast(str, response["taskDefinition"]["taskDefinitionArn"])
    logger.info("Registered task definition %s", task_definition_arn)
    return task_definition_arn


def container_definition(container: ContainerSpec) -> dict[str, Any]:
    """Render a container spec as an ECS container definition."""
    return {
        "name": container.name,
        "image": container.image,
        "essential": True,
        "environment": [
            {"name": variable.name, "value": variable.value} for variable in container.environment
        ],
        "secrets": [
            {"name": binding.name, "valueFrom": binding.value_from}
            for binding in container.secrets
        ],
        "portMappings": [
            {
                "containerPort": container.container_port,
                "hostPort": container.container_port,
                "protocol": "tcp",
            }
        ],
        "logConfiguration": {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": container.logging.log_group_name,
                "awslogs-region": container.logging.region,
                "awslogs-stream-prefix": container.logging.stream_prefix,
            },
        },
    }


def ensure_cluster(session: Any, cluster: ClusterSpec) -> str:
    """Ensure an ECS cluster exists."""
    ecs = session.client("ecs")
    response = ecs.describe_clusters(clusters=[cluster.name])
    clusters = response.get("clusters", [])
    if clusters:
        existing = clusters[0]
        status = str(existing.get("status", ""))
        cluster_arn = cast(str, existing["clusterArn"])
        if status == "ACTIVE":
            return cluster_arn
        if status != "INACTIVE":
            raise RuntimeError(
                f"ECS cluster {cluster.name} is in unexpected status {status} and cannot be used."
            )

    # If the cluster does not exist or is inactive, create it.
    response = ecs.create_cluster(clusterName=cluster.name)
    logger.info("Created ECS cluster %s", cluster.name)
    return cast(str, response["cluster"]["clusterArn"])
