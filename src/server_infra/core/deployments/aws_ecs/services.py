"""ECS service helpers."""

import logging
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import LoadBalancedServiceSpec

logger = logging.getLogger(__name__)


def find_service(session: Any, cluster_name: str, service_name: str) -> dict[str, Any] | None:
    """Return an active ECS service description, if it exists."""
    ecs = session.client("ecs")
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "ClusterNotFoundException":
            return None
        raise RuntimeError(f"Failed to read ECS service {service_name}: {exc}") from exc

    for service in response.get("services", []):
        if service.get("status") == "ACTIVE":
            return cast(dict[str, Any], service)
    return None


def ensure_service(
    session: Any,
    service: LoadBalancedServiceSpec,
    task_definition_arn: str,
    target_group_arn: str,
    service_group_id: str,
) -> str:
    """Create the ECS service or roll it onto the new task definition."""
    ecs = session.client("ecs")
    existing = find_service(session, service.cluster_name, service.name)

    try:
        if existing:
            response = ecs.update_service(
                cluster=service.cluster_name,
                service=service.name,
                taskDefinition=task_definition_arn,
                desiredCount=service.desired_count,
                forceNewDeployment=True,
            )
            logger.info("Updated ECS service %s", service.name)
        else:
            response = ecs.create_service(
                cluster=service.cluster_name,
                serviceName=service.name,
                taskDefinition=task_definition_arn,
                desiredCount=service.desired_count,
                launchType="FARGATE",
                networkConfiguration={
                    "awsvpcConfiguration": {
                        "subnets": list(service.subnet_ids),
                        "securityGroups": [service_group_id],
                        "assignPublicIp": "ENABLED" if service.assign_public_ip else "DISABLED",
                    }
                },
                loadBalancers=[
                    {
                        "targetGroupArn": target_group_arn,
                        "containerName": service.container_name,
                        "containerPort": service.container_port,
                    }
                ],
                healthCheckGracePeriodSeconds=60,
            )
            logger.info("Created ECS service %s", service.name)
    except ClientError as exc:
        raise RuntimeError(f"Failed to deploy ECS service {service.name}: {exc}") from exc

    return cast(str, response["service"]["serviceArn"])
