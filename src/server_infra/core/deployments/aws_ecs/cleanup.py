"""Clean-up helpers for ECS deployment resources."""

import logging
from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError, WaiterError

from server_infra.core.deployments.aws_ecs import naming
from server_infra.core.deployments.aws_ecs.load_balancer import (
    find_load_balancer,
    find_target_group,
)
from server_infra.core.deployments.aws_ecs.resolver import ResolutionError, Resolver
from server_infra.core.deployments.aws_ecs.security_groups import (
    find_security_group,
    revoke_from_group,
)
from server_infra.core.deployments.aws_ecs.services import find_service
from server_infra.core.settings import DeploymentSettings

logger = logging.getLogger(__name__)


def cleanup_stage(
    session: Any,
    stage_name: str,
    settings: DeploymentSettings,
    resolver: Resolver,
    reporter: Callable[[str], None],
) -> None:
    """Tear down every resource created for a stage.

    The external database security group is kept; only the rules this
    deployment added to it are revoked.
    """
    stage_title = naming.stage_title_case(stage_name)
    cluster_name = naming.cluster_name(stage_title)
    service_name = naming.service_name(stage_title)

    reporter(f"Deleting ECS service {service_name} (if it exists)")
    _delete_service(session, cluster_name, service_name, reporter)

    reporter(f"Deleting load balancer {service_name} (if it exists)")
    _delete_load_balancer(session, service_name, reporter)
    _delete_target_group(session, naming.target_group_name(service_name), reporter)

    try:
        network = resolver.network(settings.vpc_name)
        database_group_id = resolver.string_parameter(settings.db_security_group_parameter)
    except ResolutionError as exc:
        reporter(f"Skipping security groups: {exc}")
    else:
        _delete_security_groups(
            session,
            network.vpc_id,
            database_group_id,
            stage_title,
            settings.database_port,
            reporter,
        )

    reporter("Deregistering task definitions")
    _deregister_task_definitions(session, naming.task_family(stage_name), reporter)

    reporter(f"Deleting ECS cluster {cluster_name} (if it exists)")
    _delete_cluster(session, cluster_name, reporter)

    reporter("Deleting IAM roles (if they exist)")
    _delete_roles(
        session,
        [naming.execution_role_name(stage_title), naming.task_role_name(stage_title)],
        reporter,
    )

    reporter("Deleting CloudWatch log group")
    _delete_log_group(
        session,
        naming.log_group_name(settings.project_name, stage_name),
        reporter,
    )


def _delete_security_groups(
    session: Any,
    vpc_id: str,
    database_group_id: str,
    stage_title: str,
    database_port: int,
    reporter: Callable[[str], None],
) -> None:
    """Revoke the database rules in both directions, then delete the stage groups."""
    service_group_name = naming.service_security_group_name(stage_title)
    service_group_id = find_security_group(session, vpc_id, service_group_name)
    if service_group_id:
        reporter(f"Revoking database access for {service_group_name}")
        for target_id, source_id in (
            (database_group_id, service_group_id),
            (service_group_id, database_group_id),
        ):
            try:
                revoke_from_group(session, target_id, source_id, database_port)
            except RuntimeError as exc:
                reporter(str(exc))

    reporter("Deleting security groups (if they exist)")
    load_balancer_group_name = naming.load_balancer_security_group_name(
        naming.service_name(stage_title)
    )
    for group_name in (service_group_name, load_balancer_group_name):
        _delete_security_group(session, vpc_id, group_name, reporter)


def _delete_service(
    session: Any,
    cluster_name: str,
    service_name: str,
    reporter: Callable[[str], None],
) -> None:
    """Scale an ECS service to zero and delete it."""
    if find_service(session, cluster_name, service_name) is None:
        return
    ecs = session.client("ecs")
    try:
        ecs.update_service(cluster=cluster_name, service=service_name, desiredCount=0)
        ecs.delete_service(cluster=cluster_name, service=service_name, force=True)
    except ClientError as exc:
        reporter(f"Failed to delete service {service_name}: {exc}")
        return
    try:
        ecs.get_waiter("services_inactive").wait(cluster=cluster_name, services=[service_name])
    except WaiterError as exc:
        reporter(f"Service {service_name} did not become inactive: {exc}")


def _delete_load_balancer(session: Any, name: str, reporter: Callable[[str], None]) -> None:
    """Delete a load balancer and wait for it to disappear."""
    elbv2 = session.client("elbv2")
    load_balancer = find_load_balancer(elbv2, name)
    if load_balancer is None:
        return
    load_balancer_arn = load_balancer["LoadBalancerArn"]
    try:
        elbv2.delete_load_balancer(LoadBalancerArn=load_balancer_arn)
    except ClientError as exc:
        reporter(f"Failed to delete load balancer {name}: {exc}")
        return
    try:
        elbv2.get_waiter("load_balancers_deleted").wait(LoadBalancerArns=[load_balancer_arn])
    except WaiterError as exc:
        reporter(f"Load balancer {name} was not deleted in time: {exc}")


def _delete_target_group(session: Any, name: str, reporter: Callable[[str], None]) -> None:
    """Delete a target group if it exists."""
    elbv2 = session.client("elbv2")
    target_group_arn = find_target_group(elbv2, name)
    if target_group_arn is None:
        return
    try:
        elbv2.delete_target_group(TargetGroupArn=target_group_arn)
    except ClientError as exc:
        reporter(f"Failed to delete target group {name}: {exc}")


def _delete_security_group(
    session: Any,
    vpc_id: str,
    name: str,
    reporter: Callable[[str], None],
) -> None:
    """Delete a security group by name if it exists."""
    group_id = find_security_group(session, vpc_id, name)
    if group_id is None:
        return
    ec2 = session.client("ec2")
    try:
        ec2.delete_security_group(GroupId=group_id)
    except ClientError as exc:
        reporter(f"Failed to delete security group {group_id}: {exc}")


def _deregister_task_definitions(
    session: Any,
    family: str,
    reporter: Callable[[str], None],
) -> None:
    """Deregister every active revision of a task definition family."""
    ecs = session.client("ecs")
    paginator = ecs.get_paginator("list_task_definitions")
    for page in paginator.paginate(familyPrefix=family, status="ACTIVE"):
        for task_definition_arn in page.get("taskDefinitionArns", []):
            try:
                ecs.deregister_task_definition(taskDefinition=task_definition_arn)
            except ClientError as exc:
                reporter(f"Failed to deregister task definition {task_definition_arn}: {exc}")


def _delete_cluster(session: Any, cluster_name: str, reporter: Callable[[str], None]) -> None:
    """Delete an ECS cluster if it exists."""
    ecs = session.client("ecs")
    try:
        ecs.delete_cluster(cluster=cluster_name)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code in {"ClusterNotFoundException"}:
            return
        reporter(f"Failed to delete cluster: {exc}")


def _delete_roles(session: Any, role_names: list[str], reporter: Callable[[str], None]) -> None:
    """Delete IAM roles created for ECS tasks."""
    iam = session.client("iam")
    for role_name in role_names:
        reporter(f"Removing IAM role {role_name}")
        _delete_inline_policies(iam, role_name, reporter)
        try:
            iam.delete_role(RoleName=role_name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code != "NoSuchEntity":
                reporter(f"Failed to delete role {role_name}: {exc}")


def _delete_inline_policies(iam: Any, role_name: str, reporter: Callable[[str], None]) -> None:
    """Delete inline policies for a role."""
    try:
        response = iam.list_role_policies(RoleName=role_name)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "NoSuchEntity":
            return
        reporter(f"Failed to list inline policies for {role_name}: {exc}")
        return

    for policy_name in response.get("PolicyNames", []):
        try:
            iam.delete_role_policy(RoleName=role_name, PolicyName=policy_name)
        except ClientError as exc:
            reporter(f"Failed to delete policy {policy_name} from {role_name}: {exc}")


def _delete_log_group(session: Any, log_group_name: str, reporter: Callable[[str], None]) -> None:
    """Delete a CloudWatch log group."""
    logs = session.client("logs")
    try:
        logs.delete_log_group(logGroupName=log_group_name)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "ResourceNotFoundException":
            reporter(f"Failed to delete log group: {exc}")
