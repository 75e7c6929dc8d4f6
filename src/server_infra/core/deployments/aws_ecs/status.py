"""Deployment status checks for ECS."""

from typing import Any

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs import naming
from server_infra.core.deployments.aws_ecs.resolver import ResolutionError, Resolver
from server_infra.core.deployments.aws_ecs.security_groups import find_security_group
from server_infra.core.settings import DeploymentSettings


def check_deployment(
    session: Any,
    stage_name: str,
    settings: DeploymentSettings,
    resolver: Resolver,
) -> dict[str, str]:
    """Check whether the resources of a stage exist."""
    stage_title = naming.stage_title_case(stage_name)
    cluster_name = naming.cluster_name(stage_title)
    service_name = naming.service_name(stage_title)
    results: dict[str, str] = {}

    results["ECS cluster"] = _check_cluster(session, cluster_name)
    results["IAM roles"] = _check_roles(
        session,
        [naming.execution_role_name(stage_title), naming.task_role_name(stage_title)],
    )
    results["Log group"] = _check_log_group(
        session, naming.log_group_name(settings.project_name, stage_name)
    )
    results["Task definition"] = _check_task_definition(session, naming.task_family(stage_name))
    results["Security group"] = _check_security_group(
        session, resolver, settings.vpc_name, naming.service_security_group_name(stage_title)
    )
    results["Load balancer"] = _check_load_balancer(session, service_name)
    results["ECS service"] = _check_service(session, cluster_name, service_name)

    return results


def _check_cluster(session: Any, cluster_name: str) -> str:
    ecs = session.client("ecs")
    response = ecs.describe_clusters(clusters=[cluster_name])
    clusters = response.get("clusters", [])
    if not clusters:
        return "missing"
    if clusters[0].get("status") != "ACTIVE":
        return f"status {clusters[0].get('status')}"
    return "present"


def _check_roles(session: Any, role_names: list[str]) -> str:
    iam = session.client("iam")
    missing = 0
    for role_name in role_names:
        try:
            iam.get_role(RoleName=role_name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "NoSuchEntity":
                missing += 1
            else:
                return f"error: {code}"
    if missing == 0:
        return "present"
    return f"missing {missing}/{len(role_names)}"


def _check_log_group(session: Any, log_group_name: str) -> str:
    logs = session.client("logs")
    response = logs.describe_log_groups(logGroupNamePrefix=log_group_name)
    groups = [group["logGroupName"] for group in response.get("logGroups", [])]
    return "present" if log_group_name in groups else "missing"


def _check_task_definition(session: Any, family: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_task_definition(taskDefinition=family)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code in {"ClientException", "InvalidParameterException"}:
            return "missing"
        return f"error: {code}"

    task_definition = response.get("taskDefinition", {})
    status = str(task_definition.get("status", "")).upper()
    if status and status != "ACTIVE":
        return f"status {status}"
    return f"present (revision {task_definition.get('revision', '?')})"


def _check_security_group(
    session: Any,
    resolver: Resolver,
    vpc_name: str,
    group_name: str,
) -> str:
    try:
        network = resolver.network(vpc_name)
    except ResolutionError as exc:
        return f"unknown: {exc}"
    return "present" if find_security_group(session, network.vpc_id, group_name) else "missing"


def _check_load_balancer(session: Any, name: str) -> str:
    elbv2 = session.client("elbv2")
    try:
        response = elbv2.describe_load_balancers(Names=[name])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "LoadBalancerNotFound":
            return "missing"
        return f"error: {code}"
    load_balancers = response.get("LoadBalancers", [])
    if not load_balancers:
        return "missing"
    state = str(load_balancers[0].get("State", {}).get("Code", "")).lower()
    if state and state != "active":
        return f"status {state}"
    return "present"


def _check_service(session: Any, cluster_name: str, service_name: str) -> str:
    ecs = session.client("ecs")
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "ClusterNotFoundException":
            return "missing"
        return f"error: {code}"
    services = response.get("services", [])
    if not services:
        return "missing"
    service = services[0]
    status = str(service.get("status", ""))
    if status != "ACTIVE":
        return f"status {status}"
    return f"present ({service.get('runningCount', 0)}/{service.get('desiredCount', 0)} running)"
