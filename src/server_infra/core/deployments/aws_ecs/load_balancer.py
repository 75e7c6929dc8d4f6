"""Application load balancer helpers for the ECS service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import LoadBalancedServiceSpec, SecurityGroupSpec
from server_infra.core.deployments.aws_ecs.security_groups import (
    allow_from_cidr,
    allow_from_group,
    ensure_security_group,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadBalancerInfo:
    """Live identifiers of the service load balancer."""

    load_balancer_arn: str
    dns_name: str
    target_group_arn: str
    listener_arn: str
    security_group_id: str


def ensure_load_balancer(
    session: Any,
    service: LoadBalancedServiceSpec,
    service_group_id: str,
    reporter: Callable[[str], None],
) -> LoadBalancerInfo:
    """Ensure the load balancer, its target group and listener exist."""
    vpc_id = service.security_group.vpc_id

    reporter("Ensuring load balancer security group")
    lb_group = SecurityGroupSpec(
        name=service.load_balancer_security_group_name,
        vpc_id=vpc_id,
        description=f"Load balancer security group for {service.name}",
        allow_all_outbound=True,
    )
    lb_group_id = ensure_security_group(session, lb_group)
    allow_from_cidr(
        session,
        lb_group_id,
        service.ingress_cidr,
        service.listener_port,
        f"Allow from anyone on port {service.listener_port}",
    )
    allow_from_group(
        session,
        service_group_id,
        lb_group_id,
        service.container_port,
        "Load balancer to target",
    )

    elbv2 = session.client("elbv2")

    reporter(f"Ensuring load balancer {service.load_balancer_name}")
    load_balancer = _ensure_alb(elbv2, service, lb_group_id)
    load_balancer_arn = cast(str, load_balancer["LoadBalancerArn"])
    elbv2.get_waiter("load_balancer_available").wait(LoadBalancerArns=[load_balancer_arn])

    reporter(f"Ensuring target group {service.target_group_name}")
    target_group_arn = _ensure_target_group(elbv2, service, vpc_id)

    reporter(f"Ensuring {service.protocol} listener on port {service.listener_port}")
    listener_arn = _ensure_listener(elbv2, service, load_balancer_arn, target_group_arn)

    return LoadBalancerInfo(
        load_balancer_arn=load_balancer_arn,
        dns_name=cast(str, load_balancer["DNSName"]),
        target_group_arn=target_group_arn,
        listener_arn=listener_arn,
        security_group_id=lb_group_id,
    )


def find_load_balancer(elbv2: Any, name: str) -> dict[str, Any] | None:
    """Return a load balancer description by name, if it exists."""
    try:
        response = elbv2.describe_load_balancers(Names=[name])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "LoadBalancerNotFound":
            return None
        raise RuntimeError(f"Failed to read load balancer {name}: {exc}") from exc
    load_balancers = response.get("LoadBalancers", [])
    return cast(dict[str, Any], load_balancers[0]) if load_balancers else None


def find_target_group(elbv2: Any, name: str) -> str | None:
    """Return a target group ARN by name, if it exists."""
    try:
        response = elbv2.describe_target_groups(Names=[name])
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "TargetGroupNotFound":
            return None
        raise RuntimeError(f"Failed to read target group {name}: {exc}") from exc
    groups = response.get("TargetGroups", [])
    return cast(str, groups[0]["TargetGroupArn"]) if groups else None


def _ensure_alb(elbv2: Any, service: LoadBalancedServiceSpec, group_id: str) -> dict[str, Any]:
    existing = find_load_balancer(elbv2, service.load_balancer_name)
    if existing:
        return existing

    try:
        response = elbv2.create_load_balancer(
            Name=service.load_balancer_name,
            Subnets=list(service.subnet_ids),
            SecurityGroups=[group_id],
            Scheme="internet-facing" if service.public_load_balancer else "internal",
            Type="application",
            IpAddressType="ipv4",
        )
    except ClientError as exc:
        raise RuntimeError(
            f"Failed to create load balancer {service.load_balancer_name}: {exc}"
        ) from exc
    logger.info("Created load balancer %s", service.load_balancer_name)
    return cast(dict[str, Any], response["LoadBalancers"][0])


def _ensure_target_group(elbv2: Any, service: LoadBalancedServiceSpec, vpc_id: str) -> str:
    existing = find_target_group(elbv2, service.target_group_name)
    if existing:
        return existing

    try:
        response = elbv2.create_target_group(
            Name=service.target_group_name,
            Protocol="HTTP",
            Port=service.container_port,
            VpcId=vpc_id,
            TargetType="ip",
        )
    except ClientError as exc:
        raise RuntimeError(
            f"Failed to create target group {service.target_group_name}: {exc}"
        ) from exc
    return cast(str, response["TargetGroups"][0]["TargetGroupArn"])


def _ensure_listener(
    elbv2: Any,
    service: LoadBalancedServiceSpec,
    load_balancer_arn: str,
    target_group_arn: str,
) -> str:
    default_actions = [{"Type": "forward", "TargetGroupArn": target_group_arn}]
    response = elbv2.describe_listeners(LoadBalancerArn=load_balancer_arn)
    for listener in response.get("Listeners", []):
        if listener.get("Port") != service.listener_port:
            continue
        listener_arn = cast(str, listener["ListenerArn"])
        if _forward_target(listener) != target_group_arn:
            try:
                elbv2.modify_listener(ListenerArn=listener_arn, DefaultActions=default_actions)
            except ClientError as exc:
                raise RuntimeError(f"Failed to update listener {listener_arn}: {exc}") from exc
            logger.info("Pointed listener %s at %s", listener_arn, target_group_arn)
        return listener_arn

    try:
        response = elbv2.create_listener(
            LoadBalancerArn=load_balancer_arn,
            Protocol=service.protocol,
            Port=service.listener_port,
            DefaultActions=default_actions,
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to create listener: {exc}") from exc
    return cast(str, response["Listeners"][0]["ListenerArn"])


def _forward_target(listener: dict[str, Any]) -> str | None:
    """Return the target group a listener forwards to by default."""
    for action in listener.get("DefaultActions", []):
        if action.get("Type") == "forward":
            return cast(str | None, action.get("TargetGroupArn"))
    return None
