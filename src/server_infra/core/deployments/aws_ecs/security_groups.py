"""Security group management for ECS."""

import logging
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import (
    SecurityGroupRef,
    SecurityGroupRule,
    SecurityGroupSpec,
)

logger = logging.getLogger(__name__)


def find_security_group(session: Any, vpc_id: str, name: str) -> str | None:
    """Return the ID of a security group by name, if it exists in the VPC."""
    ec2 = session.client("ec2")
    response = ec2.describe_security_groups(
        Filters=[
            {"Name": "vpc-id", "Values": [vpc_id]},
            {"Name": "group-name", "Values": [name]},
        ]
    )
    groups = response.get("SecurityGroups", [])
    if not groups:
        return None
    return cast(str, groups[0]["GroupId"])


def ensure_security_group(session: Any, group: SecurityGroupSpec) -> str:
    """Find or create a declared security group and return its ID."""
    existing = find_security_group(session, group.vpc_id, group.name)
    if existing:
        return existing

    ec2 = session.client("ec2")
    try:
        response = ec2.create_security_group(
            VpcId=group.vpc_id,
            GroupName=group.name,
            Description=group.description,
        )
    except ClientError as exc:
        raise RuntimeError(f"Failed to create security group {group.name}: {exc}") from exc

    group_id = cast(str, response["GroupId"])
    ec2.create_tags(Resources=[group_id], Tags=[{"Key": "Name", "Value": group.name}])

    # New groups allow all outbound traffic until the default egress rule is removed.
    if not group.allow_all_outbound:
        ec2.revoke_security_group_egress(
            GroupId=group_id,
            IpPermissions=[{"IpProtocol": "-1", "IpRanges": [{"CidrIp": "0.0.0.0/0"}]}],
        )

    logger.info("Created security group %s (%s)", group.name, group_id)
    return group_id


def allow_from_group(
    session: Any,
    target_id: str,
    source_id: str,
    port: int,
    description: str,
    protocol: str = "tcp",
) -> None:
    """Allow ingress on ``target_id`` from ``source_id`` for one port."""
    ec2 = session.client("ec2")
    try:
        ec2.authorize_security_group_ingress(
            GroupId=target_id,
            IpPermissions=[_group_permission(source_id, port, description, protocol)],
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "InvalidPermission.Duplicate":
            logger.debug("Ingress %s -> %s:%s already allowed", source_id, target_id, port)
            return
        raise RuntimeError(f"Failed to authorise ingress on {target_id}: {exc}") from exc


def allow_from_cidr(session: Any, target_id: str, cidr: str, port: int, description: str) -> None:
    """Allow TCP ingress on ``target_id`` from a CIDR range."""
    ec2 = session.client("ec2")
    try:
        ec2.authorize_security_group_ingress(
            GroupId=target_id,
            IpPermissions=[
                {
                    "IpProtocol": "tcp",
                    "FromPort": port,
                    "ToPort": port,
                    "IpRanges": [{"CidrIp": cidr, "Description": description}],
                }
            ],
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code == "InvalidPermission.Duplicate":
            return
        raise RuntimeError(f"Failed to authorise ingress on {target_id}: {exc}") from exc


def revoke_from_group(
    session: Any,
    target_id: str,
    source_id: str,
    port: int,
    protocol: str = "tcp",
) -> None:
    """Remove ingress on ``target_id`` from ``source_id``; missing rules are ignored."""
    ec2 = session.client("ec2")
    try:
        ec2.revoke_security_group_ingress(
            GroupId=target_id,
            IpPermissions=[
                {
                    "IpProtocol": protocol,
                    "FromPort": port,
                    "ToPort": port,
                    "UserIdGroupPairs": [{"GroupId": source_id}],
                }
            ],
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code in {"InvalidPermission.NotFound", "InvalidGroup.NotFound"}:
            return
        raise RuntimeError(f"Failed to revoke ingress on {target_id}: {exc}") from exc


def apply_rules(
    session: Any,
    rules: tuple[SecurityGroupRule, ...],
    group_ids: dict[str, str],
) -> None:
    """Authorise declared rules, resolving declared groups through ``group_ids``."""
    for rule in rules:
        target_id = _group_id(rule.target, group_ids)
        source_id = _group_id(rule.source, group_ids)
        allow_from_group(
            session,
            target_id,
            source_id,
            rule.port,
            rule.description,
            rule.protocol,
        )


def _group_permission(
    source_id: str,
    port: int,
    description: str,
    protocol: str,
) -> dict[str, Any]:
    return {
        "IpProtocol": protocol,
        "FromPort": port,
        "ToPort": port,
        "UserIdGroupPairs": [{"GroupId": source_id, "Description": description}],
    }


def _group_id(ref: SecurityGroupRef, group_ids: dict[str, str]) -> str:
    if ref.is_external:
        return cast(str, ref.group_id)
    try:
        return group_ids[ref.name]
    except KeyError as exc:
        raise RuntimeError(f"Security group {ref.name} has not been created yet.") from exc
