"""Tests for the individual ECS resource helpers."""

import json
from unittest.mock import MagicMock

import pytest
from fakes import FakeSession, client_error

from server_infra.core.deployments.aws_ecs.ecs_tasks import (
    container_definition,
    ensure_cluster,
    ensure_log_group,
)
from server_infra.core.deployments.aws_ecs.iam import (
    ensure_role,
    ensure_service_linked_role,
    policy_name,
)
from server_infra.core.deployments.aws_ecs.models import (
    ClusterSpec,
    DeploymentDeclaration,
    SecurityGroupRef,
    SecurityGroupRule,
    SecurityGroupSpec,
)
from server_infra.core.deployments.aws_ecs.security_groups import (
    allow_from_group,
    apply_rules,
    ensure_security_group,
)


def test_container_definition(declaration: DeploymentDeclaration) -> None:
    container = container_definition(declaration.task.container)

    assert container["name"] == "StagingContainer"
    assert container["environment"][0]["name"] == "FORCE_DEPLOYMENT_ENV_VAR"
    assert {item["name"] for item in container["secrets"]} == {
        "DBHOST",
        "DBNAME",
        "DBUSER",
        "DBPASS",
        "DBPORT",
    }
    assert all(item["valueFrom"].endswith("::") for item in container["secrets"])
    assert container["logConfiguration"]["options"]["awslogs-stream-prefix"] == "StagingLogs"


def test_existing_log_group_gets_retention(
    session: FakeSession, declaration: DeploymentDeclaration
) -> None:
    logs = session.client("logs")
    logs.create_log_group.side_effect = client_error("ResourceAlreadyExistsException")

    ensure_log_group(session, declaration.task.container.logging)

    logs.put_retention_policy.assert_called_once()


def test_active_cluster_is_reused(session: FakeSession) -> None:
    ecs = session.client("ecs")
    ecs.describe_clusters.return_value = {
        "clusters": [{"clusterArn": "arn:cluster", "status": "ACTIVE"}]
    }

    assert ensure_cluster(session, ClusterSpec(name="ECSStaging-Cluster", vpc_id="vpc")) == (
        "arn:cluster"
    )
    ecs.create_cluster.assert_not_called()


def test_inactive_cluster_is_recreated(session: FakeSession) -> None:
    ecs = session.client("ecs")
    ecs.describe_clusters.return_value = {
        "clusters": [{"clusterArn": "arn:old", "status": "INACTIVE"}]
    }
    ecs.create_cluster.return_value = {"cluster": {"clusterArn": "arn:new"}}

    assert ensure_cluster(session, ClusterSpec(name="ECSStaging-Cluster", vpc_id="vpc")) == (
        "arn:new"
    )


def test_existing_role_gets_policy_refreshed(
    session: FakeSession, declaration: DeploymentDeclaration
) -> None:
    iam = session.client("iam")
    iam.get_role.return_value = {"Role": {"Arn": "arn:role/StagingTaskRole"}}
    role = declaration.task.task_role

    assert ensure_role(iam, role) == "arn:role/StagingTaskRole"
    iam.create_role.assert_not_called()
    kwargs = iam.put_role_policy.call_args.kwargs
    assert kwargs["PolicyName"] == policy_name(role)
    assert json.loads(kwargs["PolicyDocument"]) == role.policy_document()


def test_existing_service_linked_role_is_kept(session: FakeSession) -> None:
    iam = session.client("iam")
    iam.get_role.return_value = {"Role": {"Arn": "arn:role/AWSServiceRoleForECS"}}

    ensure_service_linked_role(session, MagicMock())

    iam.get_role.assert_called_once_with(RoleName="AWSServiceRoleForECS")
    iam.create_service_linked_role.assert_not_called()


def test_role_read_failure_is_wrapped(
    session: FakeSession, declaration: DeploymentDeclaration
) -> None:
    iam = session.client("iam")
    iam.get_role.side_effect = client_error("AccessDenied")

    with pytest.raises(RuntimeError, match="Failed to read role StagingTaskRole"):
        ensure_role(iam, declaration.task.task_role)


def test_existing_security_group_is_reused(session: FakeSession) -> None:
    ec2 = session.client("ec2")
    ec2.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-1"}]}
    group = SecurityGroupSpec(name="StagingFargateSecurityGroup", vpc_id="vpc", description="d")

    assert ensure_security_group(session, group) == "sg-1"
    ec2.create_security_group.assert_not_called()


def test_closed_outbound_group_drops_default_egress(session: FakeSession) -> None:
    ec2 = session.client("ec2")
    ec2.describe_security_groups.return_value = {"SecurityGroups": []}
    ec2.create_security_group.return_value = {"GroupId": "sg-2"}
    group = SecurityGroupSpec(name="g", vpc_id="vpc", description="d", allow_all_outbound=False)

    assert ensure_security_group(session, group) == "sg-2"
    ec2.revoke_security_group_egress.assert_called_once()


def test_ingress_failure_is_raised(session: FakeSession) -> None:
    session.client("ec2").authorize_security_group_ingress.side_effect = client_error(
        "InvalidGroup.NotFound"
    )

    with pytest.raises(RuntimeError, match="Failed to authorise ingress"):
        allow_from_group(session, "sg-target", "sg-source", 5432, "desc")


def test_rules_for_undeclared_group_fail(session: FakeSession) -> None:
    rule = SecurityGroupRule(
        target=SecurityGroupRef(name="RDSStagingSecurityGroup", group_id="sg-db"),
        source=SecurityGroupRef(name="StagingFargateSecurityGroup"),
        port=5432,
        description="Allow traffic from fargate/ECS",
    )

    with pytest.raises(RuntimeError, match="has not been created"):
        apply_rules(session, (rule,), {})
