"""Tests for stage naming."""

import pytest

from server_infra.core.deployments.aws_ecs import naming


@pytest.mark.parametrize(
    ("stage_name", "expected"),
    [
        ("production", "Production"),
        ("staging", "Staging"),
        ("user-acc test", "User-acc Test"),
        ("PRODUCTION", "Production"),
        ("qa_2 eu-WEST", "Qa_2 Eu-west"),
        ("  padded  stage ", "  Padded  Stage "),
        ("user\u00a0test", "User\u00a0Test"),
        ("éte prod", "éTe Prod"),
    ],
)
def test_stage_title_case(stage_name: str, expected: str) -> None:
    assert naming.stage_title_case(stage_name) == expected


@pytest.mark.parametrize("stage_name", ["production", "user-acc test", "mIxEd CaSe", "-dash"])
def test_stage_title_case_is_idempotent(stage_name: str) -> None:
    once = naming.stage_title_case(stage_name)
    assert naming.stage_title_case(once) == once


def test_resource_names_use_title() -> None:
    title = naming.stage_title_case("staging")

    assert naming.cluster_name(title) == "ECSStaging-Cluster"
    assert naming.execution_role_name(title) == "StagingExecutionRole"
    assert naming.task_role_name(title) == "StagingTaskRole"
    assert naming.container_name(title) == "StagingContainer"
    assert naming.service_security_group_name(title) == "StagingFargateSecurityGroup"
    assert naming.database_security_group_name(title) == "RDSStagingSecurityGroup"
    assert naming.service_name(title) == "StagingService"
    assert naming.output_name(title) == "LoadBalancerStagingDNS"
    assert naming.log_stream_prefix(title) == "StagingLogs"


def test_task_family_uses_raw_stage_name() -> None:
    assert naming.task_family("staging") == "TaskDef-staging"
    assert naming.log_group_name("server", "staging") == "/ecs/server/staging"
