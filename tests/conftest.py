"""Shared fixtures for the server infrastructure tests."""

from datetime import UTC, datetime

import pytest
from fakes import FakeResolver, FakeSession

from server_infra.core.deployments.aws_ecs import DeploymentParameters, declare_deployment
from server_infra.core.deployments.aws_ecs.models import DeploymentDeclaration
from server_infra.core.settings import DeploymentSettings

PASS_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def settings() -> DeploymentSettings:
    return DeploymentSettings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def declaration(settings: DeploymentSettings, resolver: FakeResolver) -> DeploymentDeclaration:
    return declare_deployment(
        DeploymentParameters(stage_name="staging", image_tag="abc123"),
        settings,
        resolver,
        now=PASS_TIME,
    )
