"""AWS ECS deployment helpers."""

from server_infra.core.deployments.aws_ecs.cleanup import cleanup_stage
from server_infra.core.deployments.aws_ecs.declaration import declare_deployment
from server_infra.core.deployments.aws_ecs.deploy import deploy_declaration, deploy_stage
from server_infra.core.deployments.aws_ecs.models import (
    DeploymentDeclaration,
    DeploymentParameters,
    NetworkSelection,
)
from server_infra.core.deployments.aws_ecs.naming import stage_title_case
from server_infra.core.deployments.aws_ecs.resolver import (
    AwsResolver,
    ResolutionError,
    Resolver,
)
from server_infra.core.deployments.aws_ecs.session import create_session, get_identity
from server_infra.core.deployments.aws_ecs.status import check_deployment

__all__ = [
    "AwsResolver",
    "DeploymentDeclaration",
    "DeploymentParameters",
    "NetworkSelection",
    "ResolutionError",
    "Resolver",
    "check_deployment",
    "cleanup_stage",
    "create_session",
    "declare_deployment",
    "deploy_declaration",
    "deploy_stage",
    "get_identity",
    "stage_title_case",
]
