"""Server infra - hosting environment for the containerised server on AWS ECS."""

from server_infra.core.deployments.aws_ecs import (
    DeploymentDeclaration,
    DeploymentParameters,
    declare_deployment,
    deploy_stage,
)
from server_infra.core.settings import DeploymentSettings, get_settings

__all__ = [
    "DeploymentDeclaration",
    "DeploymentParameters",
    "DeploymentSettings",
    "declare_deployment",
    "deploy_stage",
    "get_settings",
]
