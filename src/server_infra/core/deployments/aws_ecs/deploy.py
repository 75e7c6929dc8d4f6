"""Deployment entrypoint for ECS."""

import logging
from collections.abc import Callable
from typing import Any

from server_infra.core.deployments.aws_ecs.declaration import declare_deployment
from server_infra.core.deployments.aws_ecs.ecs_tasks import (
    ensure_cluster,
    register_task_definition,
)
from server_infra.core.deployments.aws_ecs.iam import ensure_roles, ensure_service_linked_role
from server_infra.core.deployments.aws_ecs.load_balancer import ensure_load_balancer
from server_infra.core.deployments.aws_ecs.models import (
    DeploymentDeclaration,
    DeploymentParameters,
)
from server_infra.core.deployments.aws_ecs.resolver import AwsResolver
from server_infra.core.deployments.aws_ecs.security_groups import (
    apply_rules,
    ensure_security_group,
)
from server_infra.core.deployments.aws_ecs.services import ensure_service
from server_infra.core.deployments.aws_ecs.session import create_session, get_identity
from server_infra.core.settings import DeploymentSettings

logger = logging.getLogger(__name__)


def deploy_stage(
    parameters: DeploymentParameters,
    settings: DeploymentSettings,
    reporter: Callable[[str], None],
) -> tuple[DeploymentDeclaration, dict[str, str]]:
    """Declare and apply the server deployment for one stage."""
    reporter("Checking AWS credentials")
    session = create_session(settings)
    identity = get_identity(session)
    reporter(f"Using AWS account {identity['Account']} ({identity['Arn']})")

    reporter("Resolving stored parameters, secret and network")
    declaration = declare_deployment(parameters, settings, AwsResolver(session))
    outputs = deploy_declaration(session, declaration, reporter)
    return declaration, outputs


def deploy_declaration(
    session: Any,
    declaration: DeploymentDeclaration,
    reporter: Callable[[str], None],
) -> dict[str, str]:
    """Apply a declaration and return its published outputs."""
    reporter(f"Ensuring ECS cluster {declaration.cluster.name}")
    ensure_cluster(session, declaration.cluster)
    ensure_service_linked_role(session, reporter)

    exec_role_arn, task_role_arn = ensure_roles(session, declaration.task, reporter)
    task_definition_arn = register_task_definition(
        session,
        declaration.task,
        exec_role_arn,
        task_role_arn,
        reporter,
    )

    service = declaration.service
    reporter(f"Ensuring security group {service.security_group.name}")
    service_group_id = ensure_security_group(session, service.security_group)

    load_balancer = ensure_load_balancer(session, service, service_group_id, reporter)

    reporter("Allowing traffic between the service and the database")
    apply_rules(
        session,
        declaration.security_rules,
        {service.security_group.name: service_group_id},
    )

    reporter(f"Deploying ECS service {service.name}")
    ensure_service(
        session,
        service,
        task_definition_arn,
        load_balancer.target_group_arn,
        service_group_id,
    )

    outputs = {declaration.output.name: load_balancer.dns_name}
    logger.info("Deployment of stage %s complete", declaration.parameters.stage_name)
    return outputs
