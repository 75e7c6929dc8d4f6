"""Deployment declaration for the server stage."""

import logging
from datetime import UTC, datetime

from server_infra.core.deployments.aws_ecs import naming
from server_infra.core.deployments.aws_ecs.models import (
    FORCE_DEPLOYMENT_ENV_VAR,
    ClusterSpec,
    ContainerSpec,
    DeploymentDeclaration,
    DeploymentParameters,
    EnvironmentVariable,
    LoadBalancedServiceSpec,
    LogConfiguration,
    OutputSpec,
    PolicyStatement,
    RoleSpec,
    SecretBinding,
    SecurityGroupRef,
    SecurityGroupRule,
    SecurityGroupSpec,
    TaskSpec,
)
from server_infra.core.deployments.aws_ecs.resolver import Resolver
from server_infra.core.settings import DeploymentSettings

logger = logging.getLogger(__name__)

EXECUTION_ROLE_ACTIONS = (
    "ecr:GetAuthorizationToken",
    "ecr:BatchCheckLayerAvailability",
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
)
SECRET_READ_ACTIONS = ("secretsmanager:GetSecretValue",)

# Container variable name -> JSON field of the database secret.
DATABASE_SECRET_FIELDS = (
    ("DBHOST", "host"),
    ("DBNAME", "dbname"),
    ("DBUSER", "username"),
    ("DBPASS", "password"),
    ("DBPORT", "port"),
)


def declare_deployment(
    parameters: DeploymentParameters,
    settings: DeploymentSettings,
    resolver: Resolver,
    now: datetime | None = None,
) -> DeploymentDeclaration:
    """Build the resource graph for one stage.

    Args:
        parameters: Stage name and image tag for this pass.
        settings: Deployment conventions.
        resolver: Lookup of externally stored values.
        now: Time of this pass, used for the forced redeployment variable.

    Returns:
        The immutable deployment declaration.
    """
    stage_name = parameters.stage_name
    stage_title = naming.stage_title_case(stage_name)
    logger.info("Declaring deployment for stage %s (image %s)", stage_name, parameters.image_tag)

    network = resolver.network(settings.vpc_name)
    secret_name = resolver.string_parameter(settings.db_secret_name_parameter)
    secret_arn = resolver.secret_arn(secret_name)
    secret_permissions = PolicyStatement(actions=SECRET_READ_ACTIONS, resources=(secret_arn,))

    cluster = ClusterSpec(name=naming.cluster_name(stage_title), vpc_id=network.vpc_id)

    # ECS reads bound secrets with the execution role when the task starts.
    execution_role = RoleSpec(
        name=naming.execution_role_name(stage_title),
        assumed_by=settings.service_principal,
        statements=(
            PolicyStatement(actions=EXECUTION_ROLE_ACTIONS, resources=("*",)),
            secret_permissions,
        ),
    )
    task_role = RoleSpec(
        name=naming.task_role_name(stage_title),
        assumed_by=settings.service_principal,
        statements=(secret_permissions,),
    )

    repository_uri = resolver.repository_uri(settings.repository_name)
    container = ContainerSpec(
        name=naming.container_name(stage_title),
        image=f"{repository_uri}:{parameters.image_tag}",
        environment=(
            EnvironmentVariable(FORCE_DEPLOYMENT_ENV_VAR, _deployment_marker(now)),
        ),
        secrets=tuple(
            SecretBinding(name=name, secret_arn=secret_arn, field=field)
            for name, field in DATABASE_SECRET_FIELDS
        ),
        logging=LogConfiguration(
            log_group_name=naming.log_group_name(settings.project_name, stage_name),
            stream_prefix=naming.log_stream_prefix(stage_title),
            retention_days=settings.log_retention_days,
            region=settings.aws_region,
        ),
        container_port=settings.container_port,
    )
    task = TaskSpec(
        family=naming.task_family(stage_name),
        cpu=settings.task_cpu,
        memory=settings.task_memory,
        execution_role=execution_role,
        task_role=task_role,
        container=container,
    )

    service_group = SecurityGroupSpec(
        name=naming.service_security_group_name(stage_title),
        vpc_id=network.vpc_id,
        description=f"Security group for the {stage_name} server tasks",
        allow_all_outbound=True,
    )
    # If we want the server to be a HTTPS server we will need Route 53 and a
    # certificate, then the protocol can change to HTTPS on listener port 443
    # and HTTP traffic can be redirected.
    service = LoadBalancedServiceSpec(
        name=naming.service_name(stage_title),
        cluster_name=cluster.name,
        task_family=task.family,
        security_group=service_group,
        load_balancer_name=naming.service_name(stage_title),
        listener_port=settings.listener_port,
        protocol=settings.listener_protocol,
        container_name=container.name,
        container_port=container.container_port,
        subnet_ids=network.public_subnet_ids,
        ingress_cidr=settings.ingress_cidr,
        public_load_balancer=True,
        assign_public_ip=True,
        desired_count=settings.desired_count,
    )

    database_group = SecurityGroupRef(
        name=naming.database_security_group_name(stage_title),
        group_id=resolver.string_parameter(settings.db_security_group_parameter),
    )
    security_rules = (
        SecurityGroupRule(
            target=database_group,
            source=service_group.ref(),
            port=settings.database_port,
            description="Allow traffic from fargate/ECS",
        ),
        SecurityGroupRule(
            target=service_group.ref(),
            source=database_group,
            port=settings.database_port,
            description="Allow traffic from RDS",
        ),
    )

    output = OutputSpec(
        name=naming.output_name(stage_title),
        resource=service.load_balancer_name,
        attribute="DNSName",
    )

    return DeploymentDeclaration(
        parameters=parameters,
        stage_title=stage_title,
        cluster=cluster,
        task=task,
        service=service,
        security_rules=security_rules,
        output=output,
    )


def _deployment_marker(now: datetime | None) -> str:
    """Return epoch milliseconds, changing on every pass to force a new deployment."""
    moment = now or datetime.now(UTC)
    return str(int(moment.timestamp() * 1000))
