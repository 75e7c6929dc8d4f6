"""Data models for ECS deployment."""

from dataclasses import asdict, dataclass, field
from typing import Any

from server_infra.core.deployments.aws_ecs import naming

FORCE_DEPLOYMENT_ENV_VAR = "FORCE_DEPLOYMENT_ENV_VAR"


@dataclass(frozen=True)
class DeploymentParameters:
    """Per-invocation deployment inputs."""

    stage_name: str
    image_tag: str


@dataclass(frozen=True)
class NetworkSelection:
    """Selected network configuration."""

    vpc_id: str
    public_subnet_ids: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PolicyStatement:
    """A single IAM policy statement."""

    actions: tuple[str, ...]
    resources: tuple[str, ...]
    effect: str = "Allow"

    def to_document(self) -> dict[str, Any]:
        """Render the statement in IAM policy JSON form."""
        return {
            "Effect": self.effect,
            "Action": list(self.actions),
            "Resource": list(self.resources),
        }


@dataclass(frozen=True)
class RoleSpec:
    """An IAM role assumed by ECS tasks."""

    name: str
    assumed_by: str
    statements: tuple[PolicyStatement, ...]

    def trust_policy(self) -> dict[str, Any]:
        """Return the role trust policy."""
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": self.assumed_by},
                    "Action": "sts:AssumeRole",
                }
            ],
        }

    def policy_document(self) -> dict[str, Any]:
        """Return the inline policy granted to the role."""
        return {
            "Version": "2012-10-17",
            "Statement": [statement.to_document() for statement in self.statements],
        }


@dataclass(frozen=True)
class EnvironmentVariable:
    """A plain container environment variable."""

    name: str
    value: str


@dataclass(frozen=True)
class SecretBinding:
    """A container variable bound to one JSON field of a Secrets Manager secret."""

    name: str
    secret_arn: str
    field: str

    @property
    def value_from(self) -> str:
        """Return the ECS ``valueFrom`` reference for the field."""
        return f"{self.secret_arn}:{self.field}::"


@dataclass(frozen=True)
class LogConfiguration:
    """awslogs driver settings for a container."""

    log_group_name: str
    stream_prefix: str
    retention_days: int
    region: str


@dataclass(frozen=True)
class ContainerSpec:
    """The single server container of the task."""

    name: str
    image: str
    environment: tuple[EnvironmentVariable, ...]
    secrets: tuple[SecretBinding, ...]
    logging: LogConfiguration
    container_port: int


@dataclass(frozen=True)
class TaskSpec:
    """Fargate task definition with its two identities."""

    family: str
    cpu: int
    memory: int
    execution_role: RoleSpec
    task_role: RoleSpec
    container: ContainerSpec


@dataclass(frozen=True)
class ClusterSpec:
    """ECS cluster placed in an existing VPC."""

    name: str
    vpc_id: str


@dataclass(frozen=True)
class SecurityGroupRef:
    """Reference to a security group.

    ``group_id`` is set for groups owned outside this deployment and left
    empty for groups declared here, which are resolved by name when applied.
    """

    name: str
    group_id: str | None = None

    @property
    def is_external(self) -> bool:
        """Return true when the group is owned outside this deployment."""
        return self.group_id is not None


@dataclass(frozen=True)
class SecurityGroupSpec:
    """A security group declared by this deployment."""

    name: str
    vpc_id: str
    description: str
    allow_all_outbound: bool = True

    def ref(self) -> SecurityGroupRef:
        """Return a reference to this group."""
        return SecurityGroupRef(name=self.name)


@dataclass(frozen=True)
class SecurityGroupRule:
    """Ingress on ``target`` from ``source`` for one port."""

    target: SecurityGroupRef
    source: SecurityGroupRef
    port: int
    description: str
    protocol: str = "tcp"


@dataclass(frozen=True)
class LoadBalancedServiceSpec:
    """Fargate service fronted by an application load balancer."""

    name: str
    cluster_name: str
    task_family: str
    security_group: SecurityGroupSpec
    load_balancer_name: str
    listener_port: int
    protocol: str
    container_name: str
    container_port: int
    subnet_ids: tuple[str, ...]
    ingress_cidr: str
    public_load_balancer: bool = True
    assign_public_ip: bool = True
    desired_count: int = 1

    @property
    def load_balancer_security_group_name(self) -> str:
        """Return the name of the security group attached to the load balancer."""
        return naming.load_balancer_security_group_name(self.load_balancer_name)

    @property
    def target_group_name(self) -> str:
        """Return the name of the load balancer target group."""
        return naming.target_group_name(self.load_balancer_name)


@dataclass(frozen=True)
class OutputSpec:
    """A named value published once the deployment is applied."""

    name: str
    resource: str
    attribute: str


@dataclass(frozen=True)
class DeploymentDeclaration:
    """The complete resource graph for one stage."""

    parameters: DeploymentParameters
    stage_title: str
    cluster: ClusterSpec
    task: TaskSpec
    service: LoadBalancedServiceSpec
    security_rules: tuple[SecurityGroupRule, ...]
    output: OutputSpec

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable view of the declaration."""
        return asdict(self)
