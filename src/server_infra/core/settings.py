"""Runtime settings for the server deployment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from server_infra.config.paths import env_path

ENV_FILE_PATH = str(env_path())


class DeploymentSettings(BaseSettings):
    """Process-wide deployment conventions.

    Values are frozen once loaded and passed explicitly into the declaration,
    so a single provisioning pass always sees one consistent configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="SERVER_INFRA_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    project_name: str = Field(default="server", description="Prefix for log groups")
    aws_region: str = Field(default="eu-west-2", description="AWS region")
    aws_profile: str | None = Field(default=None, description="AWS named profile")

    repository_name: str = Field(
        default="server-repository", description="ECR repository holding the server image"
    )
    service_principal: str = Field(
        default="ecs-tasks.amazonaws.com", description="Principal trusted by the task roles"
    )
    vpc_name: str = Field(default="server-vpc", description="Name tag of the existing VPC")
    db_secret_name_parameter: str = Field(
        default="/server/rds/secret-name",
        description="SSM parameter holding the database secret name",
    )
    db_security_group_parameter: str = Field(
        default="/server/rds/security-group-id",
        description="SSM parameter holding the database security group ID",
    )

    container_port: int = Field(default=3000, description="Port exposed by the container")
    listener_port: int = Field(default=80, description="Load balancer listener port")
    listener_protocol: str = Field(default="HTTP", description="Load balancer listener protocol")
    database_port: int = Field(default=5432, description="Database port opened between groups")
    ingress_cidr: str = Field(default="0.0.0.0/0", description="CIDR allowed to the listener")

    log_retention_days: int = Field(default=14, description="CloudWatch log retention")
    task_memory: int = Field(default=512, description="Task memory in MiB")
    task_cpu: int = Field(default=256, description="Task CPU units")
    desired_count: int = Field(default=1, description="Number of running tasks")


def get_settings() -> DeploymentSettings:
    """Load and return the deployment settings."""
    return DeploymentSettings()
