"""Stage naming helpers for ECS deployment."""

import re

# ASCII word start, token runs to the next Unicode whitespace.
_WORD_PATTERN = re.compile(r"[A-Za-z0-9_]\S*")


def stage_title_case(stage_name: str) -> str:
    """Capitalise each word-like token of a stage name.

    Tokens start at a word character and run until the next whitespace, so
    internal punctuation is kept: ``"user-acc test"`` becomes ``"User-acc Test"``.
    """
    return _WORD_PATTERN.sub(_capitalise, stage_name)


def _capitalise(match: re.Match[str]) -> str:
    text = match.group(0)
    return text[0].upper() + text[1:].lower()


def cluster_name(stage_title: str) -> str:
    """Return the ECS cluster name for a stage."""
    return f"ECS{stage_title}-Cluster"


def execution_role_name(stage_title: str) -> str:
    """Return the task execution role name for a stage."""
    return f"{stage_title}ExecutionRole"


def task_role_name(stage_title: str) -> str:
    """Return the task role name for a stage."""
    return f"{stage_title}TaskRole"


def task_family(stage_name: str) -> str:
    """Return the task definition family for a stage."""
    return f"TaskDef-{stage_name}"


def container_name(stage_title: str) -> str:
    """Return the server container name for a stage."""
    return f"{stage_title}Container"


def service_security_group_name(stage_title: str) -> str:
    """Return the service security group name for a stage."""
    return f"{stage_title}FargateSecurityGroup"


def database_security_group_name(stage_title: str) -> str:
    """Return the reference name of the external database security group."""
    return f"RDS{stage_title}SecurityGroup"


def service_name(stage_title: str) -> str:
    """Return the ECS service and load balancer name for a stage."""
    return f"{stage_title}Service"


def output_name(stage_title: str) -> str:
    """Return the name of the published load balancer DNS output."""
    return f"LoadBalancer{stage_title}DNS"


def log_stream_prefix(stage_title: str) -> str:
    """Return the awslogs stream prefix for a stage."""
    return f"{stage_title}Logs"


def log_group_name(project_name: str, stage_name: str) -> str:
    """Return the CloudWatch log group name for a stage."""
    return f"/ecs/{project_name}/{stage_name}"


def target_group_name(load_balancer_name: str) -> str:
    """Return the target group name for a load balancer."""
    return f"{load_balancer_name}-tg"


def load_balancer_security_group_name(load_balancer_name: str) -> str:
    """Return the security group name attached to a load balancer."""
    return f"{load_balancer_name}LoadBalancerSecurityGroup"
