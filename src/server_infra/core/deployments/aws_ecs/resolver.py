"""Lookups of externally owned state used by the deployment declaration."""

import logging
from abc import ABC, abstractmethod
from typing import Any, cast

from botocore.exceptions import ClientError

from server_infra.core.deployments.aws_ecs.models import NetworkSelection

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    """Referenced external state could not be resolved."""


class Resolver(ABC):
    """Interface for resolving stored values by name at provisioning time."""

    @abstractmethod
    def string_parameter(self, name: str) -> str:
        """Return the value of a stored string parameter."""
        raise NotImplementedError

    @abstractmethod
    def secret_arn(self, name: str) -> str:
        """Return the ARN of a secret, never its value."""
        raise NotImplementedError

    @abstractmethod
    def network(self, vpc_name: str) -> NetworkSelection:
        """Return the VPC and its public subnets."""
        raise NotImplementedError

    @abstractmethod
    def repository_uri(self, name: str) -> str:
        """Return the URI of a container image repository."""
        raise NotImplementedError


class AwsResolver(Resolver):
    """Resolver backed by SSM, Secrets Manager, EC2 and ECR."""

    def __init__(self, session: Any) -> None:
        """Initialise the resolver with a boto3 session."""
        self._session = session

    def string_parameter(self, name: str) -> str:
        """Read an SSM string parameter."""
        ssm = self._session.client("ssm")
        try:
            response = ssm.get_parameter(Name=name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ParameterNotFound":
                raise ResolutionError(f"SSM parameter {name} does not exist.") from exc
            raise ResolutionError(f"Failed to read SSM parameter {name}: {exc}") from exc

        value = str(response["Parameter"]["Value"])
        logger.debug("Resolved SSM parameter %s", name)
        return value

    def secret_arn(self, name: str) -> str:
        """Describe a secret and return its ARN."""
        client = self._session.client("secretsmanager")
        try:
            response = client.describe_secret(SecretId=name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ResourceNotFoundException":
                raise ResolutionError(f"Secret {name} does not exist.") from exc
            raise ResolutionError(f"Failed to read secret {name}: {exc}") from exc

        if response.get("DeletedDate") is not None:
            raise ResolutionError(f"Secret {name} is scheduled for deletion.")
        return cast(str, response["ARN"])

    def network(self, vpc_name: str) -> NetworkSelection:
        """Find a VPC by its Name tag and collect its public subnets."""
        ec2 = self._session.client("ec2")
        response = ec2.describe_vpcs(Filters=[{"Name": "tag:Name", "Values": [vpc_name]}])
        vpcs = response.get("Vpcs", [])
        if not vpcs:
            raise ResolutionError(f"No VPC named {vpc_name} was found.")
        if len(vpcs) > 1:
            raise ResolutionError(f"More than one VPC is named {vpc_name}.")
        vpc_id = str(vpcs[0]["VpcId"])

        response = ec2.describe_subnets(
            Filters=[
                {"Name": "vpc-id", "Values": [vpc_id]},
                {"Name": "map-public-ip-on-launch", "Values": ["true"]},
            ]
        )
        subnet_ids = tuple(
            sorted(str(subnet["SubnetId"]) for subnet in response.get("Subnets", []))
        )
        if not subnet_ids:
            raise ResolutionError(f"VPC {vpc_id} has no public subnets.")

        return NetworkSelection(vpc_id=vpc_id, public_subnet_ids=subnet_ids)

    def repository_uri(self, name: str) -> str:
        """Describe an ECR repository and return its URI."""
        ecr = self._session.client("ecr")
        try:
            response = ecr.describe_repositories(repositoryNames=[name])
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "RepositoryNotFoundException":
                raise ResolutionError(f"ECR repository {name} does not exist.") from exc
            raise ResolutionError(f"Failed to read ECR repo {name}: {exc}") from exc
        return cast(str, response["repositories"][0]["repositoryUri"])
