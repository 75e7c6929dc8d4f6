"""Tests for the server-infra CLI."""

import json
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner
from fakes import FakeResolver, client_error

from server_infra.cli.errors import exception_chain, is_aws_auth_error
from server_infra.cli.main import cli
from server_infra.core.settings import DeploymentSettings


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def cli_settings(settings: DeploymentSettings) -> Iterator[None]:
    with patch("server_infra.cli.main.get_settings", return_value=settings):
        yield


def test_synth_prints_declaration(runner: CliRunner) -> None:
    with (
        patch("server_infra.cli.main.create_session"),
        patch("server_infra.cli.main.AwsResolver", return_value=FakeResolver()),
    ):
        result = runner.invoke(cli, ["synth", "--stage", "staging", "--image-tag", "abc123"])

    assert result.exit_code == 0, result.output
    rendered = json.loads(result.output)
    assert rendered["stage_title"] == "Staging"
    assert rendered["output"]["name"] == "LoadBalancerStagingDNS"


def test_synth_requires_image_tag(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["synth", "--stage", "staging"])

    assert result.exit_code == 2
    assert "--image-tag" in result.output


def test_region_override_reaches_session(runner: CliRunner) -> None:
    with (
        patch("server_infra.cli.main.create_session") as create_session,
        patch("server_infra.cli.main.AwsResolver", return_value=FakeResolver()),
    ):
        result = runner.invoke(
            cli,
            ["--region", "us-east-1", "synth", "--stage", "staging", "--image-tag", "abc123"],
        )

    assert result.exit_code == 0, result.output
    assert create_session.call_args.args[0].aws_region == "us-east-1"


def test_deploy_prints_outputs(runner: CliRunner) -> None:
    outputs = {"LoadBalancerStagingDNS": "staging.elb.amazonaws.com"}
    with patch(
        "server_infra.cli.main.deploy_stage", return_value=(MagicMock(), outputs)
    ) as deploy_stage:
        result = runner.invoke(cli, ["deploy", "--stage", "staging", "--image-tag", "abc123"])

    assert result.exit_code == 0, result.output
    assert "LoadBalancerStagingDNS" in result.output
    assert "staging.elb.amazonaws.com" in result.output
    parameters = deploy_stage.call_args.args[0]
    assert parameters.stage_name == "staging"
    assert parameters.image_tag == "abc123"


def test_deploy_failure_exits_non_zero(runner: CliRunner) -> None:
    with patch("server_infra.cli.main.deploy_stage", side_effect=RuntimeError("boom")):
        result = runner.invoke(cli, ["deploy", "--stage", "staging", "--image-tag", "abc123"])

    assert result.exit_code == 1
    assert "Deployment failed: boom" in result.output


def test_destroy_with_yes_skips_prompt(runner: CliRunner) -> None:
    with (
        patch("server_infra.cli.main.create_session"),
        patch("server_infra.cli.main.AwsResolver"),
        patch("server_infra.cli.main.cleanup_stage") as cleanup_stage,
        patch("server_infra.cli.main.questionary") as questionary,
    ):
        result = runner.invoke(cli, ["destroy", "--stage", "staging", "--yes"])

    assert result.exit_code == 0, result.output
    questionary.confirm.assert_not_called()
    assert cleanup_stage.call_args.args[1] == "staging"


def test_destroy_cancelled(runner: CliRunner) -> None:
    with (
        patch("server_infra.cli.main.cleanup_stage") as cleanup_stage,
        patch("server_infra.cli.main.questionary") as questionary,
    ):
        questionary.confirm.return_value.ask.return_value = False
        result = runner.invoke(cli, ["destroy", "--stage", "staging"])

    assert result.exit_code == 0
    assert "cancelled" in result.output
    cleanup_stage.assert_not_called()


def test_status_prints_table(runner: CliRunner) -> None:
    with (
        patch("server_infra.cli.main.create_session"),
        patch(
            "server_infra.cli.main.check_deployment",
            return_value={"ECS cluster": "present", "ECS service": "missing"},
        ),
    ):
        result = runner.invoke(cli, ["status", "--stage", "staging"])

    assert result.exit_code == 0, result.output
    assert "ECS cluster" in result.output
    assert "missing" in result.output


def test_auth_errors_are_found_in_chain() -> None:
    try:
        try:
            raise client_error("ExpiredToken")
        except Exception as exc:
            raise RuntimeError("Failed to read AWS identity") from exc
    except RuntimeError as wrapped:
        assert is_aws_auth_error(wrapped)
        assert len(exception_chain(wrapped)) == 2
