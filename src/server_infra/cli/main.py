"""CLI entrypoint for the server infrastructure."""

import json
from collections.abc import Callable
from typing import Any

import click
import questionary
from rich.table import Table

from server_infra.cli.errors import report_error
from server_infra.cli.ui import configure_logging, console, report_step
from server_infra.core.deployments.aws_ecs import (
    AwsResolver,
    DeploymentParameters,
    check_deployment,
    cleanup_stage,
    create_session,
    declare_deployment,
    deploy_stage,
)
from server_infra.core.settings import DeploymentSettings, get_settings

stage_option = click.option(
    "--stage", "stage_name", required=True, help="Deployment stage, e.g. staging."
)
image_tag_option = click.option(
    "--image-tag", required=True, help="Immutable tag of the server image to deploy."
)


@click.group()
@click.option("--region", default=None, help="AWS region, overrides configuration.")
@click.option("--profile", default=None, help="AWS named profile, overrides configuration.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, region: str | None, profile: str | None, verbose: bool) -> None:
    """Provision the hosting environment for the server on AWS ECS.

    Args:
        ctx: Click context for the command invocation.
        region: AWS region override.
        profile: AWS profile override.
        verbose: Enable debug logging.
    """
    configure_logging(verbose)
    settings = get_settings()
    overrides: dict[str, Any] = {}
    if region:
        overrides["aws_region"] = region
    if profile:
        overrides["aws_profile"] = profile
    ctx.obj = settings.model_copy(update=overrides) if overrides else settings


@cli.command()
@stage_option
@image_tag_option
@click.pass_obj
def synth(settings: DeploymentSettings, stage_name: str, image_tag: str) -> None:
    """Resolve lookups and print the declared resources as JSON."""

    def action() -> None:
        session = create_session(settings)
        declaration = declare_deployment(
            DeploymentParameters(stage_name=stage_name, image_tag=image_tag),
            settings,
            AwsResolver(session),
        )
        console.print_json(json.dumps(declaration.to_dict()))

    _run(action)


@cli.command()
@stage_option
@image_tag_option
@click.pass_obj
def deploy(settings: DeploymentSettings, stage_name: str, image_tag: str) -> None:
    """Declare and apply the deployment for a stage."""

    def action() -> None:
        console.print(f"[cyan]Deploying stage {stage_name} with image {image_tag}...[/cyan]")
        _, outputs = deploy_stage(
            DeploymentParameters(stage_name=stage_name, image_tag=image_tag),
            settings,
            report_step,
        )
        print_outputs(outputs)

    _run(action)


@cli.command()
@stage_option
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def destroy(settings: DeploymentSettings, stage_name: str, yes: bool) -> None:
    """Tear down every resource created for a stage."""
    if not yes:
        confirmed = questionary.confirm(
            f"Delete all resources of stage {stage_name}?",
            default=False,
        ).ask()
        if not confirmed:
            console.print("[dim]Clean up cancelled.[/dim]")
            return

    def action() -> None:
        session = create_session(settings)
        cleanup_stage(session, stage_name, settings, AwsResolver(session), report_step)
        console.print(f"[green]Stage {stage_name} cleaned up.[/green]")

    _run(action)


@cli.command()
@stage_option
@click.pass_obj
def status(settings: DeploymentSettings, stage_name: str) -> None:
    """Show which resources of a stage exist."""

    def action() -> None:
        session = create_session(settings)
        results = check_deployment(session, stage_name, settings, AwsResolver(session))
        print_status_table(results)

    _run(action)


def print_outputs(outputs: dict[str, str]) -> None:
    """Print published deployment outputs.

    Args:
        outputs: Output values keyed by output name.
    """
    table = Table(title="Outputs", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="white", no_wrap=True)
    table.add_column("Value", style="bright_white")
    for name, value in outputs.items():
        table.add_row(name, value)
    console.print(table)


def print_status_table(results: dict[str, str]) -> None:
    """Print a deployment status table.

    Args:
        results: Deployment status values keyed by resource name.
    """
    table = Table(title="Deployment resources", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="white", no_wrap=True)
    table.add_column("Status", style="white", no_wrap=True)
    for name, value in results.items():
        style = "green" if value.startswith("present") else "yellow"
        table.add_row(name, f"[{style}]{value}[/{style}]")
    console.print(table)


def _run(action: Callable[[], None]) -> None:
    """Run a deployment action, reporting failures and exiting non-zero."""
    try:
        action()
    except Exception as exc:  # noqa: BLE001
        report_error(exc)
        raise SystemExit(1) from exc


def main() -> None:
    """Run the CLI."""
    cli()
