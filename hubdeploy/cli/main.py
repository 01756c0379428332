"""Main CLI entry point for hubdeploy."""

import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ..core.config import load_config, load_instance_spec
from ..core.context import ApplicationContext
from ..core.errors import HubDeployError, PartialSuccessError
from ..core.log import configure_logging, get_logger
from ..core.types import InstallationResult, InstanceSpec
from ..instances.flavor import FlavorResolver
from ..instances.orchestrator import LifecycleOrchestrator


class GlobalCliOptions(BaseModel):
    """Global CLI options that can be used across all commands."""

    verbose: int = Field(0, description="Increase verbosity level")
    config_file: Optional[Path] = Field(None, description="Configuration file path")
    log_level: str = Field(
        "WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )


app = typer.Typer(
    name="hubdeploy",
    help="Lifecycle orchestration for multi-tier instances on Kubernetes",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
console = Console()
logger = get_logger(__name__)

SpecArgument = typer.Argument(..., help="Instance spec YAML file")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity level"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR) - explicit level",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
) -> None:
    """hubdeploy: create, start, stop and delete instances."""
    if verbose > 0 and log_level is not None:
        console.print("[red]Error: Cannot specify both --verbose and --log-level[/red]")
        raise typer.Exit(1)

    if log_level is None:
        resolved_log_level = (
            "DEBUG" if verbose >= 2 else "INFO" if verbose == 1 else "WARNING"
        )
    else:
        resolved_log_level = log_level.upper()

    cli_options = GlobalCliOptions(
        verbose=verbose,
        config_file=config_file,
        log_level=resolved_log_level,
    )

    ctx.ensure_object(dict)
    ctx.obj["cli_options"] = cli_options

    configure_logging(
        level=cli_options.log_level, enable_console=True, enable_json=False
    )


def build_orchestrator(cli_options: GlobalCliOptions) -> LifecycleOrchestrator:
    """Load configuration and wire the orchestrator against the cluster."""
    config = load_config(
        config_file=cli_options.config_file,
        log_level=cli_options.log_level,
        verbose=cli_options.verbose,
    )
    app_context = ApplicationContext.create(config, logger=get_logger("hubdeploy"))
    return LifecycleOrchestrator(app_context)


def _cli_options(ctx: typer.Context) -> GlobalCliOptions:
    ctx.ensure_object(dict)
    return ctx.obj.get("cli_options") or GlobalCliOptions()


def _load(ctx: typer.Context, spec_file: Path):
    """Load the instance spec and orchestrator, exiting with 1 on configuration errors."""
    try:
        spec = load_instance_spec(spec_file)
        return spec, build_orchestrator(_cli_options(ctx))
    except HubDeployError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _fail(action: str, spec: InstanceSpec, error: HubDeployError) -> NoReturn:
    logger.error("%s of %s failed: %s", action, spec.namespace, error)
    console.print(f"[red]{action} of {spec.namespace} failed: {error}[/red]")
    raise typer.Exit(1)


def _print_result(spec: InstanceSpec, result: InstallationResult) -> None:
    table = Table(title=f"Instance {spec.name}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Namespace", spec.namespace)
    if result.endpoint is not None:
        table.add_row("Endpoint", result.endpoint.address)
        table.add_row("Exposed via", result.endpoint.mechanism.value)
    else:
        table.add_row("Endpoint", "[yellow]none[/yellow]")
    for claim, volume in sorted(result.pvc_volumes.items()):
        table.add_row(f"Volume ({claim})", volume)
    console.print(table)


@app.command()
def create(ctx: typer.Context, spec_file: Path = SpecArgument) -> None:
    """Create an instance and print its endpoint."""
    spec, orchestrator = _load(ctx, spec_file)
    try:
        result = orchestrator.create(spec)
    except PartialSuccessError as e:
        console.print(f"[yellow]Warning: {e}[/yellow]")
        result = e.result
    except HubDeployError as e:
        _fail("Create", spec, e)
    _print_result(spec, result)


@app.command()
def start(ctx: typer.Context, spec_file: Path = SpecArgument) -> None:
    """Start a stopped instance."""
    spec, orchestrator = _load(ctx, spec_file)
    try:
        orchestrator.start(spec)
    except HubDeployError as e:
        _fail("Start", spec, e)
    console.print(f"[green]Started {spec.namespace}[/green]")


@app.command()
def stop(ctx: typer.Context, spec_file: Path = SpecArgument) -> None:
    """Stop an instance, keeping its storage."""
    spec, orchestrator = _load(ctx, spec_file)
    try:
        orchestrator.stop(spec)
    except HubDeployError as e:
        _fail("Stop", spec, e)
    console.print(f"[green]Stopped {spec.namespace}[/green]")


@app.command()
def apply(ctx: typer.Context, spec_file: Path = SpecArgument) -> None:
    """Start or stop an instance according to its desired state."""
    spec, orchestrator = _load(ctx, spec_file)
    try:
        orchestrator.reconcile(spec)
    except HubDeployError as e:
        _fail("Apply", spec, e)
    console.print(f"[green]{spec.namespace} is {spec.desired_state.value}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace of the instance"),
) -> None:
    """Delete an instance with its namespace and volumes."""
    try:
        orchestrator = build_orchestrator(_cli_options(ctx))
    except HubDeployError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    orchestrator.delete(namespace)
    console.print(f"[green]Deleted {namespace}[/green]")


@app.command()
def flavors() -> None:
    """List the available size flavors."""
    resolver = FlavorResolver()
    table = Table(title="Flavors")
    table.add_column("Size", style="cyan")
    table.add_column("Webserver", style="green")
    table.add_column("Scan replicas", style="green")
    table.add_column("Jobrunner replicas", style="green")
    table.add_column("Postgres", style="green")
    for size in resolver.available():
        profile = resolver.resolve(size)
        postgres = profile.sizing("postgres")
        table.add_row(
            size,
            profile.sizing("webserver").memory,
            str(profile.sizing("scan").replicas),
            str(profile.sizing("jobrunner").replicas),
            f"{postgres.cpu or '-'} cpu / {postgres.memory}",
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    import kubernetes
    import pydantic

    from .. import __version__

    table = Table(title="hubdeploy Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("hubdeploy", __version__)
    table.add_row("kubernetes client", kubernetes.__version__)
    table.add_row("pydantic", pydantic.VERSION)
    console.print(table)


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    cli_options = _cli_options(ctx)
    try:
        current_config = load_config(config_file=cli_options.config_file)
    except HubDeployError as e:
        console.print(f"[red]Error getting configuration: {e}[/red]")
        raise typer.Exit(1)

    polling = current_config.polling
    table = Table(title="hubdeploy Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Operator Namespace", current_config.operator_namespace)
    table.add_row("Password Secret", current_config.password_secret_name)
    table.add_row(
        "Kubeconfig",
        "in-cluster"
        if current_config.kube.in_cluster
        else str(current_config.kube.kubeconfig or "default"),
    )
    if current_config.kube.context:
        table.add_row("Kube Context", current_config.kube.context)
    table.add_row("OpenShift Routes", str(current_config.kube.openshift_routes))
    for name in (
        "pods_running",
        "pvc_binding",
        "load_balancer",
        "node_port",
        "credentials",
        "database_endpoint",
        "job_completion",
        "namespace_deletion",
    ):
        policy = getattr(polling, name)
        table.add_row(
            f"Poll {name}", f"{policy.max_attempts} x {policy.interval:g}s"
        )
    table.add_row("Exposure Settle Delay", f"{polling.exposure_settle_delay:g}s")
    table.add_row("Log Level", current_config.log_level)
    console.print(table)


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (RuntimeError, OSError, ValueError) as e:
        logger.error("Unexpected error: %s", e)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
