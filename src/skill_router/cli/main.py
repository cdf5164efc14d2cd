"""CLI main module for skill-router.

This module provides the primary entry point for the skill-router
command-line interface using Typer. It handles configuration loading,
logging setup, and dispatches to subcommands.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Annotated

import typer

from skill_router.config import Settings, get_settings
from skill_router.logging import setup_logging
from skill_router.routing.router import RouterConfig

if TYPE_CHECKING:
    import logging

app = typer.Typer(
    name="skill-router",
    help="skill-router: expert routing for skill marketplace tool calls.",
    add_completion=False,
    rich_markup_mode="rich",
)

# Global state for CLI context
_cli_context: CLIContext | None = None


class CLIContext:
    """Context object passed to CLI commands.

    Attributes:
        settings: Application settings instance
        logger: Configured logger instance
        router_config: Router configuration derived from the settings
        verbose: Verbosity level (0=normal, 1+=debug)
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        router_config: RouterConfig,
        verbose: int = 0,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self.router_config = router_config
        self.verbose = verbose


def get_cli_context() -> CLIContext:
    """Get the current CLI context.

    Raises:
        typer.Exit: If context not initialized.
    """
    if _cli_context is None:
        typer.echo("Error: CLI context not initialized", err=True)
        raise typer.Exit(1)
    return _cli_context


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from skill_router import __version__

        typer.echo(f"skill-router version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v enables debug logging)",
        ),
    ] = 0,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """skill-router: expert routing for skill marketplace tool calls.

    Route sample requests, inspect the expert catalog and weight table,
    and evaluate the routing feature gate.
    """
    global _cli_context

    try:
        settings = get_settings()
        router_config = RouterConfig.from_settings(settings)
    except Exception as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from e

    logger = setup_logging(settings, log_level="DEBUG" if verbose > 0 else None)

    _cli_context = CLIContext(
        settings=settings,
        logger=logger,
        router_config=router_config,
        verbose=verbose,
    )


@app.command()
def route(
    tool: Annotated[str, typer.Argument(help="Tool to route (search, install, ...)")],
    arg: Annotated[
        list[str] | None,
        typer.Option("--arg", "-a", help="Request argument as key=value (repeatable)"),
    ] = None,
    priority: Annotated[
        str | None,
        typer.Option("--priority", "-p", help="Request priority: high, normal or low"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Route one request and print the decision.

    Examples:
        skill-router route search --arg query=testing
        skill-router route get_skill -a id=community/jest-helper --json
    """
    from skill_router.cli.commands.route import route_command

    ctx = get_cli_context()
    route_command(ctx, tool, arg or [], priority=priority, as_json=as_json)


@app.command()
def experts(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List the expert catalog with current health."""
    from skill_router.cli.commands.inspect import experts_command

    ctx = get_cli_context()
    experts_command(ctx, as_json=as_json)


@app.command()
def weights() -> None:
    """Show the per-tool criterion weights."""
    from skill_router.cli.commands.inspect import weights_command

    weights_command()


@app.command()
def gate(
    tool: Annotated[str, typer.Argument(help="Tool to check")],
    flag: Annotated[
        list[str] | None,
        typer.Option("--flag", "-f", help="Flag override as name=value (repeatable)"),
    ] = None,
    tier: Annotated[
        str | None,
        typer.Option("--tier", "-t", help="User tier (community, individual, team, enterprise)"),
    ] = None,
) -> None:
    """Evaluate the routing feature gate for a tool.

    Examples:
        skill-router gate search --flag routing.enabled=true --flag routing.tools.search=true
    """
    from skill_router.cli.commands.route import gate_command

    gate_command(flag or [], tool, tier)


def main() -> None:
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        typer.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


__all__ = [
    "CLIContext",
    "app",
    "get_cli_context",
    "main",
]
