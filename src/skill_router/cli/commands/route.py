"""CLI route and gate commands.

Routes sample requests through a fresh router and evaluates the feature
gate, with rich terminal output or JSON for scripting.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.table import Table

from skill_router.routing.flags import DEFAULT_FEATURE_FLAGS, should_use_routing
from skill_router.routing.models import RequestPriority, RoutingDecision, ToolRequest
from skill_router.routing.router import ExpertRouter

if TYPE_CHECKING:
    from skill_router.cli.main import CLIContext

console = Console()


def parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as JSON when possible.

    Raises:
        typer.BadParameter: If a pair has no ``=``
    """
    parsed: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            parsed[key] = json.loads(raw)
        except json.JSONDecodeError:
            parsed[key] = raw
    return parsed


async def _route_once(ctx: CLIContext, request: ToolRequest) -> RoutingDecision:
    router = ExpertRouter(ctx.router_config)
    await router.initialize()
    try:
        return await router.route(request)
    finally:
        await router.shutdown()


def format_decision(decision: RoutingDecision) -> None:
    """Print a decision and its alternatives as tables."""
    table = Table(title=f"Routing decision {decision.request_id}", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_row("Expert", f"[bold green]{decision.expert_id}[/bold green]")
    table.add_row("Confidence", f"{decision.confidence:.3f}")
    table.add_row("Reason", decision.reason)
    table.add_row("Accuracy", f"{decision.scores.accuracy_score:.3f}")
    table.add_row("Latency", f"{decision.scores.latency_score:.3f}")
    table.add_row("Reliability", f"{decision.scores.reliability_score:.3f}")
    table.add_row("Efficiency", f"{decision.scores.efficiency_score:.3f}")
    table.add_row("Total", f"{decision.scores.total_score:.3f}")
    table.add_row("Decision time", f"{decision.decision_time_ms:.3f} ms")
    console.print(table)

    if decision.alternatives:
        alternatives = Table(title="Alternatives", show_header=True, header_style="bold")
        alternatives.add_column("Expert", style="cyan")
        alternatives.add_column("Score", justify="right")
        for alt in decision.alternatives:
            alternatives.add_row(alt.expert_id, f"{alt.score:.3f}")
        console.print(alternatives)


def route_command(
    ctx: CLIContext,
    tool: str,
    args: list[str],
    *,
    priority: str | None = None,
    as_json: bool = False,
) -> None:
    """Route one request and print the decision."""
    try:
        request = ToolRequest(
            tool=tool,
            arguments=parse_pairs(args),
            priority=RequestPriority(priority) if priority else None,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    decision = asyncio.run(_route_once(ctx, request))

    if as_json:
        typer.echo(json.dumps(decision.model_dump(mode="json"), indent=2))
    else:
        format_decision(decision)


def gate_command(flag_overrides: list[str], tool: str, tier: str | None) -> None:
    """Evaluate the feature gate against the default flags plus overrides."""
    flags: dict[str, Any] = {**DEFAULT_FEATURE_FLAGS, **parse_pairs(flag_overrides)}
    enabled = should_use_routing(tool, flags, tier)
    status = "[green]enabled[/green]" if enabled else "[red]disabled[/red]"
    console.print(f"Routing for [cyan]{tool}[/cyan]{f' ({tier})' if tier else ''}: {status}")
    if not enabled:
        raise typer.Exit(1)
