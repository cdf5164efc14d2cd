"""CLI inspect commands for the expert catalog and weight table."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

from skill_router.routing.health import ExpertRegistry
from skill_router.routing.models import ToolType
from skill_router.routing.weights import TOOL_WEIGHTS

if TYPE_CHECKING:
    from skill_router.cli.main import CLIContext

console = Console()


def experts_command(ctx: CLIContext, *, as_json: bool = False) -> None:
    """Print the configured experts with their health."""
    registry = ExpertRegistry(ctx.router_config.experts)
    statuses = {status.id: status for status in registry.get_status()}

    if as_json:
        payload = [
            {
                **expert.model_dump(mode="json"),
                "health": statuses[expert.id].model_dump(mode="json"),
            }
            for expert in registry.list_experts()
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    table = Table(title="Experts", show_header=True, header_style="bold")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Tools")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Concurrency", justify="right")
    table.add_column("Priority", justify="right")
    table.add_column("Health", justify="center")

    for expert in registry.list_experts():
        caps = expert.capabilities
        status = statuses[expert.id]
        table.add_row(
            expert.id,
            expert.type.value,
            ", ".join(sorted(tool.value for tool in caps.supported_tools)),
            f"{caps.avg_latency_ms:g}",
            f"{caps.accuracy_score:.2f}",
            str(caps.max_concurrency),
            str(expert.priority),
            f"{status.state.value} ({status.load:.0%})",
        )

    console.print(table)


def weights_command() -> None:
    """Print the criterion weights of every tool."""
    table = Table(title="Tool weights", show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Accuracy", justify="right")
    table.add_column("Latency", justify="right")
    table.add_column("Reliability", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Dominant", style="green")

    for tool in ToolType:
        profile = TOOL_WEIGHTS[tool]
        table.add_row(
            tool.value,
            f"{profile.accuracy:.2f}",
            f"{profile.latency:.2f}",
            f"{profile.reliability:.2f}",
            f"{profile.efficiency:.2f}",
            profile.dominant().value,
        )

    console.print(table)
