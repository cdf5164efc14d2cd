"""Tests for CLI main module."""

from __future__ import annotations

import importlib
import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from skill_router import __version__
from skill_router.cli.commands.route import parse_pairs
from skill_router.cli.main import CLIContext, app, get_cli_context, main, version_callback
from skill_router.config import Settings, configure_settings, get_settings
from skill_router.routing.router import RouterConfig

cli_main = importlib.import_module("skill_router.cli.main")

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_settings():
    """Keep CLI output free of log lines and restore global state afterwards."""
    original = get_settings()
    configure_settings(log_level="ERROR")
    yield
    configure_settings(**original.model_dump())
    logging.getLogger("skill_router").handlers.clear()
    cli_main._cli_context = None


class TestCLIContext:
    """Tests for CLIContext class."""

    def test_cli_context_initialization(self) -> None:
        """Test CLIContext initializes with all required attributes."""
        settings = MagicMock(spec=Settings)
        logger = MagicMock(spec=logging.Logger)
        config = RouterConfig()

        ctx = CLIContext(settings=settings, logger=logger, router_config=config, verbose=2)

        assert ctx.settings is settings
        assert ctx.logger is logger
        assert ctx.router_config is config
        assert ctx.verbose == 2

    def test_cli_context_default_verbose(self) -> None:
        """Test CLIContext uses default verbose=0."""
        ctx = CLIContext(
            settings=MagicMock(spec=Settings),
            logger=MagicMock(spec=logging.Logger),
            router_config=RouterConfig(),
        )
        assert ctx.verbose == 0

    def test_get_cli_context_uninitialized(self) -> None:
        """Test get_cli_context exits when no command callback ran."""
        cli_main._cli_context = None
        with pytest.raises(typer.Exit):
            get_cli_context()


class TestVersion:
    """Tests for the --version option."""

    def test_version_option(self) -> None:
        """Test --version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"skill-router version {__version__}" in result.output

    def test_version_callback_noop(self) -> None:
        """Test the callback does nothing when the flag is absent."""
        version_callback(False)


class TestRouteCommand:
    """Tests for the route command."""

    def test_route_json(self) -> None:
        """Test a search request is routed and printed as JSON."""
        result = runner.invoke(app, ["route", "search", "--arg", "query=testing", "--json"])
        assert result.exit_code == 0
        decision = json.loads(result.stdout)
        assert decision["expert_id"] == "latency-index"
        assert decision["cache_hit"] is None
        assert 0.0 <= decision["confidence"] <= 1.0

    def test_route_table(self) -> None:
        """Test the rich table output names the expert."""
        result = runner.invoke(app, ["route", "get_skill", "-a", "id=community/jest-helper"])
        assert result.exit_code == 0
        assert "latency-index" in result.stdout

    def test_route_unknown_tool(self) -> None:
        """Test unknown tools are routed to the fallback."""
        result = runner.invoke(app, ["route", "deploy", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["expert_id"] == "direct-fallback"

    def test_route_invalid_priority(self) -> None:
        """Test invalid priorities exit with an error."""
        result = runner.invoke(app, ["route", "search", "--priority", "urgent"])
        assert result.exit_code == 1


class TestInspectCommands:
    """Tests for the experts and weights commands."""

    def test_experts_json(self) -> None:
        """Test the catalog is printed with health."""
        result = runner.invoke(app, ["experts", "--json"])
        assert result.exit_code == 0
        experts = json.loads(result.stdout)
        assert len(experts) == 8
        assert {e["health"]["state"] for e in experts} == {"healthy"}

    def test_experts_table(self) -> None:
        """Test the table output renders."""
        result = runner.invoke(app, ["experts"])
        assert result.exit_code == 0
        assert "Experts" in result.stdout

    def test_weights(self) -> None:
        """Test the weight table lists every tool."""
        result = runner.invoke(app, ["weights"])
        assert result.exit_code == 0
        for tool in ("search", "install", "get_skill"):
            assert tool in result.stdout


class TestGateCommand:
    """Tests for the gate command."""

    def test_gate_disabled_by_default(self) -> None:
        """Test the default flags disable routing."""
        result = runner.invoke(app, ["gate", "search"])
        assert result.exit_code == 1
        assert "disabled" in result.stdout

    def test_gate_enabled_with_overrides(self) -> None:
        """Test flag overrides enable routing."""
        result = runner.invoke(
            app,
            ["gate", "search", "-f", "routing.enabled=true", "-f", "routing.tools.search=true"],
        )
        assert result.exit_code == 0
        assert "enabled" in result.stdout

    def test_gate_tier(self) -> None:
        """Test the tier switch is applied."""
        args = ["gate", "search", "-f", "routing.enabled=true", "-f", "routing.tools.search=true"]
        assert runner.invoke(app, [*args, "--tier", "community"]).exit_code == 1
        assert runner.invoke(app, [*args, "--tier", "enterprise"]).exit_code == 0


class TestParsePairs:
    """Tests for key=value parsing."""

    def test_values_parsed_as_json(self) -> None:
        """Test JSON values are decoded and others kept as strings."""
        assert parse_pairs(["limit=5", "query=testing", "exact=true"]) == {
            "limit": 5,
            "query": "testing",
            "exact": True,
        }

    def test_missing_separator(self) -> None:
        """Test pairs without '=' are rejected."""
        with pytest.raises(typer.BadParameter):
            parse_pairs(["oops"])


class TestMain:
    """Tests for the main entry point."""

    def test_keyboard_interrupt(self) -> None:
        """Test Ctrl-C exits with code 130."""
        with patch.object(cli_main, "app", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 130

    def test_unexpected_error(self) -> None:
        """Test unexpected errors exit with code 1."""
        with patch.object(cli_main, "app", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
