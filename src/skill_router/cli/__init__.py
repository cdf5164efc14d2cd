"""Command-line interface for skill-router."""

from skill_router.cli.main import app, main

__all__ = ["app", "main"]
