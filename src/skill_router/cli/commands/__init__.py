"""CLI command implementations for skill-router."""
