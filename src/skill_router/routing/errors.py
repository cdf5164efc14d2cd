"""Exceptions raised by the routing layer.

Only usage violations and invalid static tables raise. A request that no
expert can serve is answered with a fallback decision, and failures of an
execution callback are folded into the response.
"""

from __future__ import annotations


class RouterError(Exception):
    """Base exception for routing errors."""

    pass


class RouterNotInitializedError(RouterError):
    """Raised when routing is attempted before ``initialize()`` or after ``shutdown()``."""

    def __init__(self, router_name: str = "ExpertRouter") -> None:
        self.router_name = router_name
        super().__init__(f"{router_name} not initialized. Call initialize() first.")


class WeightTableError(RouterError, ValueError):
    """Raised when a weight profile is negative or does not sum to 1.0."""

    def __init__(self, profile_name: str, detail: str) -> None:
        self.profile_name = profile_name
        super().__init__(f"Invalid weight profile '{profile_name}': {detail}")


class ExpertCatalogError(RouterError, ValueError):
    """Raised when an expert catalog cannot be registered (e.g. duplicate ids)."""

    pass


__all__ = [
    "ExpertCatalogError",
    "RouterError",
    "RouterNotInitializedError",
    "WeightTableError",
]
