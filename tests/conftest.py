"""
Pytest configuration and shared fixtures for skill-router tests.

This module provides fixtures for routing tests:
- Expert factories for small custom catalogs
- Router fixtures (default catalog, empty catalog, uncached)
- Request and decision factories
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio

from skill_router.routing.experts import DEFAULT_EXPERTS
from skill_router.routing.health import ExpertRegistry
from skill_router.routing.models import (
    ExpertCapabilities,
    ExpertDefinition,
    ExpertType,
    RoutingDecision,
    RoutingScores,
    ToolRequest,
    ToolType,
)
from skill_router.routing.router import ExpertRouter, RouterConfig


# ============================================================================
# EXPERT FIXTURES
# ============================================================================


@pytest.fixture
def make_expert() -> Callable[..., ExpertDefinition]:
    """Factory for expert definitions with sensible defaults.

    Returns:
        A callable building an ExpertDefinition; keyword arguments override
        the capability values.
    """

    def _make(
        expert_id: str,
        tools: tuple[ToolType, ...] = (ToolType.SEARCH,),
        *,
        expert_type: ExpertType = ExpertType.BALANCED,
        max_concurrency: int = 100,
        avg_latency_ms: float = 50.0,
        accuracy_score: float = 0.9,
        priority: int = 0,
    ) -> ExpertDefinition:
        return ExpertDefinition(
            id=expert_id,
            name=f"{expert_id.title()} Expert",
            type=expert_type,
            capabilities=ExpertCapabilities(
                supported_tools=frozenset(tools),
                max_concurrency=max_concurrency,
                avg_latency_ms=avg_latency_ms,
                accuracy_score=accuracy_score,
            ),
            priority=priority,
        )

    return _make


@pytest.fixture
def registry() -> ExpertRegistry:
    """Provide a registry holding the default expert catalog."""
    return ExpertRegistry(DEFAULT_EXPERTS)


# ============================================================================
# REQUEST / DECISION FIXTURES
# ============================================================================


@pytest.fixture
def make_request() -> Callable[..., ToolRequest]:
    """Factory for tool requests."""

    def _make(tool: str = "search", arguments: dict[str, Any] | None = None, **kwargs: Any) -> ToolRequest:
        return ToolRequest(tool=tool, arguments=arguments or {}, **kwargs)

    return _make


@pytest.fixture
def make_decision() -> Callable[..., RoutingDecision]:
    """Factory for routing decisions."""

    def _make(
        expert_id: str = "latency-index",
        confidence: float = 0.9,
        request_id: str = "req-test",
    ) -> RoutingDecision:
        return RoutingDecision(
            request_id=request_id,
            expert_id=expert_id,
            confidence=confidence,
            scores=RoutingScores(
                accuracy_score=0.9,
                latency_score=0.8,
                reliability_score=1.0,
                efficiency_score=0.7,
                total_score=0.85,
            ),
            reason=f"Selected {expert_id}",
        )

    return _make


# ============================================================================
# ROUTER FIXTURES
# ============================================================================


@pytest.fixture
def router() -> ExpertRouter:
    """Provide an uninitialized router with the default catalog."""
    return ExpertRouter()


@pytest_asyncio.fixture
async def initialized_router() -> AsyncGenerator[ExpertRouter, None]:
    """Provide an initialized router with the default catalog.

    Yields:
        An initialized ExpertRouter, shut down after the test.
    """
    router = ExpertRouter()
    await router.initialize()
    yield router
    await router.shutdown()


@pytest_asyncio.fixture
async def uncached_router() -> AsyncGenerator[ExpertRouter, None]:
    """Provide an initialized router with the decision cache disabled."""
    router = ExpertRouter(RouterConfig(enable_cache=False))
    await router.initialize()
    yield router
    await router.shutdown()


@pytest_asyncio.fixture
async def empty_router() -> AsyncGenerator[ExpertRouter, None]:
    """Provide an initialized router without any experts."""
    router = ExpertRouter(experts=[])
    await router.initialize()
    yield router
    await router.shutdown()
