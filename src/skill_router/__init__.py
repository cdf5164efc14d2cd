"""
skill-router: expert routing core for a skill marketplace server.

Every inbound tool call is assigned to one of several backend experts,
each optimized for accuracy, latency, reliability or a balance of them.
The router decides who handles a request and with what confidence; the
work itself is supplied by the caller.
"""

__version__ = "0.1.0"

from skill_router.routing import (
    ExpertRouter,
    RouterConfig,
    RoutingDecision,
    ToolRequest,
    ToolResponse,
    create_router,
    should_use_routing,
)

__all__ = [
    "ExpertRouter",
    "RouterConfig",
    "RoutingDecision",
    "ToolRequest",
    "ToolResponse",
    "__version__",
    "create_router",
    "should_use_routing",
]
