"""Expert routing package.

Assigns every marketplace tool call (search, install, recommend, ...) to one
of several execution experts by weighing tool-specific priorities against
each expert's declared capabilities and live health:

- Expert registry and health tracking (health)
- Per-tool criterion weights (weights)
- Multi-criteria scoring with decisiveness-based confidence (scoring)
- TTL-bounded decision cache (cache)
- Routing metrics (metrics)
- Router lifecycle, routing and timed execution (router)
- Feature-flag gate consulted before routing (flags)
"""

from skill_router.routing.cache import DecisionCache, make_cache_key
from skill_router.routing.errors import (
    ExpertCatalogError,
    RouterError,
    RouterNotInitializedError,
    WeightTableError,
)
from skill_router.routing.experts import DEFAULT_EXPERTS
from skill_router.routing.flags import DEFAULT_FEATURE_FLAGS, in_rollout, should_use_routing
from skill_router.routing.health import ExpertRegistry
from skill_router.routing.metrics import MetricsCollector
from skill_router.routing.models import (
    FALLBACK_EXPERT_ID,
    ExpertCapabilities,
    ExpertDefinition,
    ExpertStatus,
    ExpertType,
    HealthState,
    RequestPriority,
    RouterMetrics,
    RoutingAlternative,
    RoutingDecision,
    RoutingScores,
    ToolRequest,
    ToolResponse,
    ToolType,
    WeightProfile,
)
from skill_router.routing.router import (
    ExpertRouter,
    RouterConfig,
    RouterState,
    create_router,
    is_high_confidence_decision,
    used_fallback,
)
from skill_router.routing.scoring import ScoringEngine, ScoringResult
from skill_router.routing.weights import TOOL_WEIGHTS

__all__ = [
    # Core router
    "ExpertRouter",
    "RouterConfig",
    "RouterState",
    "create_router",
    "is_high_confidence_decision",
    "used_fallback",
    # Enums
    "ExpertType",
    "HealthState",
    "RequestPriority",
    "ToolType",
    # Models
    "ExpertCapabilities",
    "ExpertDefinition",
    "ExpertStatus",
    "RouterMetrics",
    "RoutingAlternative",
    "RoutingDecision",
    "RoutingScores",
    "ToolRequest",
    "ToolResponse",
    "WeightProfile",
    # Components
    "DecisionCache",
    "ExpertRegistry",
    "MetricsCollector",
    "ScoringEngine",
    "ScoringResult",
    "make_cache_key",
    # Tables
    "DEFAULT_EXPERTS",
    "FALLBACK_EXPERT_ID",
    "TOOL_WEIGHTS",
    # Feature flags
    "DEFAULT_FEATURE_FLAGS",
    "in_rollout",
    "should_use_routing",
    # Errors
    "ExpertCatalogError",
    "RouterError",
    "RouterNotInitializedError",
    "WeightTableError",
]
