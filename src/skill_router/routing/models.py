"""Data models for the expert router.

This module defines the core data structures used by the router: the
request and expert descriptions it reads, the decisions and responses it
produces, and the metrics snapshot it reports.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

# Reserved expert id returned when no expert is eligible
FALLBACK_EXPERT_ID = "direct-fallback"


class ToolType(StrEnum):
    """Marketplace tools that can be routed."""

    SEARCH = "search"
    RECOMMEND = "recommend"
    INSTALL = "install"
    VALIDATE = "validate"
    COMPARE = "compare"
    GET_SKILL = "get_skill"
    UNINSTALL = "uninstall"
    ANALYZE = "analyze"


class ExpertType(StrEnum):
    """Execution strategy an expert is optimized for."""

    ACCURACY = "accuracy"  # Correctness over speed
    LATENCY = "latency"  # Response time
    BALANCED = "balanced"  # Both
    SPECIALIZED = "specialized"  # Tool-specific optimization


class HealthState(StrEnum):
    """Health of an expert as seen by the router."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"  # Eligible, penalized in scoring
    UNHEALTHY = "unhealthy"  # Never eligible


class RequestPriority(StrEnum):
    """Request priority. HIGH always gets a fresh decision."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class Criterion(StrEnum):
    """Decision criteria weighed by the scoring engine."""

    ACCURACY = "accuracy"
    LATENCY = "latency"
    RELIABILITY = "reliability"
    EFFICIENCY = "efficiency"


class WeightProfile(BaseModel):
    """Weights of the four decision criteria, expected to sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    accuracy: float = Field(ge=0.0, le=1.0)
    latency: float = Field(ge=0.0, le=1.0)
    reliability: float = Field(ge=0.0, le=1.0)
    efficiency: float = Field(ge=0.0, le=1.0)

    @property
    def total(self) -> float:
        return self.accuracy + self.latency + self.reliability + self.efficiency

    def weight_of(self, criterion: Criterion) -> float:
        return float(getattr(self, criterion.value))

    def dominant(self) -> Criterion:
        """Return the most heavily weighted criterion (first declared wins ties)."""
        return max(Criterion, key=self.weight_of)


class ExpertCapabilities(BaseModel):
    """Declared capabilities of an expert."""

    model_config = ConfigDict(frozen=True)

    supported_tools: frozenset[ToolType] = Field(min_length=1)
    max_concurrency: int = Field(gt=0)
    avg_latency_ms: float = Field(gt=0.0)
    accuracy_score: float = Field(gt=0.0, le=1.0)


class ExpertDefinition(BaseModel):
    """Static description of a routing target.

    Experts carry no behavior; the work they stand for is supplied by the
    caller of ``ExpertRouter.execute_with_routing``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    type: ExpertType
    description: str = ""
    capabilities: ExpertCapabilities
    weights: WeightProfile | None = None
    priority: int = 0  # Higher is preferred on score ties

    def supports(self, tool: str) -> bool:
        return tool in self.capabilities.supported_tools


class ExpertStatus(BaseModel):
    """Point-in-time health snapshot of one expert."""

    model_config = ConfigDict(frozen=True)

    id: str
    state: HealthState = HealthState.HEALTHY
    load: float = Field(default=0.0, ge=0.0, le=1.0)
    success_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    consecutive_failures: int = Field(default=0, ge=0)
    last_health_check: datetime = Field(default_factory=datetime.now)


class RequestMetadata(BaseModel):
    """Optional caller context attached to a request."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    source: str | None = None  # mcp, cli, api
    feature_flags: dict[str, bool] = Field(default_factory=dict)


class ToolRequest(BaseModel):
    """One inbound tool call to route.

    ``tool`` accepts any string; values outside ``ToolType`` have no weight
    profile and are answered with the fallback decision.
    """

    model_config = ConfigDict(frozen=True)

    request_id: str = Field(default_factory=lambda: f"req-{uuid4().hex[:12]}")
    tool: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)
    priority: RequestPriority | None = None
    max_latency_ms: float | None = Field(default=None, gt=0.0)
    metadata: RequestMetadata | None = None

    @field_validator("tool", mode="before")
    @classmethod
    def _coerce_tool(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, ToolType):
            try:
                return ToolType(value)
            except ValueError:
                return value
        return value

    @property
    def is_high_priority(self) -> bool:
        return self.priority == RequestPriority.HIGH


class RoutingScores(BaseModel):
    """Per-criterion scores and their weighted total, all in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    accuracy_score: float = Field(default=0.0, ge=0.0, le=1.0)
    latency_score: float = Field(default=0.0, ge=0.0, le=1.0)
    reliability_score: float = Field(default=0.0, ge=0.0, le=1.0)
    efficiency_score: float = Field(default=0.0, ge=0.0, le=1.0)
    total_score: float = Field(default=0.0, ge=0.0, le=1.0)


class RoutingAlternative(BaseModel):
    """A runner-up expert considered for a decision."""

    model_config = ConfigDict(frozen=True)

    expert_id: str
    score: float = Field(ge=0.0, le=1.0)
    scores: RoutingScores
    reason: str = ""


class RoutingDecision(BaseModel):
    """The routing outcome for one request."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    expert_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    scores: RoutingScores
    alternatives: tuple[RoutingAlternative, ...] = ()
    reason: str
    decided_at: datetime = Field(default_factory=datetime.now)
    decision_time_ms: float = Field(default=0.0, ge=0.0)
    cache_hit: bool | None = None  # Only set (True) when served from cache

    @property
    def used_fallback(self) -> bool:
        return self.expert_id == FALLBACK_EXPERT_ID


class ResponseError(BaseModel):
    """Failure details of an execution."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: dict[str, Any] | None = None


class ResponseMeta(BaseModel):
    """Timing and routing metadata attached to every response."""

    model_config = ConfigDict(frozen=True)

    expert_id: str
    total_time_ms: float = Field(ge=0.0)
    routing_time_ms: float = Field(ge=0.0)
    execution_time_ms: float = Field(ge=0.0)
    cache_hit: bool = False
    used_fallback: bool = False


class ToolResponse(BaseModel, Generic[T]):
    """Result of routing and executing a request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    request_id: str
    success: bool
    data: T | None = None
    error: ResponseError | None = None
    meta: ResponseMeta


# ============================================================================
# Metrics snapshot
# ============================================================================


class HistogramBuckets(BaseModel):
    """Latency histogram; ``counts`` has one extra overflow bucket."""

    model_config = ConfigDict(frozen=True)

    boundaries: tuple[float, ...]
    counts: tuple[int, ...]


class CacheStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    hits: int = 0
    misses: int = 0
    hit_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class ErrorStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class SpeedImprovement(BaseModel):
    """Observed decision cost against the naive routing baseline."""

    model_config = ConfigDict(frozen=True)

    baseline_ms: float
    current_ms: float
    improvement_ratio: float = Field(gt=0.0)


class ExpertHealthSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: HealthState
    load: float
    success_rate: float


class RouterMetrics(BaseModel):
    """Process-lifetime routing counters."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    requests_by_tool: dict[str, int] = Field(default_factory=dict)
    requests_by_expert: dict[str, int] = Field(default_factory=dict)
    fallbacks: int = 0
    cache: CacheStats = Field(default_factory=CacheStats)
    avg_decision_time_ms: float = 0.0
    avg_execution_time_ms: float = 0.0
    routing_latency: HistogramBuckets
    execution_latency: HistogramBuckets
    errors: ErrorStats = Field(default_factory=ErrorStats)
    speed_improvement: SpeedImprovement | None = None
    expert_health: dict[str, ExpertHealthSummary] = Field(default_factory=dict)
