"""Multi-criteria scoring of experts.

For one request the engine filters the eligible experts, scores each on
four criteria normalized to [0, 1], combines them with the tool's weight
profile and ranks the result.

Criteria:
- accuracy: the expert's declared accuracy score
- latency: fastest eligible average latency divided by the expert's own,
  halved when the expert is slower than the request's latency budget
- reliability: health state factor x rolling success rate x load penalty
- efficiency: free capacity (max concurrency x (1 - load)) relative to the
  roomiest eligible expert

Confidence measures how decisively the winner beat the runner-up, not how
high its score is: an uncontested winner gets 1.0, an exact tie 0.5.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from skill_router.routing.models import (
    Criterion,
    ExpertDefinition,
    ExpertStatus,
    HealthState,
    RoutingAlternative,
    RoutingScores,
    ToolRequest,
    WeightProfile,
)
from skill_router.routing.weights import TOOL_WEIGHTS

if TYPE_CHECKING:
    from skill_router.routing.health import ExpertRegistry

logger = structlog.get_logger(__name__)

# Reliability multiplier per health state; unhealthy experts are never scored
STATE_RELIABILITY: dict[HealthState, float] = {
    HealthState.HEALTHY: 1.0,
    HealthState.DEGRADED: 0.6,
    HealthState.UNHEALTHY: 0.0,
}

# Share of reliability lost at full load
LOAD_RELIABILITY_PENALTY = 0.5

# Latency score multiplier for experts slower than the request budget
LATENCY_BUDGET_PENALTY = 0.5

# confidence = min(1, CONFIDENCE_FLOOR + margin * CONFIDENCE_MARGIN_GAIN)
CONFIDENCE_FLOOR = 0.5
CONFIDENCE_MARGIN_GAIN = 2.0

DEFAULT_MAX_ALTERNATIVES = 3

_CRITERION_PHRASES: dict[Criterion, str] = {
    Criterion.ACCURACY: "accuracy-critical",
    Criterion.LATENCY: "latency-sensitive",
    Criterion.RELIABILITY: "reliability-critical",
    Criterion.EFFICIENCY: "throughput-bound",
}


def _unit(value: float) -> float:
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class ScoredExpert:
    """An eligible expert with its score breakdown."""

    expert: ExpertDefinition
    status: ExpertStatus
    scores: RoutingScores

    @property
    def total(self) -> float:
        return self.scores.total_score

    def sort_key(self) -> tuple[float, int, str]:
        # Highest score, then highest priority, then id for reproducibility
        return (-self.scores.total_score, -self.expert.priority, self.expert.id)


@dataclass(frozen=True)
class ScoringResult:
    """Outcome of one scoring pass with at least one eligible expert."""

    winner: ScoredExpert
    ranked: tuple[ScoredExpert, ...]
    confidence: float
    alternatives: tuple[RoutingAlternative, ...]
    reason: str


class ScoringEngine:
    """Scores eligible experts against a tool's weight profile.

    Example:
        >>> engine = ScoringEngine(registry)
        >>> result = engine.score(ToolRequest(tool="search", arguments={"query": "x"}))
        >>> if result is None:
        ...     ...  # no eligible expert, caller falls back
    """

    def __init__(
        self,
        registry: ExpertRegistry,
        *,
        weights: Mapping[str, WeightProfile] | None = None,
        max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Expert registry providing definitions and health
            weights: Tool weight table (defaults to TOOL_WEIGHTS)
            max_alternatives: Maximum runner-ups reported per decision
        """
        self._registry = registry
        self._weights: Mapping[str, WeightProfile] = weights if weights is not None else TOOL_WEIGHTS
        self._max_alternatives = max_alternatives

    def weights_for(self, tool: str) -> WeightProfile | None:
        return self._weights.get(tool)

    def eligible_experts(
        self,
        tool: str,
        snapshot: Mapping[str, ExpertStatus] | None = None,
    ) -> list[tuple[ExpertDefinition, ExpertStatus]]:
        """Experts that support the tool and are not unhealthy."""
        if snapshot is None:
            snapshot = self._registry.snapshot()
        eligible = []
        for expert in self._registry.experts_for(tool):
            status = snapshot.get(expert.id)
            if status is None or status.state == HealthState.UNHEALTHY:
                continue
            eligible.append((expert, status))
        return eligible

    def score(self, request: ToolRequest) -> ScoringResult | None:
        """Score and rank the eligible experts for a request.

        Args:
            request: The request to route

        Returns:
            The scoring result, or None when no expert is eligible (including
            tools without a weight profile)
        """
        weights = self.weights_for(request.tool)
        if weights is None:
            logger.debug("no_weight_profile", tool=str(request.tool))
            return None

        eligible = self.eligible_experts(request.tool)
        if not eligible:
            return None

        fastest = min(expert.capabilities.avg_latency_ms for expert, _ in eligible)
        roomiest = max(self._headroom(expert, status) for expert, status in eligible)

        scored = [
            ScoredExpert(
                expert=expert,
                status=status,
                scores=self._score_expert(expert, status, weights, request, fastest, roomiest),
            )
            for expert, status in eligible
        ]
        ranked = tuple(sorted(scored, key=ScoredExpert.sort_key))
        winner = ranked[0]

        return ScoringResult(
            winner=winner,
            ranked=ranked,
            confidence=self._confidence(ranked),
            alternatives=tuple(
                RoutingAlternative(
                    expert_id=alt.expert.id,
                    score=alt.total,
                    scores=alt.scores,
                    reason=f"{alt.expert.name}: score {alt.total:.3f}",
                )
                for alt in ranked[1 : 1 + self._max_alternatives]
            ),
            reason=self._reason(winner, weights, str(request.tool)),
        )

    @staticmethod
    def _headroom(expert: ExpertDefinition, status: ExpertStatus) -> float:
        return expert.capabilities.max_concurrency * (1.0 - status.load)

    def _score_expert(
        self,
        expert: ExpertDefinition,
        status: ExpertStatus,
        weights: WeightProfile,
        request: ToolRequest,
        fastest_latency_ms: float,
        max_headroom: float,
    ) -> RoutingScores:
        capabilities = expert.capabilities

        accuracy = capabilities.accuracy_score

        latency = fastest_latency_ms / capabilities.avg_latency_ms
        if request.max_latency_ms is not None and capabilities.avg_latency_ms > request.max_latency_ms:
            latency *= LATENCY_BUDGET_PENALTY

        reliability = (
            STATE_RELIABILITY[status.state]
            * status.success_rate
            * (1.0 - LOAD_RELIABILITY_PENALTY * status.load)
        )

        efficiency = self._headroom(expert, status) / max_headroom if max_headroom > 0 else 0.0

        accuracy, latency, reliability, efficiency = (
            _unit(accuracy),
            _unit(latency),
            _unit(reliability),
            _unit(efficiency),
        )
        total = (
            weights.accuracy * accuracy
            + weights.latency * latency
            + weights.reliability * reliability
            + weights.efficiency * efficiency
        )

        return RoutingScores(
            accuracy_score=accuracy,
            latency_score=latency,
            reliability_score=reliability,
            efficiency_score=efficiency,
            total_score=_unit(total),
        )

    @staticmethod
    def _confidence(ranked: tuple[ScoredExpert, ...]) -> float:
        if len(ranked) == 1:
            return 1.0
        margin = ranked[0].total - ranked[1].total
        return _unit(CONFIDENCE_FLOOR + margin * CONFIDENCE_MARGIN_GAIN)

    @staticmethod
    def _reason(winner: ScoredExpert, weights: WeightProfile, tool: str) -> str:
        phrase = _CRITERION_PHRASES[weights.dominant()]
        return (
            f"Selected {winner.expert.name} ({winner.expert.type.value}) for {phrase} "
            f"{tool} request with score {winner.total:.3f}"
        )


__all__ = [
    "CONFIDENCE_FLOOR",
    "CONFIDENCE_MARGIN_GAIN",
    "DEFAULT_MAX_ALTERNATIVES",
    "LATENCY_BUDGET_PENALTY",
    "LOAD_RELIABILITY_PENALTY",
    "STATE_RELIABILITY",
    "ScoredExpert",
    "ScoringEngine",
    "ScoringResult",
]
