"""Default expert catalog.

Eight experts, two per expert type, covering the marketplace tools.
"""

from __future__ import annotations

from skill_router.routing.models import (
    ExpertCapabilities,
    ExpertDefinition,
    ExpertType,
    ToolType,
    WeightProfile,
)
from skill_router.routing.weights import validate_weight_profile


def _expert(
    expert_id: str,
    expert_type: ExpertType,
    name: str,
    description: str,
    tools: tuple[ToolType, ...],
    max_concurrency: int,
    avg_latency_ms: float,
    accuracy_score: float,
    weights: tuple[float, float, float, float],
    priority: int,
) -> ExpertDefinition:
    accuracy, latency, reliability, efficiency = weights
    profile = validate_weight_profile(
        expert_id,
        WeightProfile(
            accuracy=accuracy, latency=latency, reliability=reliability, efficiency=efficiency
        ),
    )
    return ExpertDefinition(
        id=expert_id,
        name=name,
        type=expert_type,
        description=description,
        capabilities=ExpertCapabilities(
            supported_tools=frozenset(tools),
            max_concurrency=max_concurrency,
            avg_latency_ms=avg_latency_ms,
            accuracy_score=accuracy_score,
        ),
        weights=profile,
        priority=priority,
    )


DEFAULT_EXPERTS: tuple[ExpertDefinition, ...] = (
    # Accuracy
    _expert(
        "accuracy-semantic",
        ExpertType.ACCURACY,
        "Semantic Search Expert",
        "Optimizes semantic similarity matching for search and recommend",
        (ToolType.SEARCH, ToolType.RECOMMEND, ToolType.COMPARE),
        max_concurrency=50,
        avg_latency_ms=150,
        accuracy_score=0.95,
        weights=(0.9, 0.05, 0.03, 0.02),
        priority=100,
    ),
    _expert(
        "accuracy-validation",
        ExpertType.ACCURACY,
        "Validation Expert",
        "Thorough validation with complete error reporting",
        (ToolType.VALIDATE, ToolType.ANALYZE),
        max_concurrency=30,
        avg_latency_ms=200,
        accuracy_score=0.98,
        weights=(0.85, 0.05, 0.08, 0.02),
        priority=90,
    ),
    # Latency
    _expert(
        "latency-cache",
        ExpertType.LATENCY,
        "Cache-First Expert",
        "Serves from cache with fallback to computation",
        (ToolType.SEARCH, ToolType.GET_SKILL, ToolType.RECOMMEND),
        max_concurrency=200,
        avg_latency_ms=15,
        accuracy_score=0.85,
        weights=(0.2, 0.7, 0.05, 0.05),
        priority=80,
    ),
    _expert(
        "latency-index",
        ExpertType.LATENCY,
        "Index Lookup Expert",
        "Direct index lookups for known entities",
        (ToolType.GET_SKILL, ToolType.SEARCH),
        max_concurrency=500,
        avg_latency_ms=5,
        accuracy_score=0.99,
        weights=(0.3, 0.6, 0.08, 0.02),
        priority=85,
    ),
    # Balanced
    _expert(
        "balanced-default",
        ExpertType.BALANCED,
        "Default Balanced Expert",
        "General-purpose balanced execution",
        tuple(ToolType),
        max_concurrency=100,
        avg_latency_ms=75,
        accuracy_score=0.9,
        weights=(0.4, 0.4, 0.15, 0.05),
        priority=50,
    ),
    _expert(
        "balanced-reliability",
        ExpertType.BALANCED,
        "Reliability Expert",
        "Prioritizes successful completion over speed",
        (ToolType.INSTALL, ToolType.UNINSTALL, ToolType.VALIDATE),
        max_concurrency=25,
        avg_latency_ms=120,
        accuracy_score=0.92,
        weights=(0.3, 0.2, 0.45, 0.05),
        priority=70,
    ),
    # Specialized
    _expert(
        "specialized-recommend",
        ExpertType.SPECIALIZED,
        "Recommendation Expert",
        "Personalized recommendations",
        (ToolType.RECOMMEND,),
        max_concurrency=40,
        avg_latency_ms=180,
        accuracy_score=0.93,
        weights=(0.65, 0.15, 0.1, 0.1),
        priority=95,
    ),
    _expert(
        "specialized-compare",
        ExpertType.SPECIALIZED,
        "Comparison Expert",
        "Deep feature comparison with scoring",
        (ToolType.COMPARE, ToolType.ANALYZE),
        max_concurrency=35,
        avg_latency_ms=160,
        accuracy_score=0.94,
        weights=(0.7, 0.1, 0.15, 0.05),
        priority=88,
    ),
)


__all__ = ["DEFAULT_EXPERTS"]
