"""Expert router implementation.

This module provides the ExpertRouter class that assigns every tool request
to one expert, and optionally runs and times the expert's work.

Routing a request:
1. Serve a cached decision for the same tool and arguments (skipped for
   high-priority requests, and dropped if its expert is now unhealthy)
2. Score the eligible experts against the tool's weight profile
3. Fall back to ``direct-fallback`` when no expert is eligible
4. Cache the decision and record metrics
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import time
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field

from skill_router.routing.cache import DecisionCache, make_cache_key
from skill_router.routing.errors import RouterNotInitializedError
from skill_router.routing.experts import DEFAULT_EXPERTS
from skill_router.routing.health import ExpertRegistry
from skill_router.routing.metrics import DEFAULT_BASELINE_DECISION_MS, MetricsCollector
from skill_router.routing.models import (
    FALLBACK_EXPERT_ID,
    ExpertDefinition,
    ExpertHealthSummary,
    ExpertStatus,
    HealthState,
    ResponseError,
    ResponseMeta,
    RouterMetrics,
    RoutingDecision,
    RoutingScores,
    ToolRequest,
    ToolResponse,
)
from skill_router.routing.scoring import DEFAULT_MAX_ALTERNATIVES, ScoringEngine

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from skill_router.config import Settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

HIGH_CONFIDENCE_THRESHOLD = 0.8


class RouterState(StrEnum):
    """Lifecycle state of a router."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SHUT_DOWN = "shut_down"


class RouterConfig(BaseModel):
    """Per-instance router configuration."""

    model_config = ConfigDict(frozen=True)

    experts: tuple[ExpertDefinition, ...] = DEFAULT_EXPERTS
    enable_cache: bool = True
    cache_ttl_ms: int = Field(default=60000, gt=0)
    cache_max_size: int = Field(default=1000, ge=1)
    enable_metrics: bool = True
    baseline_decision_ms: float = Field(default=DEFAULT_BASELINE_DECISION_MS, gt=0.0)
    health_check_interval_ms: int = Field(default=0, ge=0)
    failure_threshold: int = Field(default=5, ge=1)
    recovery_timeout_s: float = Field(default=30.0, gt=0.0)
    fallback_on_execution_error: bool = False
    high_confidence_threshold: float = Field(default=HIGH_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    max_alternatives: int = Field(default=DEFAULT_MAX_ALTERNATIVES, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> RouterConfig:
        """Build a config from process settings.

        Args:
            settings: Settings to read (defaults to get_settings())
            **overrides: Field values taking precedence over the settings

        Returns:
            A new RouterConfig
        """
        if settings is None:
            from skill_router.config import get_settings

            settings = get_settings()

        values = {
            name: getattr(settings, name)
            for name in cls.model_fields
            if name != "experts" and hasattr(settings, name)
        }
        values.update(overrides)
        return cls(**values)


class ExpertRouter:
    """Routes tool requests to the best-scoring expert.

    Lifecycle: ``UNINITIALIZED -> INITIALIZED -> SHUT_DOWN``. Routing is only
    valid while initialized; the registry, metrics and health operations work
    in every state.

    Usage:
        router = ExpertRouter()
        await router.initialize()

        decision = await router.route(
            ToolRequest(request_id="req-1", tool="search", arguments={"query": "testing"})
        )

        response = await router.execute_with_routing(request, run_search)
        if not response.success:
            log_failure(response.error)
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        experts: Iterable[ExpertDefinition] | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            config: Router configuration (defaults to RouterConfig())
            experts: Expert catalog overriding ``config.experts``; pass an
                empty list to build a router that always falls back

        Raises:
            ExpertCatalogError: If two experts share an id
        """
        config = config or RouterConfig()
        if experts is not None:
            config = config.model_copy(update={"experts": tuple(experts)})
        self._config = config

        self._registry = ExpertRegistry(
            config.experts,
            failure_threshold=config.failure_threshold,
            recovery_timeout_s=config.recovery_timeout_s,
        )
        self._cache = DecisionCache(
            max_entries=config.cache_max_size,
            default_ttl_ms=config.cache_ttl_ms,
        )
        self._metrics = MetricsCollector(
            baseline_ms=config.baseline_decision_ms,
            enabled=config.enable_metrics,
        )
        self._engine: ScoringEngine | None = None
        self._state = RouterState.UNINITIALIZED
        self._health_task: asyncio.Task[None] | None = None

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def state(self) -> RouterState:
        return self._state

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """Prepare the router for routing. Calling it again is a no-op."""
        if self._state == RouterState.INITIALIZED:
            return

        self._engine = ScoringEngine(
            self._registry,
            max_alternatives=self._config.max_alternatives,
        )

        if self._config.health_check_interval_ms > 0:
            self._health_task = asyncio.create_task(self._health_sweep_loop())

        self._state = RouterState.INITIALIZED
        logger.info(
            "router_initialized",
            experts=len(self._registry),
            cache=self._config.enable_cache,
            health_check_interval_ms=self._config.health_check_interval_ms,
        )

    def is_initialized(self) -> bool:
        return self._state == RouterState.INITIALIZED

    async def shutdown(self) -> None:
        """Stop background work and drop cached decisions. Safe in any state."""
        if self._health_task is not None:
            self._health_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._health_task
            self._health_task = None

        await self._cache.clear()
        self._engine = None

        if self._state == RouterState.INITIALIZED:
            logger.info("router_shutdown")
        if self._state != RouterState.UNINITIALIZED:
            self._state = RouterState.SHUT_DOWN

    async def _health_sweep_loop(self) -> None:
        interval_s = self._config.health_check_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval_s)
            self._registry.run_health_sweep()

    def _ensure_initialized(self) -> ScoringEngine:
        if self._state != RouterState.INITIALIZED or self._engine is None:
            raise RouterNotInitializedError(type(self).__name__)
        return self._engine

    # ========================================================================
    # Routing
    # ========================================================================

    async def route(self, request: ToolRequest) -> RoutingDecision:
        """Route a request to the best expert.

        Args:
            request: The request to route

        Returns:
            The routing decision; ``expert_id`` is ``direct-fallback`` when no
            expert is eligible

        Raises:
            RouterNotInitializedError: If the router is not initialized
        """
        engine = self._ensure_initialized()
        start = time.perf_counter()
        self._metrics.record_request(request.tool)

        cache_key: str | None = None
        if self._config.enable_cache and not request.is_high_priority:
            cache_key = make_cache_key(request.tool, request.arguments)
            cached = await self._cache.get(cache_key)
            if cached is not None and not self._is_routable(cached.expert_id):
                # Expert went unhealthy after the decision was cached
                await self._cache.invalidate(cache_key)
                logger.debug(
                    "routing_cache_stale",
                    request_id=request.request_id,
                    expert_id=cached.expert_id,
                )
                cached = None
            self._metrics.record_cache_result(hit=cached is not None)
            if cached is not None:
                decision = cached.model_copy(
                    update={
                        "request_id": request.request_id,
                        "cache_hit": True,
                        "decided_at": datetime.now(),
                        "decision_time_ms": _elapsed_ms(start),
                    }
                )
                self._record_decision(decision)
                logger.debug(
                    "routing_cache_hit",
                    request_id=request.request_id,
                    tool=str(request.tool),
                    expert_id=decision.expert_id,
                )
                return decision

        result = engine.score(request)
        if result is None:
            decision = self._fallback_decision(request, start)
            self._metrics.record_fallback()
            self._record_decision(decision)
            logger.warning(
                "routing_fallback",
                request_id=request.request_id,
                tool=str(request.tool),
                reason=decision.reason,
            )
            return decision

        decision = RoutingDecision(
            request_id=request.request_id,
            expert_id=result.winner.expert.id,
            confidence=result.confidence,
            scores=result.winner.scores,
            alternatives=result.alternatives,
            reason=result.reason,
            decided_at=datetime.now(),
            decision_time_ms=_elapsed_ms(start),
        )

        if cache_key is not None:
            await self._cache.set(cache_key, decision, ttl_ms=self._config.cache_ttl_ms)

        self._record_decision(decision)
        logger.debug(
            "routing_decision",
            request_id=request.request_id,
            tool=str(request.tool),
            expert_id=decision.expert_id,
            confidence=round(decision.confidence, 3),
            total_score=round(decision.scores.total_score, 3),
            decision_time_ms=round(decision.decision_time_ms, 3),
        )
        return decision

    def _is_routable(self, expert_id: str) -> bool:
        status = self._registry.get_expert_status(expert_id)
        return status is not None and status.state != HealthState.UNHEALTHY

    def _record_decision(self, decision: RoutingDecision) -> None:
        self._metrics.record_decision_time(decision.decision_time_ms)
        self._metrics.record_expert(decision.expert_id)

    def _fallback_decision(self, request: ToolRequest, start: float) -> RoutingDecision:
        if self._engine is not None and self._engine.weights_for(request.tool) is None:
            detail = f"no weight profile for tool '{request.tool}'"
        else:
            detail = f"no eligible expert for {request.tool} request"
        return RoutingDecision(
            request_id=request.request_id,
            expert_id=FALLBACK_EXPERT_ID,
            confidence=0.0,
            scores=RoutingScores(),
            alternatives=(),
            reason=f"Fallback: {detail}, using direct execution",
            decided_at=datetime.now(),
            decision_time_ms=_elapsed_ms(start),
        )

    async def execute_with_routing(
        self,
        request: ToolRequest,
        execute_fn: Callable[[str], Awaitable[T] | T],
    ) -> ToolResponse[T]:
        """Route a request, run the chosen expert's work and time both phases.

        Failures of ``execute_fn`` never propagate; they are reported in the
        response and fed back into the expert's health.

        Args:
            request: The request to route and execute
            execute_fn: Receives the chosen expert id and performs the work;
                may be a coroutine function or a plain function

        Returns:
            Response carrying the data or the error, plus timing metadata

        Raises:
            RouterNotInitializedError: If the router is not initialized
        """
        routing_start = time.perf_counter()
        decision = await self.route(request)
        routing_ms = _elapsed_ms(routing_start)

        execution_start = time.perf_counter()
        try:
            data = await _call(execute_fn, decision.expert_id)
        except Exception as e:
            execution_ms = _elapsed_ms(execution_start)
            self._registry.record_outcome(decision.expert_id, success=False)
            self._metrics.record_execution(execution_ms)
            self._metrics.record_error(type(e).__name__)
            logger.warning(
                "execution_failed",
                request_id=request.request_id,
                expert_id=decision.expert_id,
                error_type=type(e).__name__,
                error=str(e),
            )

            if self._config.fallback_on_execution_error and not decision.used_fallback:
                retried = await self._retry_with_fallback(
                    request, execute_fn, routing_start, routing_ms
                )
                if retried is not None:
                    return retried

            return ToolResponse(
                request_id=request.request_id,
                success=False,
                error=ResponseError(
                    code=type(e).__name__,
                    message=str(e),
                    details={"expert_id": decision.expert_id},
                ),
                meta=ResponseMeta(
                    expert_id=decision.expert_id,
                    total_time_ms=routing_ms + execution_ms,
                    routing_time_ms=routing_ms,
                    execution_time_ms=execution_ms,
                    cache_hit=bool(decision.cache_hit),
                    used_fallback=decision.used_fallback,
                ),
            )

        execution_ms = _elapsed_ms(execution_start)
        self._registry.record_outcome(decision.expert_id, success=True)
        self._metrics.record_execution(execution_ms)

        return ToolResponse(
            request_id=request.request_id,
            success=True,
            data=data,
            meta=ResponseMeta(
                expert_id=decision.expert_id,
                total_time_ms=routing_ms + execution_ms,
                routing_time_ms=routing_ms,
                execution_time_ms=execution_ms,
                cache_hit=bool(decision.cache_hit),
                used_fallback=decision.used_fallback,
            ),
        )

    async def _retry_with_fallback(
        self,
        request: ToolRequest,
        execute_fn: Callable[[str], Awaitable[T] | T],
        routing_start: float,
        routing_ms: float,
    ) -> ToolResponse[T] | None:
        """Run ``execute_fn`` once more on the direct path; None if it fails too."""
        retry_start = time.perf_counter()
        try:
            data = await _call(execute_fn, FALLBACK_EXPERT_ID)
        except Exception as e:
            logger.warning(
                "fallback_execution_failed",
                request_id=request.request_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        retry_ms = _elapsed_ms(retry_start)
        self._metrics.record_fallback()
        self._metrics.record_execution(retry_ms)
        logger.info("fallback_execution_succeeded", request_id=request.request_id)
        return ToolResponse(
            request_id=request.request_id,
            success=True,
            data=data,
            meta=ResponseMeta(
                expert_id=FALLBACK_EXPERT_ID,
                total_time_ms=_elapsed_ms(routing_start),
                routing_time_ms=routing_ms,
                execution_time_ms=retry_ms,
                cache_hit=False,
                used_fallback=True,
            ),
        )

    def is_high_confidence(self, decision: RoutingDecision) -> bool:
        return is_high_confidence_decision(decision, self._config.high_confidence_threshold)

    async def clear_cache(self) -> int:
        """Drop every cached decision. Returns the number removed."""
        return await self._cache.clear()

    @property
    def cache_size(self) -> int:
        return self._cache.size

    # ========================================================================
    # Expert management
    # ========================================================================

    def get_expert_status(self) -> list[ExpertStatus]:
        return self._registry.get_status()

    def get_expert(self, expert_id: str) -> ExpertDefinition | None:
        return self._registry.get_expert(expert_id)

    def list_experts(self) -> list[ExpertDefinition]:
        return self._registry.list_experts()

    def update_expert_health(
        self,
        expert_id: str,
        state: HealthState | str,
        load: float | None = None,
    ) -> bool:
        """Update an expert's health. Unknown ids are a logged no-op returning False.

        Cached decisions naming an expert that is now unhealthy are dropped
        the next time they are looked up.

        Raises:
            ValueError: If ``state`` is not a ``HealthState`` value
        """
        return self._registry.update_health(expert_id, state, load)

    # ========================================================================
    # Metrics
    # ========================================================================

    def get_metrics(self) -> RouterMetrics:
        """Return routing metrics together with the current expert health."""
        snapshot = self._metrics.get_snapshot()
        expert_health = {
            status.id: ExpertHealthSummary(
                state=status.state,
                load=status.load,
                success_rate=status.success_rate,
            )
            for status in self._registry.get_status()
        }
        return snapshot.model_copy(update={"expert_health": expert_health})

    def reset_metrics(self) -> None:
        self._metrics.reset()
        self._cache.reset_stats()


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


async def _call(execute_fn: Callable[[str], Awaitable[T] | T], expert_id: str) -> T:
    result = execute_fn(expert_id)
    if inspect.isawaitable(result):
        return await result
    return result


async def create_router(
    config: RouterConfig | None = None,
    *,
    experts: Iterable[ExpertDefinition] | None = None,
) -> ExpertRouter:
    """Create and initialize an ExpertRouter."""
    router = ExpertRouter(config, experts=experts)
    await router.initialize()
    return router


def is_high_confidence_decision(
    decision: RoutingDecision,
    threshold: float = HIGH_CONFIDENCE_THRESHOLD,
) -> bool:
    """Check whether a decision's confidence reaches ``threshold``."""
    return decision.confidence >= threshold


def used_fallback(decision: RoutingDecision) -> bool:
    """Check whether a decision routed to the direct fallback path."""
    return decision.expert_id == FALLBACK_EXPERT_ID


__all__ = [
    "HIGH_CONFIDENCE_THRESHOLD",
    "ExpertRouter",
    "RouterConfig",
    "RouterState",
    "create_router",
    "is_high_confidence_decision",
    "used_fallback",
]
