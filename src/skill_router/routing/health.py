"""Expert registry and health tracking.

The registry holds the immutable expert catalog alongside one mutable
health record per expert. Health changes come from three places:

1. Operators or supervisors calling ``update_health``
2. Execution outcomes reported through ``record_outcome``: after
   ``failure_threshold`` consecutive failures an expert is tripped to
   UNHEALTHY, readmitted as DEGRADED once ``recovery_timeout_s`` has passed,
   and restored to HEALTHY by its next success
3. The optional load sweep (``run_health_sweep``)

Unknown expert ids are ignored: ``get_expert`` returns None and
``update_health`` returns False without touching any record.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from skill_router.routing.errors import ExpertCatalogError
from skill_router.routing.models import ExpertDefinition, ExpertStatus, HealthState

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger(__name__)

# Rolling success rate: new = old * decay + outcome * (1 - decay)
SUCCESS_RATE_DECAY = 0.99

# Load thresholds used by the health sweep
DEGRADED_LOAD = 0.9
UNHEALTHY_LOAD = 0.95


def clamp_load(load: float) -> float:
    return min(1.0, max(0.0, float(load)))


@dataclass
class _HealthRecord:
    state: HealthState = HealthState.HEALTHY
    load: float = 0.0
    success_rate: float = 1.0
    consecutive_failures: int = 0
    last_failure_at: float | None = None
    last_health_check: datetime = field(default_factory=datetime.now)
    tripped: bool = False  # Demoted by consecutive failures
    recovering: bool = False  # Readmitted after a trip, awaiting a success
    swept: bool = False  # Demoted by the load sweep


class ExpertRegistry:
    """Expert catalog with live health state.

    Example:
        >>> registry = ExpertRegistry(DEFAULT_EXPERTS)
        >>> registry.update_health("latency-cache", HealthState.DEGRADED, 0.8)
        True
        >>> registry.get_expert_status("latency-cache").load
        0.8
    """

    def __init__(
        self,
        experts: Iterable[ExpertDefinition],
        *,
        failure_threshold: int = 5,
        recovery_timeout_s: float = 30.0,
    ) -> None:
        """Initialize the registry.

        Args:
            experts: Expert definitions to register
            failure_threshold: Consecutive failures before an expert is tripped
            recovery_timeout_s: Seconds before a tripped expert is readmitted

        Raises:
            ExpertCatalogError: If two experts share an id
        """
        self._experts: dict[str, ExpertDefinition] = {}
        self._health: dict[str, _HealthRecord] = {}
        self._failure_threshold = failure_threshold
        self._recovery_timeout_s = recovery_timeout_s

        for expert in experts:
            if expert.id in self._experts:
                raise ExpertCatalogError(f"Duplicate expert id: {expert.id}")
            self._experts[expert.id] = expert
            self._health[expert.id] = _HealthRecord()

        # tool -> experts declaring support for it, in registration order
        self._by_tool: dict[str, tuple[ExpertDefinition, ...]] = {}
        for expert in self._experts.values():
            for tool in expert.capabilities.supported_tools:
                self._by_tool[tool] = (*self._by_tool.get(tool, ()), expert)

    def __len__(self) -> int:
        return len(self._experts)

    def __contains__(self, expert_id: object) -> bool:
        return expert_id in self._experts

    def get_expert(self, expert_id: str) -> ExpertDefinition | None:
        return self._experts.get(expert_id)

    def list_experts(self) -> list[ExpertDefinition]:
        return list(self._experts.values())

    def experts_for(self, tool: str) -> tuple[ExpertDefinition, ...]:
        """Experts whose supported tools include ``tool``."""
        return self._by_tool.get(tool, ())

    def update_health(
        self,
        expert_id: str,
        state: HealthState | str,
        load: float | None = None,
    ) -> bool:
        """Set an expert's health state and, optionally, its load.

        Load is clamped to [0, 1]. An explicit update overrides any state
        derived from failures. Reporting the current state again only
        refreshes the load, so a sweep demotion can still be lifted.

        Args:
            expert_id: Expert to update
            state: New health state
            load: New load fraction, or None to keep the current load

        Returns:
            True if the expert exists and was updated, False otherwise

        Raises:
            ValueError: If ``state`` is not a ``HealthState`` value
        """
        record = self._health.get(expert_id)
        if record is None:
            logger.warning("health_update_unknown_expert", expert_id=expert_id)
            return False

        new_state = HealthState(state)
        previous = record.state
        record.state = new_state
        if load is not None:
            record.load = clamp_load(load)
        record.tripped = False
        record.recovering = False
        record.last_health_check = datetime.now()

        if previous != new_state:
            record.swept = False
            logger.info(
                "expert_health_changed",
                expert_id=expert_id,
                previous=previous.value,
                state=new_state.value,
                load=record.load,
            )
        return True

    def record_outcome(self, expert_id: str, success: bool) -> None:
        """Feed one execution outcome back into an expert's health.

        Args:
            expert_id: Expert that handled the execution
            success: Whether the execution succeeded
        """
        record = self._health.get(expert_id)
        if record is None:
            return

        outcome = 1.0 if success else 0.0
        record.success_rate = record.success_rate * SUCCESS_RATE_DECAY + outcome * (
            1.0 - SUCCESS_RATE_DECAY
        )

        if success:
            record.consecutive_failures = 0
            if record.recovering:
                record.state = HealthState.HEALTHY
                record.recovering = False
                logger.info("expert_recovered", expert_id=expert_id)
            return

        record.consecutive_failures += 1
        record.last_failure_at = time.monotonic()

        if record.recovering:
            # Failed while readmitted, trip again
            self._trip(expert_id, record)
        elif (
            record.consecutive_failures >= self._failure_threshold
            and record.state != HealthState.UNHEALTHY
        ):
            self._trip(expert_id, record)

    def _trip(self, expert_id: str, record: _HealthRecord) -> None:
        record.state = HealthState.UNHEALTHY
        record.tripped = True
        record.recovering = False
        record.last_health_check = datetime.now()
        logger.warning(
            "expert_tripped",
            expert_id=expert_id,
            consecutive_failures=record.consecutive_failures,
        )

    def _refresh(self, expert_id: str, record: _HealthRecord) -> None:
        """Readmit a tripped expert once its recovery timeout has elapsed."""
        if not record.tripped or record.last_failure_at is None:
            return
        if time.monotonic() - record.last_failure_at < self._recovery_timeout_s:
            return
        record.state = HealthState.DEGRADED
        record.tripped = False
        record.recovering = True
        record.consecutive_failures = 0
        record.last_health_check = datetime.now()
        logger.info("expert_readmitted", expert_id=expert_id)

    def run_health_sweep(self) -> list[str]:
        """Derive health from load for every expert.

        Experts at or above UNHEALTHY_LOAD become unhealthy, those above
        DEGRADED_LOAD become degraded. Experts demoted by an earlier sweep
        are restored once their load drops. States set explicitly or by
        failures are left alone unless load forces a demotion.

        Returns:
            Ids of experts whose state changed
        """
        changed: list[str] = []
        for expert_id, record in self._health.items():
            if record.tripped:
                continue
            if record.load >= UNHEALTHY_LOAD:
                target = HealthState.UNHEALTHY
            elif record.load > DEGRADED_LOAD:
                target = HealthState.DEGRADED
            elif record.swept:
                target = HealthState.HEALTHY
            else:
                continue

            record.last_health_check = datetime.now()
            record.swept = target != HealthState.HEALTHY
            if record.state != target:
                logger.info(
                    "expert_health_swept",
                    expert_id=expert_id,
                    previous=record.state.value,
                    state=target.value,
                    load=record.load,
                )
                record.state = target
                changed.append(expert_id)
        return changed

    def get_expert_status(self, expert_id: str) -> ExpertStatus | None:
        record = self._health.get(expert_id)
        if record is None:
            return None
        self._refresh(expert_id, record)
        return ExpertStatus(
            id=expert_id,
            state=record.state,
            load=record.load,
            success_rate=record.success_rate,
            consecutive_failures=record.consecutive_failures,
            last_health_check=record.last_health_check,
        )

    def get_status(self) -> list[ExpertStatus]:
        """Return a health snapshot of every expert, in registration order."""
        return [
            status
            for expert_id in self._experts
            if (status := self.get_expert_status(expert_id)) is not None
        ]

    def snapshot(self) -> dict[str, ExpertStatus]:
        """Return a consistent id -> status view for one scoring pass."""
        return {status.id: status for status in self.get_status()}


__all__ = [
    "DEGRADED_LOAD",
    "SUCCESS_RATE_DECAY",
    "UNHEALTHY_LOAD",
    "ExpertRegistry",
    "clamp_load",
]
