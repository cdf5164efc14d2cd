"""Routing metrics collection.

Counts requests per tool and per expert, cache hits and misses, decision
and execution latency, execution errors and fallbacks. Counters live for
the collector's lifetime and are cleared only by ``reset()``.

Latency distributions are recorded as OpenTelemetry histograms on a meter
provider owned by the collector, and read back through an in-memory reader
when a snapshot is taken.
"""

from __future__ import annotations

from collections import Counter

from opentelemetry.sdk.metrics import Histogram, MeterProvider
from opentelemetry.sdk.metrics.export import HistogramDataPoint, InMemoryMetricReader
from opentelemetry.sdk.metrics.view import ExplicitBucketHistogramAggregation, View

from skill_router.routing.models import (
    CacheStats,
    ErrorStats,
    HistogramBuckets,
    RouterMetrics,
    SpeedImprovement,
)

# Cost of a naive routing decision, in milliseconds
DEFAULT_BASELINE_DECISION_MS = 100.0

# Upper bucket bounds in milliseconds; one overflow bucket follows
LATENCY_BUCKETS_MS: tuple[float, ...] = (1, 5, 10, 25, 50, 100, 250, 500, 1000)

ROUTING_LATENCY_METRIC = "skill_router.routing.duration"
EXECUTION_LATENCY_METRIC = "skill_router.execution.duration"

# Floor for the observed average, keeps the improvement ratio finite
_MIN_OBSERVED_MS = 0.001


class _LatencyHistograms:
    """Routing and execution latency histograms on a private meter provider."""

    def __init__(self) -> None:
        self._reader = InMemoryMetricReader()
        self._provider = MeterProvider(
            metric_readers=[self._reader],
            views=[
                View(
                    instrument_type=Histogram,
                    aggregation=ExplicitBucketHistogramAggregation(boundaries=LATENCY_BUCKETS_MS),
                )
            ],
            shutdown_on_exit=False,
        )
        meter = self._provider.get_meter("skill_router.routing")
        self.routing = meter.create_histogram(
            name=ROUTING_LATENCY_METRIC,
            description="Routing decision duration in milliseconds",
            unit="ms",
        )
        self.execution = meter.create_histogram(
            name=EXECUTION_LATENCY_METRIC,
            description="Expert execution duration in milliseconds",
            unit="ms",
        )

    def snapshot(self) -> dict[str, HistogramBuckets]:
        """Read cumulative bucket counts for both histograms."""
        counts = {
            ROUTING_LATENCY_METRIC: [0] * (len(LATENCY_BUCKETS_MS) + 1),
            EXECUTION_LATENCY_METRIC: [0] * (len(LATENCY_BUCKETS_MS) + 1),
        }
        data = self._reader.get_metrics_data()
        if data is not None:
            for resource_metrics in data.resource_metrics:
                for scope_metrics in resource_metrics.scope_metrics:
                    for metric in scope_metrics.metrics:
                        totals = counts.get(metric.name)
                        if totals is None:
                            continue
                        for point in metric.data.data_points:
                            if not isinstance(point, HistogramDataPoint):
                                continue
                            for i, count in enumerate(point.bucket_counts):
                                totals[i] += count
        return {
            name: HistogramBuckets(boundaries=LATENCY_BUCKETS_MS, counts=tuple(totals))
            for name, totals in counts.items()
        }

    def shutdown(self) -> None:
        self._provider.shutdown()


class MetricsCollector:
    """In-process routing metrics.

    All recording methods are no-ops when the collector is disabled.

    Example:
        >>> metrics = MetricsCollector()
        >>> metrics.record_request("search")
        >>> metrics.record_cache_result(hit=False)
        >>> metrics.record_decision_time(0.4)
        >>> metrics.get_snapshot().total_requests
        1
    """

    def __init__(
        self,
        *,
        baseline_ms: float = DEFAULT_BASELINE_DECISION_MS,
        enabled: bool = True,
    ) -> None:
        """Initialize the collector.

        Args:
            baseline_ms: Naive routing cost the improvement ratio compares against
            enabled: Whether recording is active
        """
        if baseline_ms <= 0:
            raise ValueError(f"baseline_ms must be > 0, got {baseline_ms}")
        self._baseline_ms = baseline_ms
        self._enabled = enabled
        self._histograms: _LatencyHistograms | None = None
        self.reset()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def reset(self) -> None:
        """Reset every counter to its initial state."""
        self._total_requests = 0
        self._requests_by_tool: Counter[str] = Counter()
        self._requests_by_expert: Counter[str] = Counter()
        self._cache_hits = 0
        self._cache_misses = 0
        self._fallbacks = 0
        self._decisions = 0
        self._total_decision_ms = 0.0
        self._executions = 0
        self._total_execution_ms = 0.0
        self._errors_by_type: Counter[str] = Counter()
        # Cumulative instruments cannot be zeroed, start a fresh provider
        if self._histograms is not None:
            self._histograms.shutdown()
        self._histograms = _LatencyHistograms()

    def record_request(self, tool: str) -> None:
        if not self._enabled:
            return
        self._total_requests += 1
        self._requests_by_tool[str(tool)] += 1

    def record_cache_result(self, hit: bool) -> None:
        if not self._enabled:
            return
        if hit:
            self._cache_hits += 1
        else:
            self._cache_misses += 1

    def record_decision_time(self, ms: float) -> None:
        if not self._enabled:
            return
        self._decisions += 1
        self._total_decision_ms += ms
        self._histograms.routing.record(ms)

    def record_expert(self, expert_id: str) -> None:
        if not self._enabled:
            return
        self._requests_by_expert[expert_id] += 1

    def record_fallback(self) -> None:
        if not self._enabled:
            return
        self._fallbacks += 1

    def record_execution(self, ms: float) -> None:
        if not self._enabled:
            return
        self._executions += 1
        self._total_execution_ms += ms
        self._histograms.execution.record(ms)

    def record_error(self, error_type: str) -> None:
        if not self._enabled:
            return
        self._errors_by_type[error_type] += 1

    def get_snapshot(self) -> RouterMetrics:
        """Return an immutable snapshot of the current counters."""
        lookups = self._cache_hits + self._cache_misses
        histograms = self._histograms.snapshot()
        avg_decision_ms = self._total_decision_ms / self._decisions if self._decisions else 0.0
        avg_execution_ms = (
            self._total_execution_ms / self._executions if self._executions else 0.0
        )

        speed_improvement = None
        if self._decisions:
            observed = max(avg_decision_ms, _MIN_OBSERVED_MS)
            speed_improvement = SpeedImprovement(
                baseline_ms=self._baseline_ms,
                current_ms=avg_decision_ms,
                improvement_ratio=self._baseline_ms / observed,
            )

        return RouterMetrics(
            total_requests=self._total_requests,
            requests_by_tool=dict(self._requests_by_tool),
            requests_by_expert=dict(self._requests_by_expert),
            fallbacks=self._fallbacks,
            cache=CacheStats(
                hits=self._cache_hits,
                misses=self._cache_misses,
                hit_rate=self._cache_hits / lookups if lookups else 0.0,
            ),
            avg_decision_time_ms=avg_decision_ms,
            avg_execution_time_ms=avg_execution_ms,
            routing_latency=histograms[ROUTING_LATENCY_METRIC],
            execution_latency=histograms[EXECUTION_LATENCY_METRIC],
            errors=ErrorStats(
                total=sum(self._errors_by_type.values()),
                by_type=dict(self._errors_by_type),
            ),
            speed_improvement=speed_improvement,
        )


__all__ = [
    "DEFAULT_BASELINE_DECISION_MS",
    "EXECUTION_LATENCY_METRIC",
    "LATENCY_BUCKETS_MS",
    "MetricsCollector",
    "ROUTING_LATENCY_METRIC",
]
