"""
Research metrics.

Track per-source reliability, cache efficiency, and degraded results.
Each orchestrator owns one ResearchMetrics instance.
"""

import time
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "SourceStats",
    "ResearchMetrics",
    "format_metrics_report",
]

# ══════════════════════════════════════════════════════════════════════════════
# Metrics Classes
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class SourceStats:
    """Attempt statistics for one fallback-chain step."""

    attempts: int = 0
    successes: int = 0
    empty: int = 0
    failures: int = 0
    total_latency_ms: float = 0.0
    error_types: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return (self.successes / self.attempts) * 100

    @property
    def avg_latency_ms(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.total_latency_ms / self.attempts

    def record_success(self, latency_ms: float):
        self.attempts += 1
        self.successes += 1
        self.total_latency_ms += latency_ms

    def record_empty(self, latency_ms: float):
        self.attempts += 1
        self.empty += 1
        self.total_latency_ms += latency_ms

    def record_failure(self, error_type: str, latency_ms: float):
        self.attempts += 1
        self.failures += 1
        self.total_latency_ms += latency_ms
        self.error_types[error_type] = self.error_types.get(error_type, 0) + 1


@dataclass
class ResearchMetrics:
    """Track research pipeline health."""

    start_time: float = field(default_factory=time.time)
    research_times: list[float] = field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0
    degraded_results: int = 0
    probe_fallbacks: int = 0
    sources: dict[str, SourceStats] = field(default_factory=dict)

    def source(self, name: str) -> SourceStats:
        if name not in self.sources:
            self.sources[name] = SourceStats()
        return self.sources[name]

    def record_research(self, duration_seconds: float, degraded: bool = False):
        self.research_times.append(duration_seconds)
        if degraded:
            self.degraded_results += 1

    def record_cache_hit(self):
        self.cache_hits += 1

    def record_cache_miss(self):
        self.cache_misses += 1

    def record_probe_fallback(self):
        self.probe_fallbacks += 1

    @property
    def avg_research_time_ms(self) -> float:
        if not self.research_times:
            return 0.0
        return (sum(self.research_times) / len(self.research_times)) * 1000

    @property
    def cache_hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return (self.cache_hits / total) * 100

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def summary(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(self.uptime_seconds, 1),
            "total_research": len(self.research_times),
            "avg_research_time_ms": round(self.avg_research_time_ms, 0),
            "cache_hit_rate": round(self.cache_hit_rate, 1),
            "degraded_results": self.degraded_results,
            "probe_fallbacks": self.probe_fallbacks,
            "sources": {
                name: {
                    "attempts": stats.attempts,
                    "successes": stats.successes,
                    "failures": stats.failures,
                    "success_rate": round(stats.success_rate, 1),
                }
                for name, stats in sorted(self.sources.items())
            },
        }


def format_metrics_report(metrics: ResearchMetrics) -> str:
    """Generate human-readable metrics report."""
    lines = [
        "# Research Metrics",
        "",
        "## Pipeline",
        f"- Uptime: {metrics.uptime_seconds:.0f}s",
        f"- Total Research Calls: {len(metrics.research_times)}",
        f"- Avg Research Time: {metrics.avg_research_time_ms:.0f}ms",
        f"- Cache Hit Rate: {metrics.cache_hit_rate:.1f}%",
        f"- Degraded Results: {metrics.degraded_results}",
        f"- Probe Fallbacks: {metrics.probe_fallbacks}",
    ]

    if metrics.sources:
        lines.append("")
        lines.append("## Sources")
        for name, stats in sorted(metrics.sources.items()):
            lines.append(
                f"- {name}: {stats.successes}/{stats.attempts} ok, "
                f"{stats.empty} empty, {stats.failures} failed, "
                f"avg {stats.avg_latency_ms:.0f}ms"
            )

    errors: dict[str, int] = {}
    for stats in metrics.sources.values():
        for err, count in stats.error_types.items():
            errors[err] = errors.get(err, 0) + count
    if errors:
        lines.append("")
        lines.append("## Errors")
        for err, count in sorted(errors.items(), key=lambda x: -x[1]):
            lines.append(f"- {err}: {count}")

    return "\n".join(lines)
