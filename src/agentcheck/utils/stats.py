"""Latency statistics for a run"""

import math
from collections.abc import Sequence
from dataclasses import dataclass


def percentile(values: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile: ``sorted[floor(pct / 100 * n)]`` clamped to the last index"""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.floor(pct / 100.0 * len(ordered))
    return float(ordered[min(index, len(ordered) - 1)])


@dataclass
class LatencySummary:
    average_ms: float = 0.0
    median_ms: float = 0.0
    p95_ms: float = 0.0


def summarize_latencies(latencies: Sequence[float]) -> LatencySummary:
    if not latencies:
        return LatencySummary()
    return LatencySummary(
        average_ms=sum(latencies) / len(latencies),
        median_ms=percentile(latencies, 50),
        p95_ms=percentile(latencies, 95),
    )
