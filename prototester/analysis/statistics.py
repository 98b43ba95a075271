"""Reduction of probe results into latency statistics."""

import math
import statistics
from typing import Iterable, List, Sequence

from ..models.result import ProbeResult, Statistics


DEFAULT_PERCENTILES = (50, 95, 99)


def calculate_statistics(results: Iterable[ProbeResult]) -> Statistics:
    """
    Reduce a sequence of probe results to Statistics.

    No successful probe is not an error: every duration stays at 0.0.
    Jitter is the mean absolute difference between consecutive entries of
    the *sorted* latency list, not of the arrival order.
    """
    results = list(results)
    latencies = sorted(r.latency for r in results if r.success)

    sent = len(results)
    received = len(latencies)
    stats = Statistics(
        sent=sent,
        received=received,
        lost=sent - received,
        success_rate=(received / sent * 100) if sent else 0.0,
    )

    if not latencies:
        return stats

    stats.latencies = latencies
    stats.min = latencies[0]
    stats.max = latencies[-1]
    stats.avg = statistics.mean(latencies)
    stats.stddev = statistics.pstdev(latencies, mu=stats.avg)
    stats.jitter = sorted_jitter(latencies)
    return stats


def sorted_jitter(sorted_latencies: Sequence[float]) -> float:
    """Mean absolute difference of consecutive entries; 0.0 below two samples."""
    if len(sorted_latencies) < 2:
        return 0.0
    diffs = [
        abs(sorted_latencies[i] - sorted_latencies[i - 1])
        for i in range(1, len(sorted_latencies))
    ]
    return sum(diffs) / len(diffs)


def percentile(p: float, sorted_latencies: Sequence[float]) -> float:
    """Nearest-rank percentile: index ceil(p/100 * n) - 1, clamped to the list."""
    n = len(sorted_latencies)
    if n == 0:
        return 0.0
    index = math.ceil(p / 100 * n) - 1
    index = min(max(index, 0), n - 1)
    return sorted_latencies[index]


def percentiles(stats: Statistics, points: Sequence[float] = DEFAULT_PERCENTILES) -> List[float]:
    """Several percentiles of a Statistics' latencies, in seconds."""
    return [percentile(p, stats.latencies) for p in points]


def assess_quality(avg_ms: float) -> str:
    """Classify an average latency."""
    if avg_ms <= 50:
        return "excellent"
    elif avg_ms <= 100:
        return "good"
    elif avg_ms <= 150:
        return "acceptable"
    elif avg_ms <= 400:
        return "poor"
    return "critical"
