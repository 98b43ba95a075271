"""Statistics and comparison analysis."""

from .statistics import calculate_statistics, percentile, percentiles, assess_quality, DEFAULT_PERCENTILES
from .comparator import (
    FamilyComparator,
    protocol_score,
    decide_winner,
    percent_better,
    comparison_kind,
    COMPARISON_PROTOCOLS,
)

__all__ = [
    "calculate_statistics",
    "percentile",
    "percentiles",
    "assess_quality",
    "DEFAULT_PERCENTILES",
    "FamilyComparator",
    "protocol_score",
    "decide_winner",
    "percent_better",
    "comparison_kind",
    "COMPARISON_PROTOCOLS",
]
