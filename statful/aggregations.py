"""
Aggregation kinds and frequencies understood by the Statful API.
"""
from typing import FrozenSet, Iterable

AGG_AVG = 'avg'
AGG_SUM = 'sum'
AGG_COUNT = 'count'
AGG_FIRST = 'first'
AGG_LAST = 'last'
AGG_P90 = 'p90'
AGG_P95 = 'p95'
AGG_P99 = 'p99'
AGG_MIN = 'min'
AGG_MAX = 'max'

AGGREGATIONS = frozenset({
    AGG_AVG, AGG_SUM, AGG_COUNT, AGG_FIRST, AGG_LAST,
    AGG_P90, AGG_P95, AGG_P99, AGG_MIN, AGG_MAX,
})

# Frequencies in seconds
FREQ_10S = 10
FREQ_30S = 30
FREQ_60S = 60
FREQ_120S = 120
FREQ_180S = 180
FREQ_300S = 300

FREQUENCIES = (FREQ_10S, FREQ_30S, FREQ_60S, FREQ_120S, FREQ_180S, FREQ_300S)

# Defaults applied by the typed helpers
COUNTER_AGGREGATIONS = frozenset({AGG_COUNT, AGG_SUM})
GAUGE_AGGREGATIONS = frozenset({AGG_LAST})
TIMER_AGGREGATIONS = frozenset({AGG_AVG, AGG_COUNT, AGG_P90})


def merge_aggregations(*groups: Iterable[str]) -> FrozenSet[str]:
    """
    Union several aggregation collections into one set.

    Args:
        *groups: Any number of iterables of aggregation names (None is skipped)

    Returns:
        frozenset: The combined aggregations
    """
    merged = set()
    for group in groups:
        if group:
            merged.update(group)
    return frozenset(merged)


def aggregations_to_string(aggregations: Iterable[str]) -> str:
    """
    Render aggregations as a comma separated list.

    Names are sorted so the same set always renders the same way.
    """
    if not aggregations:
        return ''
    return ','.join(sorted(set(aggregations)))
