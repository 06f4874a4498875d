"""
Formats a single metric into the Statful line protocol.

    metric[,tag1=value][,tag2=value] value[,user] unix_timestamp [agg1][,agg2][,frequency]
"""
from typing import Iterable, Optional

from .aggregations import aggregations_to_string
from .tags import Tags


def metric_to_string(
    name: str,
    value: float,
    tags: Optional[Tags],
    timestamp: int,
    aggregations: Optional[Iterable[str]] = None,
    frequency: int = 0,
    user: Optional[str] = None
) -> str:
    """
    Build the wire line for one metric.

    No validation is done on the name or tags; whatever is passed ends up
    on the wire.

    Args:
        name (str): Metric name
        value (float): Metric value, rendered with six decimals
        tags (dict, optional): Tags, rendered in dict order
        timestamp (int): Unix timestamp in seconds
        aggregations (iterable, optional): Aggregations to request
        frequency (int): Aggregation frequency, only written with aggregations
        user (str, optional): User attached to the value

    Returns:
        str: The formatted line
    """
    parts = [name]
    for key, tag_value in (tags or {}).items():
        parts.append(f",{key}={tag_value}")

    parts.append(" %f" % float(value))
    if user:
        parts.append(f",{user}")
    parts.append(f" {int(timestamp)}")

    rendered_aggregations = aggregations_to_string(aggregations)
    if rendered_aggregations:
        parts.append(f" {rendered_aggregations},{frequency}")

    return ''.join(parts)
