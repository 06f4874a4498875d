"""
Helpers for metric tags.
"""
from typing import Dict, Optional

Tags = Dict[str, str]


def merge_tags(tags: Optional[Tags], global_tags: Optional[Tags]) -> Tags:
    """
    Merge caller tags with process-wide global tags.

    Caller tags win when both define the same key. The result keeps the
    caller's keys first, followed by any global keys not already present.

    Args:
        tags (dict, optional): Tags supplied with the metric
        global_tags (dict, optional): Tags configured on the client

    Returns:
        dict: A new dict, neither input is modified
    """
    merged = dict(tags or {})
    for key, value in (global_tags or {}).items():
        merged.setdefault(key, value)
    return merged


def tags_to_string(tags: Optional[Tags]) -> str:
    if not tags:
        return ''
    return ','.join(f"{key}={value}" for key, value in tags.items())


def parse_tags(value: Optional[str]) -> Tags:
    """
    Parse a "key=value,key2=value2" string into a tags dict.

    Entries without an '=' are ignored.

    Args:
        value (str, optional): The string to parse

    Returns:
        dict: Parsed tags
    """
    tags = {}
    if not value:
        return tags

    for part in value.split(','):
        if '=' in part:
            key, tag_value = part.split('=', 1)
            if key.strip():
                tags[key.strip()] = tag_value.strip()
    return tags
