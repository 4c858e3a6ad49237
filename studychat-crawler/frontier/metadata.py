"""
Lineage metadata helpers shared by the depth controller and the status tracker.
Metadata is a flat str -> str mapping; helpers never mutate their input.
"""

from typing import Dict, Mapping, Optional

# Metadata keys
DEPTH_KEY = "depth"
PARENT_URL_KEY = "parent_url"
CURRENT_DEPTH_KEY = "current_depth"
NEXT_DEPTH_KEY = "next_depth"
MAX_DEPTH_KEY = "max_depth"
REDIRECT_SOURCE_KEY = "redirect_source"
RETRY_COUNT_KEY = "retry_count"


def copy_metadata(source: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return dict(source) if source else {}


def copy_metadata_with_values(source: Optional[Mapping[str, str]], **values) -> Dict[str, str]:
    """Copy of `source` with `values` set (stringified); None values are skipped."""
    copy = copy_metadata(source)
    for key, value in values.items():
        if value is not None:
            copy[key] = str(value)
    return copy


def _int_value(metadata: Optional[Mapping[str, str]], key: str) -> Optional[int]:
    if not metadata:
        return None
    raw = metadata.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def get_depth(metadata: Optional[Mapping[str, str]]) -> int:
    """Depth of the page described by `metadata`; 0 (seed) when missing or invalid."""
    depth = _int_value(metadata, DEPTH_KEY)
    if depth is None:
        depth = _int_value(metadata, CURRENT_DEPTH_KEY)
    return depth if depth is not None and depth >= 0 else 0


def get_max_depth(metadata: Optional[Mapping[str, str]], default: int) -> int:
    max_depth = _int_value(metadata, MAX_DEPTH_KEY)
    return max_depth if max_depth is not None else default
