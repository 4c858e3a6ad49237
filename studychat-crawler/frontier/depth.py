"""
Depth control for discovered links.
A link found on a page at depth d is admitted at depth d + 1, never beyond the job's max depth.
This is separate from the policy's path-segment heuristic.
"""

from typing import Dict, Mapping, Optional

from frontier.metadata import (
    CURRENT_DEPTH_KEY,
    DEPTH_KEY,
    MAX_DEPTH_KEY,
    NEXT_DEPTH_KEY,
    PARENT_URL_KEY,
    copy_metadata_with_values,
)
from frontier.models import CrawlCandidate


class DepthLimitExceeded(ValueError):
    def __init__(self, next_depth: int, max_depth: int):
        super().__init__(f"depth {next_depth} exceeds max depth {max_depth}")
        self.next_depth = next_depth
        self.max_depth = max_depth


def next_depth(current_depth: int, max_depth: int) -> int:
    """current_depth + 1, or DepthLimitExceeded if that is beyond max_depth."""
    if current_depth < 0:
        raise ValueError(f"current depth must be >= 0, got {current_depth}")
    depth = current_depth + 1
    if depth > max_depth:
        raise DepthLimitExceeded(depth, max_depth)
    return depth


class DepthController:
    """
    FLOW: Receives a candidate -> Computes its next depth -> Rejects it past max_depth ->
    Returns lineage metadata for the accepted candidate.
    """

    def __init__(self, max_depth: int):
        if max_depth < 0:
            raise ValueError(f"max depth must be >= 0, got {max_depth}")
        self.max_depth = max_depth

    def candidate(self, url: str, parent_url: Optional[str], current_depth: int) -> CrawlCandidate:
        return CrawlCandidate(url=url, parent_url=parent_url,
                              current_depth=current_depth, max_depth=self.max_depth)

    def annotate(self, candidate: CrawlCandidate,
                 base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Lineage metadata for an admissible candidate; raises DepthLimitExceeded otherwise."""
        depth = next_depth(candidate.current_depth, candidate.max_depth)
        return copy_metadata_with_values(
            base,
            **{
                DEPTH_KEY: depth,
                PARENT_URL_KEY: candidate.parent_url,
                CURRENT_DEPTH_KEY: candidate.current_depth,
                NEXT_DEPTH_KEY: depth,
                MAX_DEPTH_KEY: candidate.max_depth,
            }
        )
