from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlState(Enum):
    DISCOVERED = "DISCOVERED"
    FETCHED = "FETCHED"
    ERROR = "ERROR"
    REDIRECTED = "REDIRECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not UrlState.DISCOVERED


class FetchStatus(Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    REDIRECT = "REDIRECT"


@dataclass(frozen=True)
class CrawlCandidate:
    """
    A discovered link plus its lineage.
    Invariant: next_depth == current_depth + 1 and must not exceed max_depth to be admitted.
    """
    url: str
    parent_url: Optional[str]
    current_depth: int
    max_depth: int

    @property
    def next_depth(self) -> int:
        return self.current_depth + 1


@dataclass(frozen=True)
class FrontierEntry:
    """
    Authoritative record for one URL within a crawl job.
    Invariants: url is the primary key; entries are replaced (never mutated or deleted).
    """
    url: str
    state: UrlState
    retry_count: int = 0
    last_transition_at: datetime = field(default_factory=utcnow)
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FetchOutcome:
    """Result reported by the fetch stage for one URL."""
    url: str
    status: FetchStatus
    content: bytes = b""
    final_url: Optional[str] = None
    redirect_to: Optional[str] = None
    http_status: Optional[int] = None
    content_type: str = ""
    fetch_time_ms: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class StatusEvent:
    """Terminal status notification for observability / index-building consumers."""
    url: str
    state: UrlState
    retry_count: int
    metadata: Dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
