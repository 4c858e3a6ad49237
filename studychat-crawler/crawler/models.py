from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional
import uuid

def _now() -> datetime:
    return datetime.now(timezone.utc)

class JobStatus(Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

@dataclass
class CrawlJob:
    """
    One crawl run. Owns its own frontier; nothing is shared between jobs.
    Mutable: status, timestamps and counters are updated by the JobManager.
    """
    id: str
    seed_urls: List[str]
    max_depth: int
    output_directory: Path
    allowed_domains: List[str] = field(default_factory=list)
    max_retries: int = 3
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    crawled_urls_count: int = 0
    error: Optional[str] = None

    @classmethod
    def create(cls, seed_urls, max_depth, output_directory, allowed_domains=None, max_retries=3):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if not seed_urls:
            raise ValueError("at least one seed URL is required")
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        return cls(
            id=str(uuid.uuid4()),
            seed_urls=list(seed_urls),
            max_depth=max_depth,
            output_directory=Path(output_directory),
            allowed_domains=list(allowed_domains or []),
            max_retries=max_retries,
        )

@dataclass(frozen=True)
class PageRecord:
    """
    Structured content record for one fetched page.
    Handed to the output sink; the raw body is not kept.
    """
    url: str
    domain: str
    title: str
    text: str
    depth: int
    parent_url: Optional[str] = None
    links_found: int = 0
    crawl_timestamp: str = field(default_factory=lambda: _now().isoformat())

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "title": self.title,
            "content": self.text,
            "depth": self.depth,
            "parent_url": self.parent_url,
            "links_found": self.links_found,
            "crawl_timestamp": self.crawl_timestamp,
        }
