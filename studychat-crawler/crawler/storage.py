"""
JSON output sink for crawl results.

Layout under the output directory:
  domains/<host>/<sha256(url)[:16]>.json   one content record per fetched page
  crawl_index.json                        {"crawled_urls": [{url, domain, depth, status, crawl_timestamp}]}
"""

import hashlib
import json
import os
from pathlib import Path
from threading import Lock
from typing import Iterable, List

from crawler.core import INDEX_FILE_NAME, logger
from crawler.models import PageRecord
from crawler.url_utils import host_of
from frontier.metadata import get_depth
from frontier.models import StatusEvent

def record_file_name(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16] + ".json"

def _write_json(path: Path, payload) -> None:
    # Write to a temp file first so readers never see a half-written index
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)

class CrawlIndexWriter:
    """
    Thread-safe sink. Workers call write_record() concurrently;
    the job calls write_index() once with the frontier's terminal status events.
    """

    def __init__(self, output_dir):
        self.output_dir = Path(output_dir)
        self.lock = Lock()
        self.records_written = 0

    def write_record(self, record: PageRecord) -> Path:
        domain_dir = self.output_dir / "domains" / (record.domain or "unknown")
        path = domain_dir / record_file_name(record.url)
        with self.lock:
            domain_dir.mkdir(parents=True, exist_ok=True)
            _write_json(path, record.to_dict())
            self.records_written += 1
        logger.debug(f"[SINK] wrote {record.url} -> {path}")
        return path

    def write_index(self, events: Iterable[StatusEvent]) -> Path:
        """Merge terminal status events into crawl_index.json (one row per URL, latest wins)."""
        with self.lock:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            rows = {row["url"]: row for row in read_crawl_index(self.output_dir)}
            for event in events:
                rows[event.url] = {
                    "url": event.url,
                    "domain": host_of(event.url),
                    "depth": get_depth(event.metadata),
                    "status": event.state.value,
                    "retry_count": event.retry_count,
                    "crawl_timestamp": event.timestamp.isoformat(),
                }
            path = self.output_dir / INDEX_FILE_NAME
            _write_json(path, {"crawled_urls": list(rows.values())})
        logger.info(f"[SINK] crawl index updated: {len(rows)} URLs -> {path}")
        return path

def read_crawl_index(output_dir) -> List[dict]:
    """Rows of crawl_index.json, [] when the file does not exist."""
    path = Path(output_dir) / INDEX_FILE_NAME
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    rows = data.get("crawled_urls") or []
    return [row for row in rows if isinstance(row, dict) and row.get("url")]
