"""
Crawl job management.
Jobs are created QUEUED, executed on a small thread pool, and end COMPLETED or FAILED.
Each running job owns its own Frontier; stopping a job discards its state.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, List, Optional
import uuid

from crawler.core import CRAWL_DELAY, MAX_PARALLEL_JOBS, MAX_RETRIES, MIN_WORKERS, OUTPUT_DIR, logger
from crawler.engine import build_frontier, run_crawl
from crawler.models import CrawlJob, JobStatus
from crawler.storage import read_crawl_index
from frontier.orchestrator import Frontier


class JobStateError(RuntimeError):
    """Raised when a job is missing or not in the state an operation requires."""


class JobManager:
    """
    FLOW: create_job() registers a QUEUED job -> start_job() submits it to the executor ->
    the runner builds a fresh frontier and crawls -> status/timestamps/counters are updated on exit.
    """

    def __init__(self, output_dir=OUTPUT_DIR, max_parallel_jobs: int = MAX_PARALLEL_JOBS,
                 runner: Callable[..., dict] = run_crawl, workers_per_job: int = MIN_WORKERS,
                 crawl_delay: float = CRAWL_DELAY):
        self.output_dir = Path(output_dir)
        self.workers_per_job = workers_per_job
        self.crawl_delay = crawl_delay
        self._runner = runner
        self._executor = ThreadPoolExecutor(max_workers=max_parallel_jobs, thread_name_prefix="crawl-job")
        self._lock = Lock()
        self._jobs: Dict[str, CrawlJob] = {}
        self._frontiers: Dict[str, Frontier] = {}
        self._futures: Dict[str, Future] = {}

    def create_job(self, seed_urls, max_depth, output_dir=None, allowed_domains=None,
                   max_retries: int = MAX_RETRIES) -> CrawlJob:
        job = CrawlJob.create(seed_urls, max_depth, output_dir or self.output_dir,
                              allowed_domains=allowed_domains, max_retries=max_retries)
        with self._lock:
            self._jobs[job.id] = job
        logger.info(f"[JOBS] created job {job.id} seeds={job.seed_urls} max_depth={job.max_depth}")
        return job

    def start_job(self, job_id: str) -> Future:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.QUEUED:
                raise JobStateError(f"Job {job_id} not found or not queued")
            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            frontier = build_frontier(job)
            self._frontiers[job_id] = frontier
            future = self._executor.submit(self._execute, job, frontier)
            self._futures[job_id] = future
        return future

    def _execute(self, job: CrawlJob, frontier: Frontier) -> CrawlJob:
        try:
            stats = self._runner(job, frontier=frontier, workers=self.workers_per_job,
                                 crawl_delay=self.crawl_delay)
            self.update_job_stats(job.id, stats.get("fetched", 0))
            job.status = JobStatus.COMPLETED
            logger.info(f"[JOBS] job {job.id} completed: {job.crawled_urls_count} URLs fetched")
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"[JOBS] job {job.id} failed: {e}", exc_info=True)
        finally:
            job.completed_at = datetime.now(timezone.utc)
            with self._lock:
                self._frontiers.pop(job.id, None)
        return job

    def stop_job(self, job_id: str) -> bool:
        """Request cancellation of a running job. Returns False if it is not running."""
        with self._lock:
            frontier = self._frontiers.get(job_id)
        if frontier is None:
            return False
        frontier.stop()
        logger.info(f"[JOBS] stop requested for job {job_id}")
        return True

    def get_job(self, job_id: str) -> Optional[CrawlJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[CrawlJob]:
        with self._lock:
            return list(self._jobs.values())

    def completed_jobs(self) -> List[CrawlJob]:
        return [job for job in self.list_jobs() if job.status == JobStatus.COMPLETED]

    def update_job_stats(self, job_id: str, crawled_urls_count: int) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.crawled_urls_count = crawled_urls_count

    def load_existing_jobs(self) -> List[CrawlJob]:
        """
        Register one virtual COMPLETED job per domain found in an existing crawl_index.json,
        so earlier results are visible after a restart.
        """
        by_domain: Dict[str, List[dict]] = {}
        for row in read_crawl_index(self.output_dir):
            by_domain.setdefault(row.get("domain") or "unknown", []).append(row)

        loaded = []
        for domain, rows in by_domain.items():
            timestamp = _parse_timestamp(next((r.get("crawl_timestamp") for r in rows if r.get("crawl_timestamp")), None))
            job = CrawlJob(
                id=f"existing-{uuid.uuid4()}",
                seed_urls=[r["url"] for r in rows],
                max_depth=max((int(r.get("depth") or 0) for r in rows), default=0),
                output_directory=self.output_dir,
                allowed_domains=[domain],
                status=JobStatus.COMPLETED,
                created_at=timestamp,
                started_at=timestamp,
                completed_at=timestamp,
                crawled_urls_count=len(rows),
            )
            with self._lock:
                self._jobs[job.id] = job
            loaded.append(job)
            logger.info(f"[JOBS] created virtual job {job.id} for domain {domain} with {len(rows)} URLs")
        return loaded

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            frontiers = list(self._frontiers.values())
        if not wait:
            for frontier in frontiers:
                frontier.stop()
        self._executor.shutdown(wait=wait)


def _parse_timestamp(value) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.debug(f"[JOBS] unparseable crawl_timestamp {value!r}")
    return datetime.now(timezone.utc)
