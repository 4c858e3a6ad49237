"""
FILE DESCRIPTION: Orchestration module managing worker threads and the execution lifecycle of one crawl job.
KEY FUNCTIONS/CLASSES: CrawlerWorker, build_frontier, run_crawl
"""

import threading
import time
from typing import Optional

from crawler.core import CRAWL_DELAY, MAX_WORKERS, MIN_WORKERS, logger
from crawler.metrics import format_summary
from crawler.models import CrawlJob
from crawler.policy import PolicyConfig, URLPolicy, domains_from_seeds
from crawler.processor import ContentExtractor, LinkExtractor, PageFetcher
from crawler.storage import CrawlIndexWriter
from frontier.metadata import PARENT_URL_KEY
from frontier.models import FetchStatus
from frontier.orchestrator import Frontier


# === CRAWLER WORKER ===

class CrawlerWorker(threading.Thread):
    """
    FLOW: Main worker loop -> Takes the next admitted URL from the frontier -> Fetches it ->
    On success extracts links and submits them, persists the content record, reports success ->
    On failure/redirect reports the outcome so the frontier can retry or re-route.
    Exits when the frontier is exhausted or stopped.
    """

    def __init__(self, frontier: Frontier, fetcher: PageFetcher, name: str,
                 sink: Optional[CrawlIndexWriter] = None,
                 link_extractor: Optional[LinkExtractor] = None,
                 content_extractor: Optional[ContentExtractor] = None,
                 crawl_delay: float = CRAWL_DELAY):
        super().__init__(name=name, daemon=True)
        self.frontier = frontier
        self.fetcher = fetcher
        self.sink = sink
        self.link_extractor = link_extractor or LinkExtractor()
        self.content_extractor = content_extractor or ContentExtractor()
        self.crawl_delay = crawl_delay
        self.running = True
        self.fetched_count = 0
        self.failed_count = 0
        self.redirect_count = 0
        self.saved_count = 0

    def stop(self):
        self.running = False

    def log(self, level, msg):
        getattr(logger, level)(msg, extra={'context': self.name})

    def run(self):
        self.log("info", "started")
        while self.running:
            item = self.frontier.next_task(timeout=0.5)
            if item is None:
                if self.frontier.stopped or self.frontier.is_exhausted():
                    break
                continue

            url, metadata = item
            try:
                self.process(url, metadata)
            except Exception as e:
                # Every taken URL gets exactly one outcome report
                self.log("error", f"Unexpected error for {url}: {e}")
                self.frontier.report_failure(url, error=f"worker error: {e}")

            if self.crawl_delay and self.running:
                time.sleep(self.crawl_delay)

        self.log("info", f"finished (fetched={self.fetched_count}, failed={self.failed_count}, "
                         f"redirects={self.redirect_count}, saved={self.saved_count})")

    def process(self, url, metadata):
        outcome = self.fetcher.fetch(url, referer=metadata.get(PARENT_URL_KEY))

        if outcome.status == FetchStatus.REDIRECT:
            self.redirect_count += 1
            self.log("info", f"Redirect {url} -> {outcome.redirect_to}")
            self.frontier.report_redirect(url, outcome.redirect_to)
            return

        if outcome.status == FetchStatus.FAILURE:
            self.failed_count += 1
            self.log("error", f"Fetch failed for {url}: {outcome.error}")
            self.frontier.report_failure(url, error=outcome.error)
            return

        self.fetched_count += 1
        if PageFetcher.is_html(outcome.content_type):
            try:
                html = outcome.content.decode("utf-8", errors="ignore")
                links = self.link_extractor.extract(html, outcome.final_url or url)
                # Links go in before success is reported, so in_flight never hits 0 with children pending
                admitted = self.frontier.submit(url, metadata, links)
                self.log("info", f"Extracted {len(links)} URLs from {url}, admitted {len(admitted)}")
                if self.sink is not None:
                    record = self.content_extractor.extract_record(html, url, metadata, links_found=len(links))
                    self.sink.write_record(record)
                    self.saved_count += 1
            except Exception as e:
                self.failed_count += 1
                self.log("error", f"Process error for {url}: {e}")
                self.frontier.report_failure(url, error=f"process error: {e}")
                return
        else:
            self.log("info", f"Skipping link extraction for {url} (content type: {outcome.content_type or 'unknown'})")

        self.frontier.report_success(url)


# === JOB EXECUTION ===

def build_frontier(job: CrawlJob, policy_config: Optional[PolicyConfig] = None) -> Frontier:
    """Fresh, job-scoped frontier. Allowed domains default to the seeds' registrable domains."""
    if policy_config is None:
        allowed = job.allowed_domains or domains_from_seeds(job.seed_urls)
        policy_config = PolicyConfig(allowed_domains=frozenset(allowed))
    return Frontier(job.id, URLPolicy(policy_config), job.max_depth, max_retries=job.max_retries)


def run_crawl(job: CrawlJob, frontier: Optional[Frontier] = None, fetcher: Optional[PageFetcher] = None,
              workers: int = MIN_WORKERS, sink: Optional[CrawlIndexWriter] = None,
              crawl_delay: float = CRAWL_DELAY) -> dict:
    """
    FLOW: Builds the frontier -> Seeds it -> Starts workers -> Waits until the frontier is exhausted
    (or stopped) -> Writes the crawl index -> Returns frontier statistics.
    """
    if frontier is None:
        frontier = build_frontier(job)
    if fetcher is None:
        fetcher = PageFetcher()
    if sink is None:
        sink = CrawlIndexWriter(job.output_directory)
    workers = max(1, min(workers, MAX_WORKERS))

    start_time = time.time()
    seeded = frontier.seed(job.seed_urls)
    logger.info(f"[JOB {job.id[:8]}] seeded {len(seeded)} URLs, max_depth={job.max_depth}, "
                f"max_retries={frontier.max_retries}, workers={workers}")

    pool = [
        CrawlerWorker(frontier, fetcher, name=f"Worker-{i}", sink=sink, crawl_delay=crawl_delay)
        for i in range(workers)
    ]
    for worker in pool:
        worker.start()

    try:
        while any(worker.is_alive() for worker in pool):
            time.sleep(0.2)
    except KeyboardInterrupt:
        logger.warning(f"[JOB {job.id[:8]}] interrupted, stopping workers")
        frontier.stop()
        for worker in pool:
            worker.stop()
        for worker in pool:
            worker.join(timeout=5)

    duration = time.time() - start_time
    sink.write_index(frontier.drain_events())

    stats = frontier.get_stats()
    stats["records_written"] = sink.records_written
    stats["duration_sec"] = round(duration, 2)
    frontier.log_stats()
    logger.info("\n" + format_summary(stats, duration))
    return stats
