"""
FILE DESCRIPTION: Job-scoped crawl frontier. Admits discovered links and tracks every URL's lifecycle.
KEY FUNCTIONS/CLASSES: Frontier

Admission chain per discovered link: URLPolicy -> DepthController -> Deduplicator -> entry store.
Admitted URLs are emitted on an outbound channel for the fetch stage; fetch outcomes flow back
through report_success / report_failure / report_redirect.
"""

import dataclasses
from collections import defaultdict
from queue import Queue, Empty
from threading import Event, Lock
from typing import Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urljoin

from crawler.core import MAX_RETRIES, STATS_LOG_INTERVAL, logger
from crawler.policy import URLPolicy, ALLOW_REASONS, REJECT_REASONS
from crawler.url_utils import host_of, normalize_url
from frontier.dedup import Deduplicator
from frontier.depth import DepthController, DepthLimitExceeded
from frontier.metadata import (
    CURRENT_DEPTH_KEY,
    DEPTH_KEY,
    MAX_DEPTH_KEY,
    REDIRECT_SOURCE_KEY,
    RETRY_COUNT_KEY,
    copy_metadata_with_values,
    get_depth,
)
from frontier.models import FrontierEntry, StatusEvent, UrlState, utcnow
from frontier.storage import EntryStore, InMemoryEntryStore

COUNTER_KEYS = (
    "seeded", "discovered", "duplicate", "depth_exceeded",
    "fetched", "retried", "failed", "redirected", "ignored_reports",
) + ALLOW_REASONS + REJECT_REASONS


class Frontier:
    """
    FLOW: Filters candidates (policy, depth, dedup) -> Creates DISCOVERED entries -> Emits them to
    the outbound queue -> Applies fetch outcomes as CAS transitions -> Re-emits retries and redirect
    targets -> Publishes terminal status events.

    State machine per URL:
      DISCOVERED --success--> FETCHED
      DISCOVERED --failure--> DISCOVERED (retry_count < max_retries, re-emitted) | ERROR
      DISCOVERED --redirect--> REDIRECTED (target re-enters at the same depth)

    Every emitted URL counts as in flight until its outcome is reported. Callers report a page's
    outcome only after submitting its links, so in_flight == 0 means the crawl is exhausted.
    """

    def __init__(self, job_id: str, policy: URLPolicy, max_depth: int,
                 max_retries: int = MAX_RETRIES, store: Optional[EntryStore] = None,
                 dedup: Optional[Deduplicator] = None):
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        self.job_id = job_id
        self.max_retries = max_retries
        self._policy = policy
        self._depth = DepthController(max_depth)
        self._dedup = dedup or Deduplicator()
        self._store = store or InMemoryEntryStore(job_id)

        self._outbound = Queue()
        self._events = Queue()
        self._stopped = Event()

        self._stats_lock = Lock()
        self._stats = defaultdict(int, {k: 0 for k in COUNTER_KEYS})
        self._in_flight = 0

    @property
    def max_depth(self) -> int:
        return self._depth.max_depth

    def log(self, level, msg):
        getattr(logger, level)(msg, extra={'context': f"frontier:{self.job_id[:8]}"})

    # === ADMISSION ===

    def seed(self, urls: Iterable[str]) -> List[str]:
        """
        Admit seed URLs at depth 0. Seeds skip the policy filter (they are trusted job input)
        but must be absolute http(s) URLs and still pass the deduplicator.
        """
        admitted = []
        for url in urls:
            try:
                normalized = normalize_url(url) if url else ""
            except ValueError:
                normalized = ""
            if not normalized.startswith(("http://", "https://")) or not host_of(normalized):
                self._count("malformed")
                self.log("warning", f"Ignoring invalid seed URL: {url!r}")
                continue
            metadata = {DEPTH_KEY: "0", CURRENT_DEPTH_KEY: "0", MAX_DEPTH_KEY: str(self.max_depth)}
            if self._admit(normalized, metadata):
                self._count("seeded")
                admitted.append(normalized)
        return admitted

    def enqueue(self, url: str, parent_url: Optional[str], current_depth: int) -> str:
        """
        Run one candidate through the admission chain.
        Returns "enqueued", "duplicate", "depth_exceeded" or the policy rejection reason.
        """
        allowed, reason = self._policy.eval(url)
        self._count(reason)
        if not allowed:
            self.log("debug", f"Filtered URL ({reason}): {url}")
            return reason

        candidate = self._depth.candidate(normalize_url(url), parent_url, current_depth)
        try:
            metadata = self._depth.annotate(candidate)
        except DepthLimitExceeded as e:
            self._count("depth_exceeded")
            self.log("debug", f"URL filtered due to depth limit: {candidate.url} ({e})")
            return "depth_exceeded"

        if not self._admit(candidate.url, metadata):
            return "duplicate"
        return "enqueued"

    def submit(self, page_url: str, page_metadata: Optional[Mapping[str, str]],
               links: Iterable[str]) -> List[str]:
        """Admit the outbound links of one fetched page. Returns the newly admitted URLs."""
        current_depth = get_depth(page_metadata)
        admitted = []
        for link in links:
            if self._stopped.is_set():
                break
            if self.enqueue(link, page_url, current_depth) == "enqueued":
                admitted.append(normalize_url(link))
        self.log("debug", f"Admitted {len(admitted)} URLs from {page_url} at depth {current_depth}")
        return admitted

    def _admit(self, url: str, metadata: Mapping[str, str]) -> bool:
        if not self._dedup.try_admit(url):
            self._count("duplicate")
            self.log("debug", f"Duplicate URL discovered: {url}")
            return False

        entry = FrontierEntry(url=url, state=UrlState.DISCOVERED, metadata=dict(metadata))
        # INVARIANT: dedup admitted url exactly once, so the entry cannot exist yet.
        self._store.create_if_absent(entry)
        discovered = self._count("discovered")
        self.log("debug", f"New URL discovered: {url} (depth={metadata.get(DEPTH_KEY)})")
        self._emit(url, entry.metadata)

        if STATS_LOG_INTERVAL and discovered % STATS_LOG_INTERVAL == 0:
            self.log_stats()
        return True

    def _emit(self, url: str, metadata: Mapping[str, str]) -> None:
        with self._stats_lock:
            self._in_flight += 1
        self._outbound.put((url, dict(metadata)))

    def _settle(self) -> None:
        with self._stats_lock:
            self._in_flight -= 1

    # === OUTBOUND CHANNEL ===

    def next_task(self, timeout: float = 0.5) -> Optional[Tuple[str, dict]]:
        """Next (url, metadata) pair for the fetch stage, or None when nothing arrives in time."""
        if self._stopped.is_set():
            return None
        try:
            return self._outbound.get(timeout=timeout)
        except Empty:
            return None

    def drain_events(self) -> List[StatusEvent]:
        events = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except Empty:
                return events

    def _publish(self, entry: FrontierEntry) -> None:
        self._events.put(StatusEvent(url=entry.url, state=entry.state,
                                     retry_count=entry.retry_count, metadata=dict(entry.metadata)))

    # === FETCH OUTCOMES ===

    def _pending_entry(self, url: str, outcome: str) -> Optional[FrontierEntry]:
        entry = self._store.get(url)
        if entry is None or entry.state != UrlState.DISCOVERED:
            self._count("ignored_reports")
            state = entry.state.value if entry else "unknown"
            self.log("debug", f"Ignoring {outcome} report for {url} (state={state})")
            return None
        return entry

    def report_success(self, url: str) -> Optional[UrlState]:
        """DISCOVERED -> FETCHED."""
        url = normalize_url(url)
        entry = self._pending_entry(url, "success")
        if entry is None:
            return None
        fetched = dataclasses.replace(entry, state=UrlState.FETCHED, last_transition_at=utcnow())
        # INVARIANT: Transition only if still DISCOVERED. Prevents stale success reports.
        if not self._store.transition(url, UrlState.DISCOVERED, fetched):
            self._count("ignored_reports")
            return None
        self._count("fetched")
        self._settle()
        self._publish(fetched)
        self.log("debug", f"URL successfully fetched: {url}")
        return UrlState.FETCHED

    def report_failure(self, url: str, error: Optional[str] = None) -> Optional[UrlState]:
        """
        DISCOVERED -> DISCOVERED (retry) or DISCOVERED -> ERROR.
        A URL that always fails ends in ERROR with retry_count == max_retries.
        """
        url = normalize_url(url)
        entry = self._pending_entry(url, "failure")
        if entry is None:
            return None

        retry_count = entry.retry_count + 1
        metadata = copy_metadata_with_values(entry.metadata, **{RETRY_COUNT_KEY: retry_count})
        if retry_count < self.max_retries:
            retried = dataclasses.replace(entry, retry_count=retry_count, metadata=metadata,
                                          last_transition_at=utcnow())
            if not self._store.transition(url, UrlState.DISCOVERED, retried):
                self._count("ignored_reports")
                return None
            self._count("retried")
            self.log("info", f"Retrying URL (attempt {retry_count}/{self.max_retries}): {url} [{error}]")
            # Emit before settling so in_flight never drops to zero in between.
            self._emit(url, metadata)
            self._settle()
            return UrlState.DISCOVERED

        failed = dataclasses.replace(entry, state=UrlState.ERROR, retry_count=retry_count,
                                     metadata=metadata, last_transition_at=utcnow())
        if not self._store.transition(url, UrlState.DISCOVERED, failed):
            self._count("ignored_reports")
            return None
        self._count("failed")
        self._settle()
        self._publish(failed)
        self.log("warning", f"URL failed after {retry_count} attempts: {url} [{error}]")
        return UrlState.ERROR

    def report_redirect(self, url: str, target: str) -> Optional[UrlState]:
        """
        DISCOVERED -> REDIRECTED. The target is a new candidate at the SAME depth as `url`,
        filtered by policy and the deduplicator like any other link.
        """
        url = normalize_url(url)
        entry = self._pending_entry(url, "redirect")
        if entry is None:
            return None
        redirected = dataclasses.replace(entry, state=UrlState.REDIRECTED, last_transition_at=utcnow())
        if not self._store.transition(url, UrlState.DISCOVERED, redirected):
            self._count("ignored_reports")
            return None
        self._count("redirected")

        # INVARIANT: once the CAS succeeded the source settles, whatever the target looks like.
        try:
            if target:
                self._readmit_redirect(url, target, entry)
        finally:
            self._settle()
            self._publish(redirected)
        return UrlState.REDIRECTED

    def _readmit_redirect(self, url: str, target: str, source: FrontierEntry) -> bool:
        try:
            absolute = urljoin(url, target)
        except ValueError:
            self._count("malformed")
            self.log("debug", f"Dropping unparseable redirect target from {url}: {target!r}")
            return False

        # eval() screens unparseable hosts and ports, so normalize_url is safe on allowed targets
        allowed, reason = self._policy.eval(absolute)
        if allowed and normalize_url(absolute) == url:
            self.log("debug", f"Ignoring self-redirect of {url}")
            return False
        self._count(reason)
        if not allowed:
            self.log("debug", f"Filtered redirect target ({reason}): {absolute}")
            return False

        self.log("debug", f"Redirect from {url} to {absolute}")
        metadata = copy_metadata_with_values(source.metadata, **{REDIRECT_SOURCE_KEY: source.url})
        metadata.pop(RETRY_COUNT_KEY, None)
        return self._admit(normalize_url(absolute), metadata)

    # === LIFECYCLE & STATS ===

    def stop(self) -> None:
        """External cancellation; state is simply discarded with the job."""
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def is_exhausted(self) -> bool:
        with self._stats_lock:
            return self._in_flight == 0

    def get(self, url: str) -> Optional[FrontierEntry]:
        return self._store.get(normalize_url(url))

    def entries(self) -> List[FrontierEntry]:
        return self._store.entries()

    def _count(self, key: str, amount: int = 1) -> int:
        with self._stats_lock:
            self._stats[key] += amount
            return self._stats[key]

    def get_stats(self) -> dict:
        with self._stats_lock:
            stats = dict(self._stats)
            stats["in_flight"] = self._in_flight
        stats["queued"] = self._outbound.qsize()
        stats["seen"] = len(self._dedup)
        for state, count in self._store.count_by_state().items():
            stats[f"state_{state.value.lower()}"] = count
        return stats

    def log_stats(self) -> None:
        s = self.get_stats()
        self.log("info",
                 f"URL Status Statistics - Discovered: {s['discovered']}, Fetched: {s['fetched']}, "
                 f"Failed: {s['failed']}, Retried: {s['retried']}, Duplicates: {s['duplicate']}, "
                 f"Redirected: {s['redirected']}, Filtered by depth: {s['depth_exceeded']}, "
                 f"In flight: {s['in_flight']}")
