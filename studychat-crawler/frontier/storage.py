from abc import ABC, abstractmethod
from collections import Counter
from threading import Lock
from typing import Dict, List, Optional
from frontier.models import FrontierEntry, UrlState

class EntryStore(ABC):
    """
    Abstract interface for frontier entry storage with CAS (Compare-And-Swap) support.
    Ensures race-safe state transitions within a specific crawl job.
    """

    @property
    @abstractmethod
    def job_id(self) -> str:
        """The crawl job this store is bound to."""
        pass

    @abstractmethod
    def create_if_absent(self, entry: FrontierEntry) -> bool:
        """
        Atomically create entry ONLY if its url does not exist for this job.
        Returns True if created, False if already exists.
        """
        pass

    @abstractmethod
    def transition(
        self,
        url: str,
        from_state: UrlState,
        to_entry: FrontierEntry
    ) -> bool:
        """
        Atomically replace entry ONLY if current state == from_state.
        Returns True if transition succeeded, False otherwise.
        """
        pass

    @abstractmethod
    def get(self, url: str) -> Optional[FrontierEntry]:
        """Retrieve an entry by its URL."""
        pass

    @abstractmethod
    def entries(self) -> List[FrontierEntry]:
        """Snapshot of every entry of the job."""
        pass

    def count_by_state(self) -> Dict[UrlState, int]:
        counts = Counter(entry.state for entry in self.entries())
        return {state: counts.get(state, 0) for state in UrlState}


class InMemoryEntryStore(EntryStore):
    """
    Process-local EntryStore. One dict guarded by one lock.
    Discarded together with its job; nothing is persisted across jobs.
    """

    def __init__(self, job_id: str):
        self._job_id = job_id
        self._lock = Lock()
        self._entries: Dict[str, FrontierEntry] = {}

    @property
    def job_id(self) -> str:
        return self._job_id

    def create_if_absent(self, entry: FrontierEntry) -> bool:
        with self._lock:
            if entry.url in self._entries:
                return False
            self._entries[entry.url] = entry
            return True

    def transition(self, url: str, from_state: UrlState, to_entry: FrontierEntry) -> bool:
        with self._lock:
            current = self._entries.get(url)
            if current is None or current.state != from_state:
                return False
            self._entries[url] = to_entry
            return True

    def get(self, url: str) -> Optional[FrontierEntry]:
        with self._lock:
            return self._entries.get(url)

    def entries(self) -> List[FrontierEntry]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
