from threading import Lock


class Deduplicator:
    """
    Job-scoped set of every URL ever admitted into the frontier.
    try_admit() is an atomic check-and-insert; membership only grows.
    """

    def __init__(self):
        self._lock = Lock()
        self._seen = set()

    def try_admit(self, url: str) -> bool:
        """True iff this is the first admission of `url` for the job."""
        with self._lock:
            if url in self._seen:
                return False
            self._seen.add(url)
            return True

    def __contains__(self, url) -> bool:
        with self._lock:
            return url in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
