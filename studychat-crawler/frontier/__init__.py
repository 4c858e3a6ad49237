from frontier.models import UrlState, FetchStatus, CrawlCandidate, FrontierEntry, FetchOutcome, StatusEvent
from frontier.storage import EntryStore, InMemoryEntryStore
from frontier.dedup import Deduplicator
from frontier.depth import DepthController, DepthLimitExceeded, next_depth
from frontier.orchestrator import Frontier
