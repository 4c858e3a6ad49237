"""
Centralized URL policy for blocking/allowing candidate URLs.

All extension, path, query and domain rules live here. Other modules should
import and use URLPolicy instead of duplicating extension lists or ad-hoc checks.
A policy is configured once per crawl job and never mutated afterwards, so
eval() is deterministic for a given PolicyConfig.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Tuple
from urllib.parse import urlparse

import tldextract

# Offline extractor: bundled public suffix snapshot, no network fetch
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

DOCUMENT_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".rar", ".exe", ".dmg", ".iso",
)
MEDIA_EXTENSIONS = (
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico",
    # Video/Audio
    ".mp4", ".avi", ".mov", ".mp3", ".wav",
    # Styles/Scripts
    ".css", ".js",
    # Fonts
    ".woff", ".woff2", ".ttf", ".eot",
)
EXCLUDED_PATH_SEGMENTS = (
    "/api/", "/admin/", "/wp-admin/", "/login", "/logout",
    "/assets/", "/static/", "/css/", "/js/", "/images/", "/img/", "/fonts/",
)
EXCLUDED_QUERY_PARAMS = ("print=", "popup=", "download=", "format=pdf")
PRIORITY_PATHS = (
    "/studium/", "/forschung/", "/international/", "/news/", "/aktuelles/",
    "/events/", "/veranstaltungen/", "/fakultaet/", "/faculty/", "/profil/",
    "/leitbild", "/kontakt/", "/hochschule/", "/campus/",
)
ROOT_PATHS = ("", "/", "/de", "/en", "/de/", "/en/")

# Every reason eval() can return; used to pre-seed per-rule counters
ALLOW_REASONS = ("allowed_priority", "allowed_generic")
REJECT_REASONS = (
    "malformed",
    "blocked_non_http",
    "blocked_host",
    "blocked_extension",
    "blocked_fragment",
    "blocked_path",
    "blocked_query",
    "blocked_query_params",
    "blocked_path_depth",
    "blocked_uncategorized",
)


def registrable_domain(url_or_host: str) -> str:
    """Return 'domain.suffix' for a URL or bare host, '' when there is none."""
    extracted = _EXTRACT(url_or_host)
    if not extracted.domain:
        return ""
    if not extracted.suffix:
        return extracted.domain.lower()
    return f"{extracted.domain}.{extracted.suffix}".lower()


def domains_from_seeds(seed_urls: Iterable[str]) -> FrozenSet[str]:
    """Allowed-domain set for a job that does not configure one explicitly."""
    return frozenset(d for d in (registrable_domain(u) for u in seed_urls) if d)


@dataclass(frozen=True)
class PolicyConfig:
    """Job-scoped policy configuration. All rule lists default to the site crawler's rules."""
    allowed_domains: FrozenSet[str] = frozenset()
    priority_paths: Tuple[str, ...] = PRIORITY_PATHS
    root_paths: Tuple[str, ...] = ROOT_PATHS
    excluded_extensions: Tuple[str, ...] = DOCUMENT_EXTENSIONS + MEDIA_EXTENSIONS
    excluded_path_segments: Tuple[str, ...] = EXCLUDED_PATH_SEGMENTS
    excluded_query_params: Tuple[str, ...] = EXCLUDED_QUERY_PARAMS
    max_query_params: int = 5
    max_path_segments: int = 8
    generic_max_path_segments: int = 4

    def __post_init__(self):
        # Normalize domains once; frozen dataclass needs object.__setattr__
        domains = frozenset(d.strip().lower().lstrip(".") for d in self.allowed_domains if d and d.strip())
        object.__setattr__(self, "allowed_domains", domains)


class URLPolicy:
    """
    Central policy for URL admission.

    Methods:
    - admit(url): True/False, the single gate used by the frontier
    - eval(url): (allowed, reason) where reason names the deciding rule
    - is_allowed_host(host): allow-list check with dot-boundary suffix match

    Exclusion rules always run before inclusion rules, so a URL matching both an
    excluded extension and a priority path is rejected.
    """

    def __init__(self, config: PolicyConfig = None):
        self.config = config or PolicyConfig()

    def admit(self, url: str) -> bool:
        allowed, _ = self.eval(url)
        return allowed

    def is_allowed_host(self, host: str) -> bool:
        host = (host or "").lower().rstrip(".")
        if not host:
            return False
        return any(host == d or host.endswith("." + d) for d in self.config.allowed_domains)

    def eval(self, url: str):
        """
        Evaluate a URL and return (allowed: bool, reason: str).
        Reasons are listed in ALLOW_REASONS / REJECT_REASONS.
        """
        cfg = self.config
        if not url or not isinstance(url, str):
            return False, "malformed"
        try:
            parsed = urlparse(url.strip())
            host = parsed.hostname or ""
            parsed.port  # raises on a non-numeric or out-of-range port
        except ValueError:
            # e.g. invalid IPv6 literal or bad port
            return False, "malformed"
        if not parsed.scheme or (parsed.scheme in ("http", "https") and not parsed.netloc):
            return False, "malformed"
        if parsed.scheme not in ("http", "https"):
            return False, "blocked_non_http"
        if not self.is_allowed_host(host):
            return False, "blocked_host"

        path = (parsed.path or "").lower()
        query = parsed.query or ""

        if path.endswith(tuple(cfg.excluded_extensions)):
            return False, "blocked_extension"
        if "#" in url:
            return False, "blocked_fragment"
        if any(segment in path for segment in cfg.excluded_path_segments):
            return False, "blocked_path"
        if query:
            query_lower = query.lower()
            if any(param in query_lower for param in cfg.excluded_query_params):
                return False, "blocked_query"
            if query_lower.startswith("utm_") or "&utm_" in query_lower:
                return False, "blocked_query"
            if len(query.split("&")) > cfg.max_query_params:
                return False, "blocked_query_params"

        segments = [s for s in path.split("/") if s]
        if len(segments) > cfg.max_path_segments:
            return False, "blocked_path_depth"

        return self._include(path, bool(query), len(segments))

    def _include(self, path: str, has_query: bool, segment_count: int):
        """Inclusion decision table, evaluated only after every exclusion passed."""
        cfg = self.config
        if path in cfg.root_paths or any(p in path for p in cfg.priority_paths):
            return True, "allowed_priority"
        if not has_query and segment_count <= cfg.generic_max_path_segments:
            return True, "allowed_generic"
        return False, "blocked_uncategorized"
