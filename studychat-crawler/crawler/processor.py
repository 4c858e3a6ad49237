"""
FILE DESCRIPTION: Content processing around the frontier: network fetching, link extraction, content records.
KEY FUNCTIONS/CLASSES: LinkExtractor, ContentExtractor, PageFetcher, DEFAULT_LINK_RULES
"""

import re
import time
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from crawler.core import USER_AGENT, REQUEST_TIMEOUT, logger
from crawler.models import PageRecord
from crawler.url_utils import host_of
from frontier.metadata import PARENT_URL_KEY, get_depth
from frontier.models import FetchOutcome, FetchStatus

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def _soup(content) -> BeautifulSoup:
    if isinstance(content, BeautifulSoup):
        return content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="ignore")
    return BeautifulSoup(content or "", "html.parser")


# === LINK EXTRACTOR ===

# (css selector, category) pairs. New categories are added here, not in the extractor.
DEFAULT_LINK_RULES: Tuple[Tuple[str, str], ...] = (
    ("a[href]", "hyperlink"),
    ("link[rel~=canonical][href]", "canonical"),
    ("link[rel~=alternate][href]", "alternate"),
    ("nav a[href], .navigation a[href], .main-menu a[href], .navbar a[href]", "navigation"),
    (".breadcrumb a[href], .breadcrumbs a[href]", "breadcrumb"),
    ("a[href*='/studium/'], a[href*='/bachelor/'], a[href*='/master/']", "course"),
    ("a[href*='/news/'], a[href*='/events/'], a[href*='/aktuelles/']", "news_event"),
    ("a[href*='/fakultaet/'], a[href*='/faculty/']", "faculty"),
)


class LinkExtractor:
    """
    FLOW: Parses HTML using BeautifulSoup -> Resolves the document base (<base href> or page URL) ->
    Applies every (selector, category) rule -> Returns absolute candidate URLs.
    No filtering happens here; admission is the frontier's job.
    """

    def __init__(self, rules: Iterable[Tuple[str, str]] = DEFAULT_LINK_RULES):
        self.rules = tuple(rules)

    @staticmethod
    def document_base(soup: BeautifulSoup, base_url: str) -> str:
        base_tag = soup.find("base", href=True)
        if base_tag and base_tag["href"].strip():
            try:
                return urljoin(base_url, base_tag["href"].strip())
            except ValueError:
                logger.debug(f"[EXTRACT] ignoring unparseable <base href> on {base_url}")
        return base_url

    def extract_categorized(self, content, base_url: str) -> Dict[str, Set[str]]:
        soup = _soup(content)
        base = self.document_base(soup, base_url)
        found: Dict[str, Set[str]] = {}
        for selector, category in self.rules:
            urls = found.setdefault(category, set())
            for element in soup.select(selector):
                href = (element.get("href") or "").strip()
                if not href:
                    continue
                try:
                    urls.add(urljoin(base, href))
                except ValueError:
                    # e.g. "http://[broken/x"; one bad href never costs the rest of the page
                    logger.debug(f"[EXTRACT] skipping unparseable href on {base_url}: {href!r}")
        return found

    def extract(self, content, base_url: str) -> Set[str]:
        """Unordered, de-duplicated set of absolute candidate URLs found in `content`."""
        urls: Set[str] = set()
        for category_urls in self.extract_categorized(content, base_url).values():
            urls.update(category_urls)
        return urls


# === CONTENT RECORDS ===

class ContentExtractor:
    """Turns a fetched HTML page into a PageRecord for the output sink."""
    STRIP_TAGS = ["script", "style", "noscript", "template", "header", "footer", "nav", "aside"]
    MAX_TEXT_LENGTH = 100_000

    def extract_record(self, content, url: str, metadata: Optional[Mapping[str, str]] = None,
                       links_found: int = 0) -> PageRecord:
        soup = _soup(content)
        title = soup.title.get_text(" ", strip=True) if soup.title else ""
        for tag in soup(self.STRIP_TAGS):
            tag.decompose()
        main = soup.find("main") or soup.find("article") or soup.body or soup
        text = re.sub(r"\s+", " ", main.get_text(" ", strip=True))
        return PageRecord(
            url=url,
            domain=host_of(url),
            title=title,
            text=text[:self.MAX_TEXT_LENGTH],
            depth=get_depth(metadata),
            parent_url=(metadata or {}).get(PARENT_URL_KEY),
            links_found=links_found,
        )


# === PAGE FETCHER ===

class PageFetcher:
    """
    FLOW: Executes a single HTTP GET without following redirects -> Classifies the response as
    SUCCESS (2xx), REDIRECT (3xx with Location) or FAILURE -> Returns a FetchOutcome.
    Retries are NOT done here; the frontier decides whether a failed URL is fetched again.
    """
    HEADERS = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "de-DE,de;q=0.9,en-US;q=0.8,en;q=0.7",
    }

    def __init__(self, timeout: float = REQUEST_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def is_html(content_type: str) -> bool:
        return any(t in (content_type or "").lower() for t in HTML_CONTENT_TYPES)

    def fetch(self, url: str, referer: Optional[str] = None) -> FetchOutcome:
        headers = dict(self.HEADERS)
        if referer:
            headers["Referer"] = referer

        start_time = time.time()
        try:
            r = self.session.get(url, timeout=self.timeout, headers=headers, allow_redirects=False)
        except requests.exceptions.RequestException as e:
            fetch_time_ms = int((time.time() - start_time) * 1000)
            err_type = "timeout" if isinstance(e, requests.exceptions.Timeout) else "request_error"
            logger.warning(f"[FETCH] {err_type} for {url}: {e}")
            return FetchOutcome(url=url, status=FetchStatus.FAILURE,
                                fetch_time_ms=fetch_time_ms, error=f"{err_type}: {e}")

        fetch_time_ms = int((time.time() - start_time) * 1000)
        content_type = r.headers.get("Content-Type", "").lower()

        if 300 <= r.status_code < 400 and r.headers.get("Location"):
            target = urljoin(url, r.headers["Location"])
            return FetchOutcome(url=url, status=FetchStatus.REDIRECT, redirect_to=target,
                                http_status=r.status_code, fetch_time_ms=fetch_time_ms)

        if 200 <= r.status_code < 300:
            return FetchOutcome(url=url, status=FetchStatus.SUCCESS, content=r.content,
                                final_url=r.url or url, http_status=r.status_code,
                                content_type=content_type, fetch_time_ms=fetch_time_ms)

        return FetchOutcome(url=url, status=FetchStatus.FAILURE, http_status=r.status_code,
                            content_type=content_type, fetch_time_ms=fetch_time_ms,
                            error=f"http error: {r.status_code}")
