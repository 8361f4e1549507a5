"""
Page fetcher for search result URLs.

Fetches each URL politely (robots.txt, per-domain delay), then reduces the
HTML to readable article text with BeautifulSoup. A page that cannot be
fetched is returned with ``error`` set rather than raising, so one bad URL
never stops a batch.
"""

import hashlib
import logging
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import requests
from bs4 import BeautifulSoup
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.lead_finder.search_client import parse_datetime
from src.lead_finder.types import FetchedPage

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 50_000
MIN_DOMAIN_DELAY_SECONDS = 1.0

# Tags whose text is never article content
BOILERPLATE_TAGS = ["script", "style", "noscript", "nav", "footer", "header", "aside", "form", "iframe", "svg"]

PUBLISH_DATE_SELECTORS = [
    ("meta", {"property": "article:published_time"}),
    ("meta", {"property": "og:published_time"}),
    ("meta", {"name": "date"}),
    ("meta", {"name": "pubdate"}),
    ("meta", {"name": "publishdate"}),
    ("meta", {"itemprop": "datePublished"}),
]


class FetchError(Exception):
    """Non-retryable fetch failure (bad status, blocked, not HTML)."""
    pass


class PageFetcher(ABC):
    """Retrieves pages and extracts readable text."""

    @abstractmethod
    def fetch_pages(self, urls: List[str]) -> List[FetchedPage]:
        """Fetch each URL; failures come back as pages with ``error`` set."""


class HttpPageFetcher(PageFetcher):
    """
    requests + BeautifulSoup fetcher.

    - robots.txt is checked once per domain and cached
    - at least ``min_domain_delay`` seconds between hits on one domain
    - connection errors and timeouts are retried with exponential backoff
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        respect_robots: Optional[bool] = None,
        min_domain_delay: float = MIN_DOMAIN_DELAY_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.user_agent = user_agent or Config.FETCH_USER_AGENT
        self.timeout = timeout or Config.FETCH_TIMEOUT_SECONDS
        self.respect_robots = Config.RESPECT_ROBOTS_TXT if respect_robots is None else respect_robots
        self.min_domain_delay = min_domain_delay
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        })
        self._robots_cache: Dict[str, Optional[RobotFileParser]] = {}
        self._last_fetch: Dict[str, float] = {}

    def fetch_pages(self, urls: List[str]) -> List[FetchedPage]:
        pages = []
        for url in urls:
            page = self.fetch_page(url)
            if page.error:
                logger.warning(f"Failed to fetch {url}: {page.error}")
            pages.append(page)
        return pages

    def fetch_page(self, url: str) -> FetchedPage:
        domain = urlparse(url).hostname or ""

        if self.respect_robots and not self._is_allowed(url, domain):
            return self._error_page(url, domain, "Blocked by robots.txt")

        self._wait_for_domain(domain)

        try:
            response = self._get(url)
        except RetryError as e:
            return self._error_page(url, domain, f"Network error: {e.last_attempt.exception()}")
        except requests.RequestException as e:
            return self._error_page(url, domain, f"Network error: {e}")

        if response.status_code >= 400:
            return self._error_page(url, domain, f"HTTP {response.status_code}", response.status_code)

        content_type = response.headers.get("Content-Type", "")
        if content_type and "html" not in content_type.lower():
            return self._error_page(
                url, domain, f"Unsupported content type: {content_type}", response.status_code
            )

        soup = BeautifulSoup(response.text, "html.parser")
        text = extract_readable_text(soup)
        final_url = response.url or url

        return FetchedPage(
            url=url,
            final_url=final_url,
            domain=urlparse(final_url).hostname or domain,
            http_status=response.status_code,
            page_title=extract_title(soup),
            published_at_guess=extract_publish_date(soup),
            extracted_text=text,
            content_hash=content_hash(text),
            fetched_at=datetime.now(timezone.utc),
        )

    # ===== HTTP =====

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=2, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    )
    def _get(self, url: str) -> requests.Response:
        return self.session.get(url, timeout=self.timeout, allow_redirects=True)

    def _wait_for_domain(self, domain: str) -> None:
        last = self._last_fetch.get(domain)
        if last is not None:
            elapsed = time.monotonic() - last
            if elapsed < self.min_domain_delay:
                time.sleep(self.min_domain_delay - elapsed)
        self._last_fetch[domain] = time.monotonic()

    def _is_allowed(self, url: str, domain: str) -> bool:
        if domain not in self._robots_cache:
            self._robots_cache[domain] = self._load_robots(domain)
        parser = self._robots_cache[domain]
        # No readable robots.txt means no restrictions
        return parser is None or parser.can_fetch(self.user_agent, url)

    def _load_robots(self, domain: str) -> Optional[RobotFileParser]:
        robots_url = f"https://{domain}/robots.txt"
        try:
            response = self.session.get(robots_url, timeout=5)
        except requests.RequestException as e:
            logger.debug(f"robots.txt unavailable for {domain}: {e}")
            return None
        if response.status_code >= 400:
            return None
        parser = RobotFileParser(robots_url)
        parser.parse(response.text.splitlines())
        return parser

    def _error_page(
        self, url: str, domain: str, error: str, http_status: Optional[int] = None
    ) -> FetchedPage:
        return FetchedPage(
            url=url,
            final_url=url,
            domain=domain,
            http_status=http_status,
            page_title=None,
            published_at_guess=None,
            extracted_text="",
            content_hash="",
            fetched_at=datetime.now(timezone.utc),
            error=error,
        )


# ===== HTML EXTRACTION =====

def extract_title(soup: BeautifulSoup) -> Optional[str]:
    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        return og_title["content"].strip()
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    h1 = soup.find("h1")
    return h1.get_text(strip=True) if h1 else None


def extract_publish_date(soup: BeautifulSoup) -> Optional[datetime]:
    """Best-guess publish date from meta tags, then the first <time datetime>."""
    for tag, attrs in PUBLISH_DATE_SELECTORS:
        element = soup.find(tag, attrs=attrs)
        if element and element.get("content"):
            parsed = parse_datetime(element["content"])
            if parsed:
                return parsed

    time_tag = soup.find("time", attrs={"datetime": True})
    if time_tag:
        return parse_datetime(time_tag["datetime"])
    return None


def extract_readable_text(soup: BeautifulSoup) -> str:
    """
    Main text of the page with boilerplate removed.

    Prefers <article>, then <main>, then <body>. Whitespace is collapsed
    and the result capped at MAX_TEXT_LENGTH characters.
    """
    for element in soup.find_all(BOILERPLATE_TAGS):
        element.decompose()

    container = soup.find("article") or soup.find("main") or soup.body or soup
    text = container.get_text(separator=" ")
    text = re.sub(r"\s+", " ", text).strip()
    return text[:MAX_TEXT_LENGTH]


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
