"""
Search client for trigger-based lead discovery.

GoogleSearchClient calls the Google Programmable Search (Custom Search JSON)
API. Queries are built from per-trigger templates with the geography
substituted in and an optional industry modifier appended.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.lead_finder.types import SearchResult

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS_PER_REQUEST = 10  # API hard limit
REQUEST_TIMEOUT = 15

# ===== QUERY TEMPLATES =====

CAREER_MOVE_TEMPLATES = [
    '("{GEO}") (appointed OR named OR promoted) (CFO OR "Chief Financial Officer" OR CEO OR COO)',
    '("{GEO}") ("joins as" OR "named as") (SVP OR EVP OR "Managing Director" OR Partner)',
    '("{GEO}") (promoted OR appointed) ("Vice President" OR SVP OR EVP OR Director)',
    '("{GEO}") ("new CEO" OR "new CFO" OR "new COO" OR "new President")',
]

FUNDING_MNA_TEMPLATES = [
    '("{GEO}" OR "{GEO}-based") (acquired OR acquisition OR merger OR "to acquire")',
    '("{GEO}" OR "{GEO}-based") (raises OR funding OR "Series A" OR "Series B" OR "seed round")',
    '("{GEO}" OR "{GEO}-based") ("private equity" OR "venture capital") (investment OR deal)',
    '("{GEO}") (IPO OR "public offering" OR "goes public")',
]

EXPANSION_TEMPLATES = [
    '("{GEO}") ("opens" OR "expands" OR "new office" OR "new headquarters")',
    '("{GEO}") ("relocates" OR "moves headquarters" OR "expands operations")',
    '("{GEO}") ("hiring" OR "new jobs" OR "expansion") (executive OR leadership)',
]

# Any other trigger gets a mix
MIXED_TEMPLATES = CAREER_MOVE_TEMPLATES[:2] + FUNDING_MNA_TEMPLATES[:2] + EXPANSION_TEMPLATES[:1]

TRIGGER_TEMPLATES = {
    "career_move": CAREER_MOVE_TEMPLATES,
    "funding_mna": FUNDING_MNA_TEMPLATES,
    "expansion": EXPANSION_TEMPLATES,
}

INDUSTRY_MODIFIERS = {
    "energy": "(oil OR gas OR energy OR midstream OR upstream OR refinery OR power)",
    "healthcare": "(healthcare OR hospital OR physician OR medical OR clinic)",
    "professional_services": "(law firm OR accounting OR consulting OR advisory)",
    "tech": "(software OR technology OR AI OR SaaS OR cloud OR startup)",
    "real_estate": "(real estate OR developer OR multifamily OR commercial property)",
    "finance": "(private equity OR investment bank OR wealth OR hedge fund OR financial)",
}

PUBLISH_DATE_METATAGS = ("article:published_time", "og:updated_time", "datePublished")


class SearchError(Exception):
    """Raised when the search API reports an error."""
    pass


class SearchClient(ABC):
    """Executes text queries and returns ranked result stubs."""

    @abstractmethod
    def search(self, query: str, recency_days: Optional[int] = 7, limit: int = 10) -> List[SearchResult]:
        """
        Run one query.

        Args:
            query: Search text
            recency_days: Only results from the last N days (None/0 for no filter)
            limit: Maximum results to return
        """

    def build_trigger_queries(
        self,
        geo_aliases: Sequence[str],
        trigger_focus: str,
        industry_focus: Optional[str] = None,
    ) -> List[str]:
        """One query per (geo alias, template), industry modifier appended when known."""
        templates = TRIGGER_TEMPLATES.get(trigger_focus, MIXED_TEMPLATES)
        modifier = INDUSTRY_MODIFIERS.get(industry_focus) if industry_focus else None

        queries = []
        for geo in geo_aliases:
            for template in templates:
                query = template.replace("{GEO}", geo)
                if modifier:
                    query = f"{query} {modifier}"
                queries.append(query)
        return queries


class GoogleSearchClient(SearchClient):
    """
    Google Programmable Search client.

    Requires GOOGLE_CUSTOM_SEARCH_API_KEY and GOOGLE_CUSTOM_SEARCH_ENGINE_ID.
    When either is missing, search() logs an error and returns no results.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.GOOGLE_CUSTOM_SEARCH_API_KEY
        self.engine_id = engine_id if engine_id is not None else Config.GOOGLE_CUSTOM_SEARCH_ENGINE_ID
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning("GOOGLE_CUSTOM_SEARCH_API_KEY not configured")
        if not self.engine_id:
            logger.warning("GOOGLE_CUSTOM_SEARCH_ENGINE_ID not configured")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    def search(self, query: str, recency_days: Optional[int] = 7, limit: int = 10) -> List[SearchResult]:
        if not self.is_configured():
            logger.error("Google Custom Search is not configured")
            return []

        params: Dict[str, Any] = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": min(limit, MAX_RESULTS_PER_REQUEST),
            "sort": "date",
        }
        if recency_days:
            params["dateRestrict"] = f"d{recency_days}"

        data = self._get(params)

        if data.get("error"):
            message = data["error"].get("message", "unknown error")
            raise SearchError(f"Google Search API error: {message}")

        items = data.get("items") or []
        if not items:
            logger.info(f"No results found for query: {query}")
            return []

        logger.info(f"Found {len(items)} results for query: {query}")
        return [
            SearchResult(
                query=query,
                url=item["link"],
                title=item.get("title", ""),
                snippet=item.get("snippet", ""),
                published_at=extract_publish_date(item),
                source=extract_domain(item["link"]),
            )
            for item in items
            if item.get("link")
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.get(GOOGLE_SEARCH_URL, params=params, timeout=REQUEST_TIMEOUT)
        # Error bodies carry a JSON "error" object; let search() report it
        try:
            return response.json()
        except ValueError:
            response.raise_for_status()
            raise SearchError(f"Non-JSON response from search API (status {response.status_code})")


def extract_publish_date(item: Dict[str, Any]) -> Optional[datetime]:
    """Publication date from the first pagemap metatags block, if any."""
    metatags = (item.get("pagemap") or {}).get("metatags") or []
    if not metatags:
        return None
    tags = metatags[0]
    for key in PUBLISH_DATE_METATAGS:
        value = tags.get(key)
        if value:
            parsed = parse_datetime(value)
            if parsed:
                return parsed
    return None


def parse_datetime(value: str) -> Optional[datetime]:
    """Parse ISO-8601 timestamps as found in metadata; None when unparseable."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def extract_domain(url: str) -> str:
    return urlparse(url).hostname or "unknown"
