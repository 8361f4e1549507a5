"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)

It also provides in-process fakes for the pipeline's external collaborators
(LLM, search API, page fetcher) so no test touches the network.
"""

import os
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Union
from unittest.mock import MagicMock, patch

import pytest

# Set test environment BEFORE any imports to prevent Config from loading real values
os.environ["LEAD_FINDER_REPOSITORY"] = "memory"
os.environ["INTER_CALL_DELAY_MS"] = "0"
os.environ["RESPECT_ROBOTS_TXT"] = "false"

from src.common.repositories import reset_lead_finder_repository
from src.common.repositories.memory_repository import InMemoryLeadFinderRepository
from src.lead_finder.page_fetcher import PageFetcher, content_hash
from src.lead_finder.search_client import SearchClient
from src.lead_finder.types import ExtractedCandidate, FetchedPage, RunConfig, SearchResult


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    This prevents:
    - Real API keys being used if tests accidentally call LLMs
    - Scheduled-run MongoDB configuration leaking into tests
    """
    monkeypatch.setenv("LEAD_FINDER_REPOSITORY", "memory")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key")
    monkeypatch.setenv("GOOGLE_CUSTOM_SEARCH_API_KEY", "gcs-test-mock-key")
    monkeypatch.setenv("GOOGLE_CUSTOM_SEARCH_ENGINE_ID", "gcs-test-engine")
    monkeypatch.delenv("MONGODB_URI", raising=False)
    reset_lead_finder_repository()
    yield
    reset_lead_finder_repository()


# ===== FAKES =====

class FakeLLM:
    """
    Chat model stand-in with ``invoke(messages)``.

    ``responses`` is either a list consumed in order (the last entry repeats)
    or a callable receiving the messages. Exceptions in the list are raised.
    """

    def __init__(self, responses: Union[List, Callable]):
        self.responses = responses
        self.calls: List[list] = []

    def invoke(self, messages):
        self.calls.append(messages)
        if callable(self.responses):
            content = self.responses(messages)
        else:
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            content = self.responses[index]
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(content=content)


class FakeSearchClient(SearchClient):
    """
    Returns canned results per query. Queries missing from ``results`` get
    ``default`` (no results); an Exception value is raised for that query.
    """

    def __init__(self, results: Optional[Dict[str, object]] = None, default=None):
        self.results = results or {}
        self.default = default
        self.calls: List[tuple] = []

    def search(self, query, recency_days=7, limit=10):
        self.calls.append((query, recency_days, limit))
        value = self.results.get(query, self.default)
        if callable(value):
            value = value(query)
        if isinstance(value, Exception):
            raise value
        return list(value or [])


class FakePageFetcher(PageFetcher):
    """Serves pages from a url -> FetchedPage (or Exception) map."""

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.requested: List[str] = []

    def fetch_pages(self, urls):
        fetched = []
        for url in urls:
            self.requested.append(url)
            page = self.pages.get(url)
            if isinstance(page, Exception):
                raise page
            if page is None:
                page = build_page(url, error="HTTP 404")
            fetched.append(page)
        return fetched


def build_result(url: str, query: str = "q", title: str = "", snippet: str = "") -> SearchResult:
    return SearchResult(query=query, url=url, title=title or url, snippet=snippet, source="example.com")


def build_page(
    url: str,
    text: Optional[str] = None,
    title: str = "News",
    error: Optional[str] = None,
    published_at: Optional[datetime] = None,
) -> FetchedPage:
    if text is None:
        text = "" if error else f"Houston business news from {url}. " * 10
    return FetchedPage(
        url=url,
        final_url=url,
        domain="example.com",
        http_status=404 if error else 200,
        page_title=None if error else title,
        published_at_guess=published_at,
        extracted_text=text,
        content_hash=content_hash(text),
        fetched_at=datetime.now(timezone.utc),
        error=error,
    )


def build_candidate(**overrides) -> ExtractedCandidate:
    data = {
        "full_name": "Jane Doe",
        "title": "Chief Financial Officer",
        "company": "Acme Energy",
        "geo_signal": "Houston, TX",
        "trigger_type": "career_move",
        "category": "exec",
        "rationale_short": "Newly appointed CFO",
        "confidence": 0.9,
    }
    data.update(overrides)
    return ExtractedCandidate(**data)


# ===== FIXTURES =====

@pytest.fixture
def fake_llm():
    """Factory: ``fake_llm(["response", ...])`` or ``fake_llm(callable)``."""
    return FakeLLM


@pytest.fixture
def fake_search_client():
    return FakeSearchClient


@pytest.fixture
def fake_page_fetcher():
    return FakePageFetcher


@pytest.fixture
def make_candidate():
    return build_candidate


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def make_result():
    return build_result


@pytest.fixture
def memory_repository():
    return InMemoryLeadFinderRepository()


@pytest.fixture
def houston_config():
    return RunConfig(
        geo_name="Houston",
        geo_aliases=("Houston",),
        trigger_focus="career_move",
        daily_lead_target=5,
        lead_cooldown_days=90,
    )
