"""
Repository Interface Definitions

Defines the abstract interface for lead finder persistence. The pipeline only
talks to this interface, so the MongoDB implementation and the in-memory
implementation used for dry runs are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from src.lead_finder.types import (
    FetchedPage,
    GeneratedEmail,
    RunConfig,
    RunStats,
    RunStatus,
    ScoredLead,
    SearchResult,
)

# Collection names
RUNS_COLLECTION = "lead_finder_runs"
SEARCH_RESULTS_COLLECTION = "lead_finder_search_results"
PAGES_COLLECTION = "lead_finder_pages"
LEADS_COLLECTION = "lead_finder_leads"
EMAILS_COLLECTION = "lead_finder_emails"
SUPPRESSION_COLLECTION = "lead_finder_suppression"
CONFIG_COLLECTION = "lead_finder_config"

# Lead outreach status values written on insert. Later transitions
# (sent, replied, ...) belong to the outreach tooling.
OUTREACH_PENDING = "pending"
OUTREACH_EMAIL_READY = "email_ready"


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched existing keys
        modified_count: Number of documents actually modified
        upserted_count: Number of documents created by the write
    """
    matched_count: int = 0
    modified_count: int = 0
    upserted_count: int = 0


class LeadFinderRepositoryInterface(ABC):
    """
    Abstract interface for lead finder run persistence.

    Implementations:
    - MongoLeadFinderRepository: pymongo-backed, used for scheduled runs
    - InMemoryLeadFinderRepository: dictionaries, used for dry runs and tests

    Every write is an upsert on a natural key so re-executing a run for the
    same date converges to the same state. Errors propagate to the caller.
    """

    @abstractmethod
    def load_config(self) -> Dict[str, Any]:
        """
        Load rotation tunables from the config store.

        Returns:
            Mapping of config key to value (empty when nothing is stored)
        """

    @abstractmethod
    def create_run(self, run_date: date, run_config: RunConfig) -> str:
        """
        Create the run record for ``run_date``.

        A second call for the same date returns the existing run id instead
        of creating a duplicate.
        """

    @abstractmethod
    def update_run(
        self,
        run_id: str,
        stats: RunStats,
        status: Optional[RunStatus] = None,
        error_message: Optional[str] = None,
    ) -> WriteResult:
        """
        Save accumulated stats; a terminal status also stamps ``ended_at``.
        """

    @abstractmethod
    def find_run_by_date(self, run_date: date) -> Optional[Dict[str, Any]]:
        """Return the run document for a date, or None."""

    @abstractmethod
    def store_search_results(self, run_id: str, results: List[SearchResult]) -> WriteResult:
        """Upsert search results keyed by (run_id, url)."""

    @abstractmethod
    def store_pages(self, run_id: str, pages: List[FetchedPage]) -> WriteResult:
        """Upsert fetched pages keyed by (run_id, url)."""

    @abstractmethod
    def store_leads_and_emails(
        self,
        run_id: str,
        leads: List[ScoredLead],
        emails: Dict[str, Optional[GeneratedEmail]],
    ) -> WriteResult:
        """
        Upsert leads keyed by (run_id, person_key) and add one email version
        per lead that has a draft.

        Counts cover leads only: new leads are upserted, leads already stored
        for the run are matched.
        """

    @abstractmethod
    def find_recent_person_keys(
        self,
        person_keys: Iterable[str],
        since: datetime,
        exclude_run_id: Optional[str] = None,
    ) -> Set[str]:
        """
        Return the subset of ``person_keys`` stored as leads at or after
        ``since``. Leads belonging to ``exclude_run_id`` are ignored.
        """

    @abstractmethod
    def find_suppressed_person_keys(self, person_keys: Iterable[str]) -> Set[str]:
        """Return the subset of ``person_keys`` on the suppression list."""

    @abstractmethod
    def suppress_person_key(self, person_key: str, reason: Optional[str] = None) -> WriteResult:
        """Add a person key to the suppression list."""
