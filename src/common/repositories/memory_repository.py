"""
In-Memory Lead Finder Repository

Dictionary-backed implementation of the repository contract. Selected with
LEAD_FINDER_REPOSITORY=memory for dry runs, and used directly by tests.
"""

import logging
import uuid
from copy import deepcopy
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from src.lead_finder.types import (
    FetchedPage,
    GeneratedEmail,
    RunConfig,
    RunStats,
    RunStatus,
    ScoredLead,
    SearchResult,
)

from .base import (
    OUTREACH_EMAIL_READY,
    OUTREACH_PENDING,
    LeadFinderRepositoryInterface,
    WriteResult,
)

logger = logging.getLogger(__name__)


class InMemoryLeadFinderRepository(LeadFinderRepositoryInterface):
    """
    Same keys and upsert semantics as the MongoDB repository, kept in
    process memory. Nothing survives the process.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, clock=None):
        """
        Args:
            config: Initial contents of the config store
            clock: Callable returning the current UTC datetime (tests pin it)
        """
        self.config: Dict[str, Any] = dict(config or {})
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.runs: Dict[str, Dict[str, Any]] = {}
        self.search_results: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.pages: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.leads: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.emails: List[Dict[str, Any]] = []
        self.suppressed: Dict[str, Optional[str]] = {}

    def load_config(self) -> Dict[str, Any]:
        return deepcopy(self.config)

    def create_run(self, run_date: date, run_config: RunConfig) -> str:
        existing = self.find_run_by_date(run_date)
        if existing is not None:
            logger.info(f"Run for {run_date.isoformat()} already exists: {existing['_id']}")
            return existing["_id"]

        run_id = uuid.uuid4().hex
        self.runs[run_id] = {
            "_id": run_id,
            "run_date": run_date.isoformat(),
            "config": run_config.to_dict(),
            "status": RunStatus.RUNNING.value,
            "stats": RunStats().to_dict(),
            "error_message": None,
            "started_at": self._clock(),
            "ended_at": None,
        }
        return run_id

    def update_run(
        self,
        run_id: str,
        stats: RunStats,
        status: Optional[RunStatus] = None,
        error_message: Optional[str] = None,
    ) -> WriteResult:
        run = self.runs.get(run_id)
        if run is None:
            return WriteResult()

        run["stats"] = stats.to_dict()
        if status is not None:
            run["status"] = RunStatus(status).value
            if status in (RunStatus.SUCCESS, RunStatus.FAILED):
                run["ended_at"] = self._clock()
        if error_message is not None:
            run["error_message"] = error_message
        return WriteResult(matched_count=1, modified_count=1)

    def find_run_by_date(self, run_date: date) -> Optional[Dict[str, Any]]:
        for run in self.runs.values():
            if run["run_date"] == run_date.isoformat():
                return run
        return None

    def _upsert_by_url(self, table: Dict, run_id: str, docs: List[Dict[str, Any]]) -> WriteResult:
        write = WriteResult()
        for doc in docs:
            key = (run_id, doc["url"])
            if key in table:
                write.matched_count += 1
                write.modified_count += 1
                table[key].update(doc)
            else:
                write.upserted_count += 1
                table[key] = {**doc, "run_id": run_id, "created_at": self._clock()}
        return write

    def store_search_results(self, run_id: str, results: List[SearchResult]) -> WriteResult:
        return self._upsert_by_url(self.search_results, run_id, [r.to_dict() for r in results])

    def store_pages(self, run_id: str, pages: List[FetchedPage]) -> WriteResult:
        return self._upsert_by_url(self.pages, run_id, [p.to_dict() for p in pages])

    def store_leads_and_emails(
        self,
        run_id: str,
        leads: List[ScoredLead],
        emails: Dict[str, Optional[GeneratedEmail]],
    ) -> WriteResult:
        write = WriteResult()
        for lead in leads:
            email = emails.get(lead.person_key)
            key = (run_id, lead.person_key)
            lead_doc = lead.model_dump(mode="json")

            if key in self.leads:
                write.matched_count += 1
                self.leads[key].update(lead_doc)
            else:
                write.upserted_count += 1
                self.leads[key] = {
                    **lead_doc,
                    "_id": uuid.uuid4().hex,
                    "run_id": run_id,
                    "outreach_status": OUTREACH_EMAIL_READY if email else OUTREACH_PENDING,
                    "created_at": self._clock(),
                }

            if email is None:
                continue

            lead_id = self.leads[key]["_id"]
            versions = [e["version"] for e in self.emails if e["lead_id"] == lead_id]
            self.emails.append(
                {
                    **email.model_dump(),
                    "lead_id": lead_id,
                    "run_id": run_id,
                    "person_key": lead.person_key,
                    "version": max(versions, default=0) + 1,
                    "created_at": self._clock(),
                }
            )
        return write

    def find_recent_person_keys(
        self,
        person_keys: Iterable[str],
        since: datetime,
        exclude_run_id: Optional[str] = None,
    ) -> Set[str]:
        wanted = set(person_keys)
        return {
            doc["person_key"]
            for (run_id, person_key), doc in self.leads.items()
            if person_key in wanted
            and doc["created_at"] >= since
            and run_id != exclude_run_id
        }

    def find_suppressed_person_keys(self, person_keys: Iterable[str]) -> Set[str]:
        return {key for key in person_keys if key in self.suppressed}

    def suppress_person_key(self, person_key: str, reason: Optional[str] = None) -> WriteResult:
        created = person_key not in self.suppressed
        self.suppressed[person_key] = reason
        return WriteResult(matched_count=0 if created else 1, upserted_count=1 if created else 0)

    def leads_for_run(self, run_id: str) -> List[Dict[str, Any]]:
        return [doc for (rid, _), doc in self.leads.items() if rid == run_id]
