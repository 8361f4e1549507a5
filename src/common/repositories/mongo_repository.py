"""
MongoDB Lead Finder Repository

pymongo implementation of the lead finder repository. Natural keys are
enforced with unique indexes; every write is an upsert on those keys.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument, UpdateOne
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

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
    CONFIG_COLLECTION,
    EMAILS_COLLECTION,
    LEADS_COLLECTION,
    OUTREACH_EMAIL_READY,
    OUTREACH_PENDING,
    PAGES_COLLECTION,
    RUNS_COLLECTION,
    SEARCH_RESULTS_COLLECTION,
    SUPPRESSION_COLLECTION,
    LeadFinderRepositoryInterface,
    WriteResult,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {RunStatus.SUCCESS, RunStatus.FAILED}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoLeadFinderRepository(LeadFinderRepositoryInterface):
    """
    MongoDB-backed repository.

    Connection Management:
    - Uses singleton MongoClient for connection pooling
    - Indexes are created once per process on first access

    Error Handling:
    - Fail-fast: all errors propagate to caller
    - DuplicateKeyError on run creation resolves to the existing run
    """

    _client: Optional[MongoClient] = None
    _db: Optional[Database] = None
    _indexes_ready: bool = False

    def __init__(self, mongodb_uri: str, database: str = "lead_finder"):
        """
        Args:
            mongodb_uri: MongoDB connection string
            database: Database name (default: "lead_finder")
        """
        self._mongodb_uri = mongodb_uri
        self._database_name = database

    def _get_db(self) -> Database:
        if MongoLeadFinderRepository._db is None:
            MongoLeadFinderRepository._client = MongoClient(self._mongodb_uri)
            MongoLeadFinderRepository._db = MongoLeadFinderRepository._client[self._database_name]
            logger.info(f"Lead finder repository connected: {self._database_name}")
        db = MongoLeadFinderRepository._db
        if not MongoLeadFinderRepository._indexes_ready:
            self._ensure_indexes(db)
            MongoLeadFinderRepository._indexes_ready = True
        return db

    @staticmethod
    def _ensure_indexes(db: Database) -> None:
        db[RUNS_COLLECTION].create_index([("run_date", ASCENDING)], unique=True)
        db[SEARCH_RESULTS_COLLECTION].create_index(
            [("run_id", ASCENDING), ("url", ASCENDING)], unique=True
        )
        db[PAGES_COLLECTION].create_index(
            [("run_id", ASCENDING), ("url", ASCENDING)], unique=True
        )
        db[LEADS_COLLECTION].create_index(
            [("run_id", ASCENDING), ("person_key", ASCENDING)], unique=True
        )
        db[LEADS_COLLECTION].create_index([("person_key", ASCENDING), ("created_at", DESCENDING)])
        db[EMAILS_COLLECTION].create_index(
            [("lead_id", ASCENDING), ("version", ASCENDING)], unique=True
        )
        db[SUPPRESSION_COLLECTION].create_index(
            [("type", ASCENDING), ("value", ASCENDING)], unique=True
        )

    # ===== CONFIG =====

    def load_config(self) -> Dict[str, Any]:
        db = self._get_db()
        return {doc["key"]: doc.get("value") for doc in db[CONFIG_COLLECTION].find({})}

    # ===== RUNS =====

    def create_run(self, run_date: date, run_config: RunConfig) -> str:
        runs = self._get_db()[RUNS_COLLECTION]
        doc = {
            "run_date": run_date.isoformat(),
            "config": run_config.to_dict(),
            "status": RunStatus.RUNNING.value,
            "stats": RunStats().to_dict(),
            "error_message": None,
            "started_at": _utcnow(),
            "ended_at": None,
        }
        try:
            result = runs.insert_one(doc)
        except DuplicateKeyError:
            existing = runs.find_one({"run_date": run_date.isoformat()})
            if existing is None:
                raise
            logger.info(f"Run for {run_date.isoformat()} already exists: {existing['_id']}")
            return str(existing["_id"])

        logger.info(f"Created run {result.inserted_id} for {run_date.isoformat()}")
        return str(result.inserted_id)

    def update_run(
        self,
        run_id: str,
        stats: RunStats,
        status: Optional[RunStatus] = None,
        error_message: Optional[str] = None,
    ) -> WriteResult:
        fields: Dict[str, Any] = {"stats": stats.to_dict()}
        if status is not None:
            fields["status"] = RunStatus(status).value
            if status in TERMINAL_STATUSES:
                fields["ended_at"] = _utcnow()
        if error_message is not None:
            fields["error_message"] = error_message

        result = self._get_db()[RUNS_COLLECTION].update_one(
            {"_id": ObjectId(run_id)}, {"$set": fields}
        )
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    def find_run_by_date(self, run_date: date) -> Optional[Dict[str, Any]]:
        doc = self._get_db()[RUNS_COLLECTION].find_one({"run_date": run_date.isoformat()})
        if doc is not None:
            doc["_id"] = str(doc["_id"])
        return doc

    # ===== SEARCH RESULTS / PAGES =====

    def _bulk_upsert(self, collection_name: str, run_id: str, docs: List[Dict[str, Any]]) -> WriteResult:
        if not docs:
            return WriteResult()
        now = _utcnow()
        operations = [
            UpdateOne(
                {"run_id": run_id, "url": doc["url"]},
                {"$set": {**doc, "run_id": run_id}, "$setOnInsert": {"created_at": now}},
                upsert=True,
            )
            for doc in docs
        ]
        result = self._get_db()[collection_name].bulk_write(operations, ordered=False)
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_count=result.upserted_count,
        )

    def store_search_results(self, run_id: str, results: List[SearchResult]) -> WriteResult:
        return self._bulk_upsert(
            SEARCH_RESULTS_COLLECTION, run_id, [r.to_dict() for r in results]
        )

    def store_pages(self, run_id: str, pages: List[FetchedPage]) -> WriteResult:
        return self._bulk_upsert(PAGES_COLLECTION, run_id, [p.to_dict() for p in pages])

    # ===== LEADS / EMAILS =====

    def store_leads_and_emails(
        self,
        run_id: str,
        leads: List[ScoredLead],
        emails: Dict[str, Optional[GeneratedEmail]],
    ) -> WriteResult:
        db = self._get_db()
        write = WriteResult()
        emails_stored = 0

        for lead in leads:
            email = emails.get(lead.person_key)
            lead_doc = lead.model_dump(mode="json")
            lead_doc["run_id"] = run_id
            new_id = ObjectId()

            # Pre-image is None when the upsert inserted
            previous = db[LEADS_COLLECTION].find_one_and_update(
                {"run_id": run_id, "person_key": lead.person_key},
                {
                    "$set": lead_doc,
                    "$setOnInsert": {
                        "_id": new_id,
                        "outreach_status": OUTREACH_EMAIL_READY if email else OUTREACH_PENDING,
                        "created_at": _utcnow(),
                    },
                },
                upsert=True,
                return_document=ReturnDocument.BEFORE,
            )
            if previous is None:
                write.upserted_count += 1
                lead_id = new_id
            else:
                write.matched_count += 1
                lead_id = previous["_id"]

            if email is None:
                continue

            latest = db[EMAILS_COLLECTION].find_one(
                {"lead_id": lead_id}, sort=[("version", DESCENDING)]
            )
            version = (latest["version"] + 1) if latest else 1
            db[EMAILS_COLLECTION].insert_one(
                {
                    "lead_id": lead_id,
                    "run_id": run_id,
                    "person_key": lead.person_key,
                    "version": version,
                    "subject": email.subject,
                    "body_html": email.body_html,
                    "body_plain": email.body_plain,
                    "tone": email.tone,
                    "created_at": _utcnow(),
                }
            )
            emails_stored += 1

        logger.info(
            f"Stored {len(leads)} leads ({write.upserted_count} new, {write.matched_count} updated) "
            f"and {emails_stored} emails for run {run_id}"
        )
        return write

    def find_recent_person_keys(
        self,
        person_keys: Iterable[str],
        since: datetime,
        exclude_run_id: Optional[str] = None,
    ) -> Set[str]:
        keys = list(person_keys)
        if not keys:
            return set()
        query: Dict[str, Any] = {"person_key": {"$in": keys}, "created_at": {"$gte": since}}
        if exclude_run_id:
            query["run_id"] = {"$ne": exclude_run_id}
        cursor = self._get_db()[LEADS_COLLECTION].find(query, {"person_key": 1})
        return {doc["person_key"] for doc in cursor}

    # ===== SUPPRESSION =====

    def find_suppressed_person_keys(self, person_keys: Iterable[str]) -> Set[str]:
        keys = list(person_keys)
        if not keys:
            return set()
        cursor = self._get_db()[SUPPRESSION_COLLECTION].find(
            {"type": "person_key", "value": {"$in": keys}}, {"value": 1}
        )
        return {doc["value"] for doc in cursor}

    def suppress_person_key(self, person_key: str, reason: Optional[str] = None) -> WriteResult:
        result = self._get_db()[SUPPRESSION_COLLECTION].update_one(
            {"type": "person_key", "value": person_key},
            {"$set": {"reason": reason}, "$setOnInsert": {"created_at": _utcnow()}},
            upsert=True,
        )
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_count=1 if result.upserted_id else 0,
        )

    @classmethod
    def reset_connection(cls) -> None:
        """
        Reset the connection pool.

        Used for testing or connection recovery.
        """
        if cls._client:
            cls._client.close()
        cls._client = None
        cls._db = None
        cls._indexes_ready = False
        logger.info("Lead finder repository connection reset")
