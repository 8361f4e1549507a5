"""
Lead scoring and selection.

Scoring is a pure function of the candidate and its page's publish date:

    recency (25) + seniority (35) + trigger strength (25) + reachability (15)

normalized to 0-100 and bucketed into tiers A >= 80, B >= 65, C >= 50, D.

Selection dedupes within the batch (exact or near-identical names), drops
person keys seen inside the cooldown window or on the suppression list,
applies diversity caps and truncates to the daily target.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from difflib import SequenceMatcher
from typing import Callable, Dict, List, Optional

from src.common.repositories.base import LeadFinderRepositoryInterface
from src.lead_finder.types import (
    ContactPathType,
    ExtractedCandidate,
    LeadCategory,
    ScoreBreakdown,
    ScoredLead,
    Tier,
    TriggerType,
)

# ===== WEIGHTS =====

MAX_RECENCY = 25
MAX_SENIORITY = 35
MAX_TRIGGER_STRENGTH = 25
MAX_REACHABILITY = 15
MAX_TOTAL = MAX_RECENCY + MAX_SENIORITY + MAX_TRIGGER_STRENGTH + MAX_REACHABILITY

UNKNOWN_DATE_RECENCY = 15

# (max days ago, points); anything older scores 5
RECENCY_BANDS = [(2, 25), (7, 20), (14, 15), (30, 10)]

TITLE_SENIORITY = {
    # C-suite
    "ceo": 35, "chief executive": 35, "president": 35,
    "cfo": 35, "chief financial": 35,
    "coo": 35, "chief operating": 35,
    "cto": 35, "chief technology": 35,
    "cmo": 35, "chief marketing": 35,
    "cio": 35, "chief information": 35,
    # EVP / partner
    "evp": 30, "executive vice president": 30,
    "partner": 30, "managing partner": 30, "general partner": 30,
    "managing director": 30,
    # SVP
    "svp": 25, "senior vice president": 25, "principal": 25,
    # VP
    "vp": 20, "vice president": 20,
    # Director
    "director": 15, "head of": 15,
    # Owner / founder
    "founder": 30, "co-founder": 30, "owner": 30, "co-owner": 25,
    # Professionals
    "physician": 20, "doctor": 20, "surgeon": 25,
    "attorney": 20, "lawyer": 20, "counsel": 18,
    "investment banker": 25, "banker": 18,
    "manager": 10,
}

# Longest phrase first so "vice president" wins over "president"
_TITLE_PATTERNS = [
    (re.compile(rf"\b{re.escape(keyword)}\b"), score)
    for keyword, score in sorted(TITLE_SENIORITY.items(), key=lambda kv: -len(kv[0]))
]

# Category fallbacks: (no title at all, title with no known keyword)
CATEGORY_SENIORITY = {
    LeadCategory.EXEC: (20, 15),
    LeadCategory.OWNER: (25, 20),
    LeadCategory.PROFESSIONAL: (15, 12),
}
DEFAULT_CATEGORY_SENIORITY = (10, 8)

TRIGGER_BASE = {
    TriggerType.CAREER_MOVE: 25,
    TriggerType.FUNDING_MNA: 22,
    TriggerType.EXPANSION: 18,
    TriggerType.RECOGNITION: 15,
}
DEFAULT_TRIGGER_BASE = 10

REACHABILITY_POINTS = {
    ContactPathType.BIO_URL: 5,
    ContactPathType.COMPANY_CONTACT_URL: 4,
    ContactPathType.LINKEDIN: 4,
    ContactPathType.PHONE: 3,
    ContactPathType.GENERIC_EMAIL: 2,
}
NO_CONTACT_REACHABILITY = 3

TIER_THRESHOLDS = [(80, Tier.A), (65, Tier.B), (50, Tier.C)]

# ===== SELECTION LIMITS =====

FUZZY_NAME_THRESHOLD = 0.95
MAX_PER_COMPANY = 4
MAX_PER_TRIGGER = 8
TRIGGER_CAP_POOL_FACTOR = 1.5

# Fields recomputed on every scoring pass
_SCORED_FIELDS = {"published_at", "score", "tier", "person_key", "score_breakdown"}

_COMPANY_SUFFIXES = re.compile(r"\b(inc|llc|corp|corporation|company|co|ltd)\b")


# ===== NORMALIZATION =====

def normalize_name(name: str) -> str:
    name = re.sub(r"[^a-z\s]", "", (name or "").lower())
    return re.sub(r"\s+", " ", name).strip()


def normalize_company(company: Optional[str]) -> str:
    company = re.sub(r"[^a-z0-9\s]", "", (company or "").lower())
    company = _COMPANY_SUFFIXES.sub("", company)
    return re.sub(r"\s+", " ", company).strip()


def normalize_geo(geo: Optional[str]) -> str:
    geo = re.sub(r"[^a-z\s,]", "", (geo or "").lower())
    return re.sub(r"\s+", " ", geo).strip()


def name_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def assign_tier(score: int) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return Tier.D


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class LeadScorer:
    """
    Scores candidates and selects the day's leads.

    The repository is only consulted by select_top_leads (cooldown and
    suppression lookups); scoring never touches it.
    """

    def __init__(
        self,
        repository: Optional[LeadFinderRepositoryInterface] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)

    # ===== SCORING =====

    def generate_person_key(self, lead: ExtractedCandidate) -> str:
        """``name|company|geo``, each normalized."""
        return "|".join([
            normalize_name(lead.full_name),
            normalize_company(lead.company),
            normalize_geo(lead.geo_signal),
        ])

    def score_lead(self, candidate: ExtractedCandidate, published_at: Optional[datetime] = None) -> ScoredLead:
        breakdown = ScoreBreakdown(
            recency=self._score_recency(published_at),
            seniority=self._score_seniority(candidate.title, candidate.category),
            trigger_strength=self._score_trigger(candidate.trigger_type, candidate.confidence),
            reachability=self._score_reachability(candidate),
        )
        raw = breakdown.recency + breakdown.seniority + breakdown.trigger_strength + breakdown.reachability
        score = min(100, _round_half_up(raw / MAX_TOTAL * 100))

        return ScoredLead(
            **candidate.model_dump(exclude=_SCORED_FIELDS),
            published_at=published_at,
            score=score,
            tier=assign_tier(score),
            person_key=self.generate_person_key(candidate),
            score_breakdown=breakdown,
        )

    def _score_recency(self, published_at: Optional[datetime]) -> int:
        if published_at is None:
            return UNKNOWN_DATE_RECENCY
        days_ago = (self.clock() - _as_utc(published_at)).days
        for max_days, points in RECENCY_BANDS:
            if days_ago <= max_days:
                return points
        return 5

    @staticmethod
    def _score_seniority(title: Optional[str], category: LeadCategory) -> int:
        no_title, unmatched = CATEGORY_SENIORITY.get(category, DEFAULT_CATEGORY_SENIORITY)
        if not title:
            return no_title
        normalized = title.lower()
        for pattern, score in _TITLE_PATTERNS:
            if pattern.search(normalized):
                return score
        return unmatched

    @staticmethod
    def _score_trigger(trigger_type: TriggerType, confidence: float) -> int:
        return _round_half_up(TRIGGER_BASE.get(trigger_type, DEFAULT_TRIGGER_BASE) * confidence)

    @staticmethod
    def _score_reachability(candidate: ExtractedCandidate) -> int:
        if not candidate.contact_paths:
            return NO_CONTACT_REACHABILITY
        types = {p.type for p in candidate.contact_paths}
        return min(MAX_REACHABILITY, sum(REACHABILITY_POINTS.get(t, 0) for t in types))

    # ===== SELECTION =====

    def select_top_leads(
        self,
        scored_leads: List[ScoredLead],
        daily_target: int,
        cooldown_days: int = 90,
        exclude_run_id: Optional[str] = None,
    ) -> List[ScoredLead]:
        """
        Pick at most ``daily_target`` leads from a score-sorted list.

        Args:
            scored_leads: Leads sorted by score, best first
            daily_target: Upper bound on the result size
            cooldown_days: Person keys stored within this many days are
                excluded; 0 disables the check
            exclude_run_id: Leads already stored for this run do not count
                against the cooldown (re-executing a run for the same date)
        """
        if daily_target <= 0:
            return []

        unique = self._dedupe_fuzzy(scored_leads)
        eligible = self.filter_eligible(unique, cooldown_days, exclude_run_id=exclude_run_id)

        diverse = self._apply_diversity(eligible, daily_target)
        return diverse[:daily_target]

    def filter_eligible(
        self,
        leads: List[ScoredLead],
        cooldown_days: int = 90,
        exclude_run_id: Optional[str] = None,
    ) -> List[ScoredLead]:
        """
        Drop leads in cooldown or on the suppression list, keeping order.

        Without a repository every lead is eligible.
        """
        if not leads or self.repository is None:
            return list(leads)

        keys = [lead.person_key for lead in leads]
        recent = set()
        if cooldown_days > 0:
            since = self.clock() - timedelta(days=cooldown_days)
            recent = self.repository.find_recent_person_keys(keys, since, exclude_run_id=exclude_run_id)
        suppressed = self.repository.find_suppressed_person_keys(keys)

        if recent or suppressed:
            self.logger.info(
                f"Excluding {len(recent)} leads in cooldown and {len(suppressed)} suppressed"
            )
        return [
            lead for lead in leads
            if lead.person_key not in recent and lead.person_key not in suppressed
        ]

    def _dedupe_fuzzy(self, leads: List[ScoredLead]) -> List[ScoredLead]:
        kept: List[ScoredLead] = []
        kept_names: List[str] = []
        for lead in leads:
            name = normalize_name(lead.full_name)
            if any(name_similarity(name, other) > FUZZY_NAME_THRESHOLD or name == other for other in kept_names):
                self.logger.debug(f"Fuzzy duplicate detected: {lead.full_name} at {lead.company}")
                continue
            kept.append(lead)
            kept_names.append(name)
        return kept

    @staticmethod
    def _apply_diversity(leads: List[ScoredLead], daily_target: int) -> List[ScoredLead]:
        company_counts: Dict[str, int] = {}
        by_company = []
        for lead in leads:
            company = (lead.company or "unknown").lower()
            if company_counts.get(company, 0) >= MAX_PER_COMPANY:
                continue
            company_counts[company] = company_counts.get(company, 0) + 1
            by_company.append(lead)

        # The trigger cap only applies when there is a surplus to choose from
        if len(by_company) <= daily_target * TRIGGER_CAP_POOL_FACTOR:
            return by_company

        trigger_counts: Dict[TriggerType, int] = {}
        diverse = []
        for lead in by_company:
            if trigger_counts.get(lead.trigger_type, 0) >= MAX_PER_TRIGGER:
                continue
            trigger_counts[lead.trigger_type] = trigger_counts.get(lead.trigger_type, 0) + 1
            diverse.append(lead)
        return diverse
