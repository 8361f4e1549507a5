"""
Type definitions for the lead finder pipeline.

Run-level records (RunConfig, RunStats, SearchResult, FetchedPage, RunResult)
are plain dataclasses. Anything produced by an LLM (candidates, contact paths,
drafts) is a pydantic model so malformed fields are normalized at the
boundary instead of deep inside the pipeline.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


# ===== ENUMS =====

class TriggerType(str, Enum):
    """Event that makes a person worth contacting now."""
    CAREER_MOVE = "career_move"
    FUNDING_MNA = "funding_mna"
    EXPANSION = "expansion"
    RECOGNITION = "recognition"
    OTHER = "other"


class LeadCategory(str, Enum):
    EXEC = "exec"
    OWNER = "owner"
    PROFESSIONAL = "professional"
    REAL_ESTATE = "real_estate"
    OTHER = "other"


class ContactPathType(str, Enum):
    GENERIC_EMAIL = "generic_email"
    PREDICTED_EMAIL = "predicted_email"
    BIO_URL = "bio_url"
    COMPANY_CONTACT_URL = "company_contact_url"
    COMPANY_WEBSITE = "company_website"
    LINKEDIN = "linkedin"
    PHONE = "phone"
    OTHER = "other"


class EmailTone(str, Enum):
    CONGRATULATORY = "congratulatory"
    VALUE_FIRST = "value_first"
    PEER_CREDIBILITY = "peer_credibility"
    DIRECT_CURIOUS = "direct_curious"


class Tier(str, Enum):
    """Lead quality bucket. A is best, D is worst."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {Tier.A: 0, Tier.B: 1, Tier.C: 2, Tier.D: 3}


def is_similar_rank(a: Tier, b: Tier) -> bool:
    """Equal or adjacent tiers count as similar rank."""
    return abs(Tier(a).rank - Tier(b).rank) <= 1


def _coerce_enum(enum_cls, value, default):
    """Map loose LLM output onto an enum, falling back to ``default``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


class RunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class RunStage(str, Enum):
    """Orchestrator state machine, in execution order."""
    CREATED = "created"
    SEARCHING = "searching"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    SELECTING = "selecting"
    ENRICHING_CONTACTS = "enriching_contacts"
    ENRICHING_COLLEAGUES = "enriching_colleagues"
    DRAFTING = "drafting"
    PERSISTING = "persisting"
    FINALIZED = "finalized"


DEFAULT_EMAIL_TONES: Tuple[str, ...] = tuple(t.value for t in EmailTone)
DEFAULT_TRIGGER_ROTATION: Tuple[str, ...] = (
    TriggerType.CAREER_MOVE.value,
    TriggerType.FUNDING_MNA.value,
    TriggerType.EXPANSION.value,
)


# ===== RUN RECORDS =====

@dataclass(frozen=True)
class RunConfig:
    """Parameters for one run. Immutable once planned."""
    geo_name: str
    geo_aliases: Tuple[str, ...]
    trigger_focus: str
    industry_focus: Optional[str] = None
    daily_lead_target: int = 20
    candidate_target: int = 60
    recency_days: int = 7
    lead_cooldown_days: int = 90
    email_tones: Tuple[str, ...] = DEFAULT_EMAIL_TONES

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["geo_aliases"] = list(self.geo_aliases)
        data["email_tones"] = list(self.email_tones)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        return cls(
            geo_name=data["geo_name"],
            geo_aliases=tuple(data.get("geo_aliases") or [data["geo_name"]]),
            trigger_focus=data["trigger_focus"],
            industry_focus=data.get("industry_focus"),
            daily_lead_target=data.get("daily_lead_target", 20),
            candidate_target=data.get("candidate_target", 60),
            recency_days=data.get("recency_days", 7),
            lead_cooldown_days=data.get("lead_cooldown_days", 90),
            email_tones=tuple(data.get("email_tones") or DEFAULT_EMAIL_TONES),
        )


@dataclass
class RunStats:
    """Counters accumulated while a run progresses."""
    queries_executed: int = 0
    search_results_found: int = 0
    pages_fetched: int = 0
    candidates_extracted: int = 0
    leads_scored: int = 0
    leads_selected: int = 0
    emails_generated: int = 0
    errors: List[str] = field(default_factory=list)
    timing: Dict[str, int] = field(default_factory=dict)  # stage -> ms, plus total_ms

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchResult:
    query: str
    url: str
    title: str
    snippet: str
    published_at: Optional[datetime] = None
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FetchedPage:
    url: str
    final_url: str
    domain: str
    http_status: Optional[int]
    page_title: Optional[str]
    published_at_guess: Optional[datetime]
    extracted_text: str
    content_hash: str
    fetched_at: datetime
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunResult:
    """What execute_run hands back to the caller."""
    run_id: str
    status: RunStatus
    stats: RunStats
    run_config: Optional[RunConfig] = None
    error_message: Optional[str] = None
    leads: List["ScoredLead"] = field(default_factory=list)
    emails: Dict[str, Optional["GeneratedEmail"]] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS


# ===== LLM-FACING MODELS =====

class ContactPath(BaseModel):
    """
    One channel for reaching a lead.

    ``found_on_page`` is True only when the value appeared on the article the
    lead was extracted from; discovered and predicted paths are False.
    ``source_url`` is the page the value was read from, if any.
    """

    type: ContactPathType = ContactPathType.OTHER
    value: str = Field(..., min_length=1)
    found_on_page: bool = False
    source_url: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def fallback_type(cls, v):
        return _coerce_enum(ContactPathType, v, ContactPathType.OTHER)

    @field_validator("found_on_page", mode="before")
    @classmethod
    def coerce_found_on_page(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1")
        return bool(v)


class ExtractedCandidate(BaseModel):
    """A person mentioned on a fetched page with a plausible trigger."""

    full_name: str = Field(..., min_length=2)
    title: Optional[str] = None
    company: Optional[str] = None
    geo_signal: Optional[str] = None
    trigger_type: TriggerType = TriggerType.OTHER
    category: LeadCategory = LeadCategory.OTHER
    rationale_short: str
    rationale_detail: Optional[str] = None
    evidence_snippets: List[str] = Field(default_factory=list)
    contact_paths: List[ContactPath] = Field(default_factory=list)
    confidence: float = 0.5

    # Provenance, set by the pipeline rather than the LLM
    source_url: Optional[str] = None
    published_at: Optional[datetime] = None

    @field_validator("full_name", "rationale_short", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("title", "company", "geo_signal", "rationale_detail", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("trigger_type", mode="before")
    @classmethod
    def fallback_trigger(cls, v):
        return _coerce_enum(TriggerType, v, TriggerType.OTHER)

    @field_validator("category", mode="before")
    @classmethod
    def fallback_category(cls, v):
        return _coerce_enum(LeadCategory, v, LeadCategory.OTHER)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.5
        return max(0.0, min(1.0, value))

    def contact_values(self) -> set:
        return {p.value.lower() for p in self.contact_paths}

    def has_contact_type(self, *types: ContactPathType) -> bool:
        return any(p.type in types for p in self.contact_paths)


class ScoreBreakdown(BaseModel):
    recency: int = 0
    seniority: int = 0
    trigger_strength: int = 0
    reachability: int = 0


class ScoredLead(ExtractedCandidate):
    score: int = Field(..., ge=0, le=100)
    tier: Tier
    person_key: str
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)


class GeneratedEmail(BaseModel):
    subject: str = Field(..., min_length=1)
    body_html: str = Field(..., min_length=1)
    body_plain: str = Field(..., min_length=1)
    tone: str


@dataclass
class ExtractionResult:
    candidates: List[ExtractedCandidate] = field(default_factory=list)
    processing_time_ms: int = 0
