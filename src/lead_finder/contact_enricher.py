"""
Contact enrichment for selected leads.

For each lead without a direct email, a secondary search looks for an email
address or a profile page. Addresses pass through an ordered list of named
legitimacy rules. When nothing survives, an LLM-backed predictor guesses
addresses on the company's domain, tagged ``predicted_email``.

Enrichment only ever appends contact paths.
"""

import logging
import re
import time
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from langchain_core.messages import HumanMessage
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.error_handling import ErrorCollector, record_item_failure
from src.common.json_utils import parse_llm_json_array
from src.common.llm_factory import create_cheap_llm
from src.lead_finder.prompts import EMAIL_PREDICTION_PROMPT
from src.lead_finder.search_client import SearchClient
from src.lead_finder.types import ContactPath, ContactPathType, ExtractedCandidate, ScoredLead

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

GENERIC_MAILBOX_MARKERS = ("noreply", "no-reply", "info@", "contact@", "admin@", "support@")

PROFILE_PATH_MARKERS = (
    "/people/", "/team/", "/about/", "/bio/", "/profile/",
    "/leadership/", "/staff/", "/our-team", "/meet-",
    "linkedin.com/in/", "twitter.com/", "crunchbase.com/person/",
)

MIN_NAME_TOKEN_LENGTH = 3
MIN_COMPANY_TOKEN_LENGTH = 4
SEARCH_RESULT_LIMIT = 5
MAX_PREDICTED_EMAILS = 3

# A trailing legal-suffix word, matched before punctuation is stripped
_COMPANY_SLUG_SUFFIXES = re.compile(
    r"[\s,]+(inc|corp|corporation|llc|ltd|limited|company|co)\.?$", re.IGNORECASE
)


# ===== PREDICATES =====

def is_generic_mailbox(email: str, lead: ExtractedCandidate = None) -> bool:
    """Role or automated mailbox (noreply, info@, support@, ...)."""
    lowered = email.lower()
    return any(marker in lowered for marker in GENERIC_MAILBOX_MARKERS)


def contains_name_or_company_token(email: str, lead: ExtractedCandidate) -> bool:
    """The local part mentions the person's name or the company."""
    local_part = email.lower().split("@", 1)[0]
    name_tokens = [t for t in lead.full_name.lower().split() if len(t) >= MIN_NAME_TOKEN_LENGTH]
    company_tokens = [t for t in (lead.company or "").lower().split() if len(t) >= MIN_COMPANY_TOKEN_LENGTH]
    return any(token in local_part for token in name_tokens + company_tokens)


def is_known_profile_path(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in PROFILE_PATH_MARKERS)


# Evaluated in order; the first matching rule decides. No match rejects.
EMAIL_LEGITIMACY_RULES: List[Tuple[str, Callable[[str, ExtractedCandidate], bool], bool]] = [
    ("is_generic_mailbox", is_generic_mailbox, False),
    ("contains_name_or_company_token", contains_name_or_company_token, True),
]


def is_legitimate_email(
    email: str,
    lead: ExtractedCandidate,
    rules: Sequence[Tuple[str, Callable[[str, ExtractedCandidate], bool], bool]] = EMAIL_LEGITIMACY_RULES,
) -> bool:
    for _name, predicate, accept in rules:
        if predicate(email, lead):
            return accept
    return False


def extract_emails(text: str) -> List[str]:
    return EMAIL_PATTERN.findall(text or "")


def derive_email_domain(lead: ExtractedCandidate) -> Optional[str]:
    """
    Domain from a company website or contact URL path, else the company
    name slug with a trailing legal suffix removed plus ``.com``.
    """
    for path in lead.contact_paths:
        if path.type in (ContactPathType.COMPANY_WEBSITE, ContactPathType.COMPANY_CONTACT_URL):
            hostname = urlparse(path.value).hostname
            if hostname:
                return hostname[4:] if hostname.startswith("www.") else hostname

    if not lead.company:
        return None
    name = _COMPANY_SLUG_SUFFIXES.sub("", lead.company.strip())
    slug = re.sub(r"[^a-z0-9]", "", name.lower())
    return f"{slug}.com" if slug else None


# ===== PREDICTOR =====

class EmailPatternPredictor:
    """Asks a cheap LLM for 2-3 likely addresses on a known domain."""

    def __init__(self, llm=None):
        self.logger = logging.getLogger(__name__)
        self.llm = llm or create_cheap_llm(stage="contact_enrichment")

    def predict(self, lead: ExtractedCandidate, domain: str) -> List[str]:
        response_text = self._invoke(lead, domain)
        try:
            guesses = parse_llm_json_array(response_text)
        except ValueError as e:
            self.logger.warning(f"Unparseable email prediction for {lead.full_name}: {e}")
            return []

        emails = []
        for guess in guesses:
            if not isinstance(guess, str):
                continue
            email = guess.strip().lower()
            if EMAIL_PATTERN.fullmatch(email) and email.endswith(f"@{domain}") and email not in emails:
                emails.append(email)
        return emails[:MAX_PREDICTED_EMAILS]

    @retry(stop=stop_after_attempt(2), wait=wait_exponential(min=1, max=5))
    def _invoke(self, lead: ExtractedCandidate, domain: str) -> str:
        prompt = EMAIL_PREDICTION_PROMPT.format(
            full_name=lead.full_name,
            company=lead.company or "Unknown",
            domain=domain,
        )
        response = self.llm.invoke([HumanMessage(content=prompt)])
        return str(response.content).strip()


# ===== ENRICHER =====

class ContactEnricher:
    """Adds discovered and predicted contact paths to selected leads."""

    def __init__(
        self,
        search_client: SearchClient,
        predictor: Optional[EmailPatternPredictor] = None,
        delay_seconds: Optional[float] = None,
    ):
        self.search_client = search_client
        self.predictor = predictor
        self.delay_seconds = Config.inter_call_delay_seconds() if delay_seconds is None else delay_seconds
        self.logger = logging.getLogger(__name__)

    def enrich_leads(self, leads: List[ScoredLead], errors: Optional[ErrorCollector] = None) -> List[ScoredLead]:
        """
        Enrich leads in place. A failure for one lead is logged and
        recorded; the remaining leads are still processed.
        """
        for index, lead in enumerate(leads):
            if lead.has_contact_type(ContactPathType.GENERIC_EMAIL):
                self.logger.debug(f"{lead.full_name} already has a direct email, skipping")
                continue
            try:
                self.enrich_lead(lead)
            except Exception as e:
                record_item_failure(
                    errors, self.logger, "contact_enrichment", "enrich_lead",
                    f"Contact enrichment failed for {lead.full_name}: {e}", e,
                )
            if self.delay_seconds and index < len(leads) - 1:
                time.sleep(self.delay_seconds)
        return leads

    def enrich_lead(self, lead: ExtractedCandidate) -> None:
        query = f'"{lead.full_name}" {lead.company or ""} email contact'.strip()
        results = self.search_client.search(query, recency_days=None, limit=SEARCH_RESULT_LIMIT)

        found_email = False
        for result in results:
            for email in extract_emails(f"{result.snippet} {result.title}"):
                if is_legitimate_email(email, lead):
                    found_email = True
                    if self._append(lead, ContactPathType.GENERIC_EMAIL, email, result.url):
                        self.logger.info(f"Found email for {lead.full_name}: {email}")

            if is_known_profile_path(result.url):
                self._append(lead, ContactPathType.BIO_URL, result.url, result.url)

        if found_email or self.predictor is None:
            return

        domain = derive_email_domain(lead)
        if not domain:
            return
        predicted = self.predictor.predict(lead, domain)
        for email in predicted:
            self._append(lead, ContactPathType.PREDICTED_EMAIL, email, None)
        if predicted:
            self.logger.info(f"Predicted {len(predicted)} emails for {lead.full_name}")

    @staticmethod
    def _append(lead: ExtractedCandidate, path_type: ContactPathType, value: str, source: Optional[str]) -> bool:
        """Append unless the value is already present. Returns True when added."""
        if value.lower() in lead.contact_values():
            return False
        lead.contact_paths.append(ContactPath(type=path_type, value=value, found_on_page=False, source_url=source))
        return True
