"""
Candidate extraction from fetched page text.

Asks the LLM for people on the page who have a recent trigger event, then
validates and normalizes what comes back. Unparseable responses yield no
candidates; LLM transport errors propagate after retries so the caller can
record them against the page.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.json_utils import parse_llm_json
from src.common.llm_factory import create_llm
from src.lead_finder.prompts import EXTRACTION_SYSTEM_PROMPT, EXTRACTION_USER_PROMPT
from src.lead_finder.types import ContactPath, ExtractedCandidate, ExtractionResult

MAX_TEXT_LENGTH = 12_000
MIN_TEXT_LENGTH = 100
MAX_CANDIDATES_PER_PAGE = 5

# LLM output keys -> model fields
_FIELD_MAP = {
    "fullName": "full_name",
    "geoSignal": "geo_signal",
    "triggerType": "trigger_type",
    "rationaleShort": "rationale_short",
    "rationaleDetail": "rationale_detail",
    "evidenceSnippets": "evidence_snippets",
    "contactPaths": "contact_paths",
}


class CandidateExtractor:
    """Extracts ExtractedCandidate records from one page at a time."""

    def __init__(self, llm=None, region: Optional[str] = None):
        """
        Args:
            llm: Chat model with ``invoke(messages)``; defaults to the pipeline model
            region: Region leads must be connected to (defaults to Config.TARGET_REGION)
        """
        self.logger = logging.getLogger(__name__)
        self.llm = llm or create_llm(
            model=Config.DEFAULT_MODEL,
            temperature=Config.EXTRACTION_TEMPERATURE,
            stage="extract",
        )
        self.region = region or Config.TARGET_REGION

    def extract_leads(
        self,
        page_title: Optional[str],
        source_url: str,
        extracted_text: str,
    ) -> ExtractionResult:
        """
        Extract up to MAX_CANDIDATES_PER_PAGE candidates from page text.

        Text is truncated to MAX_TEXT_LENGTH; pages shorter than
        MIN_TEXT_LENGTH are skipped without an LLM call.
        """
        start = time.perf_counter()
        text = (extracted_text or "")[:MAX_TEXT_LENGTH]

        if len(text) < MIN_TEXT_LENGTH:
            self.logger.debug(f"Skipping {source_url}: only {len(text)} chars of text")
            return ExtractionResult(candidates=[], processing_time_ms=0)

        response_text = self._invoke(page_title, source_url, text)
        candidates = self._parse_response(response_text, source_url)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self.logger.info(f"Extracted {len(candidates)} candidates from {source_url} ({elapsed_ms}ms)")
        return ExtractionResult(candidates=candidates, processing_time_ms=elapsed_ms)

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=2, max=10))
    def _invoke(self, page_title: Optional[str], source_url: str, text: str) -> str:
        messages = [
            SystemMessage(content=EXTRACTION_SYSTEM_PROMPT.format(region=self.region)),
            HumanMessage(content=EXTRACTION_USER_PROMPT.format(
                title=page_title or "Unknown",
                url=source_url,
                text=text,
                region=self.region,
                max_candidates=MAX_CANDIDATES_PER_PAGE,
            )),
        ]
        response = self.llm.invoke(messages)
        return str(response.content).strip()

    def _parse_response(self, response_text: str, source_url: str) -> List[ExtractedCandidate]:
        try:
            data = parse_llm_json(response_text)
        except ValueError as e:
            self.logger.warning(f"Unparseable extraction response for {source_url}: {e}")
            return []

        raw_candidates = data.get("candidates")
        if not isinstance(raw_candidates, list):
            return []

        candidates = []
        for raw in raw_candidates:
            candidate = self._to_candidate(raw, source_url)
            if candidate is not None:
                candidates.append(candidate)
            if len(candidates) >= MAX_CANDIDATES_PER_PAGE:
                break
        return candidates

    def _to_candidate(self, raw: Any, source_url: str) -> Optional[ExtractedCandidate]:
        """Validate one raw candidate; None when required fields are missing."""
        if not isinstance(raw, dict):
            return None

        fields: Dict[str, Any] = {_FIELD_MAP.get(k, k): v for k, v in raw.items()}

        # Name (>= 2 chars) and a short rationale are required
        if not isinstance(fields.get("full_name"), str) or len(fields["full_name"].strip()) < 2:
            return None
        if not isinstance(fields.get("rationale_short"), str):
            return None

        fields["contact_paths"] = _normalize_contact_paths(fields.get("contact_paths"), source_url)
        snippets = fields.get("evidence_snippets")
        fields["evidence_snippets"] = [s for s in snippets if isinstance(s, str)] if isinstance(snippets, list) else []
        fields["source_url"] = source_url
        fields.pop("published_at", None)

        try:
            return ExtractedCandidate(**fields)
        except ValidationError as e:
            self.logger.debug(f"Dropping invalid candidate from {source_url}: {e}")
            return None


def _normalize_contact_paths(raw_paths: Any, source_url: str) -> List[ContactPath]:
    if not isinstance(raw_paths, list):
        return []
    paths = []
    for raw in raw_paths:
        if not isinstance(raw, dict):
            continue
        value = raw.get("value")
        if not isinstance(value, str) or not value.strip():
            continue
        found = raw.get("foundOnPage", raw.get("found_on_page"))
        paths.append(ContactPath(
            type=raw.get("type"),
            value=value.strip(),
            found_on_page=found if found is not None else False,
            source_url=source_url,
        ))
    return paths
