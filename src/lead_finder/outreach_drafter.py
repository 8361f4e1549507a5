"""
Outreach email drafting.

One LLM call per lead. Tones rotate round-robin over the configured list so a
batch mixes styles. Drafting never sends anything.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from src.common.config import Config
from src.common.error_handling import ErrorCollector, record_item_failure
from src.common.json_utils import parse_llm_json
from src.common.llm_factory import create_llm
from src.lead_finder.prompts import (
    DEFAULT_TRIGGER_DESCRIPTION,
    EMAIL_SYSTEM_PROMPT,
    EMAIL_USER_PROMPT,
    TONE_INSTRUCTIONS,
    TRIGGER_DESCRIPTIONS,
)
from src.lead_finder.types import DEFAULT_EMAIL_TONES, GeneratedEmail, ScoredLead


class DraftError(Exception):
    """The LLM response did not contain a usable draft."""
    pass


def tone_for_index(tones: Sequence[str], index: int) -> str:
    return tones[index % len(tones)]


def describe_trigger(trigger_type: str) -> str:
    return TRIGGER_DESCRIPTIONS.get(trigger_type, DEFAULT_TRIGGER_DESCRIPTION)


class OutreachDrafter:
    """Drafts personalized outreach emails for scored leads."""

    def __init__(self, llm=None, delay_seconds: Optional[float] = None):
        self.logger = logging.getLogger(__name__)
        self.llm = llm or create_llm(
            model=Config.DEFAULT_MODEL,
            temperature=Config.CREATIVE_TEMPERATURE,
            stage="draft",
        )
        self.delay_seconds = Config.inter_call_delay_seconds() if delay_seconds is None else delay_seconds

    def generate_emails_batch(
        self,
        leads: List[ScoredLead],
        tones: Sequence[str] = DEFAULT_EMAIL_TONES,
        errors: Optional[ErrorCollector] = None,
    ) -> Dict[str, Optional[GeneratedEmail]]:
        """
        Draft one email per lead, keyed by person_key.

        Lead i gets ``tones[i % len(tones)]``. A failed draft maps to None
        and is recorded in ``errors``.
        """
        tones = list(tones) or list(DEFAULT_EMAIL_TONES)
        drafts: Dict[str, Optional[GeneratedEmail]] = {}

        for index, lead in enumerate(leads):
            tone = tone_for_index(tones, index)
            try:
                drafts[lead.person_key] = self.generate_email(lead, tone)
            except Exception as e:
                drafts[lead.person_key] = None
                record_item_failure(
                    errors, self.logger, "draft", "generate_email",
                    f"Email draft failed for {lead.full_name}: {e}", e,
                )
            if self.delay_seconds and index < len(leads) - 1:
                time.sleep(self.delay_seconds)

        return drafts

    def generate_email(self, lead: ScoredLead, tone: str) -> GeneratedEmail:
        """
        Draft a single email; also used to regenerate a draft in a new tone.

        Raises:
            DraftError: If the response lacks subject or bodies
        """
        response_text = self._invoke(lead, tone)
        try:
            data = parse_llm_json(response_text)
        except ValueError as e:
            raise DraftError(f"Unparseable draft: {e}") from e

        try:
            return GeneratedEmail(
                subject=data.get("subject") or "",
                body_html=data.get("bodyHtml") or data.get("body_html") or "",
                body_plain=data.get("bodyPlain") or data.get("body_plain") or "",
                tone=tone,
            )
        except ValidationError as e:
            raise DraftError(f"Missing required email fields: {e}") from e

    @retry(stop=stop_after_attempt(2), wait=wait_exponential(min=1, max=5))
    def _invoke(self, lead: ScoredLead, tone: str) -> str:
        first_name = lead.full_name.split()[0]
        messages = [
            SystemMessage(content=EMAIL_SYSTEM_PROMPT.format(firm=Config.FIRM_NAME)),
            HumanMessage(content=EMAIL_USER_PROMPT.format(
                name=first_name,
                title=lead.title or "Executive",
                company=lead.company or "their organization",
                location=lead.geo_signal or Config.TARGET_REGION,
                trigger=describe_trigger(lead.trigger_type.value),
                rationale=lead.rationale_detail or lead.rationale_short,
                tone_instructions=TONE_INSTRUCTIONS.get(tone, ""),
                sender_name=Config.SENDER_NAME,
                sender_title=Config.SENDER_TITLE,
            )),
        ]
        response = self.llm.invoke(messages)
        return str(response.content).strip()
