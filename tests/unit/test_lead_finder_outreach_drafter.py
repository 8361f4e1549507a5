"""
Unit tests for src/lead_finder/outreach_drafter.py

Tests outreach drafting with a fake chat model:
- Round-robin tone assignment
- Prompt personalization (first name, trigger description, tone block)
- Failed drafts map to None and are recorded
"""

import json

import pytest

from src.common.error_handling import ErrorCollector
from src.lead_finder.lead_scorer import LeadScorer
from src.lead_finder.outreach_drafter import (
    DraftError,
    OutreachDrafter,
    describe_trigger,
    tone_for_index,
)
from src.lead_finder.types import DEFAULT_EMAIL_TONES

DRAFT = json.dumps({
    "subject": "Congrats on the new role",
    "bodyHtml": "<p>Hi Jane,</p><p>Congratulations.</p>",
    "bodyPlain": "Hi Jane,\n\nCongratulations.",
})


@pytest.fixture
def leads(make_candidate):
    scorer = LeadScorer()
    names = ["Jane Doe", "Robert Smith", "Carlos Ruiz", "Priya Patel", "Mei Chen"]
    return [scorer.score_lead(make_candidate(full_name=n, company=f"{n} Group")) for n in names]


class TestHelpers:

    def test_tone_for_index_wraps(self):
        tones = ["a", "b", "c"]
        assert [tone_for_index(tones, i) for i in range(5)] == ["a", "b", "c", "a", "b"]

    def test_describe_trigger(self):
        assert describe_trigger("career_move") == "New role/promotion"
        assert describe_trigger("other") == "Recent business development"


class TestGenerateEmailsBatch:
    """Tests for OutreachDrafter.generate_emails_batch."""

    def test_round_robin_tones(self, fake_llm, leads):
        drafter = OutreachDrafter(llm=fake_llm([DRAFT]), delay_seconds=0)

        drafts = drafter.generate_emails_batch(leads, DEFAULT_EMAIL_TONES)

        assert [drafts[lead.person_key].tone for lead in leads] == [
            "congratulatory", "value_first", "peer_credibility", "direct_curious", "congratulatory",
        ]

    def test_keyed_by_person_key(self, fake_llm, leads):
        drafter = OutreachDrafter(llm=fake_llm([DRAFT]), delay_seconds=0)

        drafts = drafter.generate_emails_batch(leads[:2])

        assert set(drafts) == {leads[0].person_key, leads[1].person_key}
        assert drafts[leads[0].person_key].subject == "Congrats on the new role"

    def test_empty_tone_list_uses_defaults(self, fake_llm, leads):
        drafter = OutreachDrafter(llm=fake_llm([DRAFT]), delay_seconds=0)

        drafts = drafter.generate_emails_batch(leads[:1], tones=[])

        assert drafts[leads[0].person_key].tone == DEFAULT_EMAIL_TONES[0]

    def test_failed_draft_is_none_and_recorded(self, fake_llm, leads):
        llm = fake_llm([DRAFT, "I can't write that.", DRAFT])
        drafter = OutreachDrafter(llm=llm, delay_seconds=0)
        errors = ErrorCollector()

        drafts = drafter.generate_emails_batch(leads[:3], errors=errors)

        assert drafts[leads[0].person_key] is not None
        assert drafts[leads[1].person_key] is None
        assert drafts[leads[2].person_key] is not None
        assert len(errors) == 1
        assert "Robert Smith" in errors.get_error_messages()[0]

    def test_empty_batch(self, fake_llm):
        llm = fake_llm([DRAFT])
        assert OutreachDrafter(llm=llm, delay_seconds=0).generate_emails_batch([]) == {}
        assert llm.calls == []


class TestGenerateEmail:

    def test_prompt_is_personalized(self, fake_llm, leads):
        llm = fake_llm([DRAFT])
        OutreachDrafter(llm=llm, delay_seconds=0).generate_email(leads[0], "value_first")

        system, human = llm.calls[0]
        assert "wealth management" in system.content
        assert "NAME: Jane\n" in human.content
        assert "New role/promotion" in human.content
        assert "TONE: Value-First" in human.content

    def test_snake_case_keys_accepted(self, fake_llm, leads):
        llm = fake_llm([json.dumps({"subject": "Hi", "body_html": "<p>x</p>", "body_plain": "x"})])

        email = OutreachDrafter(llm=llm, delay_seconds=0).generate_email(leads[0], "direct_curious")

        assert email.body_plain == "x"
        assert email.tone == "direct_curious"

    def test_missing_body_raises(self, fake_llm, leads):
        llm = fake_llm([json.dumps({"subject": "Hi", "bodyHtml": "<p>x</p>"})])

        with pytest.raises(DraftError):
            OutreachDrafter(llm=llm, delay_seconds=0).generate_email(leads[0], "congratulatory")

    def test_unparseable_response_raises(self, fake_llm, leads):
        with pytest.raises(DraftError):
            OutreachDrafter(llm=fake_llm(["no json"]), delay_seconds=0).generate_email(leads[0], "congratulatory")
