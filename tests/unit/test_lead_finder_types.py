"""
Unit tests for src/lead_finder/types.py

Tests the pipeline data models:
- Tier ordering and similar-rank symmetry
- Candidate normalization of loose LLM output
- RunConfig round-trips through its stored dict form
"""

import itertools

import pytest
from pydantic import ValidationError

from src.lead_finder.types import (
    ContactPath,
    ContactPathType,
    ExtractedCandidate,
    GeneratedEmail,
    LeadCategory,
    RunConfig,
    RunStats,
    Tier,
    TriggerType,
    is_similar_rank,
)


class TestTier:

    def test_rank_order(self):
        assert [t.rank for t in (Tier.A, Tier.B, Tier.C, Tier.D)] == [0, 1, 2, 3]

    @pytest.mark.parametrize("a,b", list(itertools.product(list(Tier), repeat=2)))
    def test_similar_rank_is_symmetric(self, a, b):
        assert is_similar_rank(a, b) == is_similar_rank(b, a)

    def test_adjacent_tiers_are_similar(self):
        assert is_similar_rank(Tier.A, Tier.B)
        assert is_similar_rank(Tier.C, Tier.C)

    def test_two_apart_is_not_similar(self):
        assert not is_similar_rank(Tier.A, Tier.C)
        assert not is_similar_rank(Tier.D, Tier.B)

    def test_accepts_string_values(self):
        assert is_similar_rank("A", "B")


class TestExtractedCandidate:
    """Tests for normalization of extracted candidates."""

    def test_unknown_trigger_and_category_fall_back_to_other(self):
        candidate = ExtractedCandidate(
            full_name="Jane Doe",
            rationale_short="New role",
            trigger_type="promotion",
            category="athlete",
        )
        assert candidate.trigger_type == TriggerType.OTHER
        assert candidate.category == LeadCategory.OTHER

    def test_enum_values_are_case_insensitive(self):
        candidate = ExtractedCandidate(
            full_name="Jane Doe", rationale_short="New role", trigger_type="Career_Move", category="EXEC"
        )
        assert candidate.trigger_type == TriggerType.CAREER_MOVE
        assert candidate.category == LeadCategory.EXEC

    def test_enum_instances_are_kept(self):
        candidate = ExtractedCandidate(
            full_name="Jane Doe", rationale_short="x", trigger_type=TriggerType.FUNDING_MNA
        )
        assert candidate.trigger_type == TriggerType.FUNDING_MNA

    def test_confidence_is_clamped(self):
        assert ExtractedCandidate(full_name="Jo Ann", rationale_short="x", confidence=1.7).confidence == 1.0
        assert ExtractedCandidate(full_name="Jo Ann", rationale_short="x", confidence=-2).confidence == 0.0

    def test_unparseable_confidence_defaults(self):
        candidate = ExtractedCandidate(full_name="Jo Ann", rationale_short="x", confidence="high")
        assert candidate.confidence == 0.5

    def test_blank_optional_text_becomes_none(self):
        candidate = ExtractedCandidate(full_name="Jo Ann", rationale_short="x", title="  ", company="")
        assert candidate.title is None
        assert candidate.company is None

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError):
            ExtractedCandidate(full_name="J", rationale_short="x")

    def test_missing_rationale_rejected(self):
        with pytest.raises(ValidationError):
            ExtractedCandidate(full_name="Jane Doe")

    def test_contact_helpers(self):
        candidate = ExtractedCandidate(
            full_name="Jane Doe",
            rationale_short="x",
            contact_paths=[{"type": "bio_url", "value": "https://Acme.com/Team/Jane"}],
        )
        assert candidate.contact_values() == {"https://acme.com/team/jane"}
        assert candidate.has_contact_type(ContactPathType.BIO_URL)
        assert not candidate.has_contact_type(ContactPathType.GENERIC_EMAIL)


class TestContactPath:

    def test_unknown_type_is_other(self):
        assert ContactPath(type="fax", value="555").type == ContactPathType.OTHER

    def test_found_on_page_is_boolean(self):
        path = ContactPath(type="phone", value="555", found_on_page=True, source_url="https://chron.com/story")

        assert path.found_on_page is True
        assert path.source_url == "https://chron.com/story"

    def test_found_on_page_defaults_false(self):
        assert ContactPath(type="phone", value="555").found_on_page is False

    def test_found_on_page_string_coerced(self):
        assert ContactPath(type="phone", value="555", found_on_page="true").found_on_page is True
        assert ContactPath(type="phone", value="555", found_on_page="false").found_on_page is False

    def test_empty_value_rejected(self):
        with pytest.raises(ValidationError):
            ContactPath(type="phone", value="")


class TestRunConfig:

    def test_round_trip_through_dict(self):
        config = RunConfig(
            geo_name="Houston",
            geo_aliases=("Houston", "Houston TX"),
            trigger_focus="career_move",
            industry_focus="energy",
            daily_lead_target=5,
        )
        data = config.to_dict()

        assert data["geo_aliases"] == ["Houston", "Houston TX"]
        assert RunConfig.from_dict(data) == config

    def test_from_dict_defaults(self):
        config = RunConfig.from_dict({"geo_name": "Dallas", "trigger_focus": "expansion"})

        assert config.geo_aliases == ("Dallas",)
        assert config.daily_lead_target == 20
        assert config.lead_cooldown_days == 90
        assert len(config.email_tones) == 4


class TestRunStatsAndEmail:

    def test_stats_dict_has_errors_and_timing(self):
        stats = RunStats(queries_executed=3, errors=["boom"], timing={"searching": 12})
        data = stats.to_dict()

        assert data["queries_executed"] == 3
        assert data["errors"] == ["boom"]
        assert data["timing"] == {"searching": 12}

    def test_generated_email_requires_bodies(self):
        with pytest.raises(ValidationError):
            GeneratedEmail(subject="Hi", body_html="", body_plain="x", tone="value_first")
