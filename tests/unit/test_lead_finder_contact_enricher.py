"""
Unit tests for src/lead_finder/contact_enricher.py

Tests contact enrichment:
- Named legitimacy predicates and their ordering
- Email domain derivation
- Discovered emails and profile URLs appended without removing anything
- LLM email prediction fallback
"""

import pytest

from src.common.error_handling import ErrorCollector
from src.lead_finder.contact_enricher import (
    EMAIL_LEGITIMACY_RULES,
    ContactEnricher,
    EmailPatternPredictor,
    contains_name_or_company_token,
    derive_email_domain,
    extract_emails,
    is_generic_mailbox,
    is_known_profile_path,
    is_legitimate_email,
)
from src.lead_finder.lead_scorer import LeadScorer
from src.lead_finder.types import ContactPath, ContactPathType


@pytest.fixture
def lead(make_candidate):
    return LeadScorer().score_lead(make_candidate(full_name="Jane Doe", company="Acme Energy"))


class TestPredicates:
    """Tests for the individual legitimacy rules."""

    @pytest.mark.parametrize("email", [
        "info@acme.com", "contact@acme.com", "noreply@acme.com", "no-reply@acme.com", "support@acme.com",
    ])
    def test_generic_mailboxes(self, email):
        assert is_generic_mailbox(email)

    def test_personal_mailbox_is_not_generic(self):
        assert not is_generic_mailbox("jane.doe@acme.com")

    def test_name_token_in_local_part(self, lead):
        assert contains_name_or_company_token("jdoe@gmail.com", lead)

    def test_company_token_in_local_part(self, lead):
        assert contains_name_or_company_token("acme.press@newswire.com", lead)

    def test_short_tokens_ignored(self, make_candidate):
        candidate = make_candidate(full_name="Al Wu", company="BP")
        assert not contains_name_or_company_token("al.wu@bp.com", candidate)

    def test_unrelated_address(self, lead):
        assert not contains_name_or_company_token("editor@houstonchronicle.com", lead)

    @pytest.mark.parametrize("url", [
        "https://acme.com/team/jane-doe",
        "https://www.linkedin.com/in/janedoe",
        "https://acme.com/leadership/",
    ])
    def test_profile_paths(self, url):
        assert is_known_profile_path(url)

    def test_article_is_not_profile(self):
        assert not is_known_profile_path("https://bizjournals.com/houston/news/2026/03/10/cfo-named.html")


class TestLegitimacyRules:

    def test_rule_names_in_order(self):
        assert [name for name, _, _ in EMAIL_LEGITIMACY_RULES] == [
            "is_generic_mailbox", "contains_name_or_company_token",
        ]

    def test_generic_rule_wins_over_company_token(self, lead):
        # "info@acme..." contains the company token but is a role mailbox
        assert not is_legitimate_email("info@acmeenergy.com", lead)

    def test_named_address_accepted(self, lead):
        assert is_legitimate_email("jane.doe@acmeenergy.com", lead)

    def test_no_matching_rule_rejects(self, lead):
        assert not is_legitimate_email("editor@chron.com", lead)

    def test_custom_rules(self, lead):
        rules = [("anything_goes", lambda email, _: True, True)]
        assert is_legitimate_email("editor@chron.com", lead, rules=rules)


class TestDeriveEmailDomain:

    def test_company_website_preferred(self, make_candidate):
        candidate = make_candidate(contact_paths=[
            ContactPath(type="company_website", value="https://www.acmeenergy.com/about"),
        ])
        assert derive_email_domain(candidate) == "acmeenergy.com"

    def test_falls_back_to_company_slug(self, make_candidate):
        assert derive_email_domain(make_candidate(company="Bayou Capital, LLC")) == "bayoucapital.com"

    @pytest.mark.parametrize("company,domain", [
        ("Costco", "costco.com"),
        ("Cisco", "cisco.com"),
        ("Sysco Corp.", "sysco.com"),
        ("Acme Energy Inc", "acmeenergy.com"),
    ])
    def test_suffix_removed_only_as_separate_word(self, make_candidate, company, domain):
        assert derive_email_domain(make_candidate(company=company)) == domain

    def test_no_company(self, make_candidate):
        assert derive_email_domain(make_candidate(company=None)) is None


class TestExtractEmails:

    def test_finds_addresses_in_text(self):
        text = "Reach Jane at jane.doe@acme.com or the desk at news@chron.com."
        assert extract_emails(text) == ["jane.doe@acme.com", "news@chron.com"]

    def test_empty_text(self):
        assert extract_emails(None) == []


class TestEmailPatternPredictor:

    def test_filters_guesses_to_domain(self, fake_llm, lead):
        llm = fake_llm(['["jane.doe@acmeenergy.com", "jdoe@acmeenergy.com", "jane@gmail.com", "not-an-email"]'])
        predictor = EmailPatternPredictor(llm=llm)

        assert predictor.predict(lead, "acmeenergy.com") == ["jane.doe@acmeenergy.com", "jdoe@acmeenergy.com"]

    def test_caps_at_three(self, fake_llm, lead):
        guesses = [f'"{p}@acmeenergy.com"' for p in ("jane", "jdoe", "jane.doe", "doe.jane")]
        predictor = EmailPatternPredictor(llm=fake_llm([f"[{', '.join(guesses)}]"]))

        assert len(predictor.predict(lead, "acmeenergy.com")) == 3

    def test_unparseable_response_predicts_nothing(self, fake_llm, lead):
        predictor = EmailPatternPredictor(llm=fake_llm(["I am unable to guess."]))
        assert predictor.predict(lead, "acmeenergy.com") == []


class TestContactEnricher:
    """Tests for enrich_lead / enrich_leads."""

    QUERY = '"Jane Doe" Acme Energy email contact'

    def test_appends_discovered_email_and_profile(self, fake_search_client, make_result, lead):
        search = fake_search_client({self.QUERY: [
            make_result("https://acme.com/team/jane-doe", snippet="Email jane.doe@acmeenergy.com"),
            make_result("https://chron.com/story", snippet="Contact info@acmeenergy.com"),
        ]})
        enricher = ContactEnricher(search, delay_seconds=0)

        enricher.enrich_lead(lead)

        types = {(p.type, p.value) for p in lead.contact_paths}
        assert (ContactPathType.GENERIC_EMAIL, "jane.doe@acmeenergy.com") in types
        assert (ContactPathType.BIO_URL, "https://acme.com/team/jane-doe") in types
        assert all(p.value != "info@acmeenergy.com" for p in lead.contact_paths)

    def test_discovered_paths_not_marked_found_on_page(self, fake_search_client, make_result, lead):
        search = fake_search_client({self.QUERY: [
            make_result("https://acme.com/team/jane-doe", snippet="Email jane.doe@acmeenergy.com"),
        ]})

        ContactEnricher(search, delay_seconds=0).enrich_lead(lead)

        assert [(p.type, p.found_on_page, p.source_url) for p in lead.contact_paths] == [
            (ContactPathType.GENERIC_EMAIL, False, "https://acme.com/team/jane-doe"),
            (ContactPathType.BIO_URL, False, "https://acme.com/team/jane-doe"),
        ]

    def test_search_has_no_recency_filter(self, fake_search_client, lead):
        search = fake_search_client()
        ContactEnricher(search, delay_seconds=0).enrich_lead(lead)

        assert search.calls == [(self.QUERY, None, 5)]

    def test_predicts_when_nothing_found(self, fake_search_client, fake_llm, lead):
        predictor = EmailPatternPredictor(llm=fake_llm(['["jane.doe@acmeenergy.com"]']))
        enricher = ContactEnricher(fake_search_client(), predictor=predictor, delay_seconds=0)

        enricher.enrich_lead(lead)

        assert [(p.type, p.value, p.found_on_page, p.source_url) for p in lead.contact_paths] == [
            (ContactPathType.PREDICTED_EMAIL, "jane.doe@acmeenergy.com", False, None),
        ]

    def test_no_prediction_when_email_found(self, fake_search_client, fake_llm, make_result, lead):
        llm = fake_llm(['["guess@acmeenergy.com"]'])
        search = fake_search_client({self.QUERY: [
            make_result("https://chron.com/story", snippet="jane.doe@acmeenergy.com"),
        ]})
        enricher = ContactEnricher(search, predictor=EmailPatternPredictor(llm=llm), delay_seconds=0)

        enricher.enrich_lead(lead)

        assert llm.calls == []

    def test_never_removes_existing_paths(self, fake_search_client, make_result, make_candidate):
        original = [
            ContactPath(type="linkedin", value="https://linkedin.com/in/janedoe", found_on_page=True, source_url="https://x.com"),
            ContactPath(type="phone", value="713-555-0100"),
        ]
        lead = LeadScorer().score_lead(make_candidate(contact_paths=original))
        before = [p.model_dump() for p in lead.contact_paths]
        search = fake_search_client({self.QUERY: [
            make_result("https://linkedin.com/in/janedoe"),
            make_result("https://acme.com/people/jane", snippet="jane@acmeenergy.com"),
        ]})

        ContactEnricher(search, delay_seconds=0).enrich_lead(lead)

        after = [p.model_dump() for p in lead.contact_paths]
        assert all(path in after for path in before)
        # The LinkedIn URL was already present and is not duplicated
        assert sum(1 for p in lead.contact_paths if p.value == "https://linkedin.com/in/janedoe") == 1

    def test_leads_with_email_are_skipped(self, fake_search_client, make_candidate):
        lead = LeadScorer().score_lead(make_candidate(contact_paths=[
            ContactPath(type="generic_email", value="jane@acme.com"),
        ]))
        search = fake_search_client()

        ContactEnricher(search, delay_seconds=0).enrich_leads([lead])

        assert search.calls == []

    def test_one_failure_does_not_stop_batch(self, fake_search_client, make_result, make_candidate):
        first = LeadScorer().score_lead(make_candidate(full_name="Jane Doe", company="Acme Energy"))
        second = LeadScorer().score_lead(make_candidate(full_name="Carlos Ruiz", company="Bayou Capital"))
        search = fake_search_client({
            self.QUERY: RuntimeError("quota exceeded"),
            '"Carlos Ruiz" Bayou Capital email contact': [
                make_result("https://bayou.com/story", snippet="carlos.ruiz@bayoucapital.com"),
            ],
        })
        errors = ErrorCollector()

        ContactEnricher(search, delay_seconds=0).enrich_leads([first, second], errors=errors)

        assert len(errors) == 1
        assert "Jane Doe" in errors.get_error_messages()[0]
        assert second.has_contact_type(ContactPathType.GENERIC_EMAIL)
