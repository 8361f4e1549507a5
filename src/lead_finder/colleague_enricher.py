"""
Colleague discovery for top-tier leads.

A strong lead's company usually has other senior people worth contacting.
For each seed we look for the company's team or leadership page, run it
through the candidate extractor and keep colleagues of similar rank.
"""

import logging
import time
from typing import Iterable, List, Optional, Set

from src.common.config import Config
from src.common.error_handling import ErrorCollector, record_item_failure
from src.lead_finder.candidate_extractor import CandidateExtractor
from src.lead_finder.lead_scorer import LeadScorer
from src.lead_finder.page_fetcher import PageFetcher
from src.lead_finder.search_client import SearchClient
from src.lead_finder.types import RunConfig, ScoredLead, Tier, is_similar_rank

TEAM_PAGE_MARKERS = (
    "/team", "/leadership", "/about/team", "/our-team",
    "/executives", "/management", "/people", "/about-us/team",
)

SEED_TIER_B_MIN_SCORE = 75
SEARCH_RESULT_LIMIT = 5


def is_team_page(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in TEAM_PAGE_MARKERS)


def is_seed(lead: ScoredLead) -> bool:
    """Tier A, or tier B scoring above SEED_TIER_B_MIN_SCORE."""
    return lead.tier == Tier.A or (lead.tier == Tier.B and lead.score > SEED_TIER_B_MIN_SCORE)


def companies_overlap(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive substring match in either direction."""
    if not a or not b:
        return False
    a, b = a.lower().strip(), b.lower().strip()
    return a in b or b in a


class ColleagueEnricher:
    """Finds similar-rank colleagues of seed leads at the same company."""

    def __init__(
        self,
        search_client: SearchClient,
        page_fetcher: PageFetcher,
        extractor: CandidateExtractor,
        scorer: LeadScorer,
        delay_seconds: Optional[float] = None,
    ):
        self.search_client = search_client
        self.page_fetcher = page_fetcher
        self.extractor = extractor
        self.scorer = scorer
        self.delay_seconds = Config.inter_call_delay_seconds() if delay_seconds is None else delay_seconds
        self.logger = logging.getLogger(__name__)

    def find_colleagues(
        self,
        seeds: List[ScoredLead],
        run_config: RunConfig,
        known_person_keys: Iterable[str] = (),
        errors: Optional[ErrorCollector] = None,
    ) -> List[ScoredLead]:
        """
        Colleagues for each qualifying seed, deduplicated by person_key
        against ``known_person_keys``, the seeds and each other.

        The caller decides how many of them fit under the daily target.
        """
        seen: Set[str] = set(known_person_keys) | {s.person_key for s in seeds}
        colleagues: List[ScoredLead] = []

        qualifying = [s for s in seeds if is_seed(s) and s.company]
        for index, seed in enumerate(qualifying):
            try:
                for colleague in self._colleagues_for(seed, run_config):
                    if colleague.person_key in seen:
                        continue
                    seen.add(colleague.person_key)
                    colleagues.append(colleague)
                    self.logger.info(f"Found colleague: {colleague.full_name} at {colleague.company}")
            except Exception as e:
                record_item_failure(
                    errors, self.logger, "colleague_enrichment", "find_colleagues",
                    f"Colleague search failed for {seed.full_name} ({seed.company}): {e}", e,
                )
            if self.delay_seconds and index < len(qualifying) - 1:
                time.sleep(self.delay_seconds)

        return colleagues

    def _colleagues_for(self, seed: ScoredLead, run_config: RunConfig) -> List[ScoredLead]:
        query = f'"{seed.company}" {run_config.geo_name} leadership team executives'
        results = self.search_client.search(query, recency_days=None, limit=SEARCH_RESULT_LIMIT)

        team_urls = [r.url for r in results if is_team_page(r.url)]
        if not team_urls:
            self.logger.debug(f"No team page found for {seed.company}")
            return []

        pages = self.page_fetcher.fetch_pages([team_urls[0]])
        if not pages or pages[0].error:
            return []
        page = pages[0]

        extraction = self.extractor.extract_leads(page.page_title, page.final_url, page.extracted_text)

        matches = []
        for candidate in extraction.candidates:
            if not companies_overlap(candidate.company, seed.company):
                continue
            scored = self.scorer.score_lead(candidate, None)
            if is_similar_rank(seed.tier, scored.tier):
                matches.append(scored)
        return matches
