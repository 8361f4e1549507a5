"""
Lead finder pipeline orchestrator.

Runs one day's lead discovery end-to-end:

    search -> fetch -> extract -> score/select -> contact enrichment ->
    colleague enrichment -> draft -> persist

Per-item failures (one query, one page, one candidate, one lead) are logged,
recorded in the run's error list and skipped. Anything that escapes a stage
is caught once at the top, and the run is finalized as failed with the stats
gathered so far. Every write is an upsert, so re-running a date converges.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterator, List, Optional, Tuple

from src.common.config import Config
from src.common.error_handling import ErrorCollector, record_item_failure
from src.common.logger import get_logger
from src.common.repositories import LeadFinderRepositoryInterface, get_lead_finder_repository
from src.common.structured_logger import StageContext, StructuredLogger
from src.lead_finder.candidate_extractor import CandidateExtractor
from src.lead_finder.colleague_enricher import ColleagueEnricher
from src.lead_finder.contact_enricher import ContactEnricher, EmailPatternPredictor
from src.lead_finder.lead_scorer import LeadScorer
from src.lead_finder.outreach_drafter import OutreachDrafter
from src.lead_finder.page_fetcher import HttpPageFetcher, PageFetcher
from src.lead_finder.rotation import RotationPlanner
from src.lead_finder.search_client import GoogleSearchClient, SearchClient
from src.lead_finder.types import (
    ExtractedCandidate,
    FetchedPage,
    GeneratedEmail,
    RunConfig,
    RunResult,
    RunStage,
    RunStats,
    RunStatus,
    ScoredLead,
)


@dataclass
class PipelineLimits:
    """Per-run cost bounds."""
    max_queries: int = 15
    results_per_query: int = 10
    max_urls: int = 30
    min_text_length: int = 100
    colleague_seeds: int = 3
    search_delay_seconds: float = 0.2


@dataclass
class _RunContext:
    run_id: str
    run_date: date
    config: RunConfig
    structured: StructuredLogger
    stats: RunStats = field(default_factory=RunStats)
    errors: ErrorCollector = field(default_factory=ErrorCollector)


class LeadFinderOrchestrator:
    """
    Executes lead finder runs.

    Every collaborator is passed in; create_lead_finder_orchestrator()
    builds the production graph from Config.
    """

    def __init__(
        self,
        repository: LeadFinderRepositoryInterface,
        planner: RotationPlanner,
        search_client: SearchClient,
        page_fetcher: PageFetcher,
        extractor: CandidateExtractor,
        scorer: LeadScorer,
        contact_enricher: ContactEnricher,
        colleague_enricher: ColleagueEnricher,
        drafter: OutreachDrafter,
        limits: Optional[PipelineLimits] = None,
        emit_events: bool = True,
    ):
        self.repository = repository
        self.planner = planner
        self.search_client = search_client
        self.page_fetcher = page_fetcher
        self.extractor = extractor
        self.scorer = scorer
        self.contact_enricher = contact_enricher
        self.colleague_enricher = colleague_enricher
        self.drafter = drafter
        self.limits = limits or PipelineLimits()
        self.emit_events = emit_events
        self.stage = RunStage.CREATED
        self.logger = get_logger(__name__)

    # ===== PUBLIC API =====

    def execute_run(self, config: Optional[RunConfig] = None, run_date: Optional[date] = None) -> RunResult:
        """
        Execute one run.

        Args:
            config: Run parameters; planned from today's rotation when omitted
            run_date: Calendar date the run is recorded under (default today)

        Returns:
            RunResult with final status, stats, selected leads and drafts
        """
        run_date = run_date or date.today()
        self.stage = RunStage.CREATED
        self.logger.bind(run_id="", stage=RunStage.CREATED.value)

        try:
            run_config = config or self.planner.plan_daily(run_date)
            run_id = self.repository.create_run(run_date, run_config)
        except Exception as e:
            self.logger.exception(f"Failed to create run for {run_date.isoformat()}: {e}")
            return RunResult(
                run_id="",
                status=RunStatus.FAILED,
                stats=RunStats(),
                run_config=config,
                error_message=f"Failed to create run: {e}",
            )

        ctx = _RunContext(
            run_id=run_id,
            run_date=run_date,
            config=run_config,
            structured=StructuredLogger(run_id, enabled=self.emit_events),
        )
        self.logger.bind(run_id=run_id)
        self.logger.info(
            f"Starting lead finder run: geo={run_config.geo_name}, trigger={run_config.trigger_focus}, "
            f"industry={run_config.industry_focus}, target={run_config.daily_lead_target}"
        )
        ctx.structured.run_start(metadata=run_config.to_dict())
        started = time.perf_counter()

        try:
            urls = self._search(ctx)
            pages = self._fetch(ctx, urls)
            candidates = self._extract(ctx, pages)
            selected = self._select(ctx, candidates)
            self._enrich_contacts(ctx, selected)
            selected = self._enrich_colleagues(ctx, selected)
            emails = self._draft(ctx, selected)
            self._persist(ctx, selected, emails)
            return self._finalize_success(ctx, started, selected, emails)
        except Exception as e:
            return self._finalize_failed(ctx, started, e)

    def get_today_run(self) -> Optional[Dict]:
        """Today's run record, if one exists."""
        return self.repository.find_run_by_date(date.today())

    # ===== STAGES =====

    @contextmanager
    def _stage(self, ctx: _RunContext, stage: RunStage) -> Iterator[StageContext]:
        self.stage = stage
        self.logger.bind(stage=stage.value)
        stage_ctx = StageContext(ctx.structured, stage.value)
        try:
            with stage_ctx:
                yield stage_ctx
        finally:
            ctx.stats.timing[stage.value] = stage_ctx.duration_ms

    def _search(self, ctx: _RunContext) -> List[str]:
        """Run trigger queries; return unique URLs capped at max_urls."""
        cfg = ctx.config
        with self._stage(ctx, RunStage.SEARCHING) as stage:
            queries = self.search_client.build_trigger_queries(
                cfg.geo_aliases, cfg.trigger_focus, cfg.industry_focus
            )[: self.limits.max_queries]

            urls: List[str] = []
            seen = set()
            total_results = 0
            for index, query in enumerate(queries):
                ctx.stats.queries_executed += 1
                try:
                    results = self.search_client.search(query, cfg.recency_days, self.limits.results_per_query)
                except Exception as e:
                    record_item_failure(
                        ctx.errors, self.logger.logger, "search", "search",
                        f"Search failed for query '{query}': {e}", e,
                    )
                    continue

                total_results += len(results)
                if results:
                    self.repository.store_search_results(ctx.run_id, results)

                for result in results:
                    if result.url not in seen:
                        seen.add(result.url)
                        urls.append(result.url)

                if self.limits.search_delay_seconds and index < len(queries) - 1:
                    time.sleep(self.limits.search_delay_seconds)

            ctx.stats.search_results_found = len(urls)
            stage.add_metadata("queries", len(queries))
            stage.add_metadata("results", total_results)
            self.logger.info(f"Found {len(urls)} unique URLs from {len(queries)} queries")

        return urls[: self.limits.max_urls]

    def _fetch(self, ctx: _RunContext, urls: List[str]) -> List[FetchedPage]:
        with self._stage(ctx, RunStage.FETCHING) as stage:
            usable: List[FetchedPage] = []
            for url in urls:
                try:
                    fetched = self.page_fetcher.fetch_pages([url])
                except Exception as e:
                    record_item_failure(
                        ctx.errors, self.logger.logger, "fetch", "fetch_page",
                        f"Fetch failed for {url}: {e}", e,
                    )
                    continue

                for page in fetched:
                    if not page.ok:
                        record_item_failure(
                            ctx.errors, self.logger.logger, "fetch", "fetch_page",
                            f"Fetch failed for {page.url}: {page.error}",
                        )
                    elif len(page.extracted_text) < self.limits.min_text_length:
                        self.logger.debug(f"Dropping {page.url}: too little text")
                    else:
                        usable.append(page)

            if usable:
                self.repository.store_pages(ctx.run_id, usable)

            ctx.stats.pages_fetched = len(usable)
            stage.add_metadata("pages", len(usable))
            self.logger.info(f"Successfully fetched {len(usable)} of {len(urls)} pages")
        return usable

    def _extract(self, ctx: _RunContext, pages: List[FetchedPage]) -> List[ExtractedCandidate]:
        with self._stage(ctx, RunStage.EXTRACTING) as stage:
            candidates: List[ExtractedCandidate] = []
            for page in pages:
                if len(candidates) >= ctx.config.candidate_target:
                    self.logger.info(f"Candidate target {ctx.config.candidate_target} reached, skipping remaining pages")
                    break
                try:
                    result = self.extractor.extract_leads(page.page_title, page.final_url, page.extracted_text)
                except Exception as e:
                    record_item_failure(
                        ctx.errors, self.logger.logger, "extract", "extract_leads",
                        f"Extraction failed for {page.url}: {e}", e,
                    )
                    continue

                for candidate in result.candidates:
                    candidate.published_at = page.published_at_guess
                    candidates.append(candidate)

            ctx.stats.candidates_extracted = len(candidates)
            stage.add_metadata("candidates", len(candidates))
            self.logger.info(f"Extracted {len(candidates)} candidates")
        return candidates

    def _select(self, ctx: _RunContext, candidates: List[ExtractedCandidate]) -> List[ScoredLead]:
        with self._stage(ctx, RunStage.SELECTING) as stage:
            scored: List[ScoredLead] = []
            for candidate in candidates:
                try:
                    scored.append(self.scorer.score_lead(candidate, candidate.published_at))
                except Exception as e:
                    record_item_failure(
                        ctx.errors, self.logger.logger, "score", "score_lead",
                        f"Scoring failed for {candidate.full_name}: {e}", e,
                    )
            scored.sort(key=lambda lead: lead.score, reverse=True)
            ctx.stats.leads_scored = len(scored)

            selected = self.scorer.select_top_leads(
                scored,
                ctx.config.daily_lead_target,
                ctx.config.lead_cooldown_days,
                exclude_run_id=ctx.run_id,
            )
            ctx.stats.leads_selected = len(selected)
            stage.add_metadata("selected", len(selected))
            self.logger.info(f"Selected {len(selected)} of {len(scored)} scored leads")
        return selected

    def _enrich_contacts(self, ctx: _RunContext, selected: List[ScoredLead]) -> None:
        with self._stage(ctx, RunStage.ENRICHING_CONTACTS):
            self.contact_enricher.enrich_leads(selected, errors=ctx.errors)

    def _enrich_colleagues(self, ctx: _RunContext, selected: List[ScoredLead]) -> List[ScoredLead]:
        with self._stage(ctx, RunStage.ENRICHING_COLLEAGUES) as stage:
            seeds = sorted(selected, key=lambda lead: (lead.tier.rank, -lead.score))[: self.limits.colleague_seeds]
            colleagues = self.colleague_enricher.find_colleagues(
                seeds,
                ctx.config,
                known_person_keys=[lead.person_key for lead in selected],
                errors=ctx.errors,
            )
            colleagues = self.scorer.filter_eligible(
                colleagues, ctx.config.lead_cooldown_days, exclude_run_id=ctx.run_id,
            )

            final = list(selected)
            keys = {lead.person_key for lead in final}
            added = 0
            for colleague in colleagues:
                if len(final) >= ctx.config.daily_lead_target:
                    break
                if colleague.person_key in keys:
                    continue
                keys.add(colleague.person_key)
                final.append(colleague)
                added += 1

            ctx.stats.leads_selected = len(final)
            stage.add_metadata("colleagues_added", added)
            self.logger.info(f"Colleague enrichment found {len(colleagues)}, added {added}")
        return final

    def _draft(self, ctx: _RunContext, leads: List[ScoredLead]) -> Dict[str, Optional[GeneratedEmail]]:
        with self._stage(ctx, RunStage.DRAFTING) as stage:
            emails = self.drafter.generate_emails_batch(leads, ctx.config.email_tones, errors=ctx.errors)
            ctx.stats.emails_generated = sum(1 for email in emails.values() if email is not None)
            stage.add_metadata("emails", ctx.stats.emails_generated)
            self.logger.info(f"Generated {ctx.stats.emails_generated} emails")
        return emails

    def _persist(
        self,
        ctx: _RunContext,
        leads: List[ScoredLead],
        emails: Dict[str, Optional[GeneratedEmail]],
    ) -> None:
        with self._stage(ctx, RunStage.PERSISTING):
            unique, dropped = _unique_by_person_key(leads)
            if dropped:
                self.logger.warning(f"Dropping {dropped} leads with duplicate person keys before persisting")
            self.repository.store_leads_and_emails(ctx.run_id, unique, emails)

    # ===== FINALIZATION =====

    def _finalize_success(
        self,
        ctx: _RunContext,
        started: float,
        leads: List[ScoredLead],
        emails: Dict[str, Optional[GeneratedEmail]],
    ) -> RunResult:
        self.stage = RunStage.FINALIZED
        total_ms = int((time.perf_counter() - started) * 1000)
        ctx.stats.timing["total_ms"] = total_ms
        ctx.stats.errors = ctx.errors.get_error_messages()

        self.repository.update_run(ctx.run_id, ctx.stats, RunStatus.SUCCESS)
        ctx.structured.run_complete(
            status=RunStatus.SUCCESS.value, duration_ms=total_ms, metadata=ctx.stats.to_dict()
        )
        self.logger.bind(stage=RunStage.FINALIZED.value)
        self.logger.info(
            f"Lead finder run complete: {ctx.stats.leads_selected} leads, "
            f"{ctx.stats.emails_generated} emails, {len(ctx.stats.errors)} errors"
        )
        if len(ctx.errors):
            self.logger.info(f"Errors by stage: {ctx.errors.summary()['by_stage']}")
        return RunResult(
            run_id=ctx.run_id,
            status=RunStatus.SUCCESS,
            stats=ctx.stats,
            run_config=ctx.config,
            leads=_unique_by_person_key(leads)[0],
            emails=emails,
        )

    def _finalize_failed(self, ctx: _RunContext, started: float, error: Exception) -> RunResult:
        failed_stage = self.stage
        self.stage = RunStage.FINALIZED
        total_ms = int((time.perf_counter() - started) * 1000)
        message = f"{failed_stage.value}: {error}"

        ctx.stats.timing["total_ms"] = total_ms
        ctx.stats.errors = ctx.errors.get_error_messages() + [message]
        self.logger.exception(f"Lead finder run failed during {failed_stage.value}: {error}")

        try:
            self.repository.update_run(ctx.run_id, ctx.stats, RunStatus.FAILED, error_message=message)
        except Exception as update_error:
            self.logger.error(f"Could not record failure for run {ctx.run_id}: {update_error}")

        ctx.structured.run_complete(
            status=RunStatus.FAILED.value, duration_ms=total_ms, metadata=ctx.stats.to_dict()
        )
        return RunResult(
            run_id=ctx.run_id,
            status=RunStatus.FAILED,
            stats=ctx.stats,
            run_config=ctx.config,
            error_message=message,
        )


def _unique_by_person_key(leads: List[ScoredLead]) -> Tuple[List[ScoredLead], int]:
    seen = set()
    unique = []
    for lead in leads:
        if lead.person_key in seen:
            continue
        seen.add(lead.person_key)
        unique.append(lead)
    return unique, len(leads) - len(unique)


def create_lead_finder_orchestrator(
    repository: Optional[LeadFinderRepositoryInterface] = None,
    emit_events: bool = True,
) -> LeadFinderOrchestrator:
    """
    Build the orchestrator with production collaborators.

    Args:
        repository: Override the configured repository (e.g. in-memory for dry runs)
        emit_events: Emit JSON-line run events to stdout
    """
    repository = repository or get_lead_finder_repository()
    delay = Config.inter_call_delay_seconds()

    search_client = GoogleSearchClient()
    page_fetcher = HttpPageFetcher()
    extractor = CandidateExtractor()
    scorer = LeadScorer(repository)

    return LeadFinderOrchestrator(
        repository=repository,
        planner=RotationPlanner(repository),
        search_client=search_client,
        page_fetcher=page_fetcher,
        extractor=extractor,
        scorer=scorer,
        contact_enricher=ContactEnricher(search_client, EmailPatternPredictor(), delay_seconds=delay),
        colleague_enricher=ColleagueEnricher(search_client, page_fetcher, extractor, scorer, delay_seconds=delay),
        drafter=OutreachDrafter(delay_seconds=delay),
        emit_events=emit_events,
    )
