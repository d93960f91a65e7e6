"""
Report generation for one team: the entry point the HTTP surface and the CLI call.

A run resolves the team, discovers and filters series (widening the window once
when an hours-based window comes up empty), probes the newest candidates for
files and series state, downloads at most one match file per series and then
classifies the outcome. All upstream calls of one run share a single
``httpx.AsyncClient`` and a :class:`CallContext` deadline.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import httpx
from loguru import logger

from gridscout.clients.base_client import (
    AuthenticationError,
    CallContext,
    UpstreamQueryError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from gridscout.clients.central_data import CentralDataClient
from gridscout.clients.file_download import FileDownloadClient
from gridscout.clients.series_state import SeriesStateClient
from gridscout.config.settings import AppSettings, settings as default_settings
from gridscout.discovery.series_discovery import SeriesDiscovery
from gridscout.discovery.widening import WindowWideningController
from gridscout.discovery.window import clamp_bound, compute_window, days_back_window
from gridscout.evidence.downloader import MatchFileDownloader
from gridscout.evidence.prober import EvidenceProber
from gridscout.models.enums import OutcomeKind, ResponseCode
from gridscout.models.report import DebugTrace, ScoutReport, ScoutRequest, ScoutResponse
from gridscout.models.window import TimeWindow
from gridscout.report.classifier import Outcome, classify, http_status_for
from gridscout.report.summarizer import DefaultSummarizer, Summarizer, format_date_range
from gridscout.scouting.errors import (
    MissingCredentials,
    PipelineTimeout,
    ScoutError,
    ScoutValidationError,
    TeamNotFound,
)
from gridscout.scouting.team_resolver import TeamResolver
from gridscout.utils.datetime_utils import MalformedTimestamp, parse_timestamp

# Sample series ids kept in the debug trace
DEBUG_SAMPLE_SIZE = 5


class ScoutService:
    def __init__(
        self,
        app_settings: Optional[AppSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        summarizer: Optional[Summarizer] = None,
    ):
        self.settings = app_settings or default_settings
        self.transport = transport
        self.summarizer = summarizer or DefaultSummarizer()

    # --- Request checks (no upstream calls) ---

    def _validate(self, request: ScoutRequest) -> None:
        if not request.team_id:
            raise ScoutValidationError("teamId is required", ResponseCode.TEAM_ID_REQUIRED)

    def _check_credentials(self) -> None:
        if not self.settings.has_api_key:
            raise MissingCredentials()

    def build_window(
        self, request: ScoutRequest, now: Optional[datetime] = None
    ) -> Tuple[TimeWindow, bool]:
        """The discovery window and whether it may be widened.

        Explicit ``gte``/``lte`` bounds win, then ``hours`` with ``direction``, then
        ``daysBack`` and finally ``DEFAULT_DAYS_BACK``. Only the hours form widens.
        Bounds outside 1970 to 9999 are clamped rather than rejected.
        """
        now = now or datetime.now(timezone.utc)

        if request.gte or request.lte:
            try:
                lte = parse_timestamp(request.lte) if request.lte else now
                if request.gte:
                    gte = parse_timestamp(request.gte)
                else:
                    gte = lte - timedelta(days=self.settings.default_days_back)
            except MalformedTimestamp as e:
                raise ScoutValidationError(str(e), ResponseCode.INVALID_TIMESTAMP) from e
            except OverflowError as e:
                raise ScoutValidationError(
                    f"Time bounds out of range: gte={request.gte} lte={request.lte}",
                    ResponseCode.INVALID_TIMESTAMP,
                ) from e
            if gte > lte:
                raise ScoutValidationError(
                    f"gte ({request.gte}) must not be after lte ({request.lte})",
                    ResponseCode.INVALID_TIMESTAMP,
                )
            return TimeWindow(gte=clamp_bound(gte), lte=clamp_bound(lte)), False

        if request.hours:
            return compute_window(request.direction, request.hours, now), True

        return days_back_window(request.days_back or self.settings.default_days_back, now), False

    # --- Response helpers ---

    def _failure(
        self, code: ResponseCode, message: str, debug: Optional[DebugTrace] = None
    ) -> Tuple[int, ScoutResponse]:
        return http_status_for(code), ScoutResponse(success=False, code=code, message=message, debug=debug)

    def _from_outcome(
        self,
        outcome: Outcome,
        report: Optional[ScoutReport],
        debug: Optional[DebugTrace],
    ) -> Tuple[int, ScoutResponse]:
        response = ScoutResponse(
            success=outcome.success,
            code=outcome.code,
            reason=outcome.reason,
            message=outcome.message,
            data=report if outcome.has_report else None,
            debug=debug,
        )
        return outcome.http_status, response

    # --- Entry point ---

    async def scout(self, request: ScoutRequest) -> Tuple[int, ScoutResponse]:
        """Runs one scout request and returns ``(http_status, response)``. Never raises."""
        try:
            self._validate(request)
            self._check_credentials()
            window, allow_widen = self.build_window(request)
        except ScoutError as e:
            logger.info(f"Rejected scout request: {e.code.value} - {e.message}")
            return self._failure(e.code, e.message)

        debug = DebugTrace(team_id_used=request.team_id) if request.debug else None
        timeout = self.settings.pipeline_timeout_seconds
        ctx = CallContext.with_timeout(timeout)

        try:
            return await asyncio.wait_for(
                self._run(request, window, allow_widen, ctx, debug), timeout=timeout
            )
        except (asyncio.TimeoutError, UpstreamTimeout) as e:
            logger.error(f"Scout run for team {request.team_id} timed out: {e}")
            timed_out = PipelineTimeout(f"Scout run exceeded {timeout:g}s")
            return self._failure(timed_out.code, timed_out.message, debug)
        except AuthenticationError as e:
            code = ResponseCode.UNAUTHORIZED if e.status_code == 401 else ResponseCode.FORBIDDEN
            logger.error(f"GRID rejected the API key during scout: {e}")
            return self._failure(code, f"HTTP {e.status_code}: authentication or authorization failed", debug)
        except UpstreamQueryError as e:
            return self._failure(ResponseCode.GRAPHQL_ERROR, str(e), debug)
        except UpstreamUnavailable as e:
            return self._failure(ResponseCode.GRID_FETCH_FAILED, str(e), debug)

    async def _run(
        self,
        request: ScoutRequest,
        window: TimeWindow,
        allow_widen: bool,
        ctx: CallContext,
        debug: Optional[DebugTrace],
    ) -> Tuple[int, ScoutResponse]:
        team_id = request.team_id
        max_series = request.max_series or self.settings.default_max_series

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.grid_request_timeout),
            transport=self.transport,
            follow_redirects=True,
        ) as http:
            central = CentralDataClient(self.settings, http)
            files_client = FileDownloadClient(self.settings, http)
            state_client = SeriesStateClient(self.settings, http)

            try:
                team = await TeamResolver(central).resolve(team_id, ctx=ctx)
            except TeamNotFound:
                outcome = classify(False, 0, 0, 0, 0)
                return self._from_outcome(outcome, None, debug)

            discovery = SeriesDiscovery(central, self.settings)
            plan = await discovery.resolve_plan(request.title_id, request.tournament_ids, ctx=ctx)
            if debug is not None:
                debug.narrowing = plan.strategy.value
                debug.tournaments_selected = plan.tournaments_selected
                debug.tournaments_total_count = plan.tournaments_total_count
                debug.time_window = window.to_wire()

            found = await WindowWideningController(discovery).run(
                window,
                plan,
                team.id,
                direction=request.direction,
                allow_widen=allow_widen,
                ctx=ctx,
            )
            candidates = found.candidates
            date_range = format_date_range(c.scheduled_start for c in candidates)
            if debug is not None:
                debug.widen_window_attempted = found.widen_attempted
                if found.widened_window is not None:
                    debug.time_window_after_widen = found.widened_window.to_wire()
                debug.series_fetched_before_team_filter = found.fetched_count
                debug.series_after_team_filter = len(candidates)
                debug.sample_series_ids = [c.id for c in candidates[:DEBUG_SAMPLE_SIZE]]
                debug.series_edges = found.edges

            if not candidates:
                outcome = classify(True, 0, 0, 0, 0)
                return self._from_outcome(outcome, ScoutReport.empty(team.name, date_range), debug)

            batch = await EvidenceProber(files_client, state_client).probe(candidates, max_series, ctx=ctx)
            match_files, failed = [], 0
            if batch.has_any_evidence:
                match_files, failed = await MatchFileDownloader(files_client).download(batch, ctx=ctx)

            if debug is not None:
                debug.series_with_files_count = batch.series_with_files_count
                debug.series_with_state_count = batch.series_with_state_count
                debug.evidence = batch.records
                debug.files_parsed_count = len(match_files)
                debug.files_failed_count = failed

            outcome = classify(
                True,
                len(candidates),
                batch.series_with_files_count,
                batch.series_with_state_count,
                len(match_files),
            )
            report = None
            if outcome.kind is OutcomeKind.SUCCESS:
                try:
                    report = self.summarizer.summarize(team, match_files, date_range)
                    logger.success(f"Scout report for {team.name} built from {report.sample_size} match files")
                except Exception as e:
                    # Files that cannot be summarized count as not parsed
                    logger.exception(f"Could not summarize match files for {team.name}: {e}")
                    outcome = classify(
                        True,
                        len(candidates),
                        batch.series_with_files_count,
                        batch.series_with_state_count,
                        0,
                    )
                    if debug is not None:
                        debug.files_failed_count = failed + len(match_files)
                        debug.files_parsed_count = 0
            if report is None:
                report = ScoutReport.empty(team.name, date_range)
                logger.info(f"Scout run for {team.name} finished without a report: {outcome.kind.value}")
            return self._from_outcome(outcome, report, debug)
