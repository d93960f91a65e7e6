# gridscout/discovery/widening.py

from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from gridscout.clients.base_client import CallContext
from gridscout.discovery.series_discovery import DiscoveryPlan, DiscoveryResult, SeriesDiscovery
from gridscout.discovery.team_filter import filter_series_by_team
from gridscout.discovery.window import WIDEN_HOURS, widen_window
from gridscout.models.enums import Direction
from gridscout.models.series import SeriesCandidate
from gridscout.models.window import TimeWindow


@dataclass
class TeamSeriesResult:
    """Discovery plus team filtering, with both windows when widening happened."""

    window: TimeWindow
    candidates: List[SeriesCandidate] = field(default_factory=list)
    fetched_count: int = 0
    edges: List[dict] = field(default_factory=list)
    widened_window: Optional[TimeWindow] = None

    @property
    def widen_attempted(self) -> bool:
        return self.widened_window is not None


class WindowWideningController:
    """Runs discovery and the team filter, widening the window at most once."""

    def __init__(self, discovery: SeriesDiscovery, extra_hours: float = WIDEN_HOURS):
        self.discovery = discovery
        self.extra_hours = extra_hours

    async def _discover_for_team(
        self,
        window: TimeWindow,
        plan: DiscoveryPlan,
        team_id: str,
        max_items: Optional[int],
        ctx: Optional[CallContext],
    ):
        found: DiscoveryResult = await self.discovery.discover(window, plan, max_items=max_items, ctx=ctx)
        return found, filter_series_by_team(found.candidates, team_id)

    async def run(
        self,
        window: TimeWindow,
        plan: DiscoveryPlan,
        team_id: str,
        direction: Direction = Direction.PAST,
        allow_widen: bool = False,
        max_items: Optional[int] = None,
        ctx: Optional[CallContext] = None,
    ) -> TeamSeriesResult:
        """``allow_widen`` is only set for hours-based windows; explicit bounds stay fixed."""
        found, kept = await self._discover_for_team(window, plan, team_id, max_items, ctx)
        result = TeamSeriesResult(
            window=window,
            candidates=kept,
            fetched_count=len(found.candidates),
            edges=found.edges,
        )
        logger.info(f"Discovered {len(found.candidates)} series, {len(kept)} involve team {team_id}")

        if kept or not allow_widen:
            return result

        widened = widen_window(window, direction, self.extra_hours)
        logger.info(
            f"No series for team {team_id}, widening window by {self.extra_hours}h "
            f"to {widened.as_query_bounds()}"
        )
        found, kept = await self._discover_for_team(widened, plan, team_id, max_items, ctx)
        # The widened pass is final whatever it finds
        result.widened_window = widened
        result.candidates = kept
        result.fetched_count = len(found.candidates)
        result.edges = found.edges
        return result
