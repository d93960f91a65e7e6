# gridscout/discovery/series_discovery.py

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from gridscout.clients.base_client import CallContext
from gridscout.clients.central_data import CentralDataClient
from gridscout.config.settings import AppSettings
from gridscout.discovery.tournaments import apply_whitelist
from gridscout.models.enums import NarrowingStrategy
from gridscout.models.series import SeriesCandidate
from gridscout.models.window import TimeWindow


@dataclass
class DiscoveryPlan:
    """How one request narrows ``allSeries``. Resolved once, reused when widening."""

    strategy: NarrowingStrategy
    tournament_ids: List[str] = field(default_factory=list)
    title_id: Optional[str] = None
    tournaments_total_count: Optional[int] = None
    fanout: bool = False

    @property
    def tournaments_selected(self) -> List[str]:
        """The tournament ids that discovery actually queries."""
        if self.strategy is NarrowingStrategy.BY_TITLE and not self.fanout:
            return self.tournament_ids[:1]
        return list(self.tournament_ids)


@dataclass
class DiscoveryResult:
    candidates: List[SeriesCandidate] = field(default_factory=list)
    edges: List[Dict[str, Any]] = field(default_factory=list)


def _start_sort_key(candidate: SeriesCandidate):
    start = candidate.scheduled_start
    if start is None:
        return (1, datetime.max.replace(tzinfo=timezone.utc))
    return (0, start)


class SeriesDiscovery:
    """Finds candidate series in a time window, page by page."""

    def __init__(self, client: CentralDataClient, app_settings: AppSettings):
        self.client = client
        self.settings = app_settings

    async def resolve_plan(
        self,
        title_id: Optional[str] = None,
        tournament_ids: Optional[List[str]] = None,
        ctx: Optional[CallContext] = None,
    ) -> DiscoveryPlan:
        """Explicit tournaments win over a title; with neither, only the window narrows."""
        if tournament_ids:
            return DiscoveryPlan(
                strategy=NarrowingStrategy.BY_TOURNAMENT_SET,
                tournament_ids=list(tournament_ids),
                tournaments_total_count=len(tournament_ids),
            )

        if title_id:
            tournaments, total_count = await self.client.list_tournaments(title_id, ctx=ctx)
            selected = [t.id for t in apply_whitelist(tournaments, self.settings)]
            if selected:
                logger.info(
                    f"Title {title_id} resolved to {len(selected)} tournaments "
                    f"({'all' if self.settings.title_fanout else 'first'} will be queried)"
                )
                return DiscoveryPlan(
                    strategy=NarrowingStrategy.BY_TITLE,
                    tournament_ids=selected,
                    title_id=title_id,
                    tournaments_total_count=total_count,
                    fanout=self.settings.title_fanout,
                )
            logger.info(f"Title {title_id} has no usable tournaments, filtering by titleId only")
            return DiscoveryPlan(
                strategy=NarrowingStrategy.BY_WINDOW_ONLY,
                title_id=title_id,
                tournaments_total_count=total_count,
            )

        return DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)

    async def discover(
        self,
        window: TimeWindow,
        plan: DiscoveryPlan,
        max_items: Optional[int] = None,
        ctx: Optional[CallContext] = None,
    ) -> DiscoveryResult:
        max_items = max_items or self.settings.discovery_max_items

        if plan.strategy is NarrowingStrategy.BY_TOURNAMENT_SET:
            return await self._paginate(window, max_items, tournament_ids=plan.tournament_ids, ctx=ctx)

        if plan.strategy is NarrowingStrategy.BY_TITLE:
            if not plan.fanout:
                return await self._paginate(window, max_items, tournament_ids=plan.tournament_ids[:1], ctx=ctx)
            # Every pass settles before a failure propagates; none outlives the HTTP client
            passes = await asyncio.gather(
                *(
                    self._paginate(window, max_items, tournament_ids=[tid], ctx=ctx)
                    for tid in plan.tournament_ids
                ),
                return_exceptions=True,
            )
            for discovery_pass in passes:
                if isinstance(discovery_pass, BaseException):
                    raise discovery_pass
            return self._merge(passes)

        return await self._paginate(window, max_items, title_id=plan.title_id, ctx=ctx)

    async def _paginate(
        self,
        window: TimeWindow,
        max_items: int,
        tournament_ids: Optional[List[str]] = None,
        title_id: Optional[str] = None,
        ctx: Optional[CallContext] = None,
    ) -> DiscoveryResult:
        bounds = window.as_query_bounds()
        page_size = self.settings.discovery_page_size
        result = DiscoveryResult()
        after: Optional[str] = None

        while len(result.edges) < max_items:
            first = min(page_size, max_items - len(result.edges))
            page = await self.client.fetch_series_page(
                bounds["gte"],
                bounds["lte"],
                first=first,
                after=after,
                tournament_ids=tournament_ids,
                title_id=title_id,
                ctx=ctx,
            )
            edges = page.get("edges") or []
            for edge in edges:
                result.edges.append(edge)
                try:
                    result.candidates.append(SeriesCandidate.from_edge(edge))
                except ValidationError as e:
                    logger.debug(f"Skipping malformed series edge: {e.error_count()} validation errors")

            page_info = page.get("pageInfo") or {}
            after = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or len(edges) < first or not after:
                break

        logger.debug(f"Fetched {len(result.edges)} series edges between {bounds['gte']} and {bounds['lte']}")
        return result

    @staticmethod
    def _merge(passes: List[DiscoveryResult]) -> DiscoveryResult:
        merged = DiscoveryResult()
        seen = set()
        for discovery_pass in passes:
            merged.edges.extend(discovery_pass.edges)
            for candidate in discovery_pass.candidates:
                if candidate.id not in seen:
                    seen.add(candidate.id)
                    merged.candidates.append(candidate)
        merged.candidates.sort(key=_start_sort_key)
        return merged
