"""Tests for narrowing plans, pagination and window widening."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from gridscout.clients.base_client import AuthenticationError, UpstreamQueryError, UpstreamUnavailable
from gridscout.clients.central_data import CentralDataClient
from gridscout.discovery.series_discovery import DiscoveryPlan, SeriesDiscovery
from gridscout.discovery.tournaments import HACKATHON_TOURNAMENT_IDS_ALL, get_default_tournament_ids
from gridscout.discovery.widening import WindowWideningController
from gridscout.discovery.window import compute_window
from gridscout.models.enums import Direction, NarrowingStrategy
from tests.conftest import TEAM_ID, make_settings, series_node

NOW = datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
WINDOW = compute_window(Direction.PAST, 24, NOW)


def run_discovery(grid, app_settings, coro_factory):
    async def go():
        async with httpx.AsyncClient(transport=grid.transport) as http:
            discovery = SeriesDiscovery(CentralDataClient(app_settings, http), app_settings)
            return await coro_factory(discovery)

    return asyncio.run(go())


class TestResolvePlan:
    def test_explicit_tournaments(self, grid, settings):
        plan = run_discovery(grid, settings, lambda d: d.resolve_plan("3", ["1", "2"]))
        assert plan.strategy is NarrowingStrategy.BY_TOURNAMENT_SET
        assert plan.tournaments_selected == ["1", "2"]
        assert grid.calls == []

    def test_title_uses_whitelisted_first_tournament(self, grid, settings):
        grid.tournaments = [
            {"id": "999999", "name": "Not on the whitelist"},
            {"id": "758024", "name": "LCK - Spring 2024"},
            {"id": "774794", "name": "LCK - Summer 2024"},
        ]
        plan = run_discovery(grid, settings, lambda d: d.resolve_plan("3"))
        assert plan.strategy is NarrowingStrategy.BY_TITLE
        assert plan.tournament_ids == ["758024", "774794"]
        assert plan.tournaments_selected == ["758024"]
        assert plan.tournaments_total_count == 3
        assert len(grid.calls_of("tournaments")) == 1

    def test_title_without_tournaments_degrades_to_window(self, grid, settings):
        grid.tournaments = [{"id": "999999", "name": "Not on the whitelist"}]
        plan = run_discovery(grid, settings, lambda d: d.resolve_plan("3"))
        assert plan.strategy is NarrowingStrategy.BY_WINDOW_ONLY
        assert plan.title_id == "3"

    def test_whitelist_disabled(self, grid):
        app_settings = make_settings(tournament_whitelist_enabled=False)
        grid.tournaments = [{"id": "999999", "name": "Anything"}]
        plan = run_discovery(grid, app_settings, lambda d: d.resolve_plan("3"))
        assert plan.tournaments_selected == ["999999"]

    def test_window_only(self, grid, settings):
        plan = run_discovery(grid, settings, lambda d: d.resolve_plan())
        assert plan.strategy is NarrowingStrategy.BY_WINDOW_ONLY
        assert plan.title_id is None


class TestPagination:
    def test_follows_cursor_until_exhausted(self, grid):
        app_settings = make_settings(discovery_page_size=2)
        grid.series = [series_node(f"s{i}") for i in range(5)]
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
        result = run_discovery(grid, app_settings, lambda d: d.discover(WINDOW, plan))

        assert [c.id for c in result.candidates] == ["s0", "s1", "s2", "s3", "s4"]
        calls = grid.calls_of("series")
        assert len(calls) == 3
        assert "after" not in calls[0]["variables"]
        assert calls[1]["variables"]["after"] == "2"

    def test_stops_at_max_items(self, grid):
        app_settings = make_settings(discovery_page_size=2)
        grid.series = [series_node(f"s{i}") for i in range(10)]
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
        result = run_discovery(grid, app_settings, lambda d: d.discover(WINDOW, plan, max_items=3))

        assert len(result.candidates) == 3
        assert [c["variables"]["first"] for c in grid.calls_of("series")] == [2, 1]

    def test_window_bounds_carry_timezone(self, grid, settings):
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
        run_discovery(grid, settings, lambda d: d.discover(WINDOW, plan))
        variables = grid.calls_of("series")[0]["variables"]
        assert variables["gte"].endswith("Z")
        assert variables["lte"] == "2025-03-15T12:00:00.000Z"

    def test_malformed_nodes_are_skipped(self, grid, settings):
        grid.series = [series_node("s1"), {"startTimeScheduled": "2025-03-01T00:00:00Z"}]
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
        result = run_discovery(grid, settings, lambda d: d.discover(WINDOW, plan))
        assert [c.id for c in result.candidates] == ["s1"]
        assert len(result.edges) == 2

    def test_strategy_variables(self, grid, settings):
        by_set = DiscoveryPlan(strategy=NarrowingStrategy.BY_TOURNAMENT_SET, tournament_ids=["1", "2"])
        by_title = DiscoveryPlan(strategy=NarrowingStrategy.BY_TITLE, tournament_ids=["7", "8"], title_id="3")
        flat_title = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY, title_id="3")

        async def all_three(d):
            await d.discover(WINDOW, by_set)
            await d.discover(WINDOW, by_title)
            await d.discover(WINDOW, flat_title)

        run_discovery(grid, settings, all_three)
        calls = [c["variables"] for c in grid.calls_of("series")]
        assert calls[0]["tournamentIds"] == ["1", "2"]
        assert calls[1]["tournamentIds"] == ["7"]
        assert calls[2]["titleId"] == "3"
        assert "tournamentIds" not in calls[2]

    def test_title_fanout_merges_and_sorts(self, grid):
        app_settings = make_settings(title_fanout=True)
        by_tournament = {
            "7": [series_node("late", start="2025-03-10T00:00:00Z"), series_node("shared", start="2025-03-05T00:00:00Z")],
            "8": [series_node("shared", start="2025-03-05T00:00:00Z"), series_node("early", start="2025-03-01T00:00:00Z")],
        }
        grid.series_responder = lambda variables: by_tournament[variables["tournamentIds"][0]]
        plan = DiscoveryPlan(
            strategy=NarrowingStrategy.BY_TITLE, tournament_ids=["7", "8"], title_id="3", fanout=True
        )
        result = run_discovery(grid, app_settings, lambda d: d.discover(WINDOW, plan))

        assert [c.id for c in result.candidates] == ["early", "shared", "late"]
        assert len(grid.calls_of("series")) == 2

    def test_graphql_errors_raise(self, settings):
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)

        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Cannot query field"}]})

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                discovery = SeriesDiscovery(CentralDataClient(settings, http), settings)
                await discovery.discover(WINDOW, plan)

        with pytest.raises(UpstreamQueryError):
            asyncio.run(go())

    def test_server_errors_raise(self, grid, settings):
        grid.status_overrides["series"] = 500
        plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
        with pytest.raises(UpstreamUnavailable):
            run_discovery(grid, settings, lambda d: d.discover(WINDOW, plan))

    def test_fanout_failure_waits_for_every_pass(self):
        """A rejected tournament fails discovery only after the other passes have finished."""
        app_settings = make_settings(title_fanout=True)
        finished = []

        async def handler(request):
            tournament = json.loads(request.content)["variables"]["tournamentIds"][0]
            if tournament == "7":
                return httpx.Response(403, text="")
            await asyncio.sleep(0.01)
            finished.append(tournament)
            return httpx.Response(200, json={"data": {"allSeries": {"edges": [], "pageInfo": {"hasNextPage": False}}}})

        plan = DiscoveryPlan(
            strategy=NarrowingStrategy.BY_TITLE, tournament_ids=["7", "8"], title_id="3", fanout=True
        )

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
                discovery = SeriesDiscovery(CentralDataClient(app_settings, http), app_settings)
                await discovery.discover(WINDOW, plan)

        with pytest.raises(AuthenticationError) as info:
            asyncio.run(go())
        assert info.value.status_code == 403
        assert finished == ["8"]


class TestWindowWidening:
    def run_controller(self, grid, settings, allow_widen, direction=Direction.PAST):
        async def go(discovery):
            controller = WindowWideningController(discovery)
            plan = DiscoveryPlan(strategy=NarrowingStrategy.BY_WINDOW_ONLY)
            return await controller.run(
                WINDOW, plan, TEAM_ID, direction=direction, allow_widen=allow_widen
            )

        return run_discovery(grid, settings, go)

    def test_widens_once_when_empty(self, grid, settings):
        result = self.run_controller(grid, settings, allow_widen=True)
        assert result.widen_attempted
        assert result.candidates == []
        assert len(grid.calls_of("series")) == 2
        widened_gte = grid.calls_of("series")[1]["variables"]["gte"]
        assert widened_gte < grid.calls_of("series")[0]["variables"]["gte"]

    def test_widened_result_is_used(self, grid, settings):
        def responder(variables):
            # Only the widened window reaches back to March 1st
            return [series_node("s1")] if variables["gte"] < "2025-03-10" else []

        grid.series_responder = responder
        result = self.run_controller(grid, settings, allow_widen=True)
        assert [c.id for c in result.candidates] == ["s1"]
        assert result.widened_window is not None
        assert result.window == WINDOW

    def test_next_direction_moves_lte(self, grid, settings):
        self.run_controller(grid, settings, allow_widen=True, direction=Direction.NEXT)
        first, second = grid.calls_of("series")
        assert first["variables"]["gte"] == second["variables"]["gte"]
        assert second["variables"]["lte"] > first["variables"]["lte"]

    def test_no_widen_when_not_allowed(self, grid, settings):
        result = self.run_controller(grid, settings, allow_widen=False)
        assert not result.widen_attempted
        assert len(grid.calls_of("series")) == 1

    def test_no_widen_when_team_found(self, grid, settings):
        grid.series = [series_node("s1")]
        result = self.run_controller(grid, settings, allow_widen=True)
        assert not result.widen_attempted
        assert len(grid.calls_of("series")) == 1

    def test_widening_counts_only_post_filter_candidates(self, grid, settings):
        """Series without the team count as empty and trigger the one widening."""
        grid.series = [series_node("s1", team_ids=["2", "3"])]
        result = self.run_controller(grid, settings, allow_widen=True)
        assert result.widen_attempted
        assert result.fetched_count == 1
        assert len(grid.calls_of("series")) == 2


class TestTournamentWhitelist:
    def test_default_list(self):
        assert get_default_tournament_ids() == HACKATHON_TOURNAMENT_IDS_ALL
        assert len(set(HACKATHON_TOURNAMENT_IDS_ALL)) == len(HACKATHON_TOURNAMENT_IDS_ALL)

    def test_override(self):
        assert get_default_tournament_ids(make_settings(tournament_ids="1, 2,,3")) == ["1", "2", "3"]
