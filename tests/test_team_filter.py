"""Tests for the client-side team-membership filter and TeamRef parsing."""

import pytest

from gridscout.discovery.team_filter import filter_series_by_team
from gridscout.models.series import SeriesCandidate, TeamRef, extract_team_id
from tests.conftest import OTHER_TEAM_ID, TEAM_ID, series_node


def candidates(*nodes):
    return [SeriesCandidate.from_edge({"node": node}) for node in nodes]


class TestExtractTeamId:
    def test_base_info_shape(self):
        assert extract_team_id({"baseInfo": {"id": "123", "name": "X"}}) == "123"

    def test_flat_shape(self):
        assert extract_team_id({"id": 123, "name": "X"}) == "123"

    def test_base_info_wins_over_flat(self):
        assert extract_team_id({"id": "1", "baseInfo": {"id": "2"}}) == "2"

    def test_falls_back_when_base_info_has_no_id(self):
        assert extract_team_id({"id": "1", "baseInfo": {"name": "X"}}) == "1"

    @pytest.mark.parametrize("ref", [None, "123", {}, {"name": "X"}, {"baseInfo": None}])
    def test_no_id(self, ref):
        assert extract_team_id(ref) is None


class TestTeamRef:
    def test_both_shapes_normalize_to_the_same_ref(self):
        flat = TeamRef.model_validate({"id": 123, "name": "X"})
        nested = TeamRef.model_validate({"baseInfo": {"id": "123", "name": "X"}})
        assert flat == nested
        assert flat.id == "123"


class TestFilterSeriesByTeam:
    def test_keeps_only_series_with_the_team(self):
        found = candidates(
            series_node("s1", team_ids=[TEAM_ID, OTHER_TEAM_ID]),
            series_node("s2", team_ids=["2", "3"]),
            series_node("s3", team_ids=[OTHER_TEAM_ID, TEAM_ID]),
        )
        assert [c.id for c in filter_series_by_team(found, TEAM_ID)] == ["s1", "s3"]

    def test_both_ref_shapes_and_id_types_match(self):
        """``{id: 123}`` and ``{baseInfo: {id: "123"}}`` both pass for "123"."""
        found = candidates(
            series_node("flat", team_ids=[123, 5], flat=True),
            series_node("nested", team_ids=["123", "5"]),
        )
        assert [c.id for c in filter_series_by_team(found, "123")] == ["flat", "nested"]

    def test_numeric_query_id(self):
        found = candidates(series_node("s1", team_ids=["123"]))
        assert [c.id for c in filter_series_by_team(found, 123)] == ["s1"]  # type: ignore[arg-type]

    def test_preserves_order_and_drops_duplicates(self):
        found = candidates(
            series_node("s3"),
            series_node("s1"),
            series_node("s3", start="2025-01-01T00:00:00Z"),
            series_node("s2"),
        )
        kept = filter_series_by_team(found, TEAM_ID)
        assert [c.id for c in kept] == ["s3", "s1", "s2"]
        # First occurrence wins
        assert kept[0].scheduled_start.month == 3

    def test_series_without_teams_are_dropped(self):
        no_teams = series_node("s1")
        no_teams["teams"] = None
        unidentified = series_node("s2")
        unidentified["teams"] = [{"baseInfo": {"name": "Nameless"}}, {"name": "Also nameless"}]
        assert filter_series_by_team(candidates(no_teams, unidentified), TEAM_ID) == []

    def test_empty_inputs(self):
        assert filter_series_by_team([], TEAM_ID) == []
        assert filter_series_by_team(candidates(series_node("s1")), None) == []

    def test_is_pure(self):
        found = candidates(series_node("s1"), series_node("s2", team_ids=["9"]))
        before = [c.model_copy() for c in found]
        filter_series_by_team(found, TEAM_ID)
        assert found == before


class TestSeriesCandidate:
    def test_malformed_start_becomes_none(self):
        candidate = SeriesCandidate.from_edge({"node": series_node("s1", start="soon")})
        assert candidate.scheduled_start is None

    def test_team_ids_are_strings(self):
        candidate = SeriesCandidate.from_edge({"node": series_node("s1", team_ids=[1, 2], flat=True)})
        assert candidate.team_ids == ["1", "2"]
