"""
Shared fixtures: settings for tests and a fake GRID behind ``httpx.MockTransport``.

The fake routes requests by URL and by the GraphQL root field in the query text,
and records every call so tests can assert on what reached the network.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from gridscout.config.settings import AppSettings

TEAM_ID = "47351"
OTHER_TEAM_ID = "1"


def make_settings(**overrides: Any) -> AppSettings:
    values: Dict[str, Any] = {
        "grid_api_key": "test-key-123456789",
        "grid_retry_attempts": 1,
        "grid_retry_wait_max": 0,
        "series_state_mode": "op",
        "tournament_ids": "",
        "title_fanout": False,
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)


def series_node(
    series_id: str,
    start: Optional[str] = "2025-03-01T12:00:00Z",
    team_ids: Optional[List[Any]] = None,
    flat: bool = False,
) -> Dict[str, Any]:
    team_ids = team_ids if team_ids is not None else [TEAM_ID, OTHER_TEAM_ID]
    if flat:
        teams = [{"id": tid, "name": f"Team {tid}"} for tid in team_ids]
    else:
        teams = [{"baseInfo": {"id": tid, "name": f"Team {tid}"}} for tid in team_ids]
    return {
        "id": series_id,
        "startTimeScheduled": start,
        "tournament": {"id": "758024", "name": "LCK - Spring 2024"},
        "teams": teams,
    }


class FakeGrid:
    """In-memory stand-in for Central Data, Series State and File Download."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.team: Optional[Dict[str, Any]] = {"id": TEAM_ID, "name": "Cloud9"}
        self.team_search: List[Dict[str, Any]] = [{"id": TEAM_ID, "name": "Cloud9"}]
        self.titles: List[Dict[str, Any]] = [{"id": "3", "name": "League of Legends"}]
        self.tournaments: List[Dict[str, Any]] = [
            {"id": "758024", "name": "LCK - Spring 2024"},
            {"id": "999999", "name": "Not on the whitelist"},
        ]
        self.series: List[Dict[str, Any]] = []
        # Optional per-call override: receives the variables, returns nodes
        self.series_responder: Optional[Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = None
        self.files: Dict[str, Any] = {}
        self.states: Dict[str, Any] = {}
        self.downloads: Dict[str, Any] = {}
        self.types: Dict[str, Any] = {}
        self.status_overrides: Dict[str, int] = {}

    # --- inspection helpers ---

    def calls_of(self, kind: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["kind"] == kind]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # --- routing ---

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if "/file-download/list/" in url:
            return self._files(url.rsplit("/", 1)[-1])
        if url in self.downloads:
            self.calls.append({"kind": "download", "url": url})
            payload = self.downloads[url]
            if isinstance(payload, int):
                return httpx.Response(payload, text="")
            return httpx.Response(200, json=payload)

        body = json.loads(request.content or b"{}")
        query = body.get("query", "")
        variables = body.get("variables") or {}
        if "series-state" in url:
            return self._state(variables)
        if "__type" in query:
            return self._introspect(query)
        if "allSeries" in query:
            return self._series(variables)
        if "tournaments(" in query:
            return self._graphql("tournaments", variables, {"tournaments": {
                "totalCount": len(self.tournaments),
                "edges": [{"node": t} for t in self.tournaments],
            }})
        if "teams(filter" in query:
            return self._graphql("team_search", variables, {"teams": {
                "edges": [{"node": t} for t in self.team_search],
            }})
        if "team(id" in query:
            return self._graphql("team", variables, {"team": self.team})
        if "titles" in query:
            return self._graphql("titles", variables, {"titles": self.titles})
        return httpx.Response(404, text="unknown route")

    def _graphql(self, kind: str, variables: Dict[str, Any], data: Dict[str, Any]) -> httpx.Response:
        self.calls.append({"kind": kind, "variables": variables})
        if kind in self.status_overrides:
            return httpx.Response(self.status_overrides[kind], text="")
        return httpx.Response(200, json={"data": data})

    def _series(self, variables: Dict[str, Any]) -> httpx.Response:
        self.calls.append({"kind": "series", "variables": variables})
        if "series" in self.status_overrides:
            return httpx.Response(self.status_overrides["series"], text="")
        nodes = self.series_responder(variables) if self.series_responder else self.series
        start = int(variables.get("after") or 0)
        first = int(variables.get("first") or 50)
        page = nodes[start:start + first]
        end = start + len(page)
        return httpx.Response(200, json={"data": {"allSeries": {
            "totalCount": len(nodes),
            "edges": [{"node": node} for node in page],
            "pageInfo": {"endCursor": str(end), "hasNextPage": end < len(nodes)},
        }}})

    def _files(self, series_id: str) -> httpx.Response:
        self.calls.append({"kind": "files", "series_id": series_id})
        result = self.files.get(series_id, 404)
        if isinstance(result, int):
            return httpx.Response(result, text="")
        return httpx.Response(200, json=result)

    def _state(self, variables: Dict[str, Any]) -> httpx.Response:
        series_id = variables.get("seriesId")
        self.calls.append({"kind": "state", "series_id": series_id})
        result = self.states.get(series_id)
        if isinstance(result, int):
            return httpx.Response(result, text="")
        if isinstance(result, str):
            return httpx.Response(200, json={"errors": [{"message": result}]})
        return httpx.Response(200, json={"data": {"seriesState": result}})

    def _introspect(self, query: str) -> httpx.Response:
        name = query.split('__type(name: "', 1)[1].split('"', 1)[0]
        self.calls.append({"kind": "introspect", "type": name})
        if name in self.status_overrides:
            return httpx.Response(self.status_overrides[name], text="")
        return httpx.Response(200, json={"data": {"__type": self.types.get(name)}})


@pytest.fixture
def grid() -> FakeGrid:
    return FakeGrid()


@pytest.fixture
def settings() -> AppSettings:
    return make_settings()
