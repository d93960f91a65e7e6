# gridscout/clients/central_data.py

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from gridscout.clients.base_client import BaseGridClient, CallContext
from gridscout.models.series import TeamRecord, TournamentRef
from gridscout.utils.misc_utils import coerce_id

TEAM_QUERY = """
query GetTeam($id: ID!) {
  team(id: $id) {
    id
    name
  }
}
"""

TEAM_SEARCH_QUERY = """
query TeamSearch($search: String!, $first: Int!) {
  teams(filter: { name: { contains: $search } }, first: $first) {
    edges {
      node {
        id
        name
      }
    }
  }
}
"""

TITLES_QUERY = """
query GetTitles {
  titles {
    id
    name
  }
}
"""

TOURNAMENTS_QUERY = """
query GetTournaments($titleId: ID!) {
  tournaments(filter: { title: { id: { in: [$titleId] } } }) {
    totalCount
    edges {
      node {
        id
        name
      }
    }
  }
}
"""

SERIES_NODE_FIELDS = """
      totalCount
      edges {
        node {
          id
          startTimeScheduled
          teams {
            baseInfo {
              id
              name
            }
          }
          tournament {
            id
            name
          }
        }
      }
      pageInfo {
        endCursor
        hasNextPage
      }
"""

SERIES_BY_TOURNAMENTS_QUERY = (
    """
query GetSeriesByTournaments($tournamentIds: [ID!]!, $gte: String!, $lte: String!, $first: Int, $after: Cursor) {
  allSeries(
    filter: {
      tournament: { id: { in: $tournamentIds }, includeChildren: { equals: true } }
      startTimeScheduled: { gte: $gte, lte: $lte }
    }
    orderBy: StartTimeScheduled
    first: $first
    after: $after
  ) {"""
    + SERIES_NODE_FIELDS
    + """  }
}
"""
)

SERIES_BY_TITLE_QUERY = (
    """
query GetSeriesByTitle($titleId: String!, $gte: String!, $lte: String!, $first: Int, $after: Cursor) {
  allSeries(
    filter: {
      titleId: $titleId
      startTimeScheduled: { gte: $gte, lte: $lte }
    }
    orderBy: StartTimeScheduled
    first: $first
    after: $after
  ) {"""
    + SERIES_NODE_FIELDS
    + """  }
}
"""
)

SERIES_BY_WINDOW_QUERY = (
    """
query GetSeries($gte: String!, $lte: String!, $first: Int, $after: Cursor) {
  allSeries(
    filter: {
      startTimeScheduled: { gte: $gte, lte: $lte }
    }
    orderBy: StartTimeScheduled
    first: $first
    after: $after
  ) {"""
    + SERIES_NODE_FIELDS
    + """  }
}
"""
)


class CentralDataClient(BaseGridClient):
    """Client for the GRID Central Data GraphQL API."""

    service_name = "central_data"

    @property
    def url(self) -> str:
        return self.settings.grid_central_data_url

    async def query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        ctx: Optional[CallContext] = None,
        where: str = "central_data_query",
    ) -> Dict[str, Any]:
        return await self._graphql(self.url, query, variables, ctx=ctx, where=where)

    async def get_team(self, team_id: str, ctx: Optional[CallContext] = None) -> Optional[TeamRecord]:
        """Looks a team up by id. Returns None when Central Data has no such team."""
        data = await self.query(TEAM_QUERY, {"id": team_id}, ctx=ctx, where="team_query")
        node = data.get("team")
        if not node or coerce_id(node.get("id")) is None:
            return None
        return TeamRecord(id=node["id"], name=node.get("name") or str(node["id"]))

    async def search_teams(
        self, search: str, first: int = 10, ctx: Optional[CallContext] = None
    ) -> List[TeamRecord]:
        data = await self.query(
            TEAM_SEARCH_QUERY,
            {"search": search, "first": first},
            ctx=ctx,
            where="team_search",
        )
        edges = ((data.get("teams") or {}).get("edges")) or []
        teams = []
        for edge in edges:
            node = (edge or {}).get("node") or {}
            if coerce_id(node.get("id")) is None:
                continue
            teams.append(TeamRecord(id=node["id"], name=node.get("name") or ""))
        return teams

    async def list_titles(self, ctx: Optional[CallContext] = None) -> List[Dict[str, Any]]:
        data = await self.query(TITLES_QUERY, ctx=ctx, where="titles_query")
        return data.get("titles") or []

    async def list_tournaments(
        self, title_id: str, ctx: Optional[CallContext] = None
    ) -> Tuple[List[TournamentRef], int]:
        """All tournaments under a title, plus the upstream ``totalCount``."""
        data = await self.query(
            TOURNAMENTS_QUERY, {"titleId": title_id}, ctx=ctx, where="tournaments_query"
        )
        connection = data.get("tournaments") or {}
        tournaments = [
            TournamentRef.model_validate(edge["node"])
            for edge in connection.get("edges") or []
            if (edge or {}).get("node") and coerce_id(edge["node"].get("id"))
        ]
        total_count = connection.get("totalCount")
        if total_count is None:
            total_count = len(tournaments)
        logger.debug(f"Title {title_id} has {len(tournaments)} tournaments (totalCount={total_count})")
        return tournaments, total_count

    async def fetch_series_page(
        self,
        gte: str,
        lte: str,
        first: int,
        after: Optional[str] = None,
        tournament_ids: Optional[List[str]] = None,
        title_id: Optional[str] = None,
        ctx: Optional[CallContext] = None,
    ) -> Dict[str, Any]:
        """One ``allSeries`` page: ``{"edges": [...], "pageInfo": {...}, "totalCount": n}``.

        ``tournament_ids`` takes precedence over ``title_id``; with neither, only the
        time window constrains the query.
        """
        variables: Dict[str, Any] = {"gte": gte, "lte": lte, "first": first}
        if after:
            variables["after"] = after

        if tournament_ids:
            query = SERIES_BY_TOURNAMENTS_QUERY
            variables["tournamentIds"] = list(tournament_ids)
        elif title_id:
            query = SERIES_BY_TITLE_QUERY
            variables["titleId"] = title_id
        else:
            query = SERIES_BY_WINDOW_QUERY

        data = await self.query(query, variables, ctx=ctx, where="series_query")
        return data.get("allSeries") or {}
