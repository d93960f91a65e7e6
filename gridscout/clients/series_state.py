# gridscout/clients/series_state.py

from typing import Any, Dict, List, Optional

from loguru import logger

from gridscout.clients.base_client import (
    AuthenticationError,
    BaseGridClient,
    CallContext,
    UpstreamNotFound,
    UpstreamQueryError,
)

SERIES_STATE_QUERY = """
query GetSeriesState($seriesId: ID!) {
  seriesState(id: $seriesId) {
    id
    valid
    finished
    startedAt
    updatedAt
    teams {
      id
      name
      won
      score
    }
    games {
      sequenceNumber
      finished
      teams {
        id
        name
        won
        score
        players {
          id
          name
          kills
          deaths
          character {
            id
            name
          }
        }
      }
    }
  }
}
"""


class SeriesStateClient(BaseGridClient):
    """Client for the Series State GraphQL API (live-data-feed).

    In ``auto`` mode the open-access endpoint is tried first and the commercial one
    (when configured) only after a 401/403/404 from the first.
    """

    service_name = "series_state"

    @property
    def urls(self) -> List[str]:
        return self.settings.series_state_urls()

    async def get_series_state(
        self, series_id: str, ctx: Optional[CallContext] = None
    ) -> Optional[Dict[str, Any]]:
        """The state for a series, or None when none has been published.

        "Not found" GraphQL errors and HTTP 404 both mean no state. Auth failures
        and other GraphQL errors are raised.
        """
        urls = self.urls
        for index, url in enumerate(urls):
            is_last = index == len(urls) - 1
            try:
                data = await self._graphql(
                    url,
                    SERIES_STATE_QUERY,
                    {"seriesId": series_id},
                    ctx=ctx,
                    where="series_state_query",
                )
            except UpstreamQueryError as e:
                if e.mentions_not_found():
                    logger.debug(f"No series state for {series_id}: {e}")
                    return None
                raise
            except UpstreamNotFound:
                if is_last:
                    return None
                logger.info(f"Series State endpoint {url} returned 404, trying next endpoint")
                continue
            except AuthenticationError:
                if is_last:
                    raise
                logger.info(f"Series State endpoint {url} rejected the key, trying next endpoint")
                continue
            return data.get("seriesState") or None
        return None
