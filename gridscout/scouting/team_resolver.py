# gridscout/scouting/team_resolver.py

from typing import Optional

from loguru import logger

from gridscout.clients.base_client import CallContext
from gridscout.clients.central_data import CentralDataClient
from gridscout.models.series import TeamRecord
from gridscout.scouting.errors import TeamNotFound


class TeamResolver:
    def __init__(self, client: CentralDataClient):
        self.client = client

    async def resolve(self, team_id: str, ctx: Optional[CallContext] = None) -> TeamRecord:
        """Looks the team up; raises :class:`TeamNotFound` when Central Data returns null.

        Upstream failures propagate unchanged so the caller can map them to a code.
        """
        team = await self.client.get_team(team_id, ctx=ctx)
        if team is None:
            logger.info(f"Team {team_id} not found")
            raise TeamNotFound(team_id)
        logger.info(f"Team resolved: {team.name} ({team.id})")
        return team
