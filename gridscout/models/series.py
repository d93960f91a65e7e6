from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from gridscout.models.base import CamelModel
from gridscout.utils.datetime_utils import MalformedTimestamp, parse_timestamp
from gridscout.utils.misc_utils import coerce_id


def extract_team_id(ref: Any) -> Optional[str]:
    """Returns ``ref.baseInfo.id`` falling back to ``ref.id``, as a string.

    Central Data returns ``{"baseInfo": {"id", "name"}}`` for series teams while
    other payloads (and older fixtures) carry ``{"id", "name"}`` directly.
    """
    if not isinstance(ref, dict):
        return None
    base_info = ref.get("baseInfo")
    if isinstance(base_info, dict) and base_info.get("id") is not None:
        return coerce_id(base_info.get("id"))
    return coerce_id(ref.get("id"))


class TeamRecord(CamelModel):
    """Canonical team as returned by the team lookup."""

    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return coerce_id(value)


class TeamRef(CamelModel):
    """A team participating in a series, normalized from either upstream shape."""

    id: str
    name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_base_info(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        base_info = data.get("baseInfo")
        name = data.get("name")
        if isinstance(base_info, dict):
            name = base_info.get("name", name)
        return {"id": extract_team_id(data), "name": name}


class TournamentRef(CamelModel):
    id: str
    name: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return coerce_id(value)


class SeriesCandidate(CamelModel):
    """One series returned by discovery, before or after team filtering."""

    id: str
    scheduled_start: Optional[datetime] = Field(None, alias="startTimeScheduled")
    tournament: Optional[TournamentRef] = None
    teams: List[TeamRef] = []

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return coerce_id(value)

    @field_validator("scheduled_start", mode="before")
    @classmethod
    def parse_start(cls, value):
        if value is None or isinstance(value, datetime):
            return value
        try:
            return parse_timestamp(str(value))
        except MalformedTimestamp:
            return None

    @field_validator("teams", mode="before")
    @classmethod
    def drop_unidentified_teams(cls, value):
        # Teams without any id cannot take part in membership checks
        return [
            ref
            for ref in (value or [])
            if isinstance(ref, TeamRef) or extract_team_id(ref) is not None
        ]

    @classmethod
    def from_edge(cls, edge: Dict[str, Any]) -> "SeriesCandidate":
        """Builds a candidate from an ``allSeries`` edge (``{"node": {...}}``)."""
        node = edge.get("node", edge) if isinstance(edge, dict) else {}
        return cls.model_validate(node or {})

    @property
    def team_ids(self) -> List[str]:
        return [team.id for team in self.teams]
