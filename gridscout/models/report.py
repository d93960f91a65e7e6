from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from gridscout.models.base import CamelModel
from gridscout.models.enums import Confidence, DataSource, Direction, ResponseCode
from gridscout.models.evidence import EvidenceRecord
from gridscout.utils.misc_utils import coerce_id


class Champion(CamelModel):
    name: str
    win_rate: float
    frequency: int


class Player(CamelModel):
    name: str
    role: str = "Unknown"
    champions: List[Champion] = []


class Tendency(CamelModel):
    title: str
    evidence: str
    confidence: Confidence


class Composition(CamelModel):
    comp: str
    frequency: int
    description: str


class EvidenceItem(CamelModel):
    metric: str
    value: str
    sample_size: str


class ScoutReport(CamelModel):
    """The scouting report handed to the presentation layer."""

    team_name: str
    region: str = "Unknown"  # No upstream source provides a region
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sample_size: int = 0
    date_range: str = ""
    tendencies: List[Tendency] = []
    players: List[Player] = []
    compositions: List[Composition] = []
    evidence: List[EvidenceItem] = []

    @classmethod
    def empty(cls, team_name: str, date_range: str = "") -> "ScoutReport":
        return cls(team_name=team_name, date_range=date_range)


class DebugTrace(CamelModel):
    """Observational record of one scout run. Never read by the pipeline itself."""

    team_id_used: Optional[str] = None
    narrowing: Optional[str] = None
    tournaments_selected: List[str] = []
    tournaments_total_count: Optional[int] = None
    time_window: Optional[Dict[str, str]] = None
    time_window_after_widen: Optional[Dict[str, str]] = None
    widen_window_attempted: bool = False
    series_fetched_before_team_filter: int = 0
    series_after_team_filter: int = 0
    sample_series_ids: List[str] = []
    series_edges: List[Dict[str, Any]] = []
    series_with_files_count: int = 0
    series_with_state_count: int = 0
    evidence: List[EvidenceRecord] = []
    files_parsed_count: int = 0
    files_failed_count: int = 0


class ScoutRequest(CamelModel):
    """Body of a report-generation request."""

    team_id: Optional[str] = None
    title_id: Optional[str] = None
    tournament_ids: List[str] = []
    hours: Optional[int] = Field(None, gt=0)
    direction: Direction = Direction.PAST
    days_back: Optional[int] = Field(None, gt=0)
    gte: Optional[str] = None
    lte: Optional[str] = None
    max_series: Optional[int] = Field(None, ge=1)
    debug: bool = False

    @field_validator("team_id", "title_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Union[str, int, None]):
        return coerce_id(value)

    @field_validator("tournament_ids", mode="before")
    @classmethod
    def stringify_tournament_ids(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        elif isinstance(value, int):
            value = [value]
        return [tid for tid in (coerce_id(v) for v in value) if tid]


class ScoutResponse(CamelModel):
    success: bool
    code: Optional[ResponseCode] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    source: DataSource = DataSource.GRID
    data: Optional[ScoutReport] = None
    debug: Optional[DebugTrace] = None
