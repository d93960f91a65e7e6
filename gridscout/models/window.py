from datetime import datetime

from pydantic import ConfigDict, model_validator

from gridscout.models.base import CamelModel
from gridscout.utils.datetime_utils import ensure_iso8601_with_timezone, to_iso_utc


class TimeWindow(CamelModel):
    """A [gte, lte] discovery window in UTC. Widening creates a new window."""

    model_config = ConfigDict(frozen=True)  # Make instances immutable

    gte: datetime
    lte: datetime

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        if self.gte > self.lte:
            raise ValueError(f"TimeWindow gte ({self.gte}) is after lte ({self.lte})")
        return self

    def as_query_bounds(self) -> dict:
        """The bounds as timezone-qualified ISO strings, ready for a GraphQL filter."""
        return {
            "gte": ensure_iso8601_with_timezone(to_iso_utc(self.gte)),
            "lte": ensure_iso8601_with_timezone(to_iso_utc(self.lte)),
        }

    def to_wire(self) -> dict:
        return self.as_query_bounds()
