"""
Decision table for a scout run.

Rows are evaluated in order and the first match wins, so every combination of
inputs maps to exactly one outcome:

1. team not resolved              -> TEAM_NOT_FOUND
2. no candidates after widening   -> NO_SERIES_FOUND (reason ``discovery_empty``)
3. no files and no state          -> NO_IN_GAME_DATA
4. at least one parsed file       -> success, no code
5. evidence but nothing parsed    -> NO_SERIES_FOUND (reason ``download_failed``)
"""

from dataclasses import dataclass
from typing import Optional

from gridscout.models.enums import OutcomeKind, ResponseCode

STATUS_BY_CODE = {
    ResponseCode.TEAM_ID_REQUIRED: 400,
    ResponseCode.INVALID_TIMESTAMP: 400,
    ResponseCode.INVALID_REQUEST: 400,
    ResponseCode.MISSING_API_KEY: 503,
    ResponseCode.TEAM_NOT_FOUND: 200,
    ResponseCode.NO_SERIES_FOUND: 200,
    ResponseCode.NO_IN_GAME_DATA: 200,
    ResponseCode.NO_STATE: 200,
    ResponseCode.GRID_FETCH_FAILED: 502,
    ResponseCode.GRAPHQL_ERROR: 502,
    ResponseCode.INTROSPECTION_FAILED: 502,
    ResponseCode.UNAUTHORIZED: 401,
    ResponseCode.FORBIDDEN: 403,
    ResponseCode.TIMEOUT: 504,
}


def http_status_for(code: Optional[ResponseCode]) -> int:
    if code is None:
        return 200
    return STATUS_BY_CODE.get(code, 500)


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    code: Optional[ResponseCode]
    success: bool
    message: str

    @property
    def reason(self) -> Optional[str]:
        """Tells apart the two outcomes that share NO_SERIES_FOUND."""
        if self.code is ResponseCode.NO_SERIES_FOUND:
            return self.kind.value
        return None

    @property
    def http_status(self) -> int:
        return http_status_for(self.code)

    @property
    def has_report(self) -> bool:
        return self.kind is not OutcomeKind.TEAM_NOT_FOUND


def classify(
    team_resolved: bool,
    candidate_count: int,
    series_with_files: int,
    series_with_state: int,
    files_parsed: int,
) -> Outcome:
    if not team_resolved:
        return Outcome(
            OutcomeKind.TEAM_NOT_FOUND,
            ResponseCode.TEAM_NOT_FOUND,
            False,
            "Team not found in GRID Central Data",
        )
    if candidate_count == 0:
        return Outcome(
            OutcomeKind.NO_SERIES,
            ResponseCode.NO_SERIES_FOUND,
            True,
            "No series found for this team in the requested time window",
        )
    if series_with_files == 0 and series_with_state == 0:
        return Outcome(
            OutcomeKind.NO_IN_GAME_DATA,
            ResponseCode.NO_IN_GAME_DATA,
            True,
            "Series found, but GRID has published no files or series state for them",
        )
    if files_parsed >= 1:
        return Outcome(OutcomeKind.SUCCESS, None, True, f"Report built from {files_parsed} match files")
    return Outcome(
        OutcomeKind.DOWNLOAD_FAILED,
        ResponseCode.NO_SERIES_FOUND,
        True,
        "In-game data exists, but no match file could be downloaded and parsed",
    )
