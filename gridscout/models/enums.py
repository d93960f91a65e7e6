from enum import Enum


class Direction(str, Enum):
    PAST = "past"
    NEXT = "next"


class NarrowingStrategy(str, Enum):
    BY_TOURNAMENT_SET = "by_tournament_set"
    BY_TITLE = "by_title"
    BY_WINDOW_ONLY = "by_window_only"


class DataSource(str, Enum):
    GRID = "GRID"


class ResponseCode(str, Enum):
    # Request / configuration problems
    TEAM_ID_REQUIRED = "TEAM_ID_REQUIRED"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_API_KEY = "MISSING_API_KEY"
    # No-data outcomes
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    NO_SERIES_FOUND = "NO_SERIES_FOUND"
    NO_IN_GAME_DATA = "NO_IN_GAME_DATA"
    NO_STATE = "NO_STATE"
    # Upstream problems
    GRID_FETCH_FAILED = "GRID_FETCH_FAILED"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    TIMEOUT = "TIMEOUT"
    INTROSPECTION_FAILED = "INTROSPECTION_FAILED"


class OutcomeKind(str, Enum):
    """Result of the scout decision table. Two kinds share NO_SERIES_FOUND on the wire."""

    TEAM_NOT_FOUND = "team_not_found"
    NO_SERIES = "discovery_empty"
    NO_IN_GAME_DATA = "no_in_game_data"
    SUCCESS = "success"
    DOWNLOAD_FAILED = "download_failed"


class IntrospectionShape(str, Enum):
    OBJECT_FIELDS = "objectFields"
    INPUT_FIELDS = "inputFields"
    ENUM_VALUES = "enumValues"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
