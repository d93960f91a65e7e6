from typing import Optional

from gridscout.models.enums import ResponseCode


class ScoutError(Exception):
    """Base exception for failures of a scout run that map to a response code."""

    code: ResponseCode = ResponseCode.INVALID_REQUEST

    def __init__(self, message: str, code: Optional[ResponseCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ScoutValidationError(ScoutError):
    """The request is malformed. Raised before any upstream call."""

    pass


class MissingCredentials(ScoutError):
    """No usable GRID API key is configured."""

    code = ResponseCode.MISSING_API_KEY

    def __init__(self, message: str = "GRID_API_KEY is not configured"):
        super().__init__(message)


class TeamNotFound(ScoutError):
    code = ResponseCode.TEAM_NOT_FOUND

    def __init__(self, team_id: str):
        super().__init__(f"Team {team_id} not found in GRID Central Data")
        self.team_id = team_id


class PipelineTimeout(ScoutError):
    """The run did not finish within PIPELINE_TIMEOUT_SECONDS."""

    code = ResponseCode.TIMEOUT
