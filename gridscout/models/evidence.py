from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, computed_field, field_validator

from gridscout.models.base import CamelModel
from gridscout.utils.misc_utils import coerce_id

# Manifest names that point at parseable match data
MATCH_FILE_MARKERS = ("state-grid", "end-state")


class FileManifestEntry(CamelModel):
    """One row of the File Download listing for a series."""

    id: str
    status: Optional[str] = None
    description: Optional[str] = None
    file_name: Optional[str] = None
    full_url: Optional[str] = Field(None, alias="fullURL")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return coerce_id(value)

    @property
    def label(self) -> str:
        """The id-or-filename reported as an available file type."""
        return self.id or self.file_name or ""

    def looks_like_match_file(self) -> bool:
        name = (self.file_name or self.id or "").lower()
        return any(marker in name for marker in MATCH_FILE_MARKERS) or name.endswith(".json")


class EvidenceRecord(CamelModel):
    """What the two probes found for one series. The fields are independent."""

    series_id: str
    has_files: bool = False
    file_types_available: List[str] = []
    has_state: bool = False


class EvidenceBatch(CamelModel):
    """Per-series evidence for the probed prefix of candidates, in probe order."""

    records: List[EvidenceRecord] = []
    manifests: Dict[str, List[FileManifestEntry]] = Field(default_factory=dict, exclude=True)

    @computed_field  # type: ignore[misc]
    @property
    def series_with_files_count(self) -> int:
        return sum(1 for record in self.records if record.has_files)

    @computed_field  # type: ignore[misc]
    @property
    def series_with_state_count(self) -> int:
        return sum(1 for record in self.records if record.has_state)

    @property
    def has_any_evidence(self) -> bool:
        return self.series_with_files_count > 0 or self.series_with_state_count > 0


class MatchFile(CamelModel):
    """A downloaded and parsed match data file. At most one per series."""

    model_config = ConfigDict(frozen=True)

    series_id: str
    file_name: Optional[str] = None
    url: str
    payload: Any
