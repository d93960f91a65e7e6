# gridscout/evidence/prober.py

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from gridscout.clients.base_client import CallContext, UpstreamTimeout
from gridscout.clients.file_download import FileDownloadClient
from gridscout.clients.series_state import SeriesStateClient
from gridscout.models.evidence import EvidenceBatch, EvidenceRecord, FileManifestEntry
from gridscout.models.series import SeriesCandidate

# Upper bound on probed series per request, whatever maxSeries asks for
PROBE_CAP = 10


def most_recent_first(candidates: Sequence[SeriesCandidate]) -> List[SeriesCandidate]:
    """Sorts by scheduled start, newest first; series without a start go last."""
    dated = [c for c in candidates if c.scheduled_start is not None]
    undated = [c for c in candidates if c.scheduled_start is None]
    dated.sort(key=lambda c: c.scheduled_start or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
    return dated + undated


class EvidenceProber:
    """Asks File Download and Series State whether each series has in-game data."""

    def __init__(self, files_client: FileDownloadClient, state_client: SeriesStateClient):
        self.files_client = files_client
        self.state_client = state_client

    def select(self, candidates: Sequence[SeriesCandidate], max_series: int) -> List[SeriesCandidate]:
        return most_recent_first(candidates)[: min(max_series, PROBE_CAP)]

    async def probe(
        self,
        candidates: Sequence[SeriesCandidate],
        max_series: int,
        ctx: Optional[CallContext] = None,
    ) -> EvidenceBatch:
        batch = EvidenceBatch()
        for candidate in self.select(candidates, max_series):
            record, manifest = await self.probe_series(candidate.id, ctx=ctx)
            batch.records.append(record)
            if manifest:
                batch.manifests[candidate.id] = manifest

        logger.info(
            f"Probed {len(batch.records)} series: {batch.series_with_files_count} with files, "
            f"{batch.series_with_state_count} with state"
        )
        return batch

    async def probe_series(
        self, series_id: str, ctx: Optional[CallContext] = None
    ) -> Tuple[EvidenceRecord, List[FileManifestEntry]]:
        """Runs both probes for one series; a failure in one leaves the other intact."""
        files_result, state_result = await asyncio.gather(
            self.files_client.list_files(series_id, ctx=ctx),
            self.state_client.get_series_state(series_id, ctx=ctx),
            return_exceptions=True,
        )

        manifest: List[FileManifestEntry] = []
        if isinstance(files_result, BaseException):
            self._absorb(files_result, "File Download", series_id, ctx)
        else:
            manifest = files_result

        has_state = False
        if isinstance(state_result, BaseException):
            self._absorb(state_result, "Series State", series_id, ctx)
        else:
            has_state = state_result is not None

        record = EvidenceRecord(
            series_id=series_id,
            has_files=bool(manifest),
            file_types_available=[entry.label for entry in manifest],
            has_state=has_state,
        )
        return record, manifest

    @staticmethod
    def _absorb(error: BaseException, probe: str, series_id: str, ctx: Optional[CallContext]) -> None:
        if isinstance(error, asyncio.CancelledError):
            raise error
        if ctx is not None and ctx.expired:
            if isinstance(error, UpstreamTimeout):
                raise error
            raise UpstreamTimeout(f"{probe} probe for {series_id}: deadline exceeded") from error
        if not isinstance(error, Exception):
            raise error
        logger.warning(f"{probe} probe failed for series {series_id}: {error}")
