# gridscout/evidence/downloader.py

from typing import List, Optional, Tuple

from loguru import logger

from gridscout.clients.base_client import CallContext, UpstreamTimeout
from gridscout.clients.file_download import FileDownloadClient
from gridscout.models.evidence import EvidenceBatch, FileManifestEntry, MatchFile


def pick_match_file(manifest: List[FileManifestEntry]) -> Optional[FileManifestEntry]:
    """First entry that looks like match data and can actually be downloaded."""
    for entry in manifest:
        if entry.full_url and entry.looks_like_match_file():
            return entry
    return None


class MatchFileDownloader:
    """Downloads and parses at most one match file per probed series."""

    def __init__(self, files_client: FileDownloadClient):
        self.files_client = files_client

    async def download(
        self, batch: EvidenceBatch, ctx: Optional[CallContext] = None
    ) -> Tuple[List[MatchFile], int]:
        """Returns the parsed files and how many downloads failed."""
        files: List[MatchFile] = []
        failed = 0

        for record in batch.records:
            if not record.has_files:
                continue
            entry = pick_match_file(batch.manifests.get(record.series_id, []))
            if entry is None:
                continue
            try:
                payload = await self.files_client.download_json(entry.full_url, ctx=ctx)
            except UpstreamTimeout:
                if ctx is not None and ctx.expired:
                    raise
                failed += 1
                logger.warning(f"Timed out downloading {entry.label} for series {record.series_id}")
                continue
            except Exception as e:
                if ctx is not None and ctx.expired:
                    raise UpstreamTimeout(f"download for {record.series_id}: deadline exceeded") from e
                failed += 1
                logger.warning(f"Failed to download {entry.label} for series {record.series_id}: {e}")
                continue

            files.append(
                MatchFile(
                    series_id=record.series_id,
                    file_name=entry.file_name or entry.id,
                    url=entry.full_url,
                    payload=payload,
                )
            )

        if files:
            logger.success(f"Parsed {len(files)} match files ({failed} failed)")
        return files, failed
