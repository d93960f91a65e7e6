# gridscout/clients/file_download.py

from typing import Any, List, Optional

from loguru import logger

from gridscout.clients.base_client import (
    BaseGridClient,
    CallContext,
    UpstreamNotFound,
    UpstreamUnavailable,
    decode_json,
)
from gridscout.models.evidence import FileManifestEntry


class FileDownloadClient(BaseGridClient):
    """Client for the GRID File Download REST API."""

    service_name = "file_download"

    @property
    def base_url(self) -> str:
        return self.settings.grid_file_download_url.rstrip("/")

    async def list_files(
        self, series_id: str, ctx: Optional[CallContext] = None
    ) -> List[FileManifestEntry]:
        """The file manifest for a series.

        A 404, an empty body or a non-array body all mean "no files"; other failures
        (auth, 5xx, transport) are raised.
        """
        where = "file_download_list"
        try:
            response = await self._make_request(
                "GET", f"{self.base_url}/list/{series_id}", ctx=ctx, where=where
            )
            data = decode_json(response, where)
        except UpstreamNotFound:
            logger.debug(f"No file manifest for series {series_id} (404)")
            return []
        except UpstreamUnavailable as e:
            if "EMPTY_BODY" in str(e):
                return []
            raise

        if isinstance(data, dict):
            # Some deployments wrap the list as {"files": [...]}
            data = data.get("files")
        if not isinstance(data, list):
            return []

        entries = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            if raw.get("id") is None and raw.get("fileName"):
                raw = {**raw, "id": raw["fileName"]}
            if raw.get("id") is None:
                continue
            entries.append(FileManifestEntry.model_validate(raw))
        return entries

    async def download_json(self, url: str, ctx: Optional[CallContext] = None) -> Any:
        """Downloads one manifest file and parses it as JSON."""
        response = await self._make_request("GET", url, ctx=ctx, where="file_download_get")
        return decode_json(response, "file_download_get")
