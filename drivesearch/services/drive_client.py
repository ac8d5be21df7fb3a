"""
Drive client: Google Drive v3 REST access over httpx, and the file candidate type.

Responsibility: The only module that talks to Drive. Lists folder children, runs
files.list queries, fetches metadata and extracts text. Every call requests
shared-drive-aware listing. Errors surface as RetrievalError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from drivesearch.core.config import (
    CHILDREN_PAGE_SIZE,
    DRIVE_ACCESS_TOKEN,
    DRIVE_API_BASE,
    DRIVE_API_KEY,
    DRIVE_API_TIMEOUT,
    FOLDER_MIME,
)
from drivesearch.core.errors import ConfigurationError, RetrievalError
from drivesearch.services.drive_query import children_query

logger = logging.getLogger(__name__)

FILE_FIELDS = "id,name,mimeType,webViewLink,modifiedTime,createdTime"
LIST_FIELDS = f"nextPageToken,files({FILE_FIELDS},parents,iconLink)"
ALL_DRIVES_PARAMS = {"supportsAllDrives": "true", "includeItemsFromAllDrives": "true"}


def _path_id(file_id: str) -> str:
    return quote(str(file_id), safe="")


def is_folder(item: dict[str, Any] | None) -> bool:
    return bool(item) and item.get("mimeType") == FOLDER_MIME


@dataclass(frozen=True)
class FileCandidate:
    """A non-folder Drive file surfaced by a query."""

    id: str
    title: str
    mime_type: str
    link: str | None = None
    modified_time: str | None = None
    created_time: str | None = None

    @classmethod
    def from_drive(cls, item: dict[str, Any]) -> "FileCandidate | None":
        """Map a Drive file resource; None for folders or entries missing id/mimeType."""
        if not item or not item.get("id") or not item.get("mimeType") or is_folder(item):
            return None
        return cls(
            id=str(item["id"]),
            title=str(item.get("name") or ""),
            mime_type=str(item["mimeType"]),
            link=item.get("webViewLink"),
            modified_time=item.get("modifiedTime"),
            created_time=item.get("createdTime"),
        )

    def to_prompt_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "mimeType": self.mime_type,
            "modifiedTime": self.modified_time,
            "link": self.link,
        }


def to_candidates(items: list[dict[str, Any]]) -> list[FileCandidate]:
    """Map Drive resources to candidates, dropping folders and incomplete entries."""
    out: list[FileCandidate] = []
    for item in items or []:
        c = FileCandidate.from_drive(item)
        if c is not None:
            out.append(c)
    return out


class FileStore(Protocol):
    """What the retrieval core needs from a hierarchical file store."""

    def list_children(
        self,
        folder_id: str,
        page_token: str | None = None,
        page_size: int = CHILDREN_PAGE_SIZE,
        order_by: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]: ...

    def query(self, q: str, page_size: int, order_by: str | None = None) -> list[dict[str, Any]]: ...

    def get_metadata(self, file_id: str) -> dict[str, Any]: ...

    def export_text(self, file_id: str, mime_type: str = "text/plain") -> str: ...

    def download_text(self, file_id: str) -> str: ...


class DriveClient:
    """Drive v3 REST client. Auth via bearer token (DRIVE_ACCESS_TOKEN) or API key (DRIVE_API_KEY)."""

    def __init__(
        self,
        access_token: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else DRIVE_ACCESS_TOKEN
        self.api_key = api_key if api_key is not None else DRIVE_API_KEY
        if not self.access_token and not self.api_key:
            raise ConfigurationError("DRIVE_ACCESS_TOKEN or DRIVE_API_KEY must be set in .env")
        self.base_url = (base_url or DRIVE_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else DRIVE_API_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.Client:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        if self.api_key and not self.access_token:
            params = {**params, "key": self.api_key}
        try:
            with self._client() as client:
                response = client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.warning("[drive:get] request failed path=%s error=%s", path, e)
            raise RetrievalError(f"Drive request failed: {e}") from e
        if response.status_code != 200:
            logger.warning(
                "[drive:get] Drive error %s path=%s body=%s",
                response.status_code, path, response.text[:200],
            )
            raise RetrievalError(f"Drive API error {response.status_code}", status_code=response.status_code)
        return response

    def _files_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return self._get("/files", {**params, **ALL_DRIVES_PARAMS}).json()

    def list_children(
        self,
        folder_id: str,
        page_token: str | None = None,
        page_size: int = CHILDREN_PAGE_SIZE,
        order_by: str | None = None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """One page of direct children (folders and files) of folder_id."""
        params: dict[str, Any] = {
            "q": children_query(folder_id),
            "pageSize": page_size,
            "fields": LIST_FIELDS,
        }
        if page_token:
            params["pageToken"] = page_token
        if order_by:
            params["orderBy"] = order_by
        data = self._files_list(params)
        files = data.get("files") or []
        logger.debug("[drive:list_children] folder=%s files=%d more=%s", folder_id, len(files), bool(data.get("nextPageToken")))
        return files, data.get("nextPageToken") or None

    def query(self, q: str, page_size: int, order_by: str | None = None) -> list[dict[str, Any]]:
        """Run one files.list query (first page only)."""
        params: dict[str, Any] = {"q": q, "pageSize": page_size, "fields": f"files({FILE_FIELDS})"}
        if order_by:
            params["orderBy"] = order_by
        data = self._files_list(params)
        return data.get("files") or []

    def get_metadata(self, file_id: str) -> dict[str, Any]:
        return self._get(
            f"/files/{_path_id(file_id)}",
            {"fields": FILE_FIELDS, "supportsAllDrives": "true"},
        ).json()

    def export_text(self, file_id: str, mime_type: str = "text/plain") -> str:
        """Export a native Google document (Docs/Sheets/Slides) as text."""
        return self._get(f"/files/{_path_id(file_id)}/export", {"mimeType": mime_type}).text

    def download_text(self, file_id: str) -> str:
        """Download the content of a plain-text-like file."""
        return self._get(f"/files/{_path_id(file_id)}", {"alt": "media", "supportsAllDrives": "true"}).text


_drive_singleton: DriveClient | None = None


def get_drive_client() -> DriveClient:
    global _drive_singleton
    if _drive_singleton is None:
        _drive_singleton = DriveClient()
        logger.info("Drive client initialized base_url=%s", _drive_singleton.base_url)
    return _drive_singleton
