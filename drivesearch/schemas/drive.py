"""Schemas for browsing the Drive folder (GET /drive/files)."""

from typing import Any

from pydantic import BaseModel, Field

from drivesearch.core.config import FOLDER_MIME


class DriveEntry(BaseModel):
    """A direct child of a folder; folders are included so clients can navigate."""

    id: str
    name: str = ""
    mime_type: str = ""
    is_folder: bool = False
    created_time: str | None = None
    modified_time: str | None = None
    parent_id: str | None = None
    link: str | None = None
    icon_link: str | None = None

    @classmethod
    def from_drive(cls, item: dict[str, Any], parent_id: str) -> "DriveEntry":
        mime = str(item.get("mimeType") or "")
        return cls(
            id=str(item.get("id") or ""),
            name=str(item.get("name") or ""),
            mime_type=mime,
            is_folder=mime == FOLDER_MIME,
            created_time=item.get("createdTime"),
            modified_time=item.get("modifiedTime"),
            parent_id=parent_id,
            link=item.get("webViewLink"),
            icon_link=item.get("iconLink"),
        )


class FolderListing(BaseModel):
    """Response for GET /drive/files."""

    folder_id: str
    entries: list[DriveEntry] = Field(default_factory=list)
    next_page_token: str | None = None
