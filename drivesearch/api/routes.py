"""
API route aggregator: register endpoints; no logic, only delegation to handlers.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from drivesearch.api.deps import require_user
from drivesearch.api.handlers import handle_list_folder, handle_search
from drivesearch.core import config
from drivesearch.schemas.drive import FolderListing
from drivesearch.schemas.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Drive search backend running"}


@router.get("/health", tags=["system"])
def health():
    warnings: list[str] = []
    if not config.DRIVE_FOLDER_ID:
        warnings.append("drive_folder_missing")
    if not config.DRIVE_ACCESS_TOKEN and not config.DRIVE_API_KEY:
        warnings.append("drive_credentials_missing")
    if not config.OPENAI_API_KEY and not config.HF_API_KEY:
        warnings.append("llm_credentials_missing")
    payload: dict[str, Any] = {"ok": True}
    if warnings:
        payload["warnings"] = warnings
    return payload


# --- Search ---

@router.post(
    "/search",
    response_model=SearchResponse,
    tags=["search"],
    summary="Search the Drive library",
    description="Plan the query, retrieve files from the folder tree, rerank and answer. 400 on invalid input, 503 when Drive is not configured, 500 on Drive failure.",
)
def post_search(body: SearchRequest, user: dict | None = Depends(require_user)) -> SearchResponse:
    return handle_search(body, user)


# --- Drive browsing ---

@router.get(
    "/drive/files",
    response_model=FolderListing,
    tags=["drive"],
    summary="List a folder's direct children",
    description="One page of files and subfolders. Defaults to the configured root folder.",
)
def get_drive_files(
    folder_id: str | None = None,
    page_token: str | None = None,
    user: dict | None = Depends(require_user),
) -> FolderListing:
    return handle_list_folder(folder_id, page_token)
