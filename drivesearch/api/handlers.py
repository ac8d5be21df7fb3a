"""
API handlers: call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging
from typing import Any

from fastapi import HTTPException

from drivesearch.agent.graph import run_search
from drivesearch.core.config import LIST_PAGE_SIZE, require_drive_folder
from drivesearch.core.errors import RetrievalError, ServiceUnavailableError
from drivesearch.schemas.drive import DriveEntry, FolderListing
from drivesearch.schemas.search import SearchRequest, SearchResponse
from drivesearch.services.drive_client import get_drive_client

logger = logging.getLogger(__name__)


def handle_search(body: SearchRequest, user: dict[str, Any] | None = None) -> SearchResponse:
    """Run the search graph; 400 on invalid input, 503 on missing config, 500 on Drive failure."""
    logger.info("[api:search] IN  query=%r top_k=%s sub=%s", body.query, body.top_k, (user or {}).get("sub"))
    try:
        return run_search(body.query, top_k=body.top_k)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ServiceUnavailableError as e:
        logger.error("[api:search] service unavailable: %s", e.message)
        raise HTTPException(status_code=503, detail=e.message) from e
    except RetrievalError as e:
        logger.exception("[api:search] retrieval failed")
        raise HTTPException(status_code=500, detail="Search failed. Please try again later.") from e


def handle_list_folder(folder_id: str | None = None, page_token: str | None = None) -> FolderListing:
    """One page of a folder's direct children, folders included."""
    try:
        fid = (folder_id or "").strip() or require_drive_folder()
        files, next_token = get_drive_client().list_children(
            fid, page_token=page_token or None, page_size=LIST_PAGE_SIZE, order_by="folder,name"
        )
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except RetrievalError as e:
        logger.exception("[api:list_folder] listing failed")
        raise HTTPException(status_code=500, detail="Listing failed. Please try again later.") from e
    return FolderListing(
        folder_id=fid,
        entries=[DriveEntry.from_drive(f, fid) for f in files if f.get("id")],
        next_page_token=next_token,
    )
