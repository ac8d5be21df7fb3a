"""
Minimal MCP-style tool server: exposes library search and folder introspection
as a standardized tool interface for external agents.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from drivesearch.agent.graph import run_search
from drivesearch.core.config import LIST_PAGE_SIZE, require_drive_folder
from drivesearch.core.errors import RetrievalError, ServiceUnavailableError
from drivesearch.services.drive_client import FileCandidate, get_drive_client, to_candidates

logger = logging.getLogger(__name__)

# MCP tool schema for discovery / documentation
tools = [
    {
        "name": "search_files",
        "description": "Search the Drive library with a natural-language query",
        "input_schema": {"query": "string", "top_k": "integer (optional, 1-20)"},
    },
    {
        "name": "list_folder",
        "description": "List files (not folders) directly inside the library root or a given folder",
        "input_schema": {"folder_id": "string (optional)", "page_token": "string (optional)"},
    },
    {
        "name": "get_file",
        "description": "Fetch metadata (title, type, link, modified time) for a file id",
        "input_schema": {"id": "string (Drive file id)"},
    },
]

mcp_router = APIRouter(tags=["mcp"])


def _candidate_dict(c: FileCandidate) -> dict[str, Any]:
    return {"id": c.id, "title": c.title, "mime_type": c.mime_type, "link": c.link, "modified_time": c.modified_time}


def _tool_error(e: Exception) -> HTTPException:
    if isinstance(e, ServiceUnavailableError):
        return HTTPException(status_code=503, detail=e.message)
    return HTTPException(status_code=500, detail="Drive request failed.")


@mcp_router.get("/tools", summary="MCP tool discovery")
def mcp_tools() -> dict[str, list[dict[str, Any]]]:
    return {"tools": tools}


class SearchFilesRequest(BaseModel):
    """Request body for MCP tool search_files."""
    query: str = ""
    top_k: int | None = None


@mcp_router.post(
    "/tools/search_files",
    summary="MCP tool: search_files",
    description="This endpoint acts as an MCP tool server, allowing external agents to call library search through a standardized interface.",
)
def mcp_search_files(body: SearchFilesRequest) -> dict[str, Any]:
    """Search the library. Each result includes id so the agent can call get_file(id)."""
    logger.info("MCP tool called: search_files")
    query = (body.query or "").strip()
    if not query:
        return {"answer": "", "results": []}
    try:
        response = run_search(query, top_k=body.top_k)
    except (ServiceUnavailableError, RetrievalError) as e:
        raise _tool_error(e) from e
    return {"answer": response.answer, "results": [r.model_dump() for r in response.results]}


# --- list_folder ---

class ListFolderRequest(BaseModel):
    """Request body for MCP tool list_folder."""
    folder_id: str | None = None
    page_token: str | None = None


@mcp_router.post(
    "/tools/list_folder",
    summary="MCP tool: list_folder",
    description="List files directly inside a folder (defaults to the library root).",
)
def mcp_list_folder(body: ListFolderRequest) -> dict[str, Any]:
    logger.info("MCP tool called: list_folder")
    try:
        folder_id = (body.folder_id or "").strip() or require_drive_folder()
        files, next_token = get_drive_client().list_children(
            folder_id, page_token=body.page_token, page_size=LIST_PAGE_SIZE, order_by="folder,name"
        )
    except (ServiceUnavailableError, RetrievalError) as e:
        raise _tool_error(e) from e
    return {"files": [_candidate_dict(c) for c in to_candidates(files)], "next_page_token": next_token}


# --- get_file ---

class GetFileRequest(BaseModel):
    """Request body for MCP tool get_file."""
    id: str


@mcp_router.post(
    "/tools/get_file",
    summary="MCP tool: get_file",
    description="Fetch file metadata by Drive id. Folders are not returned.",
)
def mcp_get_file(body: GetFileRequest) -> dict[str, Any]:
    """Returns {file: {...}} or {file: null} when the id is a folder or unknown to Drive."""
    logger.info("MCP tool called: get_file")
    try:
        meta = get_drive_client().get_metadata(body.id)
    except RetrievalError as e:
        if e.status_code == 404:
            logger.info("[mcp:get_file] not found id=%s", body.id)
            return {"file": None}
        raise _tool_error(e) from e
    except ServiceUnavailableError as e:
        raise _tool_error(e) from e
    candidate = FileCandidate.from_drive(meta or {})
    return {"file": _candidate_dict(candidate) if candidate else None}
