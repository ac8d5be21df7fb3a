"""Schemas for the search endpoint."""

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Request body for POST /search."""

    query: str = Field(..., min_length=1, description="Free-text question about the library.")
    top_k: int | None = Field(
        None, ge=1, le=20, description="Override for the number of results (default comes from the plan)."
    )


class RankedResult(BaseModel):
    """One file in the final answer."""

    id: str
    title: str
    link: str | None = None
    score: float = 0.0
    reason: str = ""


class SearchMeta(BaseModel):
    """Diagnostics about how the request was served."""

    folders: int = Field(0, description="Folders covered (1 for single-folder retrieval).")
    used_queries: int = Field(0, description="Query variants executed.")
    candidates: int = Field(0, description="Deduplicated candidates before ranking/truncation.")
    reranked: bool = False
    plan_source: str = Field("model", description="'model' or 'fallback'.")


class SearchResponse(BaseModel):
    """Response for POST /search."""

    query: str
    mode: str
    answer: str = ""
    explain: str = ""
    meta: SearchMeta = Field(default_factory=SearchMeta)
    results: list[RankedResult] = Field(default_factory=list)
    next_page_token: str | None = Field(None, description="Set in list mode when more entries exist.")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "query": "android tutorials",
                    "mode": "search",
                    "answer": "I found two Android guides; start with 'Android basics'.",
                    "explain": "Topic search by name or content.",
                    "meta": {"folders": 3, "used_queries": 1, "candidates": 6, "reranked": True, "plan_source": "model"},
                    "results": [
                        {"id": "1AbC", "title": "Android basics", "link": "https://drive.google.com/file/d/1AbC/view", "score": 0.92, "reason": "Introductory Android tutorial."}
                    ],
                    "next_page_token": None,
                }
            ]
        }
    }
