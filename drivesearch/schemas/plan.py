"""Schemas for retrieval planning: the raw model payload and the normalized plan."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drivesearch.core.config import (
    CANDIDATES_K_MAX,
    CANDIDATES_K_MIN,
    DEFAULT_CANDIDATES_K,
    DEFAULT_TOP_K,
    SUMMARY_MAX_CHARS,
    TOP_K_MAX,
    TOP_K_MIN,
)

PlanMode = Literal["search", "recent", "title", "summarize", "list"]
SortOrder = Literal["relevance", "modifiedTime", "createdTime"]


def clamp_int(value: Any, default: int, lo: int, hi: int) -> int:
    """Coerce to int and clamp into [lo, hi]; unusable values become default (clamped too)."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = default
    if n < lo:
        return lo
    if n > hi:
        return hi
    return n


class TimeRange(BaseModel):
    """Inclusive modification-date bounds as YYYY-MM-DD strings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_: str | None = Field(None, alias="from")
    to: str | None = None


class SummaryTarget(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_id: str | None = Field(None, alias="fileId")
    title_query: str | None = Field(None, alias="titleQuery")
    max_chars: int = Field(SUMMARY_MAX_CHARS, alias="maxChars")

    @field_validator("max_chars", mode="before")
    @classmethod
    def _clamp_chars(cls, v: Any) -> int:
        return clamp_int(v, SUMMARY_MAX_CHARS, 1000, 50000)


class PlanPayload(BaseModel):
    """
    The JSON object the planner model is asked to produce.

    Validation failure here is the signal to use the keyword fallback plan.
    Numeric knobs accept any integer; clamping happens when the plan is built.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mode: PlanMode = "search"
    drive_query: str | None = Field(None, alias="driveQuery")
    queries: list[str] = Field(default_factory=list)
    title_query: str | None = Field(None, alias="titleQuery")
    mime_types: list[str] = Field(default_factory=list, alias="mimeTypes")
    time_range: TimeRange | None = Field(None, alias="timeRange")
    date_range: TimeRange | None = Field(None, alias="dateRange")
    sort: SortOrder | None = None
    top_k: int | None = Field(None, alias="topK")
    candidates_k: int | None = Field(None, alias="candidatesK")
    should_rerank: bool = Field(True, alias="shouldRerank")
    summary: SummaryTarget | None = None
    explain: str = ""

    @field_validator("mode", mode="before")
    @classmethod
    def _mode_default(cls, v: Any) -> Any:
        return "search" if v is None else v

    @field_validator("queries", "mime_types", mode="before")
    @classmethod
    def _list_default(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("should_rerank", mode="before")
    @classmethod
    def _rerank_default(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("explain", mode="before")
    @classmethod
    def _explain_default(cls, v: Any) -> Any:
        return "" if v is None else v


class RetrievalPlan(BaseModel):
    """Normalized plan consumed by the search graph. top_k and candidates_k are always in bounds."""

    mode: PlanMode = "search"
    query_expression: str | None = None
    query_variants: list[str] = Field(default_factory=list)
    title_query: str | None = None
    mime_types: list[str] = Field(default_factory=list)
    time_range: TimeRange = Field(default_factory=TimeRange)
    sort: SortOrder = "relevance"
    top_k: int = DEFAULT_TOP_K
    candidates_k: int = DEFAULT_CANDIDATES_K
    should_rerank: bool = True
    summary: SummaryTarget | None = None
    explain: str = ""
    source: Literal["model", "fallback"] = "model"

    @field_validator("top_k", mode="before")
    @classmethod
    def _clamp_top_k(cls, v: Any) -> int:
        return clamp_int(v, DEFAULT_TOP_K, TOP_K_MIN, TOP_K_MAX)

    @field_validator("candidates_k", mode="before")
    @classmethod
    def _clamp_candidates_k(cls, v: Any) -> int:
        return clamp_int(v, DEFAULT_CANDIDATES_K, CANDIDATES_K_MIN, CANDIDATES_K_MAX)

    def expressions(self) -> list[str]:
        """Main expression followed by distinct variants."""
        out: list[str] = []
        for expr in [self.query_expression, *self.query_variants]:
            if expr and expr.strip() and expr not in out:
                out.append(expr)
        return out
