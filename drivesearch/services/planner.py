"""
Planner: free-text query -> RetrievalPlan.

Asks the LLM for a JSON plan, validates it, and falls back to a deterministic
keyword plan whenever the model output is missing, malformed or off-schema.
Numeric knobs are clamped whatever the source.
"""

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from drivesearch.agent.llm import LanguageModel, generate
from drivesearch.core.config import DEFAULT_CANDIDATES_K, DEFAULT_TOP_K, MAX_DRIVE_QUERIES
from drivesearch.schemas.plan import PlanPayload, RetrievalPlan, TimeRange
from drivesearch.services.drive_query import (
    FOLDER_GUARD,
    name_contains_all,
    name_or_fulltext,
    with_folder_guard,
)
from drivesearch.services.text_processing import extract_json, safe_token, title_tokens

logger = logging.getLogger(__name__)

RECENT_KEYWORDS = (
    "recent", "latest", "newest", "last uploaded", "new files", "just added",
    "último", "ultimo", "últimos", "ultimos", "reciente", "recientes",
    "nuevo", "nuevos", "cargado", "cargados",
)

PLAN_PROMPT = """
You are a retrieval planner for a library stored in Google Drive (inside ONE root folder and its subfolders).
Return ONLY valid JSON.

Schema:
{{
  "mode": "search|recent|title|summarize|list",
  "driveQuery": "string or null",
  "queries": ["optional alternative driveQuery expressions, at most {max_queries}"],
  "titleQuery": "string or null",
  "mimeTypes": ["..."],
  "timeRange": {{"from": "YYYY-MM-DD or null", "to": "YYYY-MM-DD or null"}},
  "sort": "relevance|modifiedTime|createdTime",
  "topK": {top_k},
  "candidatesK": {candidates_k},
  "shouldRerank": true,
  "summary": {{"fileId": "... or null", "titleQuery": "... or null", "maxChars": 12000}},
  "explain": "one line"
}}

RULES:
- If the user asks for "latest/recent/new" files, mode="recent", sort="modifiedTime".
- If the user names a specific file, mode="title": fill titleQuery AND driveQuery to fetch candidates by name.
- If the user asks to summarize a document, mode="summarize".
  - If an ID is given, set summary.fileId.
  - If a name is given, set summary.titleQuery AND fill driveQuery to fetch candidates by name.
- If the user asks to see or browse the folder contents, mode="list".
- Otherwise mode="search" with driveQuery in Drive syntax:
  (name contains 'x' or fullText contains 'x') and ...
- Do NOT include folder ids or trashed=false.
- IMPORTANT: never include folders; exclude them with:
  {folder_guard}
  (AND it with driveQuery when there is one)
- Do not invent information.
- Return ONLY JSON.

User: {query}
"""


@dataclass
class PlanParseResult:
    """Outcome of parsing model output: a validated payload or the reason it was rejected."""

    payload: PlanPayload | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.payload is not None


def parse_plan(raw: str | None) -> PlanParseResult:
    if not raw or not raw.strip():
        return PlanParseResult(error="empty model output")
    text = extract_json(raw)
    if not text.startswith("{"):
        return PlanParseResult(error="no JSON object found")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return PlanParseResult(error=f"invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        return PlanParseResult(error="JSON is not an object")
    try:
        return PlanParseResult(payload=PlanPayload.model_validate(data))
    except ValidationError as e:
        return PlanParseResult(error=f"schema validation failed: {e.error_count()} error(s)")


def title_to_drive_query(title: str | None) -> str:
    """High-precision name expression from a filename hint, folder guard included."""
    tokens = title_tokens(title)
    if tokens:
        return with_folder_guard(name_contains_all(tokens))
    tok = safe_token(title)
    if not tok:
        return FOLDER_GUARD
    return with_folder_guard(name_contains_all([tok]))


def is_recent_query(user_query: str) -> bool:
    q = (user_query or "").lower()
    return any(k in q for k in RECENT_KEYWORDS)


def fallback_plan(user_query: str, default_top_k: int = DEFAULT_TOP_K) -> RetrievalPlan:
    """Deterministic plan from keywords: recent intent, else a name-or-content search."""
    if is_recent_query(user_query):
        return RetrievalPlan(
            mode="recent",
            query_expression=FOLDER_GUARD,
            sort="modifiedTime",
            top_k=default_top_k,
            candidates_k=DEFAULT_CANDIDATES_K,
            should_rerank=False,
            explain="Fallback: recent-files intent detected by keywords.",
            source="fallback",
        )
    tok = safe_token(user_query)
    expr = with_folder_guard(name_or_fulltext(tok)) if tok else FOLDER_GUARD
    return RetrievalPlan(
        mode="search",
        query_expression=expr,
        sort="relevance",
        top_k=default_top_k,
        candidates_k=DEFAULT_CANDIDATES_K,
        should_rerank=True,
        explain="Fallback: basic search by name or content.",
        source="fallback",
    )


def plan_from_payload(p: PlanPayload, default_top_k: int = DEFAULT_TOP_K) -> RetrievalPlan:
    """Normalize a validated payload into a RetrievalPlan."""
    mode = p.mode
    sort = p.sort or ("relevance" if mode == "search" else "modifiedTime")
    time_range = p.time_range or p.date_range or TimeRange()

    drive_query = (p.drive_query or "").strip() or None
    expr: str | None = drive_query if mode in ("search", "title") else None
    if not expr and mode == "title" and (p.title_query or "").strip():
        expr = title_to_drive_query(p.title_query)
    summary_title = ((p.summary.title_query if p.summary else None) or "").strip() or None
    if mode == "summarize" and not (p.summary and p.summary.file_id):
        if drive_query:
            expr = drive_query
        elif summary_title or (p.title_query or "").strip():
            expr = title_to_drive_query(summary_title or p.title_query)

    variants: list[str] = []
    if mode == "search":
        for q in p.queries[: max(0, MAX_DRIVE_QUERIES - 1)]:
            if q and str(q).strip():
                variants.append(with_folder_guard(str(q).strip()))

    return RetrievalPlan(
        mode=mode,
        query_expression=with_folder_guard(expr),
        query_variants=variants,
        title_query=p.title_query,
        mime_types=[m for m in p.mime_types if m and str(m).strip()],
        time_range=time_range,
        sort=sort,
        top_k=p.top_k if p.top_k is not None else default_top_k,
        candidates_k=p.candidates_k if p.candidates_k is not None else DEFAULT_CANDIDATES_K,
        should_rerank=p.should_rerank,
        summary=p.summary,
        explain=p.explain,
        source="model",
    )


def build_plan(
    user_query: str,
    default_top_k: int = DEFAULT_TOP_K,
    llm: LanguageModel | None = None,
) -> RetrievalPlan:
    """Model plan when the output validates, keyword fallback otherwise."""
    llm = llm or generate
    logger.info("[planner:build_plan] IN  query=%r default_top_k=%d", user_query, default_top_k)
    prompt = PLAN_PROMPT.format(
        max_queries=MAX_DRIVE_QUERIES,
        top_k=default_top_k,
        candidates_k=DEFAULT_CANDIDATES_K,
        folder_guard=FOLDER_GUARD,
        query=user_query,
    ).strip()
    raw = llm(prompt)
    logger.debug("[planner:build_plan] llm_raw=%r", raw)
    result = parse_plan(raw)
    if not result.ok:
        logger.warning("[planner:build_plan] planning degraded (%s); using fallback plan", result.error)
        plan = fallback_plan(user_query, default_top_k)
    else:
        plan = plan_from_payload(result.payload, default_top_k)
    logger.info(
        "[planner:build_plan] OUT mode=%s source=%s top_k=%d candidates_k=%d rerank=%s expr=%r",
        plan.mode, plan.source, plan.top_k, plan.candidates_k, plan.should_rerank, plan.query_expression,
    )
    return plan
