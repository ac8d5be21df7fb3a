"""
Ranker: LLM reordering of the top candidates.

The model only ever sees file metadata and may only return ids it was given;
anything else is dropped. Short or failed rankings are completed from the
remaining candidates in their original order.
"""

import json
import logging
from typing import Any

from drivesearch.agent.llm import LanguageModel, generate
from drivesearch.core.config import FOLDER_MIME, TOP_K_MAX, TOP_K_MIN
from drivesearch.schemas.plan import clamp_int
from drivesearch.schemas.search import RankedResult
from drivesearch.services.drive_client import FileCandidate
from drivesearch.services.text_processing import parse_json_object

logger = logging.getLogger(__name__)

DIRECT_MATCH_REASON = "Direct match in Drive."
DEFAULT_SCORE = 0.0
MAX_REASON_CHARS = 200

RERANK_PROMPT = """
Rank the following documents by how well they answer the user's intent.
Return ONLY valid JSON (no extra text, no markdown).

RULES:
- Do not invent IDs. Use only IDs present in the input.
- Return at most {top_k} results.
- reason must be a short phrase (<= 20 words).

User: {query}
Documents: {documents}

Schema:
{{"ranked":[{{"id":"...","score":0.0,"reason":"..."}}]}}
"""


def only_files(candidates: list[FileCandidate]) -> list[FileCandidate]:
    return [c for c in candidates if c.id and c.mime_type and c.mime_type != FOLDER_MIME]


def direct_match(c: FileCandidate, reason: str = DIRECT_MATCH_REASON) -> RankedResult:
    return RankedResult(id=c.id, title=c.title, link=c.link, score=DEFAULT_SCORE, reason=reason)


def _score(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return DEFAULT_SCORE


def _model_ranking(raw: str | None) -> list[dict[str, Any]]:
    data = parse_json_object(raw)
    if data is None:
        return []
    ranked = data.get("ranked")
    if not isinstance(ranked, list):
        return []
    return [r for r in ranked if isinstance(r, dict)]


def rerank(
    user_query: str,
    candidates: list[FileCandidate],
    top_k: int,
    llm: LanguageModel | None = None,
) -> list[RankedResult]:
    """
    Reorder candidates with the LLM and return at most top_k results.

    Never emits an id outside candidates. When the model returns fewer valid ids
    than top_k, unranked candidates follow in input order with a default score.
    """
    llm = llm or generate
    top_k = clamp_int(top_k, TOP_K_MAX, TOP_K_MIN, TOP_K_MAX)
    files = only_files(candidates)
    if not files:
        return []
    logger.info("[ranker:rerank] IN  query=%r candidates=%d top_k=%d", user_query, len(files), top_k)

    prompt = RERANK_PROMPT.format(
        top_k=top_k,
        query=user_query,
        documents=json.dumps([c.to_prompt_item() for c in files], ensure_ascii=False),
    ).strip()
    ranked = _model_ranking(llm(prompt))

    by_id = {c.id: c for c in files}
    out: list[RankedResult] = []
    used: set[str] = set()
    dropped = 0
    for r in ranked:
        rid = str(r.get("id") or "")
        if rid not in by_id or rid in used:
            dropped += 1
            continue
        c = by_id[rid]
        used.add(rid)
        out.append(
            RankedResult(
                id=rid,
                title=c.title,
                link=c.link,
                score=_score(r.get("score")),
                reason=str(r.get("reason") or "").strip()[:MAX_REASON_CHARS],
            )
        )
        if len(out) >= top_k:
            break

    validated = len(out)
    if dropped:
        logger.warning("[ranker:rerank] dropped %d unknown/duplicate ids", dropped)
    for c in files:
        if len(out) >= top_k:
            break
        if c.id in used:
            continue
        used.add(c.id)
        out.append(direct_match(c))
    if validated < top_k:
        logger.info("[ranker:rerank] backfilled %d results", len(out) - validated)
    logger.info("[ranker:rerank] OUT results=%d ids=%s", len(out), [r.id for r in out])
    return out
