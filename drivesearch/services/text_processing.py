"""
Text helpers: JSON extraction from model output, token sanitising, answer checks.

Model responses carry no structured-output guarantee, so JSON is located inside
whatever prose or code fences surround it. Exported document text is cleaned
before it is sent for summarization.
"""

import json
import re
import unicodedata
from typing import Any

_FENCE_START = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```$")

# Phrases that mean "nothing found" in a synthesized answer (English and Spanish)
_NEGATIVE_ANSWER = re.compile(
    r"\b(no (?:se )?encontr|no hay (?:archivos|documentos|resultados)|no results|"
    r"(?:could ?n[o']t|can ?not|can't|did ?n[o']t|unable to) find|not find|nothing (?:was )?found|"
    r"no (?:matching|relevant) (?:files|documents))",
    re.IGNORECASE,
)


def normalize_spaces(text: str | None) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


def safe_token(text: str | None, max_len: int = 60) -> str:
    """Query-derived search token: trimmed, truncated, quotes stripped, whitespace collapsed."""
    s = str(text or "").strip()[:max_len]
    s = s.replace("'", "").replace('"', "")
    return normalize_spaces(s)


def title_tokens(title: str | None, min_len: int = 3, max_tokens: int = 6) -> list[str]:
    """Split a filename hint into up to max_tokens terms of at least min_len chars."""
    return [t for t in normalize_spaces(title).split(" ") if len(t) >= min_len][:max_tokens]


def extract_json(raw: str | None) -> str:
    """
    Return the JSON object text inside a model response.

    Strips ``` fences, then slices from the first '{' to the last '}'. Returns
    the stripped input unchanged when no object is found, so json.loads fails
    on it and callers take their fallback branch.
    """
    if not raw:
        return "{}"
    s = str(raw).strip()
    if s.startswith("```"):
        s = _FENCE_END.sub("", _FENCE_START.sub("", s)).strip()
    start = s.find("{")
    end = s.rfind("}")
    if start >= 0 and end > start:
        return s[start : end + 1].strip()
    return s


def parse_json_object(raw: str | None) -> dict[str, Any] | None:
    """extract_json + json.loads; None unless the result is a JSON object."""
    try:
        data = json.loads(extract_json(raw))
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def looks_negative(answer: str | None) -> bool:
    """True when an answer claims nothing was found."""
    return bool(_NEGATIVE_ANSWER.search(answer or ""))


def clean_text(text: str) -> str:
    """
    Normalize exported document text before summarization.

    NFKC-normalizes, strips lines, drops consecutive duplicate lines and keeps
    at most one blank line between paragraphs.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    lines = [line.strip() for line in text.splitlines()]
    deduped: list[str] = []
    for line in lines:
        if deduped and deduped[-1] == line:
            continue
        deduped.append(line)
    result: list[str] = []
    for line in deduped:
        if line == "":
            if result and result[-1] != "":
                result.append("")
        else:
            result.append(line)
    return "\n".join(result).strip()
