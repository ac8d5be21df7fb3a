"""
Answer generation: short natural-language answers and single-file summaries.

Answers are written from result titles and reasons only, never from document
content. Summaries use text exported or downloaded from Drive; binary formats
are not parsed.
"""

import json
import logging
from typing import Any

from drivesearch.agent.llm import LanguageModel, generate
from drivesearch.core.config import SUMMARY_MAX_CHARS
from drivesearch.schemas.search import RankedResult
from drivesearch.services.drive_client import FileStore
from drivesearch.services.text_processing import clean_text, looks_negative, parse_json_object

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "I found files that match your query. The most relevant ones are listed below; open them to review their content."
NO_RESULTS_ANSWER = "I couldn't find files in the library that match your query."
UNEXTRACTABLE_ANSWER = (
    "I can't extract text from this file type to summarize it. Open the file to review its content."
)
NOT_FOUND_SUMMARY_ANSWER = "I couldn't find the document you asked to summarize."

# Native Google formats -> export MIME type
EXPORT_FORMATS = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.presentation": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
}
DOWNLOADABLE_TEXT = ("application/json", "application/xml", "application/x-yaml", "application/javascript")

ANSWER_PROMPT = """
You are a library assistant.
The user made a query and the system found a list of files in Google Drive.

Your task:
- Write a short answer (2 to 4 sentences) in the user's language.
- Mention what was found and what to open first.
- Use ONLY the information in titles and reasons. Do NOT invent content.
- Return ONLY valid JSON.

User: {query}

Files:
{files}

Schema:
{{"answer":"..."}}
"""

SUMMARY_PROMPT = """
You are an assistant that summarizes documents.
If there is NO text (empty docText), say so clearly and suggest opening the file.

Return ONLY JSON: {{"answer":"..."}}

User: {query}
Document: {title}
mimeType: {mime_type}
Text (may be empty):
{text}
"""


def _answer_field(raw: str | None) -> str:
    data = parse_json_object(raw)
    if data is None:
        return ""
    answer = data.get("answer")
    return answer.strip() if isinstance(answer, str) else ""


def answer_with_files(
    user_query: str,
    results: list[RankedResult],
    llm: LanguageModel | None = None,
) -> str:
    """
    2-4 sentence answer about the results.

    With results present, an empty or "nothing found" answer is replaced by
    FALLBACK_ANSWER. Without results the model is not called.
    """
    if not results:
        return NO_RESULTS_ANSWER
    llm = llm or generate
    files = [{"title": r.title, "reason": r.reason} for r in results]
    prompt = ANSWER_PROMPT.format(query=user_query, files=json.dumps(files, ensure_ascii=False)).strip()
    answer = _answer_field(llm(prompt))
    if not answer or looks_negative(answer):
        logger.info("[answer:answer_with_files] model answer unusable (empty=%s); using fallback", not answer)
        return FALLBACK_ANSWER
    return answer


def is_text_extractable(mime_type: str | None) -> bool:
    m = mime_type or ""
    return m in EXPORT_FORMATS or m.startswith("text/") or m in DOWNLOADABLE_TEXT


def extract_text(store: FileStore, meta: dict[str, Any], max_chars: int = SUMMARY_MAX_CHARS) -> str:
    """Text of a Drive file for summarization; "" for formats that are not text-extractable."""
    mime = str(meta.get("mimeType") or "")
    file_id = str(meta.get("id") or "")
    if mime in EXPORT_FORMATS:
        text = store.export_text(file_id, mime_type=EXPORT_FORMATS[mime])
    elif is_text_extractable(mime):
        text = store.download_text(file_id)
    else:
        logger.info("[answer:extract_text] not extractable id=%s mime=%s", file_id, mime)
        return ""
    return clean_text(text or "")[:max_chars]


def summarize_text(
    user_query: str,
    title: str,
    text: str,
    mime_type: str,
    llm: LanguageModel | None = None,
) -> str:
    """Model summary of text; UNEXTRACTABLE_ANSWER when there is no text to summarize."""
    if not text or not text.strip():
        return UNEXTRACTABLE_ANSWER
    llm = llm or generate
    prompt = SUMMARY_PROMPT.format(query=user_query, title=title, mime_type=mime_type, text=text).strip()
    answer = _answer_field(llm(prompt))
    if not answer:
        logger.info("[answer:summarize_text] model summary empty for title=%r", title)
        return f"I couldn't generate a summary of \"{title}\" right now. Open the file to review its content."
    return answer
