"""
Tests for answer synthesis and single-file summaries.
"""

from drivesearch.schemas.search import RankedResult
from drivesearch.services.answer_service import (
    FALLBACK_ANSWER,
    NO_RESULTS_ANSWER,
    UNEXTRACTABLE_ANSWER,
    answer_with_files,
    extract_text,
    summarize_text,
)
from tests.fakes import FakeDriveStore

RESULTS = [RankedResult(id="f1", title="Android basics", reason="Intro tutorial")]


class TestAnswerWithFiles:
    """Tests for answer_with_files()."""

    def test_uses_model_answer(self) -> None:
        answer = answer_with_files("android", RESULTS, llm=lambda p: '{"answer": "Start with Android basics."}')
        assert answer == "Start with Android basics."

    def test_prompt_sees_titles_and_reasons_only(self) -> None:
        prompts = []
        answer_with_files("android", RESULTS, llm=lambda p: prompts.append(p) or "")
        assert "Android basics" in prompts[0]
        assert "f1" not in prompts[0]

    def test_empty_or_negative_answer_falls_back(self) -> None:
        assert answer_with_files("android", RESULTS, llm=lambda p: "") == FALLBACK_ANSWER
        negative = '{"answer": "I could not find anything about that."}'
        assert answer_with_files("android", RESULTS, llm=lambda p: negative) == FALLBACK_ANSWER

    def test_no_results_skips_model(self) -> None:
        calls = []
        assert answer_with_files("android", [], llm=lambda p: calls.append(p) or "") == NO_RESULTS_ANSWER
        assert calls == []


class TestExtractText:
    """Tests for extract_text()."""

    def test_google_doc_is_exported(self) -> None:
        store = FakeDriveStore({}, texts={"d1": "Line\nLine\nMore"})
        meta = {"id": "d1", "mimeType": "application/vnd.google-apps.document"}
        assert extract_text(store, meta) == "Line\nMore"
        assert store.exports == [("d1", "text/plain")]

    def test_sheet_is_exported_as_csv(self) -> None:
        store = FakeDriveStore({}, texts={"s1": "a,b\n1,2"})
        extract_text(store, {"id": "s1", "mimeType": "application/vnd.google-apps.spreadsheet"})
        assert store.exports == [("s1", "text/csv")]

    def test_plain_text_is_downloaded_and_truncated(self) -> None:
        store = FakeDriveStore({}, texts={"t1": "x" * 5000})
        assert extract_text(store, {"id": "t1", "mimeType": "text/markdown"}, max_chars=1000) == "x" * 1000
        assert store.downloads == ["t1"]

    def test_binary_formats_are_not_read(self) -> None:
        store = FakeDriveStore({}, texts={"p1": "should not be read"})
        assert extract_text(store, {"id": "p1", "mimeType": "application/pdf"}) == ""
        assert store.exports == [] and store.downloads == []


class TestSummarizeText:
    """Tests for summarize_text()."""

    def test_no_text_skips_model(self) -> None:
        calls = []
        out = summarize_text("summarize", "Scan", "", "application/pdf", llm=lambda p: calls.append(p) or "")
        assert out == UNEXTRACTABLE_ANSWER
        assert calls == []

    def test_model_summary(self) -> None:
        out = summarize_text("summarize", "Guide", "Some text", "text/plain", llm=lambda p: '{"answer": "A guide."}')
        assert out == "A guide."

    def test_empty_model_summary_names_the_file(self) -> None:
        out = summarize_text("summarize", "Guide", "Some text", "text/plain", llm=lambda p: "")
        assert '"Guide"' in out
