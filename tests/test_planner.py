"""
Tests for query planning: model plan parsing, fallback plan and clamping.
"""

import json

import pytest

from drivesearch.core.config import (
    CANDIDATES_K_MAX,
    CANDIDATES_K_MIN,
    DEFAULT_TOP_K,
    MAX_DRIVE_QUERIES,
    TOP_K_MAX,
    TOP_K_MIN,
)
from drivesearch.services.drive_query import FOLDER_GUARD
from drivesearch.services.planner import build_plan, fallback_plan, parse_plan, title_to_drive_query


def _llm(reply):
    prompts = []

    def call(prompt: str) -> str:
        prompts.append(prompt)
        return reply if isinstance(reply, str) else json.dumps(reply)

    call.prompts = prompts
    return call


class TestParsePlan:
    """Tests for parse_plan()."""

    def test_fenced_json_is_accepted(self) -> None:
        result = parse_plan('```json\n{"mode": "recent", "sort": "modifiedTime"}\n```')
        assert result.ok
        assert result.payload.mode == "recent"

    @pytest.mark.parametrize("raw", ["", "not json at all", "{broken", '{"mode": "delete"}', '{"sort": "size"}'])
    def test_rejects_invalid_output(self, raw) -> None:
        result = parse_plan(raw)
        assert not result.ok
        assert result.error

    def test_null_fields_take_defaults(self) -> None:
        result = parse_plan('{"mode": null, "queries": null, "shouldRerank": null, "explain": null}')
        assert result.ok
        assert result.payload.mode == "search"
        assert result.payload.should_rerank is True


class TestFallbackPlan:
    """Tests for fallback_plan() and build_plan() degradation."""

    def test_invalid_json_gives_search_fallback(self) -> None:
        plan = build_plan("android tutorials", llm=_llm("Sorry, I can't do that"))
        assert plan.mode == "search"
        assert plan.source == "fallback"
        assert plan.should_rerank is True
        assert "name contains 'android tutorials'" in plan.query_expression
        assert "fullText contains 'android tutorials'" in plan.query_expression
        assert plan.query_expression.endswith(FOLDER_GUARD)

    def test_empty_output_with_recent_keywords(self) -> None:
        plan = build_plan("recent files", llm=_llm(""))
        assert plan.mode == "recent"
        assert plan.sort == "modifiedTime"
        assert plan.should_rerank is False
        assert plan.top_k == DEFAULT_TOP_K

    @pytest.mark.parametrize("query", ["últimos archivos cargados", "show me the latest uploads"])
    def test_recent_keywords(self, query) -> None:
        assert fallback_plan(query).mode == "recent"

    def test_quotes_cannot_break_the_expression(self) -> None:
        plan = fallback_plan("o'reilly \"books\"")
        assert "oreilly books" in plan.query_expression
        assert "o'reilly" not in plan.query_expression

    def test_empty_query_still_guards_folders(self) -> None:
        assert fallback_plan("   ").query_expression == FOLDER_GUARD


class TestModelPlan:
    """Tests for plans built from valid model output."""

    def test_prompt_carries_query_and_guard(self) -> None:
        llm = _llm({"mode": "search"})
        build_plan("budget 2024", llm=llm)
        assert "User: budget 2024" in llm.prompts[0]
        assert FOLDER_GUARD in llm.prompts[0]

    @pytest.mark.parametrize(
        "top_k,candidates_k,expected",
        [
            (500, 1, (TOP_K_MAX, CANDIDATES_K_MIN)),
            (-3, 1000, (TOP_K_MIN, CANDIDATES_K_MAX)),
            (0, 0, (TOP_K_MIN, CANDIDATES_K_MIN)),
            (7, 55, (7, 55)),
        ],
    )
    def test_numeric_knobs_are_clamped(self, top_k, candidates_k, expected) -> None:
        plan = build_plan("x", llm=_llm({"mode": "search", "topK": top_k, "candidatesK": candidates_k}))
        assert (plan.top_k, plan.candidates_k) == expected
        assert plan.source == "model"

    def test_missing_top_k_uses_default(self) -> None:
        plan = build_plan("x", default_top_k=6, llm=_llm({"mode": "search"}))
        assert plan.top_k == 6

    def test_search_expression_gets_folder_guard(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "search", "driveQuery": "name contains 'budget'"}))
        assert plan.query_expression == f"(name contains 'budget') and {FOLDER_GUARD}"

    def test_guarded_expression_is_kept(self) -> None:
        expr = f"name contains 'budget' and {FOLDER_GUARD}"
        plan = build_plan("x", llm=_llm({"mode": "search", "driveQuery": expr}))
        assert plan.query_expression == expr

    def test_variants_are_capped_and_guarded(self) -> None:
        queries = [f"name contains 'v{i}'" for i in range(6)]
        plan = build_plan("x", llm=_llm({"mode": "search", "queries": queries}))
        assert len(plan.query_variants) == MAX_DRIVE_QUERIES - 1
        assert all(v.endswith(FOLDER_GUARD) for v in plan.query_variants)

    def test_recent_mode_ignores_model_expression(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "recent", "driveQuery": "name contains 'x'"}))
        assert plan.query_expression == FOLDER_GUARD
        assert plan.sort == "modifiedTime"

    def test_title_mode_synthesizes_name_query(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "title", "titleQuery": "Annual Report v2 2023"}))
        assert plan.query_expression == (
            f"(name contains 'Annual' and name contains 'Report' and name contains '2023') and {FOLDER_GUARD}"
        )

    def test_summarize_by_title(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "summarize", "summary": {"titleQuery": "onboarding guide"}}))
        assert plan.mode == "summarize"
        assert "name contains 'onboarding'" in plan.query_expression
        assert plan.summary.title_query == "onboarding guide"

    def test_summarize_by_id_needs_no_expression(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "summarize", "summary": {"fileId": "abc", "maxChars": 10}}))
        assert plan.summary.file_id == "abc"
        assert plan.summary.max_chars == 1000
        assert plan.query_expression == FOLDER_GUARD

    def test_time_range_accepts_date_range_alias(self) -> None:
        plan = build_plan("x", llm=_llm({"mode": "search", "dateRange": {"from": "2024-01-01"}}))
        assert plan.time_range.from_ == "2024-01-01"

    def test_any_plan_is_in_bounds(self) -> None:
        replies = [
            "",
            "{}",
            '{"topK": "many"}',
            '{"topK": 3.7, "candidatesK": "50"}',
            '{"mode": "list", "topK": 99999}',
        ]
        for raw in replies:
            plan = build_plan("reports", llm=_llm(raw))
            assert TOP_K_MIN <= plan.top_k <= TOP_K_MAX
            assert CANDIDATES_K_MIN <= plan.candidates_k <= CANDIDATES_K_MAX


def test_title_to_drive_query_short_tokens() -> None:
    assert title_to_drive_query("a b") == f"(name contains 'a b') and {FOLDER_GUARD}"
    assert title_to_drive_query("") == FOLDER_GUARD
