"""
LangGraph search graph: plan → (route by mode) → recent | title | summarize | list | search → END.

Orchestration only; Drive access goes through the retrieval service and model calls
through the planner, ranker and answer service. One branch runs per request and
there are no cross-branch retries.
"""

import logging
from functools import lru_cache
from typing import Any, Callable, TypedDict, get_args

from langgraph.graph import END, StateGraph

from drivesearch.agent.llm import LanguageModel, generate
from drivesearch.core.config import (
    CANDIDATES_K_MIN,
    DRIVE_MAX_WORKERS,
    LIST_PAGE_SIZE,
    MAX_DRIVE_FOLDERS,
    REQUEST_TIMEOUT_SECONDS,
    RERANK_TOP_N,
    SEARCH_IN_TREE,
    TOP_K_MAX,
    TOP_K_MIN,
    require_drive_folder,
)
from drivesearch.core.errors import RetrievalError
from drivesearch.schemas.plan import PlanMode, RetrievalPlan, clamp_int
from drivesearch.schemas.search import RankedResult, SearchMeta, SearchResponse
from drivesearch.services.answer_service import (
    NO_RESULTS_ANSWER,
    NOT_FOUND_SUMMARY_ANSWER,
    answer_with_files,
    extract_text,
    summarize_text,
)
from drivesearch.services.drive_client import FileStore, get_drive_client, is_folder, to_candidates
from drivesearch.services.drive_query import FOLDER_GUARD
from drivesearch.services.planner import build_plan
from drivesearch.services.ranker import direct_match, rerank
from drivesearch.services.retrieval_service import (
    RetrievalResult,
    recent_in_tree,
    search_in_tree,
    search_variants,
    sort_by_time,
)

logger = logging.getLogger(__name__)

RECENT_REASON = "Recently modified."
LIST_REASON = "In the library folder."
SUMMARY_REASON = "Summarized document."

# One graph node per plan mode
MODE_NODES: dict[str, str] = {
    "recent": "recent",
    "title": "title",
    "summarize": "summarize",
    "list": "list_folder",
    "search": "search",
}


class SearchState(TypedDict, total=False):
    handlers: Any  # SearchHandlers for this request
    query: str
    top_k_override: int | None
    root_folder_id: str
    plan: RetrievalPlan
    response: SearchResponse


def _store_call(fn: Callable[[], Any], what: str) -> Any:
    try:
        return fn()
    except RetrievalError:
        raise
    except Exception as e:
        raise RetrievalError(f"{what} failed: {e}") from e


class SearchHandlers:
    """Node implementations bound to one store and one language model."""

    def __init__(
        self,
        store: FileStore,
        llm: LanguageModel,
        search_in_tree_enabled: bool = SEARCH_IN_TREE,
        max_folders: int = MAX_DRIVE_FOLDERS,
        max_workers: int = DRIVE_MAX_WORKERS,
        timeout: float | None = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.llm = llm
        self.tree = search_in_tree_enabled
        self.max_folders = max_folders
        self.max_workers = max_workers
        self.timeout = timeout

    def _retrieve(self, root: str, exprs: list[str], pool_size: int, plan: RetrievalPlan) -> RetrievalResult:
        if self.tree:
            return search_in_tree(
                self.store, root, exprs, pool_size,
                mime_types=plan.mime_types, time_range=plan.time_range,
                max_folders=self.max_folders, max_workers=self.max_workers, timeout=self.timeout,
            )
        return search_variants(
            self.store, root, exprs, pool_size,
            page_size=pool_size, mime_types=plan.mime_types, time_range=plan.time_range,
            max_workers=self.max_workers, timeout=self.timeout,
        )

    def _response(self, state: SearchState, **kwargs: Any) -> dict:
        plan = state["plan"]
        return {
            "response": SearchResponse(
                query=state["query"], mode=plan.mode, explain=plan.explain, **kwargs
            )
        }

    def plan(self, state: SearchState) -> dict:
        """Node 1: build the retrieval plan; a caller-supplied top_k wins."""
        plan = build_plan(state["query"], llm=self.llm)
        override = state.get("top_k_override")
        if override is not None:
            plan = plan.model_copy(update={"top_k": clamp_int(override, plan.top_k, TOP_K_MIN, TOP_K_MAX)})
        return {"plan": plan}

    def recent(self, state: SearchState) -> dict:
        plan = state["plan"]
        root = state["root_folder_id"]
        res = recent_in_tree(
            self.store, root, plan.top_k,
            max_folders=self.max_folders, max_workers=self.max_workers, timeout=self.timeout,
            folder_ids=None if self.tree else [root],
        )
        results = [direct_match(c, RECENT_REASON) for c in res.candidates]
        answer = f"These are the {len(results)} most recently modified files." if results else NO_RESULTS_ANSWER
        meta = SearchMeta(folders=res.folder_count, candidates=len(res.candidates), plan_source=plan.source)
        return self._response(state, answer=answer, meta=meta, results=results)

    def title(self, state: SearchState) -> dict:
        plan = state["plan"]
        exprs = plan.expressions() or [FOLDER_GUARD]
        res = self._retrieve(state["root_folder_id"], exprs, plan.candidates_k, plan)
        results = [direct_match(c) for c in res.candidates[: plan.top_k]]
        answer = f"Found {len(results)} files whose name matches your query." if results else NO_RESULTS_ANSWER
        meta = SearchMeta(
            folders=res.folder_count, used_queries=len(exprs), candidates=len(res.candidates), plan_source=plan.source
        )
        return self._response(state, answer=answer, meta=meta, results=results)

    def summarize(self, state: SearchState) -> dict:
        plan = state["plan"]
        root = state["root_folder_id"]
        file_id = plan.summary.file_id if plan.summary else None
        max_chars = plan.summary.max_chars if plan.summary else None
        folders = 0
        if not file_id:
            res = self._retrieve(root, [plan.query_expression or FOLDER_GUARD], CANDIDATES_K_MIN, plan)
            folders = res.folder_count
            file_id = res.candidates[0].id if res.candidates else None
        if not file_id:
            meta = SearchMeta(folders=folders, used_queries=1, plan_source=plan.source)
            return self._response(state, answer=NOT_FOUND_SUMMARY_ANSWER, meta=meta)

        try:
            meta_doc = _store_call(lambda: self.store.get_metadata(file_id), "Drive metadata")
        except RetrievalError as e:
            if e.status_code != 404:
                raise
            logger.warning("[graph:summarize] file not found id=%r", file_id)
            meta_doc = None
        if not meta_doc or is_folder(meta_doc):
            return self._response(state, answer=NOT_FOUND_SUMMARY_ANSWER, meta=SearchMeta(plan_source=plan.source))
        title = str(meta_doc.get("name") or "")
        mime = str(meta_doc.get("mimeType") or "")
        kwargs = {"max_chars": max_chars} if max_chars else {}
        text = _store_call(lambda: extract_text(self.store, meta_doc, **kwargs), "Drive text export")
        answer = summarize_text(state["query"], title, text, mime, llm=self.llm)
        result = RankedResult(
            id=str(meta_doc.get("id") or file_id), title=title, link=meta_doc.get("webViewLink"),
            score=0.0, reason=SUMMARY_REASON,
        )
        meta = SearchMeta(folders=folders, used_queries=0 if plan.summary and plan.summary.file_id else 1,
                          candidates=1, plan_source=plan.source)
        return self._response(state, answer=answer, meta=meta, results=[result])

    def list_folder(self, state: SearchState) -> dict:
        plan = state["plan"]
        root = state["root_folder_id"]
        files, next_token = _store_call(
            lambda: self.store.list_children(root, page_size=LIST_PAGE_SIZE, order_by="folder,name"),
            "Drive listing",
        )
        results = [direct_match(c, LIST_REASON) for c in to_candidates(files)]
        answer = f"The library folder contains {len(results)} files on this page." if results else NO_RESULTS_ANSWER
        meta = SearchMeta(folders=1, candidates=len(results), plan_source=plan.source)
        return self._response(state, answer=answer, meta=meta, results=results, next_page_token=next_token)

    def search(self, state: SearchState) -> dict:
        """Retrieve a candidate pool, rerank or truncate, then synthesize the answer."""
        plan = state["plan"]
        query = state["query"]
        exprs = plan.expressions() or [FOLDER_GUARD]
        res = self._retrieve(state["root_folder_id"], exprs, plan.candidates_k, plan)
        candidates = res.candidates

        reranked = plan.should_rerank and len(candidates) > 3
        if reranked:
            results = rerank(query, candidates[:RERANK_TOP_N], plan.top_k, llm=self.llm)
        else:
            ordered = candidates
            if plan.sort == "modifiedTime":
                ordered = sort_by_time(candidates)
            elif plan.sort == "createdTime":
                ordered = sort_by_time(candidates, "created_time")
            results = [direct_match(c) for c in ordered[: plan.top_k]]
        logger.info(
            "[graph:search] candidates=%d reranked=%s results=%d", len(candidates), reranked, len(results)
        )

        answer = answer_with_files(query, results, llm=self.llm)
        meta = SearchMeta(
            folders=res.folder_count, used_queries=len(exprs), candidates=len(candidates),
            reranked=reranked, plan_source=plan.source,
        )
        return self._response(state, answer=answer, meta=meta, results=results)


def _route_by_mode(state: SearchState) -> str:
    mode = state["plan"].mode
    try:
        node = MODE_NODES[mode]
    except KeyError:
        raise ValueError(f"Unsupported plan mode: {mode!r}") from None
    logger.info("[graph:route_by_mode] mode=%s -> %s", mode, node)
    return node


def _handler_node(name: str) -> Callable[[SearchState], dict]:
    """Graph node that delegates to the request's SearchHandlers."""

    def node(state: SearchState) -> dict:
        return getattr(state["handlers"], name)(state)

    node.__name__ = name
    return node


def build_graph():
    """
    Build and compile the search graph.
    plan → one mode handler → END. Nodes use the handlers carried in the state.
    """
    missing = set(get_args(PlanMode)) - set(MODE_NODES)
    if missing:
        raise RuntimeError(f"No graph node for plan modes: {sorted(missing)}")

    graph = StateGraph(SearchState)
    graph.add_node("plan", _handler_node("plan"))
    for node in MODE_NODES.values():
        graph.add_node(node, _handler_node(node))

    graph.set_entry_point("plan")
    graph.add_conditional_edges("plan", _route_by_mode, list(MODE_NODES.values()))
    for node in MODE_NODES.values():
        graph.add_edge(node, END)

    return graph.compile()


@lru_cache(maxsize=1)
def get_search_graph():
    """Compiled search graph, built once per process."""
    logger.info("[graph] compiling search graph")
    return build_graph()


def run_search(
    query: str,
    top_k: int | None = None,
    store: FileStore | None = None,
    llm: LanguageModel | None = None,
    root_folder_id: str | None = None,
    **handler_options: Any,
) -> SearchResponse:
    """
    Answer one query against the library. Returns the assembled SearchResponse.

    Raises ValueError for an empty query, ConfigurationError when the root folder
    or Drive credentials are missing, RetrievalError when Drive fails.
    """
    if not query or not str(query).strip():
        raise ValueError("query is required")
    q = str(query).strip()
    root = root_folder_id or require_drive_folder()
    handlers = SearchHandlers(store or get_drive_client(), llm or generate, **handler_options)
    logger.info("[run_search] START query=%r top_k=%s root=%s", q, top_k, root)
    final = get_search_graph().invoke(
        {"handlers": handlers, "query": q, "top_k_override": top_k, "root_folder_id": root}
    )
    response: SearchResponse = final["response"]
    logger.info(
        "[run_search] END mode=%s results=%d reranked=%s", response.mode, len(response.results), response.meta.reranked
    )
    return response
