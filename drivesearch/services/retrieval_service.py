"""
Retrieval: per-folder Drive queries, tree fan-out, dedup merge and recency merge.

Responsibility: Execute query expressions against one folder or a whole folder
tree, merge results into a single deduplicated candidate pool (first seen wins),
and enforce the global pool budget. Any Drive failure fails the whole call.
"""

import logging
import math
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

from drivesearch.core.config import (
    DRIVE_MAX_WORKERS,
    MAX_DRIVE_FOLDERS,
    PAGE_SIZE_PER_QUERY,
    PER_FOLDER_DIVISOR_CAP,
    PER_FOLDER_MAX,
    PER_FOLDER_MIN,
    RECENT_PER_FOLDER,
)
from drivesearch.core.errors import RetrievalError
from drivesearch.services.drive_client import FileCandidate, FileStore, to_candidates
from drivesearch.services.drive_query import build_drive_query
from drivesearch.services.tree_walker import walk_folder_tree

logger = logging.getLogger(__name__)


class CandidatePool:
    """Insertion-ordered dedup set keyed by file id, with an optional size budget."""

    def __init__(self, budget: int | None = None) -> None:
        self.budget = budget
        self._items: dict[str, FileCandidate] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._items

    @property
    def full(self) -> bool:
        return self.budget is not None and len(self._items) >= self.budget

    def merge(self, candidates: Iterable[FileCandidate]) -> int:
        """Add unseen candidates until the budget is met. Returns how many were added."""
        added = 0
        for c in candidates:
            if self.full:
                break
            if c.id in self._items:
                continue
            self._items[c.id] = c
            added += 1
        return added

    def candidates(self) -> list[FileCandidate]:
        return list(self._items.values())


@dataclass
class RetrievalResult:
    candidates: list[FileCandidate]
    folder_count: int = 1
    calls: int = 0
    folder_ids: list[str] = field(default_factory=list)


def per_folder_page_size(
    pool_size: int,
    folder_count: int,
    lo: int = PER_FOLDER_MIN,
    hi: int = PER_FOLDER_MAX,
    divisor_cap: int = PER_FOLDER_DIVISOR_CAP,
) -> int:
    """Fetch size per folder: small trees get more per folder, large ones are bounded."""
    divisor = max(1, min(folder_count, divisor_cap))
    return max(lo, min(hi, math.ceil(pool_size / divisor)))


def parse_timestamp(value: str | None) -> float:
    """RFC 3339 timestamp -> epoch seconds; missing or invalid values sort oldest."""
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def sort_by_time(candidates: list[FileCandidate], field_name: str = "modified_time") -> list[FileCandidate]:
    """Stable sort, newest first."""
    return sorted(candidates, key=lambda c: parse_timestamp(getattr(c, field_name, None)), reverse=True)


def _normalize_exprs(drive_exprs: str | Iterable[str] | None) -> list[str | None]:
    if drive_exprs is None or isinstance(drive_exprs, str):
        return [drive_exprs]
    exprs = [e for e in drive_exprs if e and str(e).strip()]
    return exprs or [None]


def _deadline(timeout: float | None) -> float | None:
    return time.monotonic() + timeout if timeout else None


def _fan_out(
    tasks: list[Callable[[], list[dict[str, Any]]]],
    merge: Callable[[list[dict[str, Any]]], None],
    is_done: Callable[[], bool] = lambda: False,
    max_workers: int = DRIVE_MAX_WORKERS,
    deadline: float | None = None,
) -> int:
    """
    Run fetch tasks on a bounded pool and merge their results in task order.

    Merging happens on this thread only, so the outcome matches a serial loop:
    a failed task raises only when its turn to merge comes and the pool is not
    yet full. Once is_done() holds, no further tasks are submitted and results
    still in flight are discarded, errors included. deadline is a
    time.monotonic() value. Returns the number of tasks submitted.
    """
    if not tasks:
        return 0
    workers = max(1, min(max_workers, len(tasks)))
    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="drive-fetch")
    in_flight: dict[Future, int] = {}
    finished: dict[int, tuple[list[dict[str, Any]] | None, BaseException | None]] = {}
    next_submit = 0
    next_merge = 0
    try:
        while next_merge < len(tasks) and not is_done():
            while next_submit < len(tasks) and len(in_flight) < workers:
                in_flight[pool.submit(tasks[next_submit])] = next_submit
                next_submit += 1
            if not in_flight:
                break
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                raise RetrievalError("Drive retrieval timed out")
            done, _ = wait(list(in_flight), timeout=remaining, return_when=FIRST_COMPLETED)
            if not done:
                raise RetrievalError("Drive retrieval timed out")
            for fut in done:
                idx = in_flight.pop(fut)
                error = fut.exception()
                finished[idx] = (None, error) if error is not None else (fut.result(), None)
            while next_merge in finished and not is_done():
                items, error = finished.pop(next_merge)
                if isinstance(error, RetrievalError):
                    raise error
                if error is not None:
                    raise RetrievalError(f"Drive fetch failed: {error}") from error
                merge(items)
                next_merge += 1
        if in_flight:
            logger.debug("[retrieval:fan_out] pool full; discarding %d in-flight fetches", len(in_flight))
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    return next_submit


def _walk(store: FileStore, root_folder_id: str, max_folders: int, deadline: float | None = None) -> list[str]:
    try:
        return walk_folder_tree(store, root_folder_id, max_folders=max_folders, deadline=deadline)
    except RetrievalError:
        raise
    except Exception as e:
        raise RetrievalError(f"Folder walk failed: {e}", folder_id=root_folder_id) from e


def _query_task(store: FileStore, q: str, page_size: int, order_by: str | None = None):
    return lambda: store.query(q, page_size=page_size, order_by=order_by)


def _run_into_pool(
    store: FileStore,
    folder_ids: list[str],
    exprs: list[str | None],
    pool: CandidatePool,
    page_size: int,
    mime_types: list[str] | None,
    time_range: object | None,
    max_workers: int,
    deadline: float | None,
) -> int:
    tasks = [
        _query_task(store, build_drive_query(fid, expr, mime_types, time_range), page_size)
        for expr in exprs
        for fid in folder_ids
    ]
    return _fan_out(
        tasks,
        merge=lambda items: pool.merge(to_candidates(items)),
        is_done=lambda: pool.full,
        max_workers=max_workers,
        deadline=deadline,
    )


def search_in_folder(
    store: FileStore,
    folder_id: str,
    drive_expr: str | None = None,
    page_size: int = PAGE_SIZE_PER_QUERY,
    mime_types: list[str] | None = None,
    time_range: object | None = None,
) -> list[FileCandidate]:
    """One query against one folder, mapped to candidates (folders excluded)."""
    q = build_drive_query(folder_id, drive_expr, mime_types, time_range)
    logger.info("[retrieval:search_in_folder] IN  folder=%s page_size=%d q=%r", folder_id, page_size, q)
    try:
        items = store.query(q, page_size=page_size)
    except RetrievalError:
        raise
    except Exception as e:
        raise RetrievalError(f"Drive query failed: {e}", folder_id=folder_id) from e
    out = to_candidates(items)
    logger.info("[retrieval:search_in_folder] OUT candidates=%d", len(out))
    return out


def search_variants(
    store: FileStore,
    folder_id: str,
    drive_exprs: str | Iterable[str] | None,
    pool_size: int,
    page_size: int = PAGE_SIZE_PER_QUERY,
    mime_types: list[str] | None = None,
    time_range: object | None = None,
    max_workers: int = DRIVE_MAX_WORKERS,
    timeout: float | None = None,
) -> RetrievalResult:
    """Single-folder retrieval over several query variants, merged into one pool."""
    exprs = _normalize_exprs(drive_exprs)
    pool = CandidatePool(budget=pool_size)
    calls = _run_into_pool(
        store, [folder_id], exprs, pool, page_size, mime_types, time_range, max_workers, _deadline(timeout)
    )
    logger.info("[retrieval:search_variants] OUT variants=%d calls=%d candidates=%d", len(exprs), calls, len(pool))
    return RetrievalResult(candidates=pool.candidates(), folder_count=1, calls=calls, folder_ids=[folder_id])


def search_in_tree(
    store: FileStore,
    root_folder_id: str,
    drive_exprs: str | Iterable[str] | None,
    pool_size: int,
    mime_types: list[str] | None = None,
    time_range: object | None = None,
    max_folders: int = MAX_DRIVE_FOLDERS,
    max_workers: int = DRIVE_MAX_WORKERS,
    timeout: float | None = None,
    folder_ids: list[str] | None = None,
) -> RetrievalResult:
    """
    Search the root folder and all its descendants.

    One bounded query per (variant, folder); results merge into a pool of at most
    pool_size candidates and fetching stops once it is full. timeout bounds the
    walk and the fetches together.
    """
    deadline = _deadline(timeout)
    exprs = _normalize_exprs(drive_exprs)
    folders = folder_ids if folder_ids is not None else _walk(store, root_folder_id, max_folders, deadline)
    page_size = per_folder_page_size(pool_size, len(folders))
    logger.info(
        "[retrieval:search_in_tree] IN  root=%s folders=%d variants=%d pool_size=%d per_folder=%d",
        root_folder_id, len(folders), len(exprs), pool_size, page_size,
    )
    pool = CandidatePool(budget=pool_size)
    calls = _run_into_pool(
        store, folders, exprs, pool, page_size, mime_types, time_range, max_workers, deadline
    )
    logger.info("[retrieval:search_in_tree] OUT calls=%d candidates=%d", calls, len(pool))
    return RetrievalResult(candidates=pool.candidates(), folder_count=len(folders), calls=calls, folder_ids=folders)


def recent_in_tree(
    store: FileStore,
    root_folder_id: str,
    top_k: int,
    max_folders: int = MAX_DRIVE_FOLDERS,
    per_folder: int = RECENT_PER_FOLDER,
    max_workers: int = DRIVE_MAX_WORKERS,
    timeout: float | None = None,
    folder_ids: list[str] | None = None,
) -> RetrievalResult:
    """
    The top_k most recently modified files in the tree.

    Drive orders per folder only, so each folder contributes its newest files and
    the merged set is sorted again globally.
    """
    deadline = _deadline(timeout)
    folders = folder_ids if folder_ids is not None else _walk(store, root_folder_id, max_folders, deadline)
    pool = CandidatePool()
    tasks = [
        _query_task(store, build_drive_query(fid), per_folder, order_by="modifiedTime desc")
        for fid in folders
    ]
    calls = _fan_out(
        tasks,
        merge=lambda items: pool.merge(to_candidates(items)),
        max_workers=max_workers,
        deadline=deadline,
    )
    ranked = sort_by_time(pool.candidates())[: max(0, top_k)]
    logger.info("[retrieval:recent_in_tree] OUT folders=%d merged=%d returned=%d", len(folders), len(pool), len(ranked))
    return RetrievalResult(candidates=ranked, folder_count=len(folders), calls=calls, folder_ids=folders)
