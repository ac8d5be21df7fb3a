"""
Folder tree traversal: breadth-first discovery of descendant folder ids.

Drive only lists direct children, so tree-wide operations first expand the root
into its folder set. The walk is capped; a tree larger than the cap is truncated,
shallow folders first.
"""

import logging
import time
from collections import deque

from drivesearch.core.config import CHILDREN_PAGE_SIZE, MAX_DRIVE_FOLDERS
from drivesearch.core.errors import RetrievalError
from drivesearch.services.drive_client import FileStore, is_folder

logger = logging.getLogger(__name__)


def walk_folder_tree(
    store: FileStore,
    root_folder_id: str,
    max_folders: int = MAX_DRIVE_FOLDERS,
    page_size: int = CHILDREN_PAGE_SIZE,
    deadline: float | None = None,
) -> list[str]:
    """
    Return the root and its descendant folder ids in BFS order, at most max_folders.

    Store errors propagate; there are no retries here. When deadline (a
    time.monotonic() value) passes between two listing calls, RetrievalError is raised.
    """
    visited: set[str] = {root_folder_id}
    order: list[str] = [root_folder_id]
    if max_folders <= 1:
        return order
    queue: deque[str] = deque([root_folder_id])

    while queue:
        current = queue.popleft()
        page_token: str | None = None
        while True:
            if deadline is not None and time.monotonic() >= deadline:
                raise RetrievalError("Folder walk timed out", folder_id=current)
            files, page_token = store.list_children(current, page_token=page_token, page_size=page_size)
            for f in files:
                fid = f.get("id")
                if not fid or not is_folder(f) or fid in visited:
                    continue
                visited.add(fid)
                order.append(fid)
                queue.append(fid)
                if len(order) >= max_folders:
                    logger.info("[tree_walker] cap reached folders=%d root=%s", len(order), root_folder_id)
                    return order
            if not page_token:
                break

    logger.info("[tree_walker] OUT folders=%d root=%s", len(order), root_folder_id)
    return order
