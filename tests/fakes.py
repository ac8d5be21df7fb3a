"""
In-memory Drive folder tree and scripted language model used across the tests.
"""

import re
import threading
import time
from typing import Any, Callable

from drivesearch.core.errors import RetrievalError


FOLDER = "application/vnd.google-apps.folder"
GDOC = "application/vnd.google-apps.document"
PDF = "application/pdf"

_PARENT_RE = re.compile(r"'([^']+)' in parents")
_TERM_RE = re.compile(r"(?:name|fullText) contains '((?:[^'\\]|\\.)*)'")


def drive_file(fid: str, name: str | None = None, mime: str = PDF, modified: str | None = None, **extra: Any) -> dict:
    item = {
        "id": fid,
        "name": name or fid,
        "mimeType": mime,
        "webViewLink": f"https://drive.google.com/file/d/{fid}/view",
    }
    if modified:
        item["modifiedTime"] = modified
    item.update(extra)
    return item


def drive_folder(fid: str, name: str | None = None) -> dict:
    return {"id": fid, "name": name or fid, "mimeType": FOLDER}


class FakeDriveStore:
    """
    In-memory FileStore. children maps folder id -> child resources.

    query() returns the children of the folder named in `q`, folders included
    (the real filter is bypassed), narrowed by any name/fullText terms and
    ordered by modifiedTime when asked. Folders listed in delays sleep before
    being listed or queried. Unknown ids in get_metadata() give a 404.
    """

    def __init__(
        self,
        children: dict[str, list[dict]],
        fail_on: set[str] | None = None,
        delays: dict[str, float] | None = None,
        metadata: dict[str, dict] | None = None,
        texts: dict[str, str] | None = None,
    ) -> None:
        self.children = children
        self.fail_on = fail_on or set()
        self.delays = delays or {}
        self.metadata = metadata or {}
        self.texts = texts or {}
        self.list_calls: list[str] = []
        self.queries: list[str] = []
        self.exports: list[tuple[str, str]] = []
        self.downloads: list[str] = []
        self._lock = threading.Lock()

    def list_children(self, folder_id, page_token=None, page_size=200, order_by=None):
        with self._lock:
            self.list_calls.append(folder_id)
        if folder_id in self.delays:
            time.sleep(self.delays[folder_id])
        if folder_id in self.fail_on:
            raise RuntimeError(f"listing failed for {folder_id}")
        items = list(self.children.get(folder_id, []))
        start = int(page_token or 0)
        end = start + page_size
        return items[start:end], (str(end) if end < len(items) else None)

    def query(self, q, page_size, order_by=None):
        with self._lock:
            self.queries.append(q)
        match = _PARENT_RE.search(q)
        folder_id = match.group(1) if match else None
        if folder_id in self.delays:
            time.sleep(self.delays[folder_id])
        if folder_id in self.fail_on:
            raise RuntimeError(f"query failed for {folder_id}")
        if folder_id is None:
            items = [i for kids in self.children.values() for i in kids]
        else:
            items = list(self.children.get(folder_id, []))
        terms = [t.replace("\\'", "'").lower() for t in _TERM_RE.findall(q)]
        if terms:
            items = [i for i in items if any(t in (i.get("name") or "").lower() for t in terms)]
        if order_by == "modifiedTime desc":
            items.sort(key=lambda i: i.get("modifiedTime") or "", reverse=True)
        return items[:page_size]

    def get_metadata(self, file_id):
        if file_id in self.metadata:
            return self.metadata[file_id]
        for kids in self.children.values():
            for item in kids:
                if item.get("id") == file_id:
                    return item
        raise RetrievalError(f"Drive API error 404 for {file_id}", status_code=404)

    def export_text(self, file_id, mime_type="text/plain"):
        self.exports.append((file_id, mime_type))
        return self.texts.get(file_id, "")

    def download_text(self, file_id):
        self.downloads.append(file_id)
        return self.texts.get(file_id, "")


class RoutedLLM:
    """
    Fake language model. Picks a scripted reply by prompt type and records prompts.

    Replies may be strings or callables taking the prompt.
    """

    MARKERS = {
        "plan": "retrieval planner",
        "rank": "Rank the following documents",
        "answer": "You are a library assistant",
        "summary": "summarizes documents",
    }

    def __init__(self, **replies: str | Callable[[str], str]) -> None:
        self.replies = replies
        self.prompts: dict[str, list[str]] = {k: [] for k in self.MARKERS}

    def __call__(self, prompt: str) -> str:
        for kind, marker in self.MARKERS.items():
            if marker in prompt:
                self.prompts[kind].append(prompt)
                reply = self.replies.get(kind, "")
                return reply(prompt) if callable(reply) else reply
        return ""

    def calls(self, kind: str) -> int:
        return len(self.prompts[kind])

