"""
Drive query builder: typed predicates rendered to Drive `q` syntax.

Responsibility: Compose filter expressions for files.list (parent scope, free-text
expression, MIME allow-list, modification-time range) from predicate objects and
serialize them only at the boundary. Pure; no I/O.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Union

from drivesearch.core.config import FOLDER_MIME

logger = logging.getLogger(__name__)

FOLDER_GUARD = f"mimeType != '{FOLDER_MIME}'"


def escape_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query string."""
    return str(value or "").replace("\\", "\\\\").replace("'", "\\'")


@dataclass(frozen=True)
class InParents:
    folder_id: str

    def render(self) -> str:
        return f"'{escape_literal(self.folder_id)}' in parents"


@dataclass(frozen=True)
class NotTrashed:
    def render(self) -> str:
        return "trashed = false"


@dataclass(frozen=True)
class MimeIs:
    mime_type: str

    def render(self) -> str:
        return f"mimeType = '{escape_literal(self.mime_type)}'"


@dataclass(frozen=True)
class MimeIsNot:
    mime_type: str

    def render(self) -> str:
        return f"mimeType != '{escape_literal(self.mime_type)}'"


@dataclass(frozen=True)
class ModifiedTime:
    op: str  # ">=" or "<="
    timestamp: str

    def render(self) -> str:
        return f"modifiedTime {self.op} '{self.timestamp}'"


@dataclass(frozen=True)
class NameContains:
    term: str

    def render(self) -> str:
        return f"name contains '{escape_literal(self.term)}'"


@dataclass(frozen=True)
class FullTextContains:
    term: str

    def render(self) -> str:
        return f"fullText contains '{escape_literal(self.term)}'"


@dataclass(frozen=True)
class Raw:
    """Caller-authored expression; wrapped in parentheses, otherwise passed through."""

    expr: str

    def render(self) -> str:
        s = (self.expr or "").strip()
        return f"({s})" if s else ""


@dataclass(frozen=True)
class AllOf:
    parts: tuple

    def render(self) -> str:
        return _join(self.parts, " and ")


@dataclass(frozen=True)
class AnyOf:
    parts: tuple

    def render(self) -> str:
        rendered = _join(self.parts, " or ")
        if not rendered:
            return ""
        # Single member needs no grouping
        if len([p for p in self.parts if p.render()]) == 1:
            return rendered
        return f"({rendered})"


Predicate = Union[
    InParents, NotTrashed, MimeIs, MimeIsNot, ModifiedTime,
    NameContains, FullTextContains, Raw, AllOf, AnyOf,
]


def _join(parts: Iterable["Predicate"], sep: str) -> str:
    rendered = [p.render() for p in parts]
    return sep.join(r for r in rendered if r)


def render(predicate: Predicate) -> str:
    return predicate.render()


def _day_bound(value: str | None, end_of_day: bool) -> ModifiedTime | None:
    if not value or not str(value).strip():
        return None
    try:
        d = date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        logger.debug("[drive_query:_day_bound] skip unparseable date=%r", value)
        return None
    if end_of_day:
        return ModifiedTime("<=", f"{d.isoformat()}T23:59:59Z")
    return ModifiedTime(">=", f"{d.isoformat()}T00:00:00Z")


def build_drive_query(
    folder_id: str | None = None,
    drive_expr: str | None = None,
    mime_types: Iterable[str] | None = None,
    time_range: object | None = None,
) -> str:
    """
    Build the files.list `q` for one scope.

    Always excludes trashed items and folders. folder_id=None builds a
    scope-independent expression. time_range is any object (or dict) with
    from_/to ISO dates; bounds are inclusive day boundaries.
    """
    parts: list[Predicate] = []
    if folder_id:
        parts.append(InParents(folder_id))
    parts.append(NotTrashed())
    parts.append(MimeIsNot(FOLDER_MIME))
    if drive_expr and str(drive_expr).strip():
        parts.append(Raw(str(drive_expr)))
    mimes = [m for m in (mime_types or []) if m and str(m).strip()]
    if mimes:
        parts.append(AnyOf(tuple(MimeIs(m.strip()) for m in mimes)))
    if time_range is not None:
        if isinstance(time_range, dict):
            start, end = time_range.get("from_") or time_range.get("from"), time_range.get("to")
        else:
            start, end = getattr(time_range, "from_", None), getattr(time_range, "to", None)
        for bound in (_day_bound(start, False), _day_bound(end, True)):
            if bound is not None:
                parts.append(bound)
    return render(AllOf(tuple(parts)))


def children_query(folder_id: str) -> str:
    """Direct children of a folder (folders and files), excluding trash."""
    return render(AllOf((InParents(folder_id), NotTrashed())))


def has_folder_guard(expr: str) -> bool:
    s = expr or ""
    return FOLDER_MIME in s and ("mimeType !=" in s or "mimeType!=" in s)


def with_folder_guard(expr: str | None) -> str:
    """AND the folder guard onto an expression unless it already carries one."""
    s = (expr or "").strip()
    if not s:
        return FOLDER_GUARD
    if has_folder_guard(s):
        return s
    return render(AllOf((Raw(s), MimeIsNot(FOLDER_MIME))))


def name_contains_all(tokens: Iterable[str]) -> str:
    return render(AllOf(tuple(NameContains(t) for t in tokens if t)))


def name_or_fulltext(token: str) -> str:
    return render(AnyOf((NameContains(token), FullTextContains(token))))
