from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class TextEntry:
    id: int
    content: str
    created_at: int

    @classmethod
    def from_row(cls, row):
        return cls(id=int(row["id"]), content=row["content"], created_at=int(row["created_at"]))

    def to_dict(self):
        return {"id": self.id, "content": self.content, "created_at": self.created_at}


@dataclass(frozen=True)
class Page:
    entries: List[TextEntry] = field(default_factory=list)
    next_cursor: Optional[int] = None
    next_cursor_id: Optional[int] = None


def fetch_size(limit):
    """Rows to ask the database for: one extra to detect a following page."""
    return int(limit) + 1


def finalize_page(entries, limit):
    """Trim an over-fetched result to ``limit`` rows and derive the next cursor.

    ``entries`` must come from a query run with ``fetch_size(limit)``. When the
    extra row is present it is dropped and the cursor points at the last row
    that is kept; otherwise the result set is exhausted.
    """
    entries = list(entries)
    if len(entries) > limit:
        entries = entries[:limit]
        last = entries[-1]
        return Page(entries=entries, next_cursor=last.created_at, next_cursor_id=last.id)
    return Page(entries=entries)


def cursor_clause(cursor, cursor_id=None):
    """SQL predicate and params restricting rows to those after a cursor.

    A bare timestamp is an exclusive bound. With ``cursor_id`` the bound is the
    composite key ``(created_at, id)``, which stays correct when several
    entries share a timestamp.
    """
    if cursor is None:
        return "", []
    if cursor_id is None:
        return "ce.created_at < ?", [int(cursor)]
    return (
        "(ce.created_at < ? OR (ce.created_at = ? AND ce.id < ?))",
        [int(cursor), int(cursor), int(cursor_id)],
    )
