import logging
import sqlite3

from .pager import TextEntry, cursor_clause, fetch_size, finalize_page

logger = logging.getLogger("Kopa")

# Trimmed queries shorter than this skip the index and go straight to LIKE.
FTS_MIN_QUERY_LENGTH = 3

ENTRY_COLUMNS = "ce.id AS id, te.content AS content, ce.created_at AS created_at"
RECENCY_ORDER = "ce.created_at DESC, ce.id DESC"
LIKE_PREDICATE = "te.content LIKE ? ESCAPE '\\'"


def escape_like(query):
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_fts_query(query):
    """Turn free text into an FTS5 expression of ANDed quoted prefix phrases."""
    terms = []
    for token in query.split():
        if not token:
            continue
        token = token.replace('"', '""')
        terms.append(f'"{token}"*')
    return " ".join(terms)


def _where(*clauses):
    clauses = [c for c in clauses if c]
    if not clauses:
        return ""
    return "WHERE " + " AND ".join(clauses)


def _fetch(conn, sql, params):
    return [TextEntry.from_row(r) for r in conn.execute(sql, params).fetchall()]


def recent_rows(conn, cursor, limit, cursor_id=None):
    """Raw recency scan: at most ``limit`` rows older than the cursor."""
    clause, params = cursor_clause(cursor, cursor_id)
    sql = f"""
    SELECT {ENTRY_COLUMNS}
    FROM clipboard_entries ce
    JOIN text_entries te ON te.entry_id = ce.id
    {_where(clause)}
    ORDER BY {RECENCY_ORDER}
    LIMIT ?
    """
    return _fetch(conn, sql, params + [int(limit)])


def like_rows(conn, query, cursor, limit, cursor_id=None):
    clause, params = cursor_clause(cursor, cursor_id)
    sql = f"""
    SELECT {ENTRY_COLUMNS}
    FROM clipboard_entries ce
    JOIN text_entries te ON te.entry_id = ce.id
    {_where(LIKE_PREDICATE, clause)}
    ORDER BY {RECENCY_ORDER}
    LIMIT ?
    """
    like_q = f"%{escape_like(query)}%"
    return _fetch(conn, sql, [like_q] + params + [int(limit)])


def fts_rows(conn, query, cursor, limit, cursor_id=None):
    clause, params = cursor_clause(cursor, cursor_id)
    sql = f"""
    SELECT {ENTRY_COLUMNS}
    FROM text_entries_fts
    JOIN text_entries te ON te.entry_id = text_entries_fts.rowid
    JOIN clipboard_entries ce ON ce.id = te.entry_id
    {_where("text_entries_fts MATCH ?", clause)}
    ORDER BY bm25(text_entries_fts) ASC, {RECENCY_ORDER}
    LIMIT ?
    """
    return _fetch(conn, sql, [to_fts_query(query)] + params + [int(limit)])


def list_page(conn, cursor, limit, cursor_id=None):
    rows = recent_rows(conn, cursor, fetch_size(limit), cursor_id)
    logger.debug("recent rows=%d", len(rows))
    return finalize_page(rows, limit)


def search_page(conn, query, cursor, limit, cursor_id=None):
    q = (query or "").strip()
    if not q:
        return list_page(conn, cursor, limit, cursor_id)

    size = fetch_size(limit)
    if len(q) < FTS_MIN_QUERY_LENGTH:
        rows = like_rows(conn, q, cursor, size, cursor_id)
        logger.debug("LIKE rows=%d (short query)", len(rows))
        return finalize_page(rows, limit)

    try:
        rows = fts_rows(conn, q, cursor, size, cursor_id)
        logger.debug("FTS rows=%d", len(rows))
    except sqlite3.OperationalError as exc:
        logger.warning("FTS query %r failed (%s), fallback to LIKE", q, exc)
        rows = like_rows(conn, q, cursor, size, cursor_id)
        logger.debug("LIKE rows=%d (fts failed)", len(rows))
        return finalize_page(rows, limit)

    if not rows:
        rows = like_rows(conn, q, cursor, size, cursor_id)
        logger.debug("LIKE rows=%d (fts empty)", len(rows))
    return finalize_page(rows, limit)
