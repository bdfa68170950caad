"""Line-delimited JSON protocol spoken over the daemon socket.

Each value is adjacently tagged: ``{"type": "<snake_case tag>", "data": {...}}``.
Unit variants (``success``) carry no ``data`` key.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import DecodeFault
from .pager import TextEntry
from .utils import json_dumps


# ── Requests ──


@dataclass(frozen=True)
class ListEntries:
    cursor: Optional[int] = None
    limit: Optional[int] = None
    cursor_id: Optional[int] = None

    tag = "list_entries"


@dataclass(frozen=True)
class SearchEntries:
    query: str = ""
    cursor: Optional[int] = None
    limit: Optional[int] = None
    cursor_id: Optional[int] = None

    tag = "search_entries"


@dataclass(frozen=True)
class CopyToClipboard:
    entry_id: int

    tag = "copy_to_clipboard"


@dataclass(frozen=True)
class CopyTextToClipboard:
    content: str

    tag = "copy_text_to_clipboard"


# ── Responses ──


@dataclass(frozen=True)
class Entries:
    entries: List[TextEntry] = field(default_factory=list)
    next_cursor: Optional[int] = None
    next_cursor_id: Optional[int] = None

    tag = "entries"


@dataclass(frozen=True)
class Success:
    tag = "success"


@dataclass(frozen=True)
class Error:
    message: str

    tag = "error"


REQUEST_TYPES = {cls.tag: cls for cls in (ListEntries, SearchEntries, CopyToClipboard, CopyTextToClipboard)}
RESPONSE_TYPES = {cls.tag: cls for cls in (Entries, Success, Error)}


# ── Field readers ──

# SQLite integers are signed 64-bit; page sizes fit an unsigned 32-bit count.
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1
U32_MAX = 2**32 - 1


def check_int(name, value, positive=False, maximum=I64_MAX):
    # bool is an int subclass; it is never a valid cursor, id or limit.
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeFault(f"Invalid request payload: `{name}` must be an integer")
    if positive and value <= 0:
        raise DecodeFault(f"Invalid request payload: `{name}` must be positive")
    if value < I64_MIN or value > maximum:
        raise DecodeFault(f"Invalid request payload: `{name}` is out of range")
    return value


def _int_field(data, name, required=False, positive=False, maximum=I64_MAX):
    value = data.get(name)
    if value is None:
        if required:
            raise DecodeFault(f"Invalid request payload: missing field `{name}`")
        return None
    return check_int(name, value, positive=positive, maximum=maximum)


def _str_field(data, name):
    value = data.get(name)
    if value is None:
        raise DecodeFault(f"Invalid request payload: missing field `{name}`")
    if not isinstance(value, str):
        raise DecodeFault(f"Invalid request payload: `{name}` must be a string")
    return value


def _split_tagged(obj, known):
    if not isinstance(obj, dict):
        raise DecodeFault("Invalid request payload: expected an object")
    tag = obj.get("type")
    if tag not in known:
        raise DecodeFault(f"Invalid request payload: unknown variant `{tag}`")
    data = obj.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DecodeFault("Invalid request payload: `data` must be an object")
    return tag, data


def _loads(line):
    if isinstance(line, (bytes, bytearray)):
        try:
            line = bytes(line).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFault(f"Invalid request payload: {exc}") from exc
    try:
        return json.loads(line.strip())
    except json.JSONDecodeError as exc:
        raise DecodeFault(f"Invalid request payload: {exc}") from exc


# ── Requests: encode / decode ──


def request_from_dict(obj):
    tag, data = _split_tagged(obj, REQUEST_TYPES)
    if tag == ListEntries.tag:
        return ListEntries(
            cursor=_int_field(data, "cursor"),
            limit=_int_field(data, "limit", positive=True, maximum=U32_MAX),
            cursor_id=_int_field(data, "cursor_id"),
        )
    if tag == SearchEntries.tag:
        return SearchEntries(
            query=_str_field(data, "query"),
            cursor=_int_field(data, "cursor"),
            limit=_int_field(data, "limit", positive=True, maximum=U32_MAX),
            cursor_id=_int_field(data, "cursor_id"),
        )
    if tag == CopyToClipboard.tag:
        return CopyToClipboard(entry_id=_int_field(data, "entry_id", required=True))
    return CopyTextToClipboard(content=_str_field(data, "content"))


def decode_request(line):
    return request_from_dict(_loads(line))


def request_to_dict(request):
    if isinstance(request, ListEntries):
        data = {"cursor": request.cursor, "limit": request.limit}
    elif isinstance(request, SearchEntries):
        data = {"query": request.query, "cursor": request.cursor, "limit": request.limit}
    elif isinstance(request, CopyToClipboard):
        return {"type": request.tag, "data": {"entry_id": request.entry_id}}
    elif isinstance(request, CopyTextToClipboard):
        return {"type": request.tag, "data": {"content": request.content}}
    else:
        raise TypeError(f"not a request: {request!r}")
    if request.cursor_id is not None:
        data["cursor_id"] = request.cursor_id
    return {"type": request.tag, "data": data}


def encode_request(request):
    return (json_dumps(request_to_dict(request)) + "\n").encode("utf-8")


# ── Responses: encode / decode ──


def response_to_dict(response):
    if isinstance(response, Entries):
        data = {
            "entries": [entry.to_dict() for entry in response.entries],
            "next_cursor": response.next_cursor,
        }
        if response.next_cursor is not None and response.next_cursor_id is not None:
            data["next_cursor_id"] = response.next_cursor_id
        return {"type": response.tag, "data": data}
    if isinstance(response, Success):
        return {"type": response.tag}
    if isinstance(response, Error):
        return {"type": response.tag, "data": {"message": response.message}}
    raise TypeError(f"not a response: {response!r}")


def encode_response(response):
    return (json_dumps(response_to_dict(response)) + "\n").encode("utf-8")


def response_from_dict(obj):
    tag, data = _split_tagged(obj, RESPONSE_TYPES)
    if tag == Success.tag:
        return Success()
    if tag == Error.tag:
        return Error(message=str(data.get("message") or ""))
    raw_entries = data.get("entries") or []
    if not isinstance(raw_entries, list):
        raise DecodeFault("Invalid response payload: `entries` must be a list")
    try:
        entries = [
            TextEntry(id=int(e["id"]), content=str(e["content"]), created_at=int(e["created_at"]))
            for e in raw_entries
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodeFault(f"Invalid response payload: {exc}") from exc
    return Entries(
        entries=entries,
        next_cursor=_int_field(data, "next_cursor"),
        next_cursor_id=_int_field(data, "next_cursor_id"),
    )


def decode_response(line):
    return response_from_dict(_loads(line))


def entries_from_page(page):
    return Entries(entries=list(page.entries), next_cursor=page.next_cursor, next_cursor_id=page.next_cursor_id)
