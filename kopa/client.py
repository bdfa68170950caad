import asyncio
import logging

from .errors import KopaError
from .paths import get_socket_path
from .protocol import Entries, ListEntries, SearchEntries, decode_response, encode_request
from .router import MAX_REQUEST_BYTES

logger = logging.getLogger("Kopa")


class DaemonUnavailable(KopaError):
    """The daemon socket could not be reached."""

    message = "Daemon is not running"


async def send_request(request, socket_path=None, timeout=10.0):
    socket_path = socket_path or get_socket_path()
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_unix_connection(socket_path, limit=MAX_REQUEST_BYTES), timeout
        )
    except (FileNotFoundError, ConnectionRefusedError) as exc:
        raise DaemonUnavailable(f"Daemon is not running ({socket_path})") from exc

    try:
        writer.write(encode_request(request))
        await writer.drain()
        line = await asyncio.wait_for(reader.readline(), timeout)
    finally:
        writer.close()
        await writer.wait_closed()

    if not line:
        raise DaemonUnavailable("Daemon closed the connection without a response")
    return decode_response(line)


def request(req, socket_path=None, timeout=10.0):
    return asyncio.run(send_request(req, socket_path=socket_path, timeout=timeout))


async def iter_pages(query="", limit=None, socket_path=None):
    """Yield ``Entries`` pages, following the cursor until exhausted."""
    cursor = cursor_id = None
    while True:
        if query.strip():
            req = SearchEntries(query=query, cursor=cursor, limit=limit, cursor_id=cursor_id)
        else:
            req = ListEntries(cursor=cursor, limit=limit, cursor_id=cursor_id)
        response = await send_request(req, socket_path=socket_path)
        yield response
        if not isinstance(response, Entries) or response.next_cursor is None:
            return
        cursor, cursor_id = response.next_cursor, response.next_cursor_id
