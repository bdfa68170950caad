import asyncio
import logging
import os
import stat

from .errors import DecodeFault, KopaError
from .pager import DEFAULT_PAGE_SIZE
from .protocol import (
    CopyTextToClipboard,
    CopyToClipboard,
    Error,
    ListEntries,
    SearchEntries,
    Success,
    decode_request,
    encode_response,
    entries_from_page,
)

logger = logging.getLogger("Kopa")

# Largest request line accepted; CopyTextToClipboard carries arbitrary text.
MAX_REQUEST_BYTES = 16 * 1024 * 1024


class RequestRouter:
    """Answers one request per socket connection.

    Decoding and encoding stay on the event loop; the store and clipboard
    calls are blocking and run in the loop's default executor.
    """

    def __init__(self, store, clipboard, page_size=DEFAULT_PAGE_SIZE):
        self.store = store
        self.clipboard = clipboard
        self.page_size = page_size

    def dispatch(self, request):
        if isinstance(request, ListEntries):
            limit = request.limit or self.page_size
            return entries_from_page(self.store.list_entries(request.cursor, limit, request.cursor_id))
        if isinstance(request, SearchEntries):
            limit = request.limit or self.page_size
            page = self.store.search_entries(request.query, request.cursor, limit, request.cursor_id)
            return entries_from_page(page)
        if isinstance(request, CopyToClipboard):
            content = self.store.get_text(request.entry_id)
            self.clipboard.write(content)
            return Success()
        if isinstance(request, CopyTextToClipboard):
            self.clipboard.write(request.content)
            return Success()
        raise DecodeFault(f"Unsupported request: {type(request).__name__}")

    def handle_request(self, request):
        try:
            return self.dispatch(request)
        except KopaError as exc:
            logger.warning("%s failed: %s", type(request).__name__, exc)
            return Error(message=str(exc))

    async def respond(self, line):
        if not line:
            return Error(message="Empty request")
        try:
            request = decode_request(line)
        except DecodeFault as exc:
            logger.warning("rejected request: %s", exc)
            return Error(message=str(exc))
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.handle_request, request)

    async def handle_connection(self, reader, writer):
        try:
            try:
                line = await reader.readline()
            except (ValueError, asyncio.LimitOverrunError):
                response = Error(message="Request too large")
            else:
                try:
                    response = await self.respond(line)
                except Exception:
                    logger.exception("IPC handler task failed")
                    response = Error(message="Internal error")
            writer.write(encode_response(response))
            await writer.drain()
        except OSError as exc:
            logger.warning("IPC connection error: %s", exc)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def start(self, socket_path):
        _remove_stale_socket(socket_path)
        server = await asyncio.start_unix_server(self.handle_connection, path=socket_path, limit=MAX_REQUEST_BYTES)
        os.chmod(socket_path, 0o600)
        logger.info("listening on %s", socket_path)
        return server

    async def serve(self, socket_path):
        server = await self.start(socket_path)
        async with server:
            await server.serve_forever()


def _remove_stale_socket(socket_path):
    try:
        mode = os.stat(socket_path).st_mode
    except FileNotFoundError:
        return
    if not stat.S_ISSOCK(mode):
        raise RuntimeError(f"{socket_path} exists and is not a socket")
    os.unlink(socket_path)
