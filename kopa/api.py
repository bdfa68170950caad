import asyncio
import json
import logging

from aiohttp import web

from .errors import DecodeFault, NotFound
from .protocol import (
    I64_MAX,
    U32_MAX,
    CopyTextToClipboard,
    CopyToClipboard,
    Error,
    ListEntries,
    SearchEntries,
    check_int,
    response_to_dict,
)

logger = logging.getLogger("Kopa")

ROUTER_KEY = web.AppKey("router", object)


def _json_response(obj, status=200):
    return web.Response(
        status=status,
        text=json.dumps(obj, ensure_ascii=False),
        content_type="application/json",
    )


def _bad_request(msg):
    return _json_response({"type": "error", "data": {"message": msg}}, status=400)


def _parse_int(name, raw, positive=False, maximum=I64_MAX):
    try:
        value = int(raw)
    except ValueError:
        raise DecodeFault(f"Invalid request payload: `{name}` must be an integer") from None
    return check_int(name, value, positive=positive, maximum=maximum)


def _optional_int(request, name, positive=False, maximum=I64_MAX):
    raw = request.query.get(name, "").strip()
    if not raw:
        return None
    return _parse_int(name, raw, positive=positive, maximum=maximum)


async def _dispatch(request, proto_request):
    router = request.app[ROUTER_KEY]
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(None, router.handle_request, proto_request)
    status = 200
    if isinstance(response, Error):
        status = 404 if response.message == NotFound.message else 400
    return _json_response(response_to_dict(response), status=status)


routes = web.RouteTableDef()


@routes.get("/kopa/health")
async def health(request):
    router = request.app[ROUTER_KEY]
    loop = asyncio.get_running_loop()
    stats = await loop.run_in_executor(None, router.store.stats)
    return _json_response({"ok": True, **stats})


@routes.get("/kopa/entries")
async def list_entries(request):
    q = request.query.get("q", "")
    try:
        cursor = _optional_int(request, "cursor")
        cursor_id = _optional_int(request, "cursor_id")
        limit = _optional_int(request, "limit", positive=True, maximum=U32_MAX)
    except DecodeFault as exc:
        return _bad_request(str(exc))
    if q.strip():
        proto = SearchEntries(query=q, cursor=cursor, limit=limit, cursor_id=cursor_id)
    else:
        proto = ListEntries(cursor=cursor, limit=limit, cursor_id=cursor_id)
    return await _dispatch(request, proto)


@routes.post("/kopa/entries/{entry_id}/copy")
async def copy_entry(request):
    try:
        entry_id = _parse_int("entry_id", request.match_info["entry_id"])
    except DecodeFault as exc:
        return _bad_request(str(exc))
    return await _dispatch(request, CopyToClipboard(entry_id=entry_id))


@routes.post("/kopa/clipboard")
async def copy_text(request):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _bad_request("Invalid JSON body")
    content = (payload or {}).get("content") if isinstance(payload, dict) else None
    if not isinstance(content, str):
        return _bad_request("`content` must be a string")
    return await _dispatch(request, CopyTextToClipboard(content=content))


def create_app(router):
    app = web.Application()
    app[ROUTER_KEY] = router
    app.add_routes(routes)
    return app


async def start_http(router, http_socket="", http_port=0):
    """Serve the bridge on a Unix socket, or on loopback only when a port is given."""
    runner = web.AppRunner(create_app(router), access_log=None)
    await runner.setup()
    if http_socket:
        site = web.UnixSite(runner, http_socket)
        where = http_socket
    else:
        site = web.TCPSite(runner, "127.0.0.1", http_port)
        where = f"http://127.0.0.1:{http_port}"
    await site.start()
    logger.info("HTTP bridge listening on %s", where)
    return runner
