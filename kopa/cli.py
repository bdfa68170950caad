"""kopa command line: run the daemon or query it over its socket."""

import argparse
import asyncio
import datetime
import json
import logging
import sys

from . import __version__
from .client import iter_pages, request
from .config import load_config
from .db import KopaStore
from .errors import KopaError
from .protocol import CopyTextToClipboard, CopyToClipboard, Entries, Error, ListEntries, SearchEntries
from .seed import seed_history
from .utils import preview

logger = logging.getLogger("Kopa")


def _print_entries(entries, as_json=False):
    for entry in entries:
        if as_json:
            print(json.dumps(entry.to_dict(), ensure_ascii=False))
            continue
        stamp = datetime.datetime.fromtimestamp(entry.created_at).strftime("%Y-%m-%d %H:%M:%S")
        print(f"#{entry.id:<6} {stamp}  {preview(entry.content)}")


def _report(response, args):
    if isinstance(response, Error):
        print(f"error: {response.message}", file=sys.stderr)
        return 1
    if isinstance(response, Entries):
        _print_entries(response.entries, as_json=args.json)
        if response.next_cursor is not None and not args.json:
            print(f"-- more: --cursor {response.next_cursor}")
    return 0


def cmd_daemon(args, config):
    from .daemon import main as daemon_main

    return daemon_main(config, watch=not args.no_watch)


def cmd_list(args, config):
    if args.all:
        return asyncio.run(_print_all("", args, config))
    req = ListEntries(cursor=args.cursor, limit=args.limit)
    return _report(request(req, socket_path=config["socket_path"] or None), args)


def cmd_search(args, config):
    if args.all:
        return asyncio.run(_print_all(args.query, args, config))
    req = SearchEntries(query=args.query, cursor=args.cursor, limit=args.limit)
    return _report(request(req, socket_path=config["socket_path"] or None), args)


async def _print_all(query, args, config):
    async for page in iter_pages(query, limit=args.limit, socket_path=config["socket_path"] or None):
        if isinstance(page, Error):
            print(f"error: {page.message}", file=sys.stderr)
            return 1
        _print_entries(page.entries, as_json=args.json)
    return 0


def cmd_copy(args, config):
    return _report(request(CopyToClipboard(entry_id=args.entry_id), socket_path=config["socket_path"] or None), args)


def cmd_copy_text(args, config):
    text = args.text if args.text is not None else sys.stdin.read()
    return _report(request(CopyTextToClipboard(content=text), socket_path=config["socket_path"] or None), args)


def cmd_seed(args, config):
    store = KopaStore(db_path=config["db_path"] or None)
    written = seed_history(store, total=args.count, batch_size=args.batch_size, spread=args.spread)
    print(f"seeded {written} entries into {store.db_path}")
    return 0


def cmd_stats(args, config):
    store = KopaStore(db_path=config["db_path"] or None)
    print(json.dumps(store.stats(), ensure_ascii=False, indent=2))
    return 0


def _positive_int(value):
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser():
    p = argparse.ArgumentParser(prog="kopa", description="Local clipboard history.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--socket", dest="socket_path", help="daemon socket path")
    p.add_argument("--db", dest="db_path", help="database file path")
    p.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("daemon", help="watch the clipboard and serve history requests")
    sp.add_argument("--no-watch", action="store_true", help="serve requests without capturing")
    sp.add_argument("--clipboard", choices=["auto", "wayland", "xclip", "pyperclip"])
    sp.add_argument("--interval", dest="poll_interval", type=float, help="poll interval in seconds")
    sp.add_argument("--http-socket", dest="http_socket", help="also serve the HTTP bridge on this Unix socket")
    sp.add_argument("--http-port", dest="http_port", type=int, help="also serve the HTTP bridge on 127.0.0.1:PORT")
    sp.set_defaults(func=cmd_daemon)

    for name, func, helptext in (
        ("list", cmd_list, "show recent entries"),
        ("search", cmd_search, "search entries"),
    ):
        sp = sub.add_parser(name, help=helptext)
        if name == "search":
            sp.add_argument("query")
        sp.add_argument("--limit", type=_positive_int)
        sp.add_argument("--cursor", type=int)
        sp.add_argument("--all", action="store_true", help="follow cursors to the end")
        sp.add_argument("--json", action="store_true", help="one JSON object per line")
        sp.set_defaults(func=func)

    sp = sub.add_parser("copy", help="put a stored entry back on the clipboard")
    sp.add_argument("entry_id", type=int)
    sp.set_defaults(func=cmd_copy, json=False)

    sp = sub.add_parser("copy-text", help="put text (or stdin) on the clipboard")
    sp.add_argument("text", nargs="?")
    sp.set_defaults(func=cmd_copy_text, json=False)

    sp = sub.add_parser("seed", help="fill the database with synthetic entries")
    sp.add_argument("--count", type=_positive_int, default=1000)
    sp.add_argument("--batch-size", dest="batch_size", type=_positive_int, default=500)
    sp.add_argument("--spread", type=int, default=86_400, help="seconds of history to spread over")
    sp.set_defaults(func=cmd_seed)

    sp = sub.add_parser("stats", help="show database statistics")
    sp.set_defaults(func=cmd_stats)
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = load_config(
        {
            "socket_path": args.socket_path,
            "db_path": args.db_path,
            "log_level": args.log_level,
            "clipboard": getattr(args, "clipboard", None),
            "poll_interval": getattr(args, "poll_interval", None),
            "http_socket": getattr(args, "http_socket", None),
            "http_port": getattr(args, "http_port", None),
        }
    )
    logging.basicConfig(
        level=config["log_level"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        return args.func(args, config)
    except KopaError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
