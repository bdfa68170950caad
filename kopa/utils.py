import json
import time


def now_ts():
    return int(time.time())


def json_dumps(obj):
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def decode_clipboard_bytes(raw):
    # Invalid sequences become U+FFFD rather than failing the capture.
    return bytes(raw).decode("utf-8", errors="replace")


def preview(text, limit=80):
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"
