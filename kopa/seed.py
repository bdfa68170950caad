import logging
import random

from .utils import now_ts

logger = logging.getLogger("Kopa")

WORDS = (
    "the be to of and a in that have I it for not on with he as you do at this but his by from "
    "they we say her she or an will my one all would there their what so up out if about who get "
    "which go me when make can like time no just him know take people into year your good some "
    "could them see other than then now look only come its over think also back after use two how "
    "our work first well way even new want because any these give day most us code file copy "
    "paste text data system user program function error debug test build run server client "
    "network database query hello world foo bar baz example sample demo project module"
).split()

MIN_LENGTH = 20
MAX_LENGTH = 500


def random_words(rng, target_len):
    parts = []
    size = 0
    while size < target_len:
        word = rng.choice(WORDS)
        parts.append(word)
        size += len(word) + (1 if len(parts) > 1 else 0)
    return " ".join(parts)


def seed_history(store, total=1000, batch_size=500, spread=86_400, rng=None, now=None):
    """Fill ``store`` with ``total`` synthetic text entries.

    Timestamps fall uniformly in ``[now - spread, now]``; each batch is one
    transaction. Returns the number of entries written.
    """
    rng = rng or random.Random()
    now = now_ts() if now is None else int(now)
    batch_size = max(1, int(batch_size))
    written = 0
    while written < total:
        size = min(batch_size, total - written)
        batch = [
            (random_words(rng, rng.randint(MIN_LENGTH, MAX_LENGTH)), now - rng.randint(0, max(0, int(spread))))
            for _ in range(size)
        ]
        written += store.append_many(batch)
        logger.info("Progress: %d/%d", written, total)
    return written
