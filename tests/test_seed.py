import random
import tempfile
import unittest
from pathlib import Path

from kopa.db import KopaStore
from kopa.seed import MIN_LENGTH, WORDS, random_words, seed_history


class SeedTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = KopaStore(db_path=str(Path(self.temp_dir.name) / "kopa.db"))

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_random_words_reaches_target_length(self):
        text = random_words(random.Random(1), MIN_LENGTH)

        self.assertGreaterEqual(len(text), MIN_LENGTH)
        self.assertTrue(all(word in WORDS for word in text.split()))

    def test_seed_history_writes_batches_within_spread(self):
        with self.assertLogs("Kopa", level="INFO") as logs:
            written = seed_history(self.store, total=25, batch_size=10, spread=100, rng=random.Random(7), now=10_000)

        self.assertEqual(written, 25)
        self.assertEqual(self.store.count_entries(), 25)
        self.assertEqual(len([line for line in logs.output if "Progress" in line]), 3)
        stats = self.store.stats()
        self.assertGreaterEqual(stats["oldest"], 9_900)
        self.assertLessEqual(stats["newest"], 10_000)

    def test_seeded_history_is_searchable(self):
        seed_history(self.store, total=50, batch_size=50, rng=random.Random(3), now=10_000)

        page = self.store.search_entries("the", limit=5)

        self.assertTrue(page.entries)


if __name__ == "__main__":
    unittest.main()
