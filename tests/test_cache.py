from __future__ import annotations

from pathlib import Path
import json
import os
import stat
import string
import tempfile
import unittest
from unittest.mock import patch

from esbundle.cache import CACHE_FILENAME, CacheError, IdentifierCache, generate_identifier


_ALPHANUMERIC = set(string.ascii_letters + string.digits)


class GenerateIdentifierTests(unittest.TestCase):
    def test_identifiers_are_32_alphanumeric_characters(self) -> None:
        for _ in range(50):
            identifier = generate_identifier()
            self.assertEqual(len(identifier), 32)
            self.assertTrue(set(identifier) <= _ALPHANUMERIC)

    def test_identifiers_differ_between_calls(self) -> None:
        self.assertNotEqual(generate_identifier(), generate_identifier())


class IdentifierCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.bundle_dir = Path(self.temp_dir.name)
        self.cache_path = self.bundle_dir / CACHE_FILENAME

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_missing_cache_is_empty(self) -> None:
        cache = IdentifierCache.load(self.bundle_dir)
        self.assertEqual(cache.entries, {})
        self.assertEqual(cache.path, self.cache_path)

    def test_missing_bundle_directory_is_empty(self) -> None:
        cache = IdentifierCache.load(self.bundle_dir / "not-yet")
        self.assertEqual(len(cache), 0)

    def test_get_or_create_assigns_once(self) -> None:
        cache = IdentifierCache.load(self.bundle_dir)
        identifier, is_new = cache.get_or_create("src/app.ts")
        self.assertTrue(is_new)
        self.assertEqual(len(identifier), 32)
        again, is_new_again = cache.get_or_create("src/app.ts")
        self.assertFalse(is_new_again)
        self.assertEqual(again, identifier)

    def test_existing_entries_are_not_regenerated(self) -> None:
        self.cache_path.write_text(json.dumps({"src/app.ts": "X" * 32}))
        cache = IdentifierCache.load(self.bundle_dir)
        with patch.object(cache, "generator") as generator:
            identifier, is_new = cache.get_or_create("src/app.ts")
        generator.assert_not_called()
        self.assertFalse(is_new)
        self.assertEqual(identifier, "X" * 32)

    def test_distinct_entry_points_get_distinct_identifiers(self) -> None:
        cache = IdentifierCache.load(self.bundle_dir)
        first, _ = cache.get_or_create("src/a.ts")
        second, _ = cache.get_or_create("src/b.ts")
        self.assertNotEqual(first, second)

    def test_persist_and_reload_round_trip(self) -> None:
        cache = IdentifierCache.load(self.bundle_dir)
        cache.get_or_create("src/a.ts")
        cache.get_or_create("src/b.ts")
        cache.persist()

        reloaded = IdentifierCache.load(self.bundle_dir)
        self.assertEqual(reloaded.entries, cache.entries)

    def test_persist_writes_pretty_json(self) -> None:
        cache = IdentifierCache(path=self.cache_path, entries={"src/app.ts": "a" * 32})
        cache.persist()
        content = self.cache_path.read_text(encoding="utf-8")
        self.assertEqual(content, '{\n  "src/app.ts": "' + "a" * 32 + '"\n}')
        self.assertEqual(sorted(p.name for p in self.bundle_dir.iterdir()), [CACHE_FILENAME])

    def test_persist_overwrites_previous_content(self) -> None:
        self.cache_path.write_text(json.dumps({"old.ts": "b" * 32}))
        cache = IdentifierCache(path=self.cache_path, entries={"new.ts": "c" * 32})
        cache.persist()
        self.assertEqual(json.loads(self.cache_path.read_text()), {"new.ts": "c" * 32})

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_persist_keeps_existing_file_mode(self) -> None:
        for mode in (0o644, 0o664, 0o600):
            self.cache_path.write_text(json.dumps({"src/app.ts": "a" * 32}))
            os.chmod(self.cache_path, mode)
            cache = IdentifierCache.load(self.bundle_dir)
            cache.get_or_create("src/new.ts")
            cache.persist()
            self.assertEqual(stat.S_IMODE(self.cache_path.stat().st_mode), mode)

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_persist_new_file_follows_umask(self) -> None:
        previous = os.umask(0o022)
        try:
            IdentifierCache(path=self.cache_path, entries={"a.ts": "1"}).persist()
        finally:
            os.umask(previous)
        self.assertEqual(stat.S_IMODE(self.cache_path.stat().st_mode), 0o644)

    @unittest.skipIf(os.name == "nt", "symlinks need privileges on Windows")
    def test_persist_rewrites_symlink_target(self) -> None:
        real = self.bundle_dir / "shared-bundles.json"
        real.write_text("{}")
        self.cache_path.symlink_to(real)
        cache = IdentifierCache.load(self.bundle_dir)
        cache.get_or_create("src/app.ts")
        cache.persist()
        self.assertTrue(self.cache_path.is_symlink())
        self.assertEqual(json.loads(real.read_text()), cache.entries)

    def test_persist_failure_raises_cache_error(self) -> None:
        cache = IdentifierCache(path=self.bundle_dir / "missing" / CACHE_FILENAME, entries={})
        with self.assertRaisesRegex(CacheError, "Failed to write bundles cache"):
            cache.persist()

    def test_iteration_is_sorted(self) -> None:
        cache = IdentifierCache(path=self.cache_path, entries={"b.ts": "2", "a.ts": "1"})
        self.assertEqual(list(cache), [("a.ts", "1"), ("b.ts", "2")])

    def test_malformed_cache_is_fatal(self) -> None:
        self.cache_path.write_text("{not json")
        with self.assertRaisesRegex(CacheError, "Failed to parse bundles cache"):
            IdentifierCache.load(self.bundle_dir)

    def test_non_object_cache_is_fatal(self) -> None:
        self.cache_path.write_text("[]")
        with self.assertRaises(CacheError):
            IdentifierCache.load(self.bundle_dir)

    def test_non_string_identifier_is_fatal(self) -> None:
        self.cache_path.write_text('{"src/app.ts": 7}')
        with self.assertRaises(CacheError):
            IdentifierCache.load(self.bundle_dir)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
