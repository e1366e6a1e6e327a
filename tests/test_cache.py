"""
Tests for the fingerprinted file cache.
"""

import os
from pathlib import Path

from radflow_tokens.core.cache import FileCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _loader(calls):
    def load(path: Path):
        calls.append(path)
        return path.read_text(encoding="utf-8")

    return load


def test_hit_until_file_changes(tmp_path: Path):
    path = tmp_path / "package.json"
    path.write_text("{}", encoding="utf-8")
    cache = FileCache(ttl=60, clock=FakeClock())
    calls = []

    assert cache.get_or_load(path, _loader(calls)) == "{}"
    assert cache.get_or_load(path, _loader(calls)) == "{}"
    assert len(calls) == 1
    assert cache.hits == 1

    path.write_text('{"name": "x"}', encoding="utf-8")
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))

    assert cache.get_or_load(path, _loader(calls)) == '{"name": "x"}'
    assert len(calls) == 2


def test_ttl_expiry(tmp_path: Path):
    path = tmp_path / "a.txt"
    path.write_text("a", encoding="utf-8")
    clock = FakeClock()
    cache = FileCache(ttl=30, clock=clock)
    calls = []

    cache.get_or_load(path, _loader(calls))
    clock.now = 31
    cache.get_or_load(path, _loader(calls))

    assert len(calls) == 2


def test_zero_ttl_disables_reuse(tmp_path: Path):
    path = tmp_path / "a.txt"
    path.write_text("a", encoding="utf-8")
    cache = FileCache(ttl=0, clock=FakeClock())
    calls = []

    cache.get_or_load(path, _loader(calls))
    cache.get_or_load(path, _loader(calls))

    assert len(calls) == 2


def test_invalidate(tmp_path: Path):
    path = tmp_path / "a.txt"
    path.write_text("a", encoding="utf-8")
    cache = FileCache(ttl=60, clock=FakeClock())
    calls = []

    cache.get_or_load(path, _loader(calls))
    cache.invalidate(path)
    cache.get_or_load(path, _loader(calls))
    assert len(calls) == 2

    cache.invalidate()
    assert len(cache) == 0
