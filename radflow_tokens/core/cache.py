from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .logger import get_logger

log = get_logger(__name__)


def _fingerprint(path: Path) -> Optional[Tuple[int, int]]:
    try:
        st = path.stat()
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size)


@dataclass
class _Entry:
    value: Any
    fingerprint: Optional[Tuple[int, int]]
    stored_at: float


class FileCache:
    """Caches values derived from files, keyed by path.

    An entry is reused only while the file fingerprint (mtime, size) is
    unchanged and the entry is younger than ``ttl`` seconds. ``ttl=0``
    disables reuse. The owner passes the cache explicitly and can bust it
    with :meth:`invalidate`.
    """

    def __init__(self, ttl: float = 30.0, *, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Path, _Entry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_load(self, path: Path, loader: Callable[[Path], Any]) -> Any:
        key = path.resolve()
        fp = _fingerprint(key)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if (
                entry is not None
                and entry.fingerprint == fp
                and now - entry.stored_at < self.ttl
            ):
                self.hits += 1
                return entry.value

        value = loader(path)
        with self._lock:
            self._entries[key] = _Entry(value, fp, now)
            self.misses += 1
        return value

    def invalidate(self, path: Optional[Path] = None) -> None:
        with self._lock:
            if path is None:
                self._entries.clear()
                log.debug("Cache cleared")
            else:
                self._entries.pop(path.resolve(), None)

    def __len__(self) -> int:
        return len(self._entries)
