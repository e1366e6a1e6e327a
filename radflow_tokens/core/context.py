from __future__ import annotations

import os
import shutil
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import DevToolsError, NotFoundError, WriteFailedError
from .logger import get_logger

log = get_logger(__name__)


def backup_path_for(path: Path, generation: int = 0) -> Path:
    """``tokens.css`` -> ``.tokens.css.backup`` (``.backup.<n>`` for older generations)."""
    suffix = f".{generation}" if generation else ""
    return path.with_name(f".{path.name}.backup{suffix}")


class FileLockTable:
    """One advisory lock per resolved absolute path."""

    def __init__(self) -> None:
        self._locks: Dict[Path, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, path: Path) -> threading.Lock:
        key = path.resolve()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def __len__(self) -> int:
        return len(self._locks)


DEFAULT_LOCKS = FileLockTable()


@dataclass
class FileWriteResult:
    path: Path
    changed: bool
    backup_path: Optional[Path] = None
    backup_ok: bool = True
    dry_run: bool = False


@dataclass
class WriteReport:
    """Aggregates per-file outcomes of a multi-file theme write."""

    theme_id: str
    written: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    changes: Dict[str, List[str]] = field(default_factory=dict)
    dry_run: bool = False
    summary_lines: List[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def has_changes(self) -> bool:
        return bool(self.written)

    def record(self, name: str, result: FileWriteResult, changes: List[str]) -> None:
        if result.changed:
            self.written.append(name)
            self.changes[name] = list(changes)
            self.summary_lines.append(f"{name}: {len(changes)} change(s)")
        else:
            self.unchanged.append(name)

    def record_failure(self, name: str, error: DevToolsError) -> None:
        self.failed[name] = {
            "status": error.status,
            "message": error.message,
            "hint": error.hint,
        }
        self.summary_lines.append(f"{name}: {error.message}")


class CssFileContext:
    """Owns one read, patch, backup, write cycle for a CSS file.

    The file's lock is held from ``__enter__`` to ``__exit__``, so concurrent
    patches of the same path are serialised.
    """

    def __init__(
        self,
        path: Path,
        *,
        locks: Optional[FileLockTable] = None,
        backup_history: int = 1,
        dry_run: bool = False,
    ) -> None:
        self.path = path
        self.locks = locks or DEFAULT_LOCKS
        self.backup_history = max(1, backup_history)
        self.dry_run = dry_run
        self._lock: Optional[threading.Lock] = None
        self._original: Optional[str] = None
        self.text = ""

    def __enter__(self) -> "CssFileContext":
        self._lock = self.locks.lock_for(self.path)
        self._lock.acquire()
        try:
            self.load()
        except BaseException:
            self._lock.release()
            self._lock = None
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    def load(self) -> None:
        if self._original is not None:
            return
        try:
            self._original = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(
                f"{self.path.name} not found", details={"path": str(self.path)}
            ) from exc
        except OSError as exc:
            raise WriteFailedError(self.path, None, str(exc)) from exc
        self.text = self._original

    def apply(self, transform: Callable[[str], Any]) -> Any:
        """Run ``transform`` on the current text; it returns an object with ``.css``."""
        outcome = transform(self.text)
        self.text = outcome.css
        return outcome

    @property
    def is_dirty(self) -> bool:
        return self._original is not None and self.text != self._original

    def save(self) -> FileWriteResult:
        if not self.is_dirty:
            return FileWriteResult(self.path, changed=False)
        if self.dry_run:
            return FileWriteResult(self.path, changed=True, dry_run=True)

        backup, backup_ok = self._ensure_backup()
        tmp = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            tmp.write_text(self.text, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise WriteFailedError(self.path, backup if backup_ok else None, str(exc)) from exc
        self._original = self.text
        log.debug("Wrote %s", self.path)
        return FileWriteResult(self.path, changed=True, backup_path=backup, backup_ok=backup_ok)

    def _ensure_backup(self) -> tuple[Path, bool]:
        backup = backup_path_for(self.path)
        try:
            for generation in range(self.backup_history - 1, 0, -1):
                older = backup_path_for(self.path, generation - 1)
                if older.exists():
                    os.replace(older, backup_path_for(self.path, generation))
            shutil.copy2(self.path, backup)
        except OSError as exc:
            # Backup best-effort only.
            log.warning("Could not back up %s: %s", self.path.name, exc)
            return backup, False
        return backup, True


def patch_file(
    path: Path,
    transform: Callable[[str], Any],
    *,
    locks: Optional[FileLockTable] = None,
    backup_history: int = 1,
    dry_run: bool = False,
) -> tuple[Any, FileWriteResult]:
    """Read ``path``, apply ``transform`` and write the result back if it changed."""
    with CssFileContext(
        path, locks=locks, backup_history=backup_history, dry_run=dry_run
    ) as ctx:
        outcome = ctx.apply(transform)
        return outcome, ctx.save()
