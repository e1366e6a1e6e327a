"""
Tests for the locked read, backup, write cycle.
"""

import threading
from pathlib import Path

import pytest

from radflow_tokens.core import context as context_module
from radflow_tokens.core.context import (
    CssFileContext,
    FileLockTable,
    WriteReport,
    backup_path_for,
    patch_file,
)
from radflow_tokens.core.css_patcher import PatchOutcome
from radflow_tokens.core.errors import NotFoundError, WriteFailedError


def _replace(old: str, new: str):
    def transform(css: str) -> PatchOutcome:
        updated = css.replace(old, new)
        return PatchOutcome(updated, updated=["x"] if updated != css else [])

    return transform


@pytest.fixture
def css_file(tmp_path: Path) -> Path:
    path = tmp_path / "tokens.css"
    path.write_text("@theme {\n  --radius-md: 0.5rem;\n}\n", encoding="utf-8")
    return path


def test_backup_path_names(tmp_path: Path):
    assert backup_path_for(tmp_path / "tokens.css") == tmp_path / ".tokens.css.backup"
    assert backup_path_for(tmp_path / "tokens.css", 2) == tmp_path / ".tokens.css.backup.2"


def test_write_creates_backup_of_previous_content(css_file: Path):
    original = css_file.read_text(encoding="utf-8")

    outcome, result = patch_file(css_file, _replace("0.5rem", "8px"), locks=FileLockTable())

    assert outcome.updated == ["x"]
    assert result.changed and result.backup_ok
    assert css_file.read_text(encoding="utf-8") == original.replace("0.5rem", "8px")
    assert result.backup_path.read_text(encoding="utf-8") == original
    assert not list(css_file.parent.glob("*.tmp"))


def test_unchanged_text_is_not_written(css_file: Path):
    before = css_file.stat().st_mtime_ns

    _, result = patch_file(css_file, _replace("nothing", "else"), locks=FileLockTable())

    assert not result.changed
    assert result.backup_path is None
    assert not backup_path_for(css_file).exists()
    assert css_file.stat().st_mtime_ns == before


def test_dry_run_reports_without_writing(css_file: Path):
    original = css_file.read_text(encoding="utf-8")

    _, result = patch_file(css_file, _replace("0.5rem", "8px"), dry_run=True)

    assert result.changed and result.dry_run
    assert css_file.read_text(encoding="utf-8") == original
    assert not backup_path_for(css_file).exists()


def test_missing_file_is_not_found(tmp_path: Path):
    with pytest.raises(NotFoundError):
        patch_file(tmp_path / "nope.css", _replace("a", "b"))


def test_lock_released_after_failure(tmp_path: Path):
    locks = FileLockTable()
    path = tmp_path / "nope.css"

    with pytest.raises(NotFoundError):
        with CssFileContext(path, locks=locks):
            pass

    assert not locks.lock_for(path).locked()


def test_backup_failure_does_not_block_write(css_file: Path, monkeypatch):
    def broken_copy(*args, **kwargs):
        raise OSError("read-only directory")

    monkeypatch.setattr(context_module.shutil, "copy2", broken_copy)

    _, result = patch_file(css_file, _replace("0.5rem", "8px"), locks=FileLockTable())

    assert result.changed
    assert result.backup_ok is False
    assert "8px" in css_file.read_text(encoding="utf-8")


def test_failed_write_leaves_file_and_names_backup(css_file: Path, monkeypatch):
    original = css_file.read_text(encoding="utf-8")

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(context_module.os, "replace", broken_replace)

    with pytest.raises(WriteFailedError) as exc:
        patch_file(css_file, _replace("0.5rem", "8px"), locks=FileLockTable())

    monkeypatch.undo()
    assert exc.value.status == "io_error"
    assert "disk full" in exc.value.message
    assert str(backup_path_for(css_file)) in exc.value.hint
    assert css_file.read_text(encoding="utf-8") == original
    assert not list(css_file.parent.glob("*.tmp"))


def _set_radius(value: str):
    def transform(css: str) -> PatchOutcome:
        current = css.split("--radius-md: ")[1].split(";")[0]
        return PatchOutcome(css.replace(f"--radius-md: {current};", f"--radius-md: {value};"))

    return transform


def test_backup_rotation(css_file: Path):
    locks = FileLockTable()
    for value in ("1px", "2px", "3px"):
        patch_file(css_file, _set_radius(value), locks=locks, backup_history=3)

    assert "3px" in css_file.read_text(encoding="utf-8")
    assert "2px" in backup_path_for(css_file).read_text(encoding="utf-8")
    assert "1px" in backup_path_for(css_file, 1).read_text(encoding="utf-8")
    assert "0.5rem" in backup_path_for(css_file, 2).read_text(encoding="utf-8")


def test_lock_table_identity(tmp_path: Path):
    locks = FileLockTable()

    first = locks.lock_for(tmp_path / "a.css")
    again = locks.lock_for(tmp_path / "sub" / ".." / "a.css")
    other = locks.lock_for(tmp_path / "b.css")

    assert first is again
    assert first is not other
    assert len(locks) == 2


def test_concurrent_patches_are_serialised(tmp_path: Path):
    path = tmp_path / "counter.css"
    path.write_text(":root { --n: 0; }", encoding="utf-8")
    locks = FileLockTable()

    def bump(css: str) -> PatchOutcome:
        n = int(css.split("--n: ")[1].split(";")[0])
        return PatchOutcome(css.replace(f"--n: {n};", f"--n: {n + 1};"))

    threads = [
        threading.Thread(target=patch_file, args=(path, bump), kwargs={"locks": locks})
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert path.read_text(encoding="utf-8") == ":root { --n: 8; }"


def test_write_report(css_file: Path):
    report = WriteReport(theme_id="rad-os")
    _, result = patch_file(css_file, _replace("0.5rem", "8px"), locks=FileLockTable())

    report.record("tokens", result, ["radius.md"])
    report.record_failure("fonts", NotFoundError("fonts.css not found"))

    assert report.written == ["tokens"]
    assert report.changes == {"tokens": ["radius.md"]}
    assert report.failed["fonts"]["status"] == "not_found"
    assert report.has_failures and report.has_changes
    assert report.summary_lines == ["tokens: 1 change(s)", "fonts: fonts.css not found"]
