"""
Error taxonomy for theme token operations.

Core modules raise these; :mod:`radflow_tokens.core.services` converts them
into structured results at the request boundary.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional


class DevToolsError(Exception):
    """Base class. ``status`` is the machine-readable failure kind."""

    status = "error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    @property
    def hint(self) -> Optional[str]:
        return None


class NotFoundError(DevToolsError):
    status = "not_found"


class NoActiveThemeError(NotFoundError):
    def __init__(self, globals_path: Path):
        super().__init__(
            f"No theme import found in {globals_path.name}",
            details={"globals": str(globals_path)},
        )


class InvalidRequestError(DevToolsError):
    status = "invalid"


class ProductionModeError(DevToolsError):
    status = "forbidden"

    def __init__(self) -> None:
        super().__init__("Dev tools API not available in production")


class WriteLockedError(DevToolsError):
    status = "write_locked"

    def __init__(self, theme_id: str, active_theme: Optional[str]):
        if active_theme:
            message = (
                f'Cannot write to theme "{theme_id}". Only the active theme '
                f'"{active_theme}" can be modified.'
            )
        else:
            message = (
                f'Cannot write to theme "{theme_id}". No theme is active; '
                "switch to it first."
            )
        super().__init__(
            message,
            details={"themeId": theme_id, "activeTheme": active_theme, "writeLocked": True},
        )
        self.theme_id = theme_id
        self.active_theme = active_theme


class WriteFailedError(DevToolsError):
    status = "io_error"

    def __init__(self, path: Path, backup_path: Optional[Path], reason: str):
        super().__init__(
            f"Could not update {path.name}: {reason}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.backup_path = backup_path

    @property
    def hint(self) -> Optional[str]:
        if self.backup_path is None:
            return None
        return f"Try restoring from backup {self.backup_path}"


def validation_problems(exc: Any) -> List[str]:
    """Flatten a pydantic ``ValidationError`` into ``loc: message`` strings."""
    problems: List[str] = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return problems
