"""
Theme Registry

Works out which theme package is active (from the theme import in the global
stylesheet), where each theme's CSS files live, and whether a theme may be
written. Only the active theme is writable.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .cache import FileCache
from .context import FileLockTable, FileWriteResult, patch_file
from .css_patcher import PatchOutcome
from .css_utils import mask_comments
from .errors import InvalidRequestError, NoActiveThemeError, NotFoundError, WriteLockedError
from .logger import get_logger
from .models import Theme
from .settings import WorkspaceSettings

log = get_logger(__name__)

THEME_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")
CURRENT_THEME = "current"
_SEMVER = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$")

THEME_FILES = {
    "tokens": "tokens.css",
    "typography": "typography.css",
    "fonts": "fonts.css",
    "dark": "dark.css",
    "base": "base.css",
    "scrollbar": "scrollbar.css",
    "animations": "animations.css",
    "index": "index.css",
}


@dataclass(frozen=True)
class ThemePaths:
    """Conventional file locations of one theme package (no existence checks)."""

    theme_id: str
    package_dir: Path

    def file(self, kind: str) -> Path:
        return self.package_dir / THEME_FILES[kind]

    @property
    def tokens(self) -> Path:
        return self.file("tokens")

    @property
    def typography(self) -> Path:
        return self.file("typography")

    @property
    def fonts(self) -> Path:
        return self.file("fonts")

    @property
    def dark(self) -> Path:
        return self.file("dark")

    @property
    def index(self) -> Path:
        return self.file("index")

    @property
    def package_json(self) -> Path:
        return self.package_dir / "package.json"

    @property
    def fonts_dir(self) -> Path:
        return self.package_dir / "fonts"

    @property
    def components_dir(self) -> Path:
        return self.package_dir / "components"


@dataclass
class SwitchResult:
    previous_theme: Optional[str]
    new_theme: str
    package_name: str
    write: FileWriteResult


class ThemeRegistry:
    def __init__(
        self,
        settings: WorkspaceSettings,
        *,
        cache: Optional[FileCache] = None,
        locks: Optional[FileLockTable] = None,
    ) -> None:
        self.settings = settings
        self.cache = cache or FileCache(settings.cache_ttl_seconds)
        self.locks = locks
        scope = re.escape(settings.package_scope)
        prefix = re.escape(settings.theme_dir_prefix)
        self._import_pattern = re.compile(
            r"""@import\s+["'](""" + scope + "/" + prefix + r"""([^"']+))["']\s*;?"""
        )
        self._package_pattern = re.compile(
            r"^(?:" + scope + "/)?" + prefix + r"[a-z0-9-]+$"
        )

    # ----------------------------------------------------------------- naming

    def validate_theme_id(self, theme_id: str) -> str:
        if not isinstance(theme_id, str) or not THEME_ID_PATTERN.match(theme_id):
            raise InvalidRequestError(
                f"Invalid theme id: {theme_id!r}", details={"themeId": theme_id}
            )
        return theme_id

    def is_valid_package_name(self, name: str) -> bool:
        return isinstance(name, str) and self._package_pattern.match(name) is not None

    def normalize_package_name(self, name: str) -> str:
        """``theme-x`` -> ``@scope/theme-x``; rejects anything off-pattern."""
        if not self.is_valid_package_name(name):
            raise InvalidRequestError(
                f"Invalid theme package name: {name!r}",
                details={"packageName": name},
            )
        if name.startswith("@"):
            return name
        return f"{self.settings.package_scope}/{name}"

    def theme_id_from_package(self, package_name: str) -> str:
        return package_name.split("/")[-1][len(self.settings.theme_dir_prefix):]

    def paths(self, theme_id: str) -> ThemePaths:
        self.validate_theme_id(theme_id)
        directory = self.settings.packages_path / f"{self.settings.theme_dir_prefix}{theme_id}"
        return ThemePaths(theme_id=theme_id, package_dir=directory)

    # ----------------------------------------------------------- active theme

    def active_theme_import(self) -> Optional[str]:
        """Package name imported by the global stylesheet, or None."""
        try:
            css = self.settings.globals_path.read_text(encoding="utf-8")
        except OSError:
            log.debug("Global stylesheet not readable: %s", self.settings.globals_path)
            return None
        match = self._import_pattern.search(mask_comments(css))
        return match.group(1) if match else None

    def active_theme_id(self) -> Optional[str]:
        package = self.active_theme_import()
        return self.theme_id_from_package(package) if package else None

    def require_active_theme(self) -> str:
        theme_id = self.active_theme_id()
        if theme_id is None:
            raise NoActiveThemeError(self.settings.globals_path)
        return theme_id

    def resolve_theme_id(self, theme_id: Optional[str]) -> str:
        """Map the ``current`` sentinel (or None) to the active theme id."""
        if theme_id is None or theme_id == CURRENT_THEME:
            return self.require_active_theme()
        return self.validate_theme_id(theme_id)

    def ensure_writable(self, theme_id: str) -> ThemePaths:
        """Paths for ``theme_id`` if it is the active theme; WriteLockedError otherwise."""
        paths = self.paths(theme_id)
        active = self.active_theme_id()
        if active != theme_id:
            log.info("Rejected write to %s (active: %s)", theme_id, active)
            raise WriteLockedError(theme_id, active)
        return paths

    def switch_theme(self, package_name: str, *, backup_history: int = 1) -> SwitchResult:
        """Point the global stylesheet's theme import at ``package_name``."""
        package = self.normalize_package_name(package_name)
        new_theme = self.theme_id_from_package(package)
        target_dir = self.paths(new_theme).package_dir
        if not target_dir.is_dir():
            raise NotFoundError(
                f'Theme package "{package}" not found',
                details={"packageName": package, "path": str(target_dir)},
            )

        previous: Dict[str, Optional[str]] = {"theme": None}

        def rewrite(css: str) -> PatchOutcome:
            masked = mask_comments(css)
            matches = list(self._import_pattern.finditer(masked))
            if not matches:
                raise NoActiveThemeError(self.settings.globals_path)
            previous["theme"] = matches[0].group(2)
            updated = css
            for match in reversed(matches):
                updated = updated[: match.start()] + f'@import "{package}";' + updated[match.end():]
            return PatchOutcome(updated, updated=[package] if updated != css else [])

        _, write = patch_file(
            self.settings.globals_path,
            rewrite,
            locks=self.locks,
            backup_history=backup_history,
        )
        self.cache.invalidate()
        log.info("Switched theme %s -> %s", previous["theme"], new_theme)
        return SwitchResult(
            previous_theme=previous["theme"],
            new_theme=new_theme,
            package_name=package,
            write=write,
        )

    # -------------------------------------------------------------- discovery

    def _load_package_json(self, path: Path) -> Dict[str, Any]:
        return json.loads(path.read_text(encoding="utf-8"))

    def load_theme(self, theme_id: str, *, active: Optional[str] = None) -> Theme:
        paths = self.paths(theme_id)
        try:
            data = self.cache.get_or_load(paths.package_json, self._load_package_json)
        except (OSError, ValueError) as exc:
            raise NotFoundError(
                f'Could not read package.json for theme "{theme_id}"',
                details={"themeId": theme_id, "path": str(paths.package_json)},
            ) from exc
        radflow = data.get("radflow") or {}
        exports = data.get("exports") or {}
        css_files = sorted(
            {
                value.lstrip("./")
                for value in (exports.values() if isinstance(exports, dict) else [])
                if isinstance(value, str) and value.endswith(".css")
            }
        )
        components = [
            p.name for p in sorted(paths.components_dir.iterdir()) if p.is_dir()
        ] if paths.components_dir.is_dir() else []
        return Theme(
            id=theme_id,
            name=radflow.get("displayName") or theme_id,
            package_name=data.get("name") or self.settings.theme_package_name(theme_id),
            version=str(data.get("version") or "0.0.0"),
            description=radflow.get("description") or data.get("description"),
            css_files=css_files,
            component_folders=components,
            color_mode=radflow.get("colorMode"),
            fonts={k: v for k, v in (radflow.get("fonts") or {}).items() if isinstance(v, str)},
            is_active=theme_id == active,
        )

    def list_themes(self) -> List[Theme]:
        """All theme packages under the packages directory; unreadable ones are skipped."""
        root = self.settings.packages_path
        if not root.is_dir():
            return []
        active = self.active_theme_id()
        prefix = self.settings.theme_dir_prefix
        themes: List[Theme] = []
        for entry in sorted(root.iterdir()):
            if not entry.is_dir() or not entry.name.startswith(prefix):
                continue
            theme_id = entry.name[len(prefix):]
            if not THEME_ID_PATTERN.match(theme_id):
                continue
            try:
                themes.append(self.load_theme(theme_id, active=active))
            except (NotFoundError, ValueError, OSError) as exc:
                log.warning("Failed to parse theme package %s: %s", entry.name, exc)
        return themes


def validate_theme_config(theme: Theme) -> List[str]:
    """Problems with a theme's metadata; empty when it is usable."""
    problems: List[str] = []
    if not theme.id:
        problems.append("Theme id is required")
    elif not THEME_ID_PATTERN.match(theme.id):
        problems.append("Theme id must be lowercase letters, digits and dashes")
    if not theme.name:
        problems.append("Theme name is required")
    if not theme.package_name:
        problems.append("Package name is required")
    if not theme.version:
        problems.append("Version is required")
    elif not _SEMVER.match(theme.version):
        problems.append(f"Version {theme.version!r} is not semver")
    if not theme.css_files:
        problems.append("At least one CSS file is required")
    return problems
