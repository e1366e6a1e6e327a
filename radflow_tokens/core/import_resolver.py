"""
CSS Import Resolver

Flattens an ``@import`` graph into one document so the parser can see tokens
split across files and packages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .css_utils import strip_comments
from .logger import get_logger
from .settings import WorkspaceSettings

log = get_logger(__name__)

IMPORT_PATTERN = re.compile(
    r"""@import\s+(?:url\(\s*)?["']([^"']+)["']\s*\)?[^;\n]*;?"""
)
PASSTHROUGH_IMPORTS = frozenset({"tailwindcss"})


@dataclass
class ResolvedCss:
    css: str
    files: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class ImportResolver:
    """
    Resolves ``@import`` statements recursively.

    Relative and ``/``-prefixed specifiers resolve against the importing
    file's directory, and package specifiers first against
    the workspace ``packages/`` directory and then ``node_modules``.
    Unresolvable and circular imports produce warnings, never errors.
    """

    def __init__(self, settings: WorkspaceSettings):
        self.settings = settings

    def resolve_file(self, path: Path) -> ResolvedCss:
        result = ResolvedCss(css="")
        path = path.resolve()
        result.files.append(path)
        text = path.read_text(encoding="utf-8")
        result.css = self._flatten(text, path.parent, (path,), result)
        return result

    def resolve_text(self, css: str, base_dir: Path) -> ResolvedCss:
        result = ResolvedCss(css="")
        result.css = self._flatten(css, base_dir, (), result)
        return result

    def locate(self, spec: str, base_dir: Path) -> Optional[Path]:
        """Filesystem path for an import specifier, or None if it cannot be found."""
        if "://" in spec or spec.startswith("//"):
            return None
        if spec.startswith((".", "/")):
            return self._existing(base_dir / spec.lstrip("/"))
        return self._locate_package(spec)

    def _locate_package(self, spec: str) -> Optional[Path]:
        parts = spec.split("/")
        if spec.startswith("@"):
            package, subpath = "/".join(parts[:2]), parts[2:]
        else:
            package, subpath = parts[0], parts[1:]
        local_dir = self.settings.packages_path / package.split("/")[-1]
        installed_dir = self.settings.node_modules_path / package
        for root in (local_dir, installed_dir):
            target = root.joinpath(*subpath) if subpath else root / "index.css"
            found = self._existing(target)
            if found is not None:
                return found
        return None

    @staticmethod
    def _existing(target: Path) -> Optional[Path]:
        if target.is_file():
            return target.resolve()
        if target.suffix != ".css":
            with_ext = target.with_name(target.name + ".css")
            if with_ext.is_file():
                return with_ext.resolve()
        return None

    def _flatten(
        self, css: str, base_dir: Path, stack: Tuple[Path, ...], result: ResolvedCss
    ) -> str:
        text = strip_comments(css)
        pieces: List[str] = []
        cursor = 0
        for match in IMPORT_PATTERN.finditer(text):
            spec = match.group(1).strip()
            pieces.append(text[cursor:match.start()])
            cursor = match.end()
            if spec in PASSTHROUGH_IMPORTS:
                pieces.append(match.group(0))
                continue
            target = self.locate(spec, base_dir)
            if target is None:
                warning = f"Could not resolve import: {spec}"
                log.warning(warning)
                result.warnings.append(warning)
                pieces.append(match.group(0))
                continue
            if target in stack:
                warning = f"Circular import skipped: {spec}"
                log.warning(warning)
                result.warnings.append(warning)
                continue
            if target not in result.files:
                result.files.append(target)
            nested = target.read_text(encoding="utf-8")
            pieces.append(self._flatten(nested, target.parent, stack + (target,), result))
        pieces.append(text[cursor:])
        return "".join(pieces)
