"""
Component Discovery

Static, regex-level scan of ``.ts``/``.tsx`` sources for default-exported
components and their props. Read-only; nothing here writes files.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional

from .errors import InvalidRequestError
from .logger import get_logger
from .models import DiscoveredComponent, PropDefinition
from .settings import WorkspaceSettings

log = get_logger(__name__)

SOURCE_SUFFIXES = (".ts", ".tsx")
_SKIP_MARKERS = (".test.", ".stories.", ".spec.")

_DEFAULT_FUNCTION = re.compile(r"export\s+default\s+function\s+(\w+)")
_DEFAULT_ANY = re.compile(r"export\s+default\s+(\w+)")
_PROPS_INTERFACE = re.compile(r"interface\s+(\w+Props)\s*\{([^}]+)\}")
_INLINE_TYPE = re.compile(r"\{\s*([^}]+)\s*\}\s*:\s*\{([^}]+)\}")
_DESTRUCTURE = re.compile(r"\{\s*([^}]+)\s*\}\s*:\s*(?:\w+Props|\{[^}]+\})")
_PROP_LINE = re.compile(r"(\w+)(\?)?:\s*([^;]+)")


def _props_from_lines(lines: List[str]) -> List[PropDefinition]:
    props: List[PropDefinition] = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith(("//", "/*", "*")):
            continue
        match = _PROP_LINE.match(line)
        if match:
            props.append(
                PropDefinition(
                    name=match.group(1),
                    type=match.group(3).strip().rstrip(",;").strip(),
                    required=not match.group(2),
                )
            )
    return props


def parse_component(
    content: str, rel_path: str, settings: Optional[WorkspaceSettings] = None
) -> Optional[DiscoveredComponent]:
    """Extract a component description from source text, or None without a default export."""
    name_match = _DEFAULT_FUNCTION.search(content)
    if name_match is None and _DEFAULT_ANY.search(content) is None:
        return None
    name = name_match.group(1) if name_match else "Unknown"

    props: List[PropDefinition] = []
    interface = _PROPS_INTERFACE.search(content)
    if interface:
        props = _props_from_lines(interface.group(2).split("\n"))
    if not props:
        inline = _INLINE_TYPE.search(content)
        if inline:
            props = _props_from_lines(re.split(r"[,;]", inline.group(2)))

    destructure = _DESTRUCTURE.search(content)
    if destructure:
        body = destructure.group(1)
        for prop in props:
            default = re.search(
                re.escape(prop.name) + r"""\s*=\s*(['"`]?[^,}]+['"`]?)""", body
            )
            if default:
                prop.default_value = default.group(1).strip()

    scope = settings.package_scope if settings else "@radflow"
    prefix = settings.theme_dir_prefix if settings else "theme-"
    theme = theme_id = None
    parts = PurePosixPath(rel_path).parts
    if "packages" in parts:
        idx = parts.index("packages")
        if idx + 1 < len(parts):
            package_dir = parts[idx + 1]
            if package_dir.startswith(prefix):
                theme_id = package_dir[len(prefix):]
                theme = f"{scope}/{package_dir}"
            elif package_dir == "ui":
                theme, theme_id = f"{scope}/ui", "ui"

    return DiscoveredComponent(
        name=name, path=rel_path, props=props, theme=theme, theme_id=theme_id
    )


class ComponentScanner:
    def __init__(self, settings: WorkspaceSettings):
        self.settings = settings

    def roots(self, folder: Optional[str] = None) -> List[Path]:
        base = self.settings.root / self.settings.components_dir
        if folder:
            if PurePosixPath(folder).is_absolute() or ".." in PurePosixPath(folder).parts:
                raise InvalidRequestError(f"Invalid component folder: {folder!r}")
            return [base / folder]
        roots = [base]
        packages = self.settings.packages_path
        if packages.is_dir():
            roots.extend(sorted(p / "components" for p in packages.iterdir() if p.is_dir()))
        return roots

    def _iter_sources(self, root: Path) -> Iterator[Path]:
        if not root.is_dir():
            return
        for path in sorted(root.rglob("*")):
            if "node_modules" in path.parts:
                continue
            if path.suffix in SOURCE_SUFFIXES and path.is_file():
                if any(marker in path.name for marker in _SKIP_MARKERS):
                    continue
                yield path

    def discover(self, folder: Optional[str] = None) -> List[DiscoveredComponent]:
        components: List[DiscoveredComponent] = []
        for root in self.roots(folder):
            for path in self._iter_sources(root):
                rel = "/" + path.relative_to(self.settings.root).as_posix()
                try:
                    content = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    log.debug("Skipping unreadable component %s: %s", rel, exc)
                    continue
                component = parse_component(content, rel, self.settings)
                if component is not None:
                    components.append(component)
        log.debug("Discovered %d components", len(components))
        return components
