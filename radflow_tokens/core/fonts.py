"""
Font Definitions

Reads ``@font-face`` rules into :class:`FontDefinition` entries, renders them
back, and discovers local font files on disk.

Family names for local files come from the font's own ``name`` table when
fontTools can read it; otherwise they are inferred from the filename
(``Mondwest-Bold.woff2`` -> ``Mondwest``, ``Inter-Sans-Italic.ttf`` ->
``Inter Sans``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from fontTools.ttLib import TTFont

from .css_utils import iter_declarations, iter_rules, mask_comments
from .logger import get_logger
from .models import FontDefinition, FontFile, FontSource

log = get_logger(__name__)

FONT_EXTENSIONS = ("woff2", "woff", "ttf", "otf")

# short format <-> CSS format() keyword
CSS_FORMATS = {"ttf": "truetype", "otf": "opentype", "woff": "woff", "woff2": "woff2"}
SHORT_FORMATS = {v: k for k, v in CSS_FORMATS.items()}

_FILENAME_WEIGHTS = {
    "thin": 100,
    "hairline": 100,
    "extralight": 200,
    "ultralight": 200,
    "light": 300,
    "regular": 400,
    "normal": 400,
    "book": 400,
    "medium": 500,
    "semibold": 600,
    "demibold": 600,
    "bold": 700,
    "extrabold": 800,
    "ultrabold": 800,
    "black": 900,
    "heavy": 900,
}
_FAMILY_QUALIFIERS = ("Sans", "Mono", "Serif")

_URL_PATTERN = re.compile(r"url\(\s*['\"]?([^'\")]+?)['\"]?\s*\)")
_FORMAT_PATTERN = re.compile(r"format\(\s*['\"]?([^'\")\s]+)['\"]?\s*\)")


def expand_font_weight(value: str) -> Tuple[int, Optional[int]]:
    """
    Parse a ``font-weight`` descriptor.

    Returns ``(weight, max_weight)``; ``max_weight`` is set only for a range
    such as ``"100 900"``. Keywords map to 400/700; garbage falls back to 400.
    """
    parts = value.split()
    numbers: List[int] = []
    for part in parts[:2]:
        if part == "normal":
            numbers.append(400)
        elif part == "bold":
            numbers.append(700)
        elif part.isdigit():
            numbers.append(int(part))
    if not numbers:
        return 400, None
    if len(numbers) == 1:
        return numbers[0], None
    low, high = sorted(numbers)
    return low, high


def infer_source(url: str) -> FontSource:
    if "fonts.gstatic.com" in url or "fonts.googleapis.com" in url:
        return "google"
    if url.startswith(("/", "./", "../")):
        return "local"
    return "remote"


def short_format(fmt: str, path: str = "") -> str:
    fmt = fmt.strip().lower()
    if fmt in SHORT_FORMATS:
        return SHORT_FORMATS[fmt]
    if fmt in CSS_FORMATS:
        return fmt
    ext = Path(path.split("?")[0]).suffix.lstrip(".").lower()
    return ext if ext in CSS_FORMATS else "woff2"


def _unquote(value: str) -> str:
    return value.strip().strip("'\"").strip()


def parse_font_faces(css: str) -> List[FontDefinition]:
    """Collect top-level ``@font-face`` rules, grouped by family in file order."""
    masked = mask_comments(css)
    fonts: Dict[str, FontDefinition] = {}
    for rule in iter_rules(css, masked=masked):
        if rule.prelude != "@font-face":
            continue
        decls = {
            d.name.lower(): d.value
            for d in iter_declarations(css, rule.body_start, rule.body_end, masked=masked)
        }
        family = _unquote(decls.get("font-family", "").split(",")[0])
        src = decls.get("src", "")
        url_match = _URL_PATTERN.search(src)
        if not family or not url_match:
            log.debug("Skipping @font-face without family or url")
            continue
        url = url_match.group(1).strip()
        fmt_match = _FORMAT_PATTERN.search(src)
        weight, max_weight = expand_font_weight(decls.get("font-weight", "400"))
        font_file = FontFile(
            path=url,
            format=short_format(fmt_match.group(1) if fmt_match else "", url),
            weight=weight,
            max_weight=max_weight,
            style=decls.get("font-style", "normal").strip() or "normal",
        )
        if family in fonts:
            fonts[family].files.append(font_file)
        else:
            fonts[family] = FontDefinition(
                family=family, files=[font_file], source=infer_source(url)
            )
    return list(fonts.values())


def render_font_face(family: str, font_file: FontFile) -> str:
    fmt = CSS_FORMATS.get(font_file.format, font_file.format)
    return (
        "@font-face {\n"
        f"  font-family: '{family}';\n"
        f"  src: url('{font_file.path}') format('{fmt}');\n"
        f"  font-weight: {font_file.weight_css};\n"
        f"  font-style: {font_file.style};\n"
        "  font-display: swap;\n"
        "}"
    )


def render_font_faces(fonts: List[FontDefinition]) -> List[str]:
    return [render_font_face(font.family, f) for font in fonts for f in font.files]


@dataclass
class FontMetadata:
    family: str
    weight: int = 400
    style: str = "normal"


def family_from_filename(filename: str) -> str:
    """``Joystix-Monospace-Regular.woff2`` -> ``Joystix Monospace``."""
    stem = filename.rsplit(".", 1)[0]
    parts = [p for p in re.split(r"[-_]", stem) if p]
    if not parts:
        return stem
    family = parts[0]
    if len(parts) > 1:
        if parts[1] in _FAMILY_QUALIFIERS:
            family = f"{parts[0]} {parts[1]}"
        elif parts[1].lower() == "monospace":
            family = f"{parts[0]} Monospace"
    return " ".join(word[:1].upper() + word[1:] for word in family.split())


def metadata_from_filename(filename: str) -> FontMetadata:
    stem = filename.rsplit(".", 1)[0].lower()
    tokens = re.split(r"[-_ ]", stem)
    weight = 400
    style = "normal"
    for token in tokens:
        if token in _FILENAME_WEIGHTS:
            weight = _FILENAME_WEIGHTS[token]
        elif token.endswith("italic") or token == "oblique":
            style = "italic"
            base = token[: -len("italic")]
            if base in _FILENAME_WEIGHTS:
                weight = _FILENAME_WEIGHTS[base]
    return FontMetadata(family=family_from_filename(filename), weight=weight, style=style)


def read_font_metadata(path: Path) -> Optional[FontMetadata]:
    """Family/weight/style from the font's name and OS/2 tables, or None."""
    try:
        font = TTFont(str(path), lazy=True)
    except Exception as exc:  # fontTools raises a wide range of errors for bad files
        log.debug("fontTools could not open %s: %s", path.name, exc)
        return None
    try:
        family = font["name"].getBestFamilyName()
        if not family:
            return None
        weight = 400
        style = "normal"
        if "OS/2" in font:
            os2 = font["OS/2"]
            weight = int(os2.usWeightClass) or 400
            if os2.fsSelection & 0x01:
                style = "italic"
        return FontMetadata(family=str(family), weight=weight, style=style)
    except Exception as exc:
        log.debug("Unreadable font tables in %s: %s", path.name, exc)
        return None
    finally:
        font.close()


def scan_font_directory(
    directory: Path, url_prefix: str, roles: Optional[Dict[str, str]] = None
) -> List[FontDefinition]:
    """
    Group the font files in ``directory`` into families.

    Args:
        directory: Folder holding ``.woff2/.woff/.ttf/.otf`` files
        url_prefix: Public URL prefix for ``FontFile.path``
        roles: ``role -> family`` from the theme's package.json

    Returns:
        Font definitions sorted by family
    """
    if not directory.is_dir():
        return []
    role_by_family = {family: role for role, family in (roles or {}).items()}
    families: Dict[str, FontDefinition] = {}
    prefix = url_prefix.rstrip("/")
    for path in sorted(directory.iterdir()):
        ext = path.suffix.lstrip(".").lower()
        if not path.is_file() or ext not in FONT_EXTENSIONS:
            continue
        meta = read_font_metadata(path) or metadata_from_filename(path.name)
        font_file = FontFile(
            path=f"{prefix}/{path.name}",
            format=ext,
            weight=meta.weight,
            style=meta.style,
            filename=path.name,
        )
        if meta.family not in families:
            families[meta.family] = FontDefinition(
                family=meta.family,
                source="local",
                role=role_by_family.get(meta.family),
            )
        families[meta.family].files.append(font_file)
    return sorted(families.values(), key=lambda f: f.family)
