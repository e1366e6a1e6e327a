from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .logger import get_logger

log = get_logger(__name__)

__all__ = [
    "CssRule",
    "Declaration",
    "strip_comments",
    "mask_comments",
    "match_brace",
    "iter_rules",
    "find_rule",
    "iter_declarations",
    "custom_properties",
    "property_pattern",
    "set_property_value",
    "remove_property",
    "append_declarations",
    "remove_rule",
    "splice_chunk",
    "detect_indent",
    "validate_token_name",
    "validate_css_value",
]

_COMMENT_PATTERN = re.compile(r"/\*.*?\*/", re.DOTALL)
_TOKEN_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][\w-]*$")


def strip_comments(css: str) -> str:
    """Remove ``/* ... */`` comments."""
    return _COMMENT_PATTERN.sub("", css)


def _skip_string(text: str, i: int) -> int:
    quote = text[i]
    i += 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == quote or c == "\n":
            return i + 1
        i += 1
    return n


def mask_comments(css: str) -> str:
    """Blank out comment contents while keeping every offset (and newline) intact.

    Searching the masked text and slicing the original with the same offsets is
    how every locate-then-edit operation in this package works.
    """
    out = list(css)
    i = 0
    n = len(css)
    while i < n:
        c = css[i]
        if c in "\"'":
            i = _skip_string(css, i)
            continue
        if c == "/" and i + 1 < n and css[i + 1] == "*":
            end = css.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if out[j] != "\n":
                    out[j] = " "
            i = end
            continue
        i += 1
    return "".join(out)


def match_brace(text: str, open_index: int, end: Optional[int] = None) -> int:
    """Index of the ``}`` closing the ``{`` at ``open_index``, or -1 if unbalanced."""
    end = len(text) if end is None else end
    depth = 0
    i = open_index
    while i < end:
        c = text[i]
        if c in "\"'":
            i = _skip_string(text, i)
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


@dataclass(frozen=True)
class CssRule:
    """A ``prelude { body }`` span. ``body_end`` is the index of the closing brace."""

    prelude: str
    start: int
    body_start: int
    body_end: int
    end: int

    def body(self, css: str) -> str:
        return css[self.body_start : self.body_end]

    def text(self, css: str) -> str:
        return css[self.start : self.end]


def iter_rules(
    css: str,
    start: int = 0,
    end: Optional[int] = None,
    *,
    masked: Optional[str] = None,
) -> Iterator[CssRule]:
    """Yield the rules at nesting depth 0 of ``css[start:end]``.

    Statements ending in ``;`` (``@import``, declarations) are skipped. The
    prelude is whitespace-normalised and has comments removed.
    """
    masked = mask_comments(css) if masked is None else masked
    end = len(css) if end is None else end
    i = start
    prelude_start: Optional[int] = None
    while i < end:
        c = masked[i]
        if c in "\"'":
            if prelude_start is None:
                prelude_start = i
            i = _skip_string(masked, i)
            continue
        if c == ";" or c == "}":
            prelude_start = None
            i += 1
            continue
        if c == "{":
            close = match_brace(masked, i, end)
            if close == -1:
                log.debug("Unbalanced '{' at offset %s; stopping rule scan", i)
                return
            ps = i if prelude_start is None else prelude_start
            yield CssRule(
                prelude=" ".join(masked[ps:i].split()),
                start=ps,
                body_start=i + 1,
                body_end=close,
                end=close + 1,
            )
            i = close + 1
            prelude_start = None
            continue
        if prelude_start is None and not c.isspace():
            prelude_start = i
        i += 1


def find_rule(
    css: str,
    predicate: Callable[[str], bool],
    start: int = 0,
    end: Optional[int] = None,
    *,
    masked: Optional[str] = None,
) -> Optional[CssRule]:
    masked = mask_comments(css) if masked is None else masked
    for rule in iter_rules(css, start, end, masked=masked):
        if predicate(rule.prelude):
            return rule
    return None


@dataclass(frozen=True)
class Declaration:
    name: str
    value: str
    start: int
    value_start: int
    value_end: int
    end: int


def iter_declarations(
    css: str,
    start: int = 0,
    end: Optional[int] = None,
    *,
    masked: Optional[str] = None,
) -> Iterator[Declaration]:
    """Yield ``name: value`` declarations at depth 0 of ``css[start:end]``.

    Nested blocks are skipped, semicolons inside parentheses or strings do not
    terminate a value, and a last declaration without ``;`` is accepted.
    """
    masked = mask_comments(css) if masked is None else masked
    end = len(css) if end is None else end
    i = start
    while i < end:
        while i < end and masked[i].isspace():
            i += 1
        if i >= end:
            break
        seg = i
        depth = 0
        j = i
        while j < end:
            c = masked[j]
            if c in "\"'":
                j = _skip_string(masked, j)
                continue
            if c == "(":
                depth += 1
            elif c == ")":
                depth = max(0, depth - 1)
            elif depth == 0 and c in ";{}":
                break
            j += 1
        j = min(j, end)
        stop = masked[j] if j < end else ""
        if stop == "{":
            close = match_brace(masked, j, end)
            i = end if close == -1 else close + 1
            continue
        if stop == "}":
            i = j + 1
            continue

        segment = masked[seg:j]
        colon = segment.find(":")
        if colon > 0:
            name = segment[:colon].strip()
            if name and not name.startswith("@") and _is_property_name(name):
                vs = seg + colon + 1
                while vs < j and masked[vs].isspace():
                    vs += 1
                ve = j
                while ve > vs and masked[ve - 1].isspace():
                    ve -= 1
                yield Declaration(
                    name=name,
                    value=" ".join(masked[vs:ve].split()),
                    start=seg,
                    value_start=vs,
                    value_end=ve,
                    end=j + 1 if stop == ";" else j,
                )
        i = j + 1


def _is_property_name(name: str) -> bool:
    return re.fullmatch(r"-{0,2}[A-Za-z_][\w-]*", name) is not None


def custom_properties(
    css: str, rule: CssRule, *, masked: Optional[str] = None
) -> Dict[str, str]:
    """``--name -> value`` for the depth-0 custom properties of a rule body."""
    props: Dict[str, str] = {}
    for decl in iter_declarations(css, rule.body_start, rule.body_end, masked=masked):
        if decl.name.startswith("--"):
            props[decl.name] = decl.value
    return props


def property_pattern(prop_name: str) -> re.Pattern:
    """Match one declaration of exactly ``prop_name``.

    Groups: 1 = ``name:`` plus spacing, 2 = value, 3 = ``;``. The lookbehind
    stops ``--bg-color-sun`` from matching ``--color-sun``; the colon stops
    ``--color-sun-yellow`` from matching it.
    """
    return re.compile(
        r"(?<![\w-])(" + re.escape(prop_name) + r"\s*:\s*)([^;{}]*?)(\s*;)"
    )


def set_property_value(
    css: str,
    prop_name: str,
    value: str,
    *,
    start: int = 0,
    end: Optional[int] = None,
) -> Tuple[str, int]:
    """Replace the value of every live ``prop_name`` declaration.

    Returns the new text and how many declarations matched. Commented-out
    declarations are left alone.
    """
    masked = mask_comments(css)
    end = len(css) if end is None else end
    pattern = property_pattern(prop_name)
    matches = list(pattern.finditer(masked, start, end))
    updated = css
    for match in reversed(matches):
        updated = updated[: match.start(2)] + value + updated[match.end(2) :]
    return updated, len(matches)


def remove_property(css: str, prop_name: str) -> Tuple[str, int]:
    """Delete whole ``prop_name`` declaration lines, including their leading newline."""
    masked = mask_comments(css)
    pattern = re.compile(
        r"\n?[ \t]*(?<![\w-])" + re.escape(prop_name) + r"\s*:\s*[^;{}]*;"
    )
    matches = list(pattern.finditer(masked))
    updated = css
    for match in reversed(matches):
        updated = updated[: match.start()] + updated[match.end() :]
    return updated, len(matches)


def detect_indent(css: str, rule: CssRule, *, masked: Optional[str] = None) -> str:
    """Indentation of the first thing inside a rule body (two spaces if empty)."""
    masked = mask_comments(css) if masked is None else masked
    body = masked[rule.body_start : rule.body_end]
    for line in body.split("\n")[1:]:
        if line.strip():
            return line[: len(line) - len(line.lstrip())]
    return "  "


def _body_insertion_point(css: str, rule: CssRule) -> int:
    k = rule.body_end
    while k > rule.body_start and css[k - 1].isspace():
        k -= 1
    return k


def append_declarations(
    css: str, rule: CssRule, lines: List[str], *, separator: str = "\n"
) -> str:
    """Insert ``lines`` just before the closing brace of ``rule``."""
    if not lines:
        return css
    indent = detect_indent(css, rule)
    k = _body_insertion_point(css, rule)
    lead = separator if k > rule.body_start else "\n"
    insertion = lead + "\n".join(f"{indent}{line}" for line in lines)
    if "\n" not in css[k : rule.body_end]:
        insertion += "\n"
    return css[:k] + insertion + css[k:]


def remove_rule(css: str, rule: CssRule, *, leading: bool = False) -> str:
    """Delete a rule plus the whitespace after it (or before it with ``leading``)."""
    if leading:
        start = rule.start
        while start > 0 and css[start - 1].isspace():
            start -= 1
        return css[:start] + css[rule.end :]
    end = rule.end
    while end < len(css) and css[end].isspace():
        end += 1
    return css[: rule.start] + css[end:]


def splice_chunk(css: str, pos: int, chunk: str) -> str:
    """Insert ``chunk`` at ``pos`` separated by exactly one blank line on each side.

    Whitespace around ``pos`` is normalised; this is what makes remove-then-insert
    rewrites reproduce their own output.
    """
    head = css[:pos].rstrip()
    tail = css[pos:].lstrip()
    result = (head + "\n\n" if head else "") + chunk
    return result + ("\n\n" + tail if tail else "\n")


def validate_token_name(name: str) -> bool:
    return bool(name) and _TOKEN_NAME_PATTERN.match(name) is not None


def validate_css_value(value: str) -> bool:
    value = value.strip()
    return bool(value) and not any(ch in value for ch in ";{}")
