"""
CSS Token Patcher

Applies typed change-sets to theme CSS text in place. Every edit locates its
section with the same scanner the parser uses and rewrites only that span,
so comments, unrelated rules and whitespace pass through untouched.

Applying the same change-set twice is a no-op the second time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .css_parser import (
    DEFAULT_COLOR_MODES,
    is_layer_base,
    is_theme,
    is_theme_inline,
    mode_class,
    parse_stylesheet,
)
from .css_resolver import format_reference, is_literal
from .css_utils import (
    append_declarations,
    custom_properties,
    detect_indent,
    find_rule,
    iter_rules,
    mask_comments,
    remove_property,
    remove_rule,
    set_property_value,
    splice_chunk,
    validate_css_value,
    validate_token_name,
)
from .errors import InvalidRequestError, validation_problems
from .fonts import render_font_faces
from .logger import get_logger
from .models import BaseColor, ColorMode, FontDefinition, SemanticToken, TokenModel, TypographyStyle
from .typography import APPLY_PATTERN, style_classes

log = get_logger(__name__)

TAILWIND_IMPORT_PATTERN = re.compile(
    r"""@import\s+(?:url\(\s*)?["']tailwindcss["']\s*\)?[^;]*;"""
)
IMPORT_PATTERN = re.compile(r"@import\b[^;]*;")
MODES_HEADER = (
    "/* ============================================\n"
    "   COLOR MODES (DevTools managed)\n"
    "   ============================================ */"
)
MODES_HEADER_PATTERN = re.compile(
    r"/\*[\s=]*COLOR MODES \(DevTools managed\)[\s=]*\*/\s*"
)
SCROLLBAR_COMMENT_PATTERN = re.compile(
    r"/\*(?:(?!\*/).)*?scrollbar(?:(?!\*/).)*?\*/", re.IGNORECASE | re.DOTALL
)


@dataclass
class PatchOutcome:
    """Patched text plus which keys changed and which were not found."""

    css: str
    updated: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)

    @property
    def changed_count(self) -> int:
        return len(self.updated)


@dataclass
class TokenValueChanges:
    """Partial change-set for single-value edits in a tokens file."""

    colors: Dict[str, str] = field(default_factory=dict)
    radius: Dict[str, str] = field(default_factory=dict)
    shadows: Dict[str, str] = field(default_factory=dict)
    add_colors: List[BaseColor] = field(default_factory=list)
    remove_colors: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenValueChanges":
        """Build from a camelCase request body (``addColors``, ``removeColors``)."""
        try:
            add_colors = [
                c if isinstance(c, BaseColor) else BaseColor.model_validate(c)
                for c in payload.get("addColors") or payload.get("add_colors") or []
            ]
        except ValidationError as exc:
            raise InvalidRequestError(
                "Invalid addColors entry", details={"problems": validation_problems(exc)}
            ) from exc
        return cls(
            colors=dict(payload.get("colors") or {}),
            radius=dict(payload.get("radius") or {}),
            shadows=dict(payload.get("shadows") or {}),
            add_colors=add_colors,
            remove_colors=list(
                payload.get("removeColors") or payload.get("remove_colors") or []
            ),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.colors or self.radius or self.shadows or self.add_colors or self.remove_colors
        )

    def validate(self) -> None:
        if self.is_empty:
            raise InvalidRequestError("No values provided")
        problems: List[str] = []
        for section, values in (
            ("colors", self.colors),
            ("radius", self.radius),
            ("shadows", self.shadows),
        ):
            for name, value in values.items():
                if not validate_token_name(name):
                    problems.append(f"{section}: invalid name {name!r}")
                elif not isinstance(value, str) or not validate_css_value(value):
                    problems.append(f"{section}.{name}: invalid value {value!r}")
        for color in self.add_colors:
            if not validate_token_name(color.name):
                problems.append(f"addColors: invalid name {color.name!r}")
            elif not validate_css_value(color.value):
                problems.append(f"addColors.{color.name}: invalid value {color.value!r}")
        for name in self.remove_colors:
            if not validate_token_name(name):
                problems.append(f"removeColors: invalid name {name!r}")
        if problems:
            raise InvalidRequestError("Invalid token values", details={"problems": problems})


def base_color_property(color: BaseColor) -> str:
    """Property a base colour is written as; keeps its category readable on re-parse."""
    if color.category == "neutral" and not color.name.startswith("neutral-"):
        return f"--neutral-{color.name}"
    if color.category == "brand" and color.name.startswith("neutral-"):
        return f"--brand-{color.name}"
    return f"--color-{color.name}"


def _base_color_candidates(color: BaseColor) -> List[str]:
    props = [f"--color-{color.name}"]
    legacy = f"--{color.category}-{color.name}"
    if legacy not in props:
        props.append(legacy)
    return props


def render_block(prelude: str, lines: Iterable[str]) -> str:
    body = "".join(f"  {line}\n" for line in lines)
    return f"{prelude} {{\n{body}}}"


def render_mode(mode: ColorMode) -> str:
    return render_block(
        f".{mode.name}",
        (f"--color-{token}: {format_reference(ref)};" for token, ref in mode.overrides.items()),
    )


def render_layer_rule(element: str, classes: Sequence[str], indent: str = "  ") -> str:
    return f"{indent}{element} {{\n{indent}  @apply {' '.join(classes)};\n{indent}}}"


def import_insertion_point(css: str, masked: Optional[str] = None) -> int:
    """Offset just after ``@import "tailwindcss"``, else after the last leading import, else 0."""
    masked = mask_comments(css) if masked is None else masked
    match = TAILWIND_IMPORT_PATTERN.search(masked)
    if match:
        return match.end()
    first_rule = next(iter_rules(css, masked=masked), None)
    limit = first_rule.start if first_rule else len(css)
    end = 0
    for match in IMPORT_PATTERN.finditer(masked, 0, limit):
        end = match.end()
    return end


def mode_insertion_point(css: str, masked: Optional[str] = None) -> int:
    masked = mask_comments(css) if masked is None else masked
    root = find_rule(css, lambda p: p.startswith(":root"), masked=masked)
    if root is not None:
        return root.start
    comment = SCROLLBAR_COMMENT_PATTERN.search(css)
    if comment is not None:
        return comment.start()
    return len(css)


class CssPatcher:
    """
    Surgical editor for theme CSS.

    ``color_modes`` is the allow-list of class names treated as colour
    modes; stale blocks for these names are cleared on every mode rewrite.
    """

    def __init__(self, color_modes: Sequence[str] = DEFAULT_COLOR_MODES):
        self.color_modes = tuple(color_modes)

    # ------------------------------------------------------------------ values

    def _set(self, outcome: PatchOutcome, prop: str, value: str, key: str) -> bool:
        updated, matched = set_property_value(outcome.css, prop, value)
        if not matched:
            return False
        if updated != outcome.css:
            outcome.updated.append(key)
            outcome.css = updated
        return True

    def _append_theme_lines(self, css: str, lines: List[str], *, inline: bool) -> str:
        if not lines:
            return css
        masked = mask_comments(css)
        predicate = is_theme_inline if inline else is_theme
        rule = find_rule(css, predicate, masked=masked)
        if rule is not None:
            return append_declarations(css, rule, lines)
        if inline:
            pos = import_insertion_point(css, masked)
            return splice_chunk(css, pos, render_block("@theme inline", lines))
        anchor = find_rule(css, is_theme_inline, masked=masked)
        pos = anchor.end if anchor is not None else import_insertion_point(css, masked)
        return splice_chunk(css, pos, render_block("@theme", lines))

    def apply_token_values(self, css: str, changes: TokenValueChanges) -> PatchOutcome:
        """Apply colour/radius/shadow edits, removals, then additions."""
        outcome = PatchOutcome(css)
        for name, value in changes.colors.items():
            if not self._set(outcome, f"--color-{name}", value, f"colors.{name}"):
                outcome.not_found.append(f"colors.{name}")
        for name, value in changes.radius.items():
            if not self._set(outcome, f"--radius-{name}", value, f"radius.{name}"):
                outcome.not_found.append(f"radius.{name}")
        for name, value in changes.shadows.items():
            if not self._set(outcome, f"--shadow-{name}", value, f"shadows.{name}"):
                outcome.not_found.append(f"shadows.{name}")

        for name in changes.remove_colors:
            outcome.css, removed = remove_property(outcome.css, f"--color-{name}")
            if removed:
                outcome.updated.append(f"removeColors.{name}")
            else:
                outcome.not_found.append(f"removeColors.{name}")

        for color in changes.add_colors:
            key = f"addColors.{color.name}"
            if self._set(outcome, color.property_name, color.value, key):
                continue
            outcome.css = self._append_theme_lines(
                outcome.css, [f"{color.property_name}: {color.value};"], inline=True
            )
            outcome.updated.append(key)
        return outcome

    def apply_semantic_mappings(
        self,
        css: str,
        mappings: Mapping[str, str],
        known_base_colors: Optional[Collection[str]] = None,
    ) -> PatchOutcome:
        """Point semantic tokens at new base colours; only the value changes."""
        outcome = PatchOutcome(css)
        for token, base in mappings.items():
            if known_base_colors is not None and base not in known_base_colors:
                outcome.unresolved.append(token)
                continue
            if not self._set(outcome, f"--color-{token}", f"var(--color-{base})", token):
                outcome.not_found.append(token)
        return outcome

    # ---------------------------------------------------------------- sections

    def sync_theme_blocks(
        self,
        css: str,
        *,
        base_colors: Optional[List[BaseColor]] = None,
        border_radius: Optional[Mapping[str, str]] = None,
        shadows: Optional[Mapping[str, str]] = None,
        semantic_tokens: Optional[List[SemanticToken]] = None,
    ) -> PatchOutcome:
        """
        Bring the ``@theme`` blocks in line with a full token list.

        Base colours are set in place or appended; base colours on disk that
        are missing from ``base_colors`` are removed. Radius, shadow and
        semantic entries are set or appended, never removed.
        """
        outcome = PatchOutcome(css)
        known: Optional[set] = None
        if base_colors is not None:
            known = {c.name for c in base_colors}
            existing = parse_stylesheet(css, self.color_modes).base_colors
            inline_lines: List[str] = []
            for color in base_colors:
                found = False
                for prop in _base_color_candidates(color):
                    found = self._set(outcome, prop, color.value, f"baseColors.{color.name}") or found
                if not found:
                    inline_lines.append(f"{base_color_property(color)}: {color.value};")
                    outcome.updated.append(f"baseColors.{color.name}")
            for color in existing:
                if color.name in known:
                    continue
                for prop in _base_color_candidates(color):
                    outcome.css, removed = remove_property(outcome.css, prop)
                    if removed:
                        outcome.updated.append(f"removed.{color.name}")
            outcome.css = self._append_theme_lines(outcome.css, inline_lines, inline=True)

        theme_lines: List[str] = []
        for section, prefix, values in (
            ("borderRadius", "--radius-", border_radius),
            ("shadows", "--shadow-", shadows),
        ):
            for name, value in (values or {}).items():
                if not self._set(outcome, f"{prefix}{name}", value, f"{section}.{name}"):
                    theme_lines.append(f"{prefix}{name}: {value};")
                    outcome.updated.append(f"{section}.{name}")

        if semantic_tokens:
            if known is None:
                known = {c.name for c in parse_stylesheet(css, self.color_modes).base_colors}
            for token in semantic_tokens:
                ref = token.reference.strip()
                bare = not ref.startswith(("var(", "--")) and not is_literal(ref)
                if bare and ref not in known:
                    outcome.unresolved.append(token.name)
                    value = ref
                else:
                    value = format_reference(ref)
                if not self._set(outcome, token.property_name, value, f"semanticTokens.{token.name}"):
                    theme_lines.append(f"{token.property_name}: {value};")
                    outcome.updated.append(f"semanticTokens.{token.name}")

        outcome.css = self._append_theme_lines(outcome.css, theme_lines, inline=False)
        return outcome

    def rewrite_font_faces(self, css: str, fonts: List[FontDefinition]) -> PatchOutcome:
        """Replace every top-level ``@font-face`` with blocks generated from ``fonts``."""
        masked = mask_comments(css)
        faces = [r for r in iter_rules(css, masked=masked) if r.prelude == "@font-face"]
        updated = css
        for rule in reversed(faces):
            updated = remove_rule(updated, rule)
        chunks = render_font_faces(fonts)
        if chunks:
            updated = splice_chunk(updated, import_insertion_point(updated), "\n\n".join(chunks))
        return PatchOutcome(updated, updated=["fonts"] if updated != css else [])

    def rewrite_layer_base(self, css: str, styles: List[TypographyStyle]) -> PatchOutcome:
        """Update each element's ``@apply`` inside the first ``@layer base`` block."""
        outcome = PatchOutcome(css)
        projected = [(style.element, style_classes(style)) for style in styles]

        if find_rule(css, is_layer_base) is None:
            rules = [render_layer_rule(el, classes) for el, classes in projected if classes]
            if rules:
                block = "@layer base {\n" + "\n\n".join(rules) + "\n}"
                outcome.css = splice_chunk(css, len(css), block)
                outcome.updated.extend(el for el, classes in projected if classes)
            return outcome

        for element, classes in projected:
            before = outcome.css
            outcome.css = self._rewrite_element_rule(outcome.css, element, classes)
            if outcome.css != before:
                outcome.updated.append(element)
        return outcome

    def _rewrite_element_rule(self, css: str, element: str, classes: List[str]) -> str:
        masked = mask_comments(css)
        layer = find_rule(css, is_layer_base, masked=masked)
        if layer is None:
            return css
        inner = find_rule(
            css, lambda p: p == element, layer.body_start, layer.body_end, masked=masked
        )
        if inner is None:
            if not classes:
                return css
            indent = detect_indent(css, layer, masked=masked)
            k = layer.body_end
            while k > layer.body_start and css[k - 1].isspace():
                k -= 1
            lead = "\n\n" if k > layer.body_start else "\n"
            return css[:k] + lead + render_layer_rule(element, classes, indent) + "\n" + css[layer.body_end:]
        if not classes:
            return remove_rule(css, inner, leading=True)
        statement = f"@apply {' '.join(classes)};"
        match = APPLY_PATTERN.search(masked, inner.body_start, inner.body_end)
        if match is not None:
            return css[: match.start()] + statement + css[match.end():]
        return append_declarations(css, inner, [statement])

    def rewrite_color_modes(self, css: str, modes: List[ColorMode]) -> PatchOutcome:
        """
        Regenerate colour-mode class blocks.

        Blocks for every requested mode are removed, as are blocks for any other
        allow-listed mode that still carries declarations. Modes with at least
        one override are then emitted together under the managed header.
        """
        unknown = [m.name for m in modes if m.name not in self.color_modes]
        if unknown:
            raise InvalidRequestError(
                "Unknown colour mode", details={"modes": unknown, "allowed": list(self.color_modes)}
            )
        requested = {m.name for m in modes}
        masked = mask_comments(css)
        stale = []
        for rule in iter_rules(css, masked=masked):
            name = mode_class(rule.prelude)
            if name is None:
                continue
            if name in requested or (
                name in self.color_modes and custom_properties(css, rule, masked=masked)
            ):
                stale.append(rule)
        updated = css
        for rule in reversed(stale):
            updated = remove_rule(updated, rule)
        updated = MODES_HEADER_PATTERN.sub("", updated)

        blocks = [render_mode(m) for m in modes if m.overrides]
        if blocks:
            chunk = MODES_HEADER + "\n\n" + "\n\n".join(blocks)
            updated = splice_chunk(updated, mode_insertion_point(updated), chunk)
        return PatchOutcome(updated, updated=sorted(requested) if updated != css else [])


def generate_stylesheet(model: TokenModel) -> str:
    """Render a complete stylesheet for ``model``; parsing it gives ``model`` back."""
    parts = ['@import "tailwindcss";']
    parts.extend(render_font_faces(model.fonts))

    inline_lines = [f"{base_color_property(c)}: {c.value};" for c in model.base_colors]
    inline_lines += [f"{name}: {value};" for name, value in model.variables.items()]
    if inline_lines:
        parts.append(render_block("@theme inline", inline_lines))

    theme_lines = [
        f"{t.property_name}: {format_reference(t.reference)};" for t in model.semantic_tokens
    ]
    theme_lines += [f"--radius-{k}: {v};" for k, v in model.border_radius.items()]
    theme_lines += [f"--shadow-{k}: {v};" for k, v in model.shadows.items()]
    if theme_lines:
        parts.append(render_block("@theme", theme_lines))

    rules = [
        render_layer_rule(style.element, style_classes(style))
        for style in model.typography
        if style_classes(style)
    ]
    if rules:
        parts.append("@layer base {\n" + "\n\n".join(rules) + "\n}")

    modes = [render_mode(m) for m in model.color_modes if m.overrides]
    if modes:
        parts.append(MODES_HEADER)
        parts.extend(modes)
    return "\n\n".join(parts) + "\n"
