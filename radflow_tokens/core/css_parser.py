"""
CSS Token Parser

Extracts a :class:`TokenModel` from theme CSS: the ``@theme inline`` and
``@theme`` blocks, colour-mode class blocks, ``@font-face`` rules and
``@layer base`` typography rules. Missing sections are simply empty.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .css_resolver import VariableResolver, reference_name, single_var_target
from .css_utils import CssRule, custom_properties, iter_rules, mask_comments
from .fonts import parse_font_faces
from .logger import get_logger
from .models import (
    BaseColor,
    ColorMode,
    FontDefinition,
    SemanticCategory,
    SemanticToken,
    TokenModel,
    TypographyStyle,
)
from .typography import APPLY_PATTERN, is_element_selector, parse_apply

log = get_logger(__name__)

DEFAULT_COLOR_MODES = ("dark", "light", "contrast")

_SEMANTIC_PREFIXES = (
    (("surface", "bg", "background"), "surface"),
    (("content", "text", "heading", "body"), "content"),
    (("edge", "border", "outline", "ring"), "edge"),
)


def is_theme_inline(prelude: str) -> bool:
    parts = prelude.split()
    return len(parts) >= 2 and parts[0] == "@theme" and "inline" in parts[1:]


def is_theme(prelude: str) -> bool:
    parts = prelude.split()
    return bool(parts) and parts[0] == "@theme" and "inline" not in parts[1:]


def is_layer_base(prelude: str) -> bool:
    return prelude == "@layer base"


def mode_class(prelude: str) -> Optional[str]:
    """``.dark`` -> ``dark``; None for anything that is not a lone class selector."""
    if not prelude.startswith(".") or len(prelude) < 2:
        return None
    name = prelude[1:]
    if all(ch.isalnum() or ch in "-_" for ch in name):
        return name
    return None


def semantic_category(name: str) -> SemanticCategory:
    head = name.split("-", 1)[0]
    for prefixes, category in _SEMANTIC_PREFIXES:
        if head in prefixes:
            return category  # type: ignore[return-value]
    return "system"


@dataclass
class ParsedCss:
    """Raw maps pulled out of one stylesheet before classification."""

    theme_inline: Dict[str, str] = field(default_factory=dict)
    theme: Dict[str, str] = field(default_factory=dict)
    color_modes: Dict[str, Dict[str, str]] = field(default_factory=dict)
    fonts: List[FontDefinition] = field(default_factory=list)
    typography: List[TypographyStyle] = field(default_factory=list)

    @property
    def variables(self) -> Dict[str, str]:
        """Combined theme maps; ``@theme`` wins over ``@theme inline``."""
        combined = dict(self.theme_inline)
        combined.update(self.theme)
        return combined

    def resolve_variable(self, name: str) -> Optional[str]:
        return VariableResolver(self.variables).resolve(name)


def parse_layer_base(css: str, masked: Optional[str] = None) -> List[TypographyStyle]:
    masked = mask_comments(css) if masked is None else masked
    styles: List[TypographyStyle] = []
    for layer in iter_rules(css, masked=masked):
        if not is_layer_base(layer.prelude):
            continue
        for rule in iter_rules(css, layer.body_start, layer.body_end, masked=masked):
            if not is_element_selector(rule.prelude):
                continue
            match = APPLY_PATTERN.search(masked, rule.body_start, rule.body_end)
            if match:
                styles.append(parse_apply(rule.prelude, match.group(1)))
        break
    return styles


def parse_css(css: str, color_modes: Iterable[str] = DEFAULT_COLOR_MODES) -> ParsedCss:
    """Locate the token-bearing sections of ``css``."""
    masked = mask_comments(css)
    allowed = set(color_modes)
    parsed = ParsedCss()
    rules: List[CssRule] = list(iter_rules(css, masked=masked))
    for rule in rules:
        if is_theme_inline(rule.prelude):
            parsed.theme_inline.update(custom_properties(css, rule, masked=masked))
        elif is_theme(rule.prelude):
            parsed.theme.update(custom_properties(css, rule, masked=masked))
        else:
            name = mode_class(rule.prelude)
            if name and name in allowed:
                props = custom_properties(css, rule, masked=masked)
                if props:
                    parsed.color_modes.setdefault(name, {}).update(props)
    parsed.fonts = parse_font_faces(css)
    parsed.typography = parse_layer_base(css, masked)
    return parsed


def _base_color(prop: str, value: str) -> Optional[BaseColor]:
    if prop.startswith("--brand-"):
        return BaseColor(name=prop[len("--brand-"):], value=value, category="brand")
    if prop.startswith("--neutral-"):
        return BaseColor(name=prop[len("--neutral-"):], value=value, category="neutral")
    name = prop[len("--color-"):]
    category = "neutral" if name.startswith("neutral-") else "brand"
    return BaseColor(name=name, value=value, category=category)


def to_token_model(parsed: ParsedCss) -> TokenModel:
    """
    Classify raw custom properties into tokens by their naming prefix.

    ``--color-*`` in ``@theme`` is always semantic; in ``@theme inline`` it is
    a base colour unless its value is a single ``var()``.
    """
    model = TokenModel(fonts=parsed.fonts, typography=parsed.typography)
    for prop, value in parsed.variables.items():
        if prop.startswith("--color-"):
            if prop in parsed.theme or single_var_target(value) is not None:
                name = prop[len("--color-"):]
                model.semantic_tokens.append(
                    SemanticToken(
                        name=name,
                        reference=reference_name(value) or value,
                        category=semantic_category(name),
                    )
                )
            else:
                model.base_colors.append(_base_color(prop, value))
        elif prop.startswith(("--brand-", "--neutral-")):
            model.base_colors.append(_base_color(prop, value))
        elif prop.startswith("--radius-"):
            model.border_radius[prop[len("--radius-"):]] = value
        elif prop.startswith("--shadow-"):
            model.shadows[prop[len("--shadow-"):]] = value
        else:
            model.variables[prop] = value

    for mode, props in parsed.color_modes.items():
        overrides: Dict[str, str] = {}
        for prop, value in props.items():
            if not prop.startswith("--color-"):
                continue
            overrides[prop[len("--color-"):]] = reference_name(value) or value
        if overrides:
            model.color_modes.append(ColorMode(name=mode, overrides=overrides))
    return model


def parse_stylesheet(
    css: str, color_modes: Iterable[str] = DEFAULT_COLOR_MODES
) -> TokenModel:
    return to_token_model(parse_css(css, color_modes))


def parse_files(
    paths: Sequence[Path], color_modes: Iterable[str] = DEFAULT_COLOR_MODES
) -> TokenModel:
    """Parse and merge several files in order, skipping the ones that do not exist."""
    model = TokenModel()
    modes = tuple(color_modes)
    for path in paths:
        if not path.is_file():
            log.debug("Skipping missing %s", path)
            continue
        model = model.merge(parse_stylesheet(path.read_text(encoding="utf-8"), modes))
    return model
