"""
CSS Variable Resolver

Follows ``var()`` chains through a theme's custom properties and formats
base-colour references for writing back into CSS.
"""

from __future__ import annotations
from typing import Dict, Optional, Set, Tuple
import re

from .logger import get_logger

log = get_logger(__name__)

VAR_REFERENCE_PATTERN = re.compile(r"var\(\s*(--[\w-]+)\s*(?:,\s*([^()]*(?:\([^()]*\)[^()]*)*))?\)")
SINGLE_VAR_PATTERN = re.compile(r"^var\(\s*(--[\w-]+)\s*(?:,\s*(.+))?\)$", re.DOTALL)

CSS_WIDE_KEYWORDS = frozenset(
    {"transparent", "currentcolor", "inherit", "initial", "unset", "revert"}
)


def single_var_target(value: str) -> Optional[Tuple[str, Optional[str]]]:
    """
    Return ``(target, fallback)`` when the whole value is one ``var()`` call.

    Args:
        value: Raw declaration value, e.g. ``var(--color-sun-yellow)``

    Returns:
        Target property name and optional fallback text, or None
    """
    match = SINGLE_VAR_PATTERN.match(value.strip())
    if not match:
        return None
    fallback = match.group(2)
    return match.group(1), fallback.strip() if fallback else None


def reference_name(value: str) -> Optional[str]:
    """Base-colour name a ``var(--color-x)`` value points at, else the bare target."""
    target = single_var_target(value)
    if target is None:
        return None
    prop = target[0]
    if prop.startswith("--color-"):
        return prop[len("--color-"):]
    return prop


def is_literal(value: str) -> bool:
    """True for colour literals and keywords that must be written verbatim."""
    value = value.strip()
    if not value:
        return False
    return (
        value.startswith("#")
        or value[0].isdigit()
        or "(" in value
        or any(ch.isspace() for ch in value)
        or value.lower() in CSS_WIDE_KEYWORDS
    )


def format_reference(reference: str) -> str:
    """
    Render a token reference as a CSS value.

    ``--x`` becomes ``var(--x)``; ``var(...)`` and literals pass through;
    any other bare name is a base colour and becomes ``var(--color-<name>)``.
    """
    reference = reference.strip()
    if reference.startswith("var("):
        return reference
    if reference.startswith("--"):
        return f"var({reference})"
    if is_literal(reference):
        return reference
    return f"var(--color-{reference})"


class VariableResolver:
    """
    Resolves custom property references within a flat variable map.
    """

    def __init__(self, variables: Optional[Dict[str, str]] = None):
        """
        Initialize resolver.

        Args:
            variables: Mapping of property name to raw value,
                       e.g. ``{'--color-surface': 'var(--color-cream)'}``
        """
        self.variables = variables or {}

    def resolve(self, name: str) -> Optional[str]:
        """
        Follow a pure ``var()`` chain to its final value.

        Args:
            name: Property name, with or without the leading ``--``

        Returns:
            The terminal literal, or None when the chain is unresolved or cyclic
        """
        if not name.startswith("--"):
            name = f"--{name}"
        return self._resolve(name, set())

    def _resolve(self, name: str, seen: Set[str]) -> Optional[str]:
        if name in seen:
            log.debug(f"Cyclic reference through {name}")
            return None
        seen.add(name)
        value = self.variables.get(name)
        if value is None:
            return None
        target = single_var_target(value)
        if target is None:
            return value.strip()
        prop, fallback = target
        if prop not in self.variables and fallback:
            nested = single_var_target(fallback)
            if nested is None:
                return fallback
            return self._resolve(nested[0], seen)
        return self._resolve(prop, seen)

    def resolve_value(self, value: str, max_depth: int = 10) -> Tuple[str, Set[str]]:
        """
        Substitute every ``var()`` reference inside a composite value.

        Args:
            value: CSS value (may contain several var() references)
            max_depth: Maximum nesting depth followed

        Returns:
            Tuple of (resolved_value, set_of_variables_used). Unknown
            references without a fallback are left in place.
        """
        return self._resolve_value(value, max_depth, ())

    def _resolve_value(
        self, value: str, max_depth: int, stack: Tuple[str, ...]
    ) -> Tuple[str, Set[str]]:
        if not value or max_depth <= 0:
            return value, set()

        used: Set[str] = set()
        resolved = value
        for match in reversed(list(VAR_REFERENCE_PATTERN.finditer(value))):
            var_name, fallback = match.group(1), match.group(2)
            used.add(var_name)
            if var_name in stack:
                log.debug(f"Cyclic reference through {var_name}")
                continue

            replacement = self.variables.get(var_name)
            if replacement is None and fallback:
                replacement = fallback.strip()
            if replacement is None:
                log.debug(f"Variable {var_name} not defined")
                continue

            if "var(" in replacement:
                replacement, nested = self._resolve_value(
                    replacement, max_depth - 1, stack + (var_name,)
                )
                used.update(nested)
            resolved = resolved[: match.start()] + replacement + resolved[match.end():]

        return resolved, used

    def extract_variable_references(self, value: str) -> Set[str]:
        if not value:
            return set()
        return {m.group(1) for m in VAR_REFERENCE_PATTERN.finditer(value)}
