"""
Token model for theme packages.

These Pydantic models describe what the parser extracts from a theme's CSS
files and what the patcher writes back. Identity of every token is its
``name``; ``id`` is an ephemeral handle for list rendering and is excluded
from :meth:`TokenModel.content`.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def display_name_for(name: str) -> str:
    """``sun-yellow`` -> ``Sun Yellow``."""
    return " ".join(part.capitalize() for part in name.replace("_", "-").split("-") if part)


class _Model(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


BaseColorCategory = Literal["brand", "neutral"]
SemanticCategory = Literal["surface", "content", "edge", "system"]
FontSource = Literal["local", "google", "remote"]


class BaseColor(_Model):
    """Primitive colour (``--color-<name>: <literal>``)."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Token key: 'sun-yellow', 'neutral-black'")
    display_name: str = ""
    value: str = Field(..., description="CSS colour literal: '#FCE184'")
    category: BaseColorCategory = "brand"

    @model_validator(mode="after")
    def _fill_display_name(self) -> "BaseColor":
        if not self.display_name:
            self.display_name = display_name_for(self.name)
        return self

    @property
    def property_name(self) -> str:
        return f"--color-{self.name}"


class SemanticToken(_Model):
    """Role token whose value points at a base colour."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Token key: 'surface-primary'")
    reference: str = Field(
        ..., description="Base colour name ('warm-cloud') or a raw literal"
    )
    category: SemanticCategory = "system"

    @property
    def property_name(self) -> str:
        return f"--color-{self.name}"


class ColorMode(_Model):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Mode name: 'dark'")
    class_name: str = ""
    overrides: Dict[str, str] = Field(
        default_factory=dict, description="token name -> base colour reference"
    )

    @model_validator(mode="after")
    def _fill_class_name(self) -> "ColorMode":
        if not self.class_name:
            self.class_name = f".{self.name}"
        return self


class ShadowDefinition(_Model):
    id: str = Field(default_factory=new_id)
    name: str
    display_name: str = ""
    value: str

    @model_validator(mode="after")
    def _fill_display_name(self) -> "ShadowDefinition":
        if not self.display_name:
            self.display_name = display_name_for(self.name)
        return self


class FontFile(_Model):
    path: str = Field(..., description="URL or path: '/fonts/Mondwest-Regular.woff2'")
    format: str = Field("woff2", description="Short format: woff2, woff, ttf, otf")
    weight: int = 400
    max_weight: Optional[int] = Field(
        None, description="Upper bound of a variable-font range ('100 900')"
    )
    style: str = "normal"
    filename: Optional[str] = None

    @property
    def weights(self) -> List[int]:
        if self.max_weight is None:
            return [self.weight]
        return expand_weight_range(self.weight, self.max_weight)

    @property
    def weight_css(self) -> str:
        if self.max_weight is None:
            return str(self.weight)
        return f"{self.weight} {self.max_weight}"


class FontDefinition(_Model):
    id: str = ""
    family: str
    files: List[FontFile] = Field(default_factory=list)
    source: FontSource = "local"
    role: Optional[str] = None

    @model_validator(mode="after")
    def _fill_id(self) -> "FontDefinition":
        if not self.id:
            self.id = font_class_name(self.family)
        return self

    @property
    def weights(self) -> List[int]:
        return sorted({w for f in self.files for w in f.weights})

    @property
    def styles(self) -> List[str]:
        return sorted({f.style for f in self.files})


class TypographyStyle(_Model):
    """Structured form of one ``@layer base`` element rule."""

    id: str = Field(default_factory=new_id)
    element: str = Field(..., description="HTML tag: 'h1', 'p', 'a'")
    font_family_id: Optional[str] = None
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    line_height: Optional[str] = None
    letter_spacing: Optional[str] = None
    base_color_id: Optional[str] = None
    utilities: List[str] = Field(default_factory=list)


class PropDefinition(_Model):
    name: str
    type: str
    required: bool = True
    default_value: Optional[str] = None


class DiscoveredComponent(_Model):
    name: str
    path: str
    props: List[PropDefinition] = Field(default_factory=list)
    theme: Optional[str] = None
    theme_id: Optional[str] = None


class Theme(_Model):
    id: str
    name: str
    package_name: str
    version: str = "0.0.0"
    description: Optional[str] = None
    css_files: List[str] = Field(default_factory=list)
    component_folders: List[str] = Field(default_factory=list)
    color_mode: Optional[str] = None
    fonts: Dict[str, str] = Field(default_factory=dict)
    is_active: bool = False


class TokenModel(_Model):
    """Everything parsed out of one theme."""

    base_colors: List[BaseColor] = Field(default_factory=list)
    semantic_tokens: List[SemanticToken] = Field(default_factory=list)
    color_modes: List[ColorMode] = Field(default_factory=list)
    border_radius: Dict[str, str] = Field(default_factory=dict)
    shadows: Dict[str, str] = Field(default_factory=dict)
    fonts: List[FontDefinition] = Field(default_factory=list)
    typography: List[TypographyStyle] = Field(default_factory=list)
    variables: Dict[str, str] = Field(
        default_factory=dict,
        description="Theme custom properties not classified as tokens",
    )

    def base_color(self, name: str) -> Optional[BaseColor]:
        return next((c for c in self.base_colors if c.name == name), None)

    def color_mode(self, name: str) -> Optional[ColorMode]:
        return next((m for m in self.color_modes if m.name == name), None)

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.base_colors,
                self.semantic_tokens,
                self.color_modes,
                self.border_radius,
                self.shadows,
                self.fonts,
                self.typography,
                self.variables,
            )
        )

    @property
    def shadow_definitions(self) -> List[ShadowDefinition]:
        return [ShadowDefinition(name=k, value=v) for k, v in self.shadows.items()]

    def content(self) -> Dict[str, Any]:
        """Model contents with ephemeral ids stripped, for equality checks."""
        return self.model_dump(
            exclude={
                "base_colors": {"__all__": {"id"}},
                "semantic_tokens": {"__all__": {"id"}},
                "color_modes": {"__all__": {"id"}},
                "typography": {"__all__": {"id"}},
            }
        )

    def merge(self, other: "TokenModel") -> "TokenModel":
        """Combine two snapshots; entries of ``other`` win on name clashes."""
        merged = self.model_copy(deep=True)
        for attr in ("base_colors", "semantic_tokens", "color_modes"):
            current = {item.name: item for item in getattr(merged, attr)}
            for item in getattr(other, attr):
                current[item.name] = item
            setattr(merged, attr, list(current.values()))
        fonts = {f.family: f for f in merged.fonts}
        for font in other.fonts:
            fonts[font.family] = font
        merged.fonts = list(fonts.values())
        typo = {t.element: t for t in merged.typography}
        for style in other.typography:
            typo[style.element] = style
        merged.typography = list(typo.values())
        merged.border_radius.update(other.border_radius)
        merged.shadows.update(other.shadows)
        merged.variables.update(other.variables)
        return merged


def font_class_name(family: str) -> str:
    """Tailwind font utility key for a family: 'Joystix Monospace' -> 'joystixmonospace'."""
    return "".join(family.lower().split())


def expand_weight_range(low: int, high: int) -> List[int]:
    if low > high:
        low, high = high, low
    weights = list(range(low, high + 1, 100))
    if weights[-1] != high:
        weights.append(high)
    return weights


class WriteCssRequest(_Model):
    """Full-section write for one theme; ``None`` sections are left alone."""

    base_colors: Optional[List[BaseColor]] = None
    border_radius: Optional[Dict[str, str]] = None
    shadows: Optional[Dict[str, str]] = None
    semantic_tokens: Optional[List[SemanticToken]] = None
    fonts: Optional[List[FontDefinition]] = None
    typography: Optional[List[TypographyStyle]] = None
    color_modes: Optional[List[ColorMode]] = None

    @property
    def touches_tokens(self) -> bool:
        return any(
            section is not None
            for section in (self.base_colors, self.border_radius, self.shadows, self.semantic_tokens)
        )

    @property
    def is_empty(self) -> bool:
        return not self.touches_tokens and all(
            section is None for section in (self.fonts, self.typography, self.color_modes)
        )
