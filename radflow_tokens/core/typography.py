from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .models import TypographyStyle

FONT_WEIGHT_KEYWORDS = frozenset(
    {
        "thin",
        "extralight",
        "light",
        "normal",
        "medium",
        "semibold",
        "bold",
        "extrabold",
        "black",
    }
)

TEXT_SIZE_KEYWORDS = frozenset(
    ["xs", "sm", "base", "lg", "xl"] + [f"{n}xl" for n in range(2, 10)]
)

_ARBITRARY_SIZE = re.compile(r"^text-\[\d")
APPLY_PATTERN = re.compile(r"@apply\s+([^;{}]*);")


def is_font_weight(cls: str) -> bool:
    return cls.startswith("font-") and cls[len("font-"):] in FONT_WEIGHT_KEYWORDS


def is_font_size(cls: str) -> bool:
    if not cls.startswith("text-"):
        return False
    return cls[len("text-"):] in TEXT_SIZE_KEYWORDS or _ARBITRARY_SIZE.match(cls) is not None


def classify_classes(element: str, classes: Iterable[str]) -> TypographyStyle:
    """Sort an ``@apply`` class list into the structured typography fields.

    The first matching class wins for each field; anything left over is
    kept in ``utilities`` in its original order.
    """
    font_family: Optional[str] = None
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    line_height: Optional[str] = None
    letter_spacing: Optional[str] = None
    color: Optional[str] = None
    utilities: List[str] = []

    for cls in classes:
        if is_font_weight(cls) and font_weight is None:
            font_weight = cls
        elif cls.startswith("font-") and not is_font_weight(cls) and font_family is None:
            font_family = cls[len("font-"):]
        elif is_font_size(cls) and font_size is None:
            font_size = cls
        elif cls.startswith("leading-") and line_height is None:
            line_height = cls
        elif cls.startswith("tracking-") and letter_spacing is None:
            letter_spacing = cls
        elif cls.startswith("text-") and not is_font_size(cls) and color is None:
            color = cls[len("text-"):]
        else:
            utilities.append(cls)

    return TypographyStyle(
        element=element,
        font_family_id=font_family,
        font_size=font_size,
        font_weight=font_weight,
        line_height=line_height,
        letter_spacing=letter_spacing,
        base_color_id=color,
        utilities=utilities,
    )


def parse_apply(element: str, apply_args: str) -> TypographyStyle:
    return classify_classes(element, apply_args.split())


def style_classes(style: TypographyStyle) -> List[str]:
    """Project a style back to classes: family, size, weight, leading, tracking, colour, rest."""
    classes: List[str] = []
    if style.font_family_id:
        classes.append(f"font-{style.font_family_id}")
    for cls in (style.font_size, style.font_weight, style.line_height, style.letter_spacing):
        if cls:
            classes.append(cls)
    if style.base_color_id:
        classes.append(f"text-{style.base_color_id}")
    classes.extend(u for u in style.utilities if u)
    return classes


def is_element_selector(prelude: str) -> bool:
    return re.fullmatch(r"[a-z][a-z0-9]*", prelude) is not None
