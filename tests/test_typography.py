"""
Tests for @apply class classification.
"""

from radflow_tokens.core.models import TypographyStyle
from radflow_tokens.core.typography import (
    classify_classes,
    is_element_selector,
    is_font_size,
    is_font_weight,
    parse_apply,
    style_classes,
)


def test_weight_and_size_keywords():
    assert is_font_weight("font-semibold")
    assert not is_font_weight("font-joystix")
    assert is_font_size("text-2xl")
    assert is_font_size("text-[18px]")
    assert not is_font_size("text-black")
    assert not is_font_size("leading-7")


def test_first_match_wins_and_rest_are_utilities():
    style = classify_classes(
        "h2", ["font-mono", "font-serif", "text-lg", "text-sm", "text-sun", "hover:underline"]
    )

    assert style.font_family_id == "mono"
    assert style.font_size == "text-lg"
    assert style.base_color_id == "sun"
    assert style.utilities == ["font-serif", "text-sm", "hover:underline"]


def test_parse_apply_splits_whitespace():
    style = parse_apply("p", "  text-base\n   leading-relaxed  tracking-wide ")

    assert style.element == "p"
    assert style.font_size == "text-base"
    assert style.line_height == "leading-relaxed"
    assert style.letter_spacing == "tracking-wide"
    assert style.utilities == []


def test_style_classes_uses_canonical_order():
    style = TypographyStyle(
        element="h1",
        font_family_id="joystix",
        font_size="text-4xl",
        font_weight="font-bold",
        line_height="leading-tight",
        letter_spacing="tracking-tight",
        base_color_id="black",
        utilities=["uppercase", ""],
    )

    assert style_classes(style) == [
        "font-joystix",
        "text-4xl",
        "font-bold",
        "leading-tight",
        "tracking-tight",
        "text-black",
        "uppercase",
    ]


def test_classes_survive_a_parse():
    classes = ["font-joystix", "text-4xl", "font-bold", "leading-tight", "text-black", "uppercase"]

    assert style_classes(classify_classes("h1", classes)) == classes


def test_element_selectors():
    assert is_element_selector("h1")
    assert is_element_selector("blockquote")
    assert not is_element_selector(".prose h2")
    assert not is_element_selector("h1, h2")
    assert not is_element_selector("a:hover")
