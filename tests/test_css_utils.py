"""
Tests for the comment-aware block and declaration scanner.
"""

from radflow_tokens.core.css_utils import (
    append_declarations,
    iter_declarations,
    iter_rules,
    mask_comments,
    remove_property,
    remove_rule,
    set_property_value,
    splice_chunk,
    validate_css_value,
    validate_token_name,
)


def test_mask_comments_keeps_offsets_and_strings():
    css = 'a { content: "/* not */"; }\n/* real\ncomment */b {}'
    masked = mask_comments(css)

    assert len(masked) == len(css)
    assert masked.count("\n") == css.count("\n")
    assert '"/* not */"' in masked
    assert "real" not in masked and "comment" not in masked
    assert masked.endswith("b {}")


def test_iter_rules_only_yields_top_level_blocks():
    css = "@theme { --a: 1; @keyframes spin { from { x: 1 } } --b: 2 }\n.dark { --c: 3; }"
    preludes = [rule.prelude for rule in iter_rules(css)]
    assert preludes == ["@theme", ".dark"]


def test_iter_rules_ignores_commented_blocks():
    css = "/* .dark { --x: 1; } */\n.light { --y: 2; }"
    assert [rule.prelude for rule in iter_rules(css)] == [".light"]


def test_iter_rules_handles_deep_nesting():
    css = "@theme { @media (x) { .a { .b { .c { } } } } --radius-b: 3px; }\n.next {}"
    rules = list(iter_rules(css))
    assert [r.prelude for r in rules] == ["@theme", ".next"]
    decls = list(iter_declarations(css, rules[0].body_start, rules[0].body_end))
    assert [(d.name, d.value) for d in decls] == [("--radius-b", "3px")]


def test_iter_declarations_skips_nested_blocks_and_accepts_missing_semicolon():
    css = "@theme { --a: 1; @keyframes spin { from { x: 1 } } --b: 2 }"
    rule = next(iter_rules(css))
    decls = {d.name: d.value for d in iter_declarations(css, rule.body_start, rule.body_end)}
    assert decls == {"--a": "1", "--b": "2"}


def test_iter_declarations_keeps_semicolons_inside_strings_and_parens():
    css = '--x: url("a;b"); --y: rgb(1 2 3 / 50%); --z: 1'
    decls = {d.name: d.value for d in iter_declarations(css)}
    assert decls == {"--x": 'url("a;b")', "--y": "rgb(1 2 3 / 50%)", "--z": "1"}


def test_iter_declarations_skips_apply_statements():
    css = "@apply hover:underline font-bold; color: red;"
    decls = [(d.name, d.value) for d in iter_declarations(css)]
    assert decls == [("color", "red")]


def test_set_property_value_does_not_touch_prefix_overlaps():
    css = "--color-sun: #111;\n--color-sun-yellow: #222;\n"
    out, matched = set_property_value(css, "--color-sun", "#999")
    assert matched == 1
    assert out == "--color-sun: #999;\n--color-sun-yellow: #222;\n"

    out, matched = set_property_value(css, "--color-sun-yellow", "#999")
    assert matched == 1
    assert out == "--color-sun: #111;\n--color-sun-yellow: #999;\n"


def test_set_property_value_requires_a_name_boundary():
    css = "--x-color-sun: #111;\n--color-sun: #222;\n"
    out, matched = set_property_value(css, "--color-sun", "#fff")
    assert matched == 1
    assert out == "--x-color-sun: #111;\n--color-sun: #fff;\n"


def test_set_property_value_leaves_commented_declarations():
    css = "/* --color-sun: #000; */\n--color-sun: #111;\n"
    out, matched = set_property_value(css, "--color-sun", "#fff")
    assert matched == 1
    assert out == "/* --color-sun: #000; */\n--color-sun: #fff;\n"


def test_set_property_value_reports_no_match():
    css = "--color-moon: #111;\n"
    out, matched = set_property_value(css, "--color-sun", "#fff")
    assert matched == 0
    assert out == css


def test_remove_property_deletes_the_whole_line():
    css = "@theme {\n  --color-a: #111;\n  --color-ab: #222;\n}"
    out, removed = remove_property(css, "--color-a")
    assert removed == 1
    assert out == "@theme {\n  --color-ab: #222;\n}"


def test_append_declarations_into_empty_block():
    css = "@theme inline {}"
    rule = next(iter_rules(css))
    assert append_declarations(css, rule, ["--a: 1;"]) == "@theme inline {\n  --a: 1;\n}"


def test_append_declarations_follows_existing_indent():
    css = "@theme {\n    --b: 2;\n}\n"
    rule = next(iter_rules(css))
    out = append_declarations(css, rule, ["--a: 1;", "--c: 3;"])
    assert out == "@theme {\n    --b: 2;\n    --a: 1;\n    --c: 3;\n}\n"


def test_remove_rule_takes_trailing_whitespace():
    css = ".a { x: 1; }\n\n.b { y: 2; }\n"
    rule = next(iter_rules(css))
    assert remove_rule(css, rule) == ".b { y: 2; }\n"


def test_splice_chunk_normalises_blank_lines():
    assert splice_chunk("a\n\n\n\nb", 1, "X") == "a\n\nX\n\nb"
    assert splice_chunk("", 0, "X") == "X\n"
    assert splice_chunk("a\n", 2, "X") == "a\n\nX\n"


def test_token_name_and_value_validation():
    assert validate_token_name("sun-yellow")
    assert not validate_token_name("sun;}")
    assert not validate_token_name("")
    assert validate_css_value("2px 2px 0 0 var(--color-black)")
    assert not validate_css_value("red; } body { color: blue")
    assert not validate_css_value("   ")
