"""
Test CSS Resolver - var() chains and reference formatting.
"""

from radflow_tokens.core.css_resolver import (
    VariableResolver,
    format_reference,
    is_literal,
    reference_name,
    single_var_target,
)


class TestVariableResolver:
    """Test VariableResolver class."""

    def test_resolve_follows_chain(self):
        """A semantic token resolves through its base colour."""
        resolver = VariableResolver({
            "--color-warm-cloud": "#FEF8E2",
            "--color-surface-primary": "var(--color-warm-cloud)",
        })

        assert resolver.resolve("--color-surface-primary") == "#FEF8E2"
        assert resolver.resolve("color-surface-primary") == "#FEF8E2"

    def test_resolve_missing_is_none(self):
        resolver = VariableResolver({"--color-a": "var(--color-missing)"})

        assert resolver.resolve("--color-a") is None
        assert resolver.resolve("--color-nope") is None

    def test_resolve_cycle_is_none(self):
        """Cyclic chains terminate instead of recursing forever."""
        resolver = VariableResolver({
            "--a": "var(--b)",
            "--b": "var(--c)",
            "--c": "var(--a)",
        })

        assert resolver.resolve("--a") is None

    def test_resolve_uses_fallback_for_missing_target(self):
        resolver = VariableResolver({
            "--color-x": "var(--color-missing, #123456)",
            "--color-y": "var(--color-missing, var(--color-z))",
            "--color-z": "#abcdef",
        })

        assert resolver.resolve("--color-x") == "#123456"
        assert resolver.resolve("--color-y") == "#abcdef"

    def test_resolve_value_composite(self):
        """Every reference in a composite value is substituted."""
        resolver = VariableResolver({
            "--color-black": "#0F0E0C",
            "--offset": "var(--unit)",
            "--unit": "2px",
        })

        resolved, used = resolver.resolve_value("var(--offset) var(--offset) 0 0 var(--color-black)")

        assert resolved == "2px 2px 0 0 #0F0E0C"
        assert used == {"--offset", "--unit", "--color-black"}

    def test_resolve_value_keeps_unknown_reference(self):
        resolver = VariableResolver({"--primary": "#1976D2"})

        resolved, used = resolver.resolve_value("var(--missing)")

        assert resolved == "var(--missing)"
        assert used == {"--missing"}

    def test_resolve_value_cycle_left_in_place(self):
        resolver = VariableResolver({"--a": "var(--b)", "--b": "var(--a)"})

        resolved, used = resolver.resolve_value("var(--a)")

        assert resolved == "var(--a)"
        assert used == {"--a", "--b"}

    def test_resolve_value_depth_limit(self):
        resolver = VariableResolver({"--a": "var(--b)", "--b": "#fff"})

        resolved, _ = resolver.resolve_value("var(--a)", max_depth=1)

        assert resolved == "var(--b)"

    def test_extract_variable_references(self):
        resolver = VariableResolver()

        refs = resolver.extract_variable_references(
            "var(--a) solid var(--b, var(--c))"
        )

        assert refs == {"--a", "--b"}
        assert resolver.extract_variable_references("") == set()


class TestReferenceHelpers:
    """Parsing and rendering single references."""

    def test_single_var_target(self):
        assert single_var_target("var(--color-sun)") == ("--color-sun", None)
        assert single_var_target(" var( --x , red ) ") == ("--x", "red")
        assert single_var_target("#fff") is None
        assert single_var_target("var(--a) var(--b)") is None

    def test_reference_name(self):
        assert reference_name("var(--color-sun-yellow)") == "sun-yellow"
        assert reference_name("var(--radius-md)") == "--radius-md"
        assert reference_name("#fff") is None

    def test_is_literal(self):
        assert is_literal("#FCE184")
        assert is_literal("0.5rem")
        assert is_literal("rgb(0 0 0 / 50%)")
        assert is_literal("transparent")
        assert not is_literal("sun-yellow")
        assert not is_literal("")

    def test_format_reference(self):
        assert format_reference("sun-yellow") == "var(--color-sun-yellow)"
        assert format_reference("--radius-md") == "var(--radius-md)"
        assert format_reference("var(--color-black)") == "var(--color-black)"
        assert format_reference("#FFF") == "#FFF"
        assert format_reference("currentColor") == "currentColor"
