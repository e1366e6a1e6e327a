"""
Tests for static component discovery.
"""

from pathlib import Path

import pytest

from radflow_tokens.core.component_discovery import ComponentScanner, parse_component
from radflow_tokens.core.errors import InvalidRequestError
from radflow_tokens.core.settings import WorkspaceSettings

CARD_TSX = """
export default function Card({ title, tone = 'light' }: { title: string; tone?: string }) {
  return null;
}
"""


def test_inline_prop_types_and_defaults():
    component = parse_component(CARD_TSX, "/components/Card.tsx")

    assert component.name == "Card"
    props = {p.name: (p.type, p.required, p.default_value) for p in component.props}
    assert props == {"title": ("string", True, None), "tone": ("string", False, "'light'")}
    assert component.theme is None


def test_no_default_export():
    assert parse_component("export function helper() {}", "/components/x.ts") is None


def test_default_export_of_a_constant():
    component = parse_component("const Thing = () => null;\nexport default Thing;\n", "/components/Thing.tsx")

    assert component.name == "Unknown"
    assert component.props == []


@pytest.mark.parametrize(
    "rel_path,theme,theme_id",
    [
        ("/packages/theme-phase/components/Card.tsx", "@radflow/theme-phase", "phase"),
        ("/packages/ui/components/Card.tsx", "@radflow/ui", "ui"),
        ("/packages/other/components/Card.tsx", None, None),
    ],
)
def test_theme_attribution(rel_path, theme, theme_id):
    component = parse_component(CARD_TSX, rel_path)

    assert (component.theme, component.theme_id) == (theme, theme_id)


def test_scanner_walks_app_and_package_components(tmp_path: Path):
    settings = WorkspaceSettings(root=tmp_path)
    for rel in (
        "components/Card.tsx",
        "components/Card.test.tsx",
        "components/Card.stories.tsx",
        "components/node_modules/Dep.tsx",
        "components/styles.css",
        "packages/theme-phase/components/Hero.tsx",
    ):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(CARD_TSX, encoding="utf-8")

    components = ComponentScanner(settings).discover()

    assert [c.path for c in components] == [
        "/components/Card.tsx",
        "/packages/theme-phase/components/Hero.tsx",
    ]
    assert components[1].theme_id == "phase"


def test_scanner_folder_filter(tmp_path: Path):
    settings = WorkspaceSettings(root=tmp_path)
    (tmp_path / "components" / "forms").mkdir(parents=True)
    (tmp_path / "components" / "forms" / "Input.tsx").write_text(CARD_TSX, encoding="utf-8")
    (tmp_path / "components" / "Card.tsx").write_text(CARD_TSX, encoding="utf-8")
    scanner = ComponentScanner(settings)

    assert [c.path for c in scanner.discover("forms")] == ["/components/forms/Input.tsx"]
    assert scanner.discover("missing") == []
    for bad in ("../etc", "/abs"):
        with pytest.raises(InvalidRequestError):
            scanner.discover(bad)
