from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from .commands import (
    components as cmd_components,
    css as cmd_css,
    fonts as cmd_fonts,
    themes as cmd_themes,
    tokens as cmd_tokens,
)
from ..core.logger import configure_logging


def entrypoint():
    sys.exit(main())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RadFlow theme token tools")
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Workspace root (defaults to the current directory)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("current", help="Show the active theme")
    sub.add_parser("themes", help="List theme packages")

    t = sub.add_parser("theme", help="Show one theme's metadata and config problems")
    t.add_argument("theme_id", type=str)

    s = sub.add_parser("switch", help="Switch the active theme import")
    s.add_argument("package", type=str, help="Theme package, e.g. '@radflow/theme-phase'")

    r = sub.add_parser("tokens", help="Read a theme's token model")
    r.add_argument("theme_id", nargs="?", default="current")

    sub_css = sub.add_parser("read-css", help="Print the flattened global stylesheet")
    sub_css.add_argument(
        "--raw", action="store_true", help="Print CSS text instead of a JSON result"
    )

    v = sub.add_parser("set-tokens", help="Edit single token values in tokens.css")
    v.add_argument("theme_id", type=str)
    v.add_argument("--color", action="append", metavar="NAME=VALUE", help="Set --color-NAME")
    v.add_argument("--radius", action="append", metavar="NAME=VALUE", help="Set --radius-NAME")
    v.add_argument("--shadow", action="append", metavar="NAME=VALUE", help="Set --shadow-NAME")
    v.add_argument(
        "--add-color", action="append", metavar="NAME=VALUE", help="Add (or update) a base colour"
    )
    v.add_argument("--remove-color", action="append", metavar="NAME", help="Remove a base colour")
    v.add_argument("--dry-run", action="store_true", help="Report changes without writing")

    m = sub.add_parser("map-semantic", help="Point semantic tokens at base colours")
    m.add_argument("theme_id", type=str)
    m.add_argument("mappings", nargs="+", metavar="TOKEN=BASE")
    m.add_argument("--dry-run", action="store_true", help="Report changes without writing")

    w = sub.add_parser("write-css", help="Rewrite whole sections from a JSON payload")
    w.add_argument("theme_id", type=str)
    w.add_argument(
        "--payload",
        type=str,
        required=True,
        help="JSON file with baseColors/borderRadius/shadows/semanticTokens/fonts/typography/colorModes ('-' for stdin)",
    )
    w.add_argument("--dry-run", action="store_true", help="Report changes without writing")

    f = sub.add_parser("fonts", help="List fonts for a theme")
    f.add_argument("--theme", type=str, default=None, help="Theme id (defaults to active)")

    c = sub.add_parser("components", help="Discover components")
    c.add_argument("--folder", type=str, default=None, help="Sub-folder of components/")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    if args.command in {"current", "themes", "theme", "switch"}:
        return cmd_themes.run(args)
    elif args.command in {"tokens", "set-tokens", "map-semantic", "write-css"}:
        return cmd_tokens.run(args)
    elif args.command == "read-css":
        return cmd_css.run(args)
    elif args.command == "fonts":
        return cmd_fonts.run(args)
    elif args.command == "components":
        return cmd_components.run(args)
    parser.error(f"unknown command {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
