"""
Theme Commands

``current``, ``themes``, ``theme`` and ``switch``.
"""

from __future__ import annotations

from argparse import Namespace

from .common import build_service, emit


def run(args: Namespace) -> int:
    service = build_service(args)
    if args.command == "current":
        result = service.get_current_theme()
    elif args.command == "themes":
        result = service.list_themes()
    elif args.command == "theme":
        result = service.get_theme(args.theme_id)
    else:
        result = service.switch_theme(args.package)
    return emit(result, args)
