from __future__ import annotations

from argparse import Namespace

from .common import build_service, emit


def run(args: Namespace) -> int:
    service = build_service(args)
    return emit(service.discover_components(args.folder), args)
