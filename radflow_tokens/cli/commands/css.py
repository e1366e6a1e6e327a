from __future__ import annotations

from argparse import Namespace

from .common import build_service, emit


def run(args: Namespace) -> int:
    """Print the global stylesheet with its imports flattened."""
    service = build_service(args)
    result = service.read_css()
    if result.success and args.raw:
        print(result.data["css"], end="")
        return 0
    return emit(result, args)
