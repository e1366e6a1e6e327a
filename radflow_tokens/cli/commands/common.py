from __future__ import annotations

import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Dict, Iterable, Optional

from ...core.errors import InvalidRequestError
from ...core.services import DevToolsService, OperationResult
from ...core.settings import load_settings


def build_service(args: Namespace) -> DevToolsService:
    root = Path(args.root) if getattr(args, "root", None) else None
    settings = load_settings(root)
    return DevToolsService(settings, dry_run=getattr(args, "dry_run", False))


def parse_pairs(values: Optional[Iterable[str]], option: str) -> Dict[str, str]:
    """``["sun=#fff", ...]`` -> ``{"sun": "#fff"}``."""
    pairs: Dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise InvalidRequestError(
                f"{option} expects NAME=VALUE, got {item!r}", details={"option": option}
            )
        pairs[name.strip()] = value.strip()
    return pairs


def emit(result: OperationResult, args: Namespace) -> int:
    indent = 2 if getattr(args, "pretty", False) else None
    print(json.dumps(result.to_dict(), indent=indent))
    if not result.success:
        print(f"error: {result.message}", file=sys.stderr)
        if result.hint:
            print(f"hint: {result.hint}", file=sys.stderr)
    return result.exit_code
