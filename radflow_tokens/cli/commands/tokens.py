"""
Token Commands

Read a theme's token model and apply value, semantic-mapping and
whole-section edits to its CSS files.
"""

from __future__ import annotations

import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict

from ...core.errors import DevToolsError, InvalidRequestError
from ...core.logger import get_logger
from ...core.services import OperationResult
from .common import build_service, emit, parse_pairs

log = get_logger(__name__)


def _load_payload(source: str) -> Dict[str, Any]:
    try:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidRequestError(f"Could not read payload: {exc}") from exc
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise InvalidRequestError(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("Payload must be a JSON object")
    return payload


def run(args: Namespace) -> int:
    service = build_service(args)
    try:
        if args.command == "tokens":
            result = service.read_tokens(args.theme_id)
        elif args.command == "set-tokens":
            changes = {
                "colors": parse_pairs(args.color, "--color"),
                "radius": parse_pairs(args.radius, "--radius"),
                "shadows": parse_pairs(args.shadow, "--shadow"),
                "addColors": [
                    {"name": name, "value": value}
                    for name, value in parse_pairs(args.add_color, "--add-color").items()
                ],
                "removeColors": list(args.remove_color or []),
            }
            result = service.write_token_values(args.theme_id, changes)
        elif args.command == "map-semantic":
            result = service.write_semantic_mappings(
                args.theme_id, parse_pairs(args.mappings, "mapping")
            )
        else:
            result = service.write_css(args.theme_id, _load_payload(args.payload))
    except DevToolsError as exc:
        log.debug("Rejected %s: %s", args.command, exc.message)
        result = OperationResult.from_error(exc)
    return emit(result, args)
