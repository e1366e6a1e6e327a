from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .logger import get_logger

log = get_logger(__name__)

CONFIG_FILENAME = "radflow.json"
PRODUCTION = "production"

_MODE_NAME = re.compile(r"^[a-z][a-z0-9-]*$")


class WorkspaceSettings(BaseModel):
    root: Path = Field(default_factory=Path.cwd)
    packages_dir: str = "packages"
    globals_css: str = "app/globals.css"
    node_modules_dir: str = "node_modules"
    public_fonts_dir: str = "public/fonts"
    components_dir: str = "components"
    package_scope: str = "@radflow"
    theme_dir_prefix: str = "theme-"
    # Class names treated as colour modes by the parser and the mode rewriter
    color_modes: List[str] = Field(
        default_factory=lambda: ["dark", "light", "contrast"]
    )
    backup_history: int = Field(1, ge=1)
    cache_ttl_seconds: float = Field(30.0, ge=0)
    environment: str = "development"

    @field_validator("color_modes")
    @classmethod
    def _check_modes(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for name in value:
            name = name.strip().lstrip(".")
            if not _MODE_NAME.match(name):
                raise ValueError(f"invalid colour mode name: {name!r}")
            if name not in cleaned:
                cleaned.append(name)
        return cleaned

    @field_validator("package_scope")
    @classmethod
    def _check_scope(cls, value: str) -> str:
        if not value.startswith("@") or "/" in value:
            raise ValueError("package_scope must look like '@scope'")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == PRODUCTION

    @property
    def packages_path(self) -> Path:
        return self.root / self.packages_dir

    @property
    def globals_path(self) -> Path:
        return self.root / self.globals_css

    @property
    def node_modules_path(self) -> Path:
        return self.root / self.node_modules_dir

    def theme_package_name(self, theme_id: str) -> str:
        return f"{self.package_scope}/{self.theme_dir_prefix}{theme_id}"


def load_settings(root: Optional[Path] = None) -> WorkspaceSettings:
    """Build settings for a workspace.

    Reads ``radflow.json`` from the root when present, then applies the
    ``RADFLOW_ENV`` and ``RADFLOW_COLOR_MODES`` environment overrides.
    """
    root = (root or Path.cwd()).resolve()
    data: dict = {}
    cfg_path = root / CONFIG_FILENAME
    if cfg_path.exists():
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
        log.debug("Loaded workspace config %s", cfg_path)
    data["root"] = root

    env = os.environ.get("RADFLOW_ENV")
    if env:
        data["environment"] = env
    modes = os.environ.get("RADFLOW_COLOR_MODES")
    if modes:
        data["color_modes"] = [m for m in modes.split(",") if m.strip()]

    return WorkspaceSettings.model_validate(data)
