"""
Dev tools operations.

:class:`DevToolsService` is the request boundary: every public method is
gated by the production check and returns an :class:`OperationResult`
instead of raising.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from .cache import FileCache
from .component_discovery import ComponentScanner
from .context import FileLockTable, FileWriteResult, WriteReport, patch_file
from .css_parser import parse_files, parse_stylesheet
from .css_patcher import CssPatcher, PatchOutcome, TokenValueChanges
from .css_utils import validate_css_value, validate_token_name
from .errors import (
    DevToolsError,
    InvalidRequestError,
    NoActiveThemeError,
    NotFoundError,
    ProductionModeError,
    validation_problems,
)
from .fonts import parse_font_faces, scan_font_directory
from .import_resolver import ImportResolver
from .logger import get_logger
from .models import TokenModel, WriteCssRequest
from .settings import WorkspaceSettings
from .theme_registry import ThemeRegistry, validate_theme_config

log = get_logger(__name__)

STATUS_EXIT_CODES = {
    "ok": 0,
    "invalid": 2,
    "forbidden": 3,
    "not_found": 4,
    "write_locked": 5,
    "io_error": 6,
    "partial": 7,
}


@dataclass
class OperationResult:
    success: bool
    status: str = "ok"
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    @classmethod
    def ok(cls, message: str = "", **data: Any) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def from_error(cls, error: DevToolsError) -> "OperationResult":
        return cls(
            success=False,
            status=error.status,
            message=error.message,
            details=dict(error.details),
            hint=error.hint,
        )

    @property
    def exit_code(self) -> int:
        return STATUS_EXIT_CODES.get(self.status, 1)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "status": self.status,
            "message": self.message,
        }
        if self.data:
            payload["data"] = self.data
        if self.details:
            payload["details"] = self.details
        if self.hint:
            payload["hint"] = self.hint
        return payload


def _operation(method: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
    """Production gate plus conversion of failures into results."""

    @functools.wraps(method)
    def wrapper(self: "DevToolsService", *args: Any, **kwargs: Any) -> OperationResult:
        if self.settings.is_production:
            return OperationResult.from_error(ProductionModeError())
        try:
            return method(self, *args, **kwargs)
        except DevToolsError as exc:
            log.debug("%s failed: %s", method.__name__, exc.message)
            return OperationResult.from_error(exc)
        except ValidationError as exc:
            return OperationResult.from_error(
                InvalidRequestError(
                    "Invalid request body", details={"problems": validation_problems(exc)}
                )
            )
        except OSError as exc:
            log.error("%s failed: %s", method.__name__, exc)
            return OperationResult(success=False, status="io_error", message=str(exc))

    return wrapper


class DevToolsService:
    """Token, theme, font and component operations for one workspace."""

    def __init__(
        self,
        settings: WorkspaceSettings,
        *,
        cache: Optional[FileCache] = None,
        locks: Optional[FileLockTable] = None,
        dry_run: bool = False,
    ) -> None:
        self.settings = settings
        self.cache = cache or FileCache(settings.cache_ttl_seconds)
        self.locks = locks or FileLockTable()
        self.dry_run = dry_run
        self.registry = ThemeRegistry(settings, cache=self.cache, locks=self.locks)
        self.patcher = CssPatcher(settings.color_modes)
        self.resolver = ImportResolver(settings)
        self.components = ComponentScanner(settings)

    def _rel(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.settings.root.resolve()).as_posix()
        except ValueError:
            return str(path)

    def _patch(
        self, path: Path, transform: Callable[[str], PatchOutcome]
    ) -> Tuple[PatchOutcome, FileWriteResult]:
        return patch_file(
            path,
            transform,
            locks=self.locks,
            backup_history=self.settings.backup_history,
            dry_run=self.dry_run,
        )

    def _write_data(self, write: FileWriteResult) -> Dict[str, Any]:
        data: Dict[str, Any] = {"file": self._rel(write.path), "changed": write.changed}
        if write.backup_path is not None:
            data["backup"] = self._rel(write.backup_path)
            data["backupOk"] = write.backup_ok
        if write.dry_run:
            data["dryRun"] = True
        return data

    # ------------------------------------------------------------------ themes

    @_operation
    def get_current_theme(self) -> OperationResult:
        package = self.registry.active_theme_import()
        if package is None:
            raise NoActiveThemeError(self.settings.globals_path)
        return OperationResult.ok(
            themeId=self.registry.theme_id_from_package(package), packageName=package
        )

    @_operation
    def list_themes(self) -> OperationResult:
        themes = self.registry.list_themes()
        return OperationResult.ok(
            themes=[t.to_json_dict() for t in themes],
            activeTheme=self.registry.active_theme_id(),
        )

    @_operation
    def get_theme(self, theme_id: str) -> OperationResult:
        theme_id = self.registry.resolve_theme_id(theme_id)
        theme = self.registry.load_theme(theme_id, active=self.registry.active_theme_id())
        return OperationResult.ok(
            theme=theme.to_json_dict(), problems=validate_theme_config(theme)
        )

    @_operation
    def switch_theme(self, package_name: str) -> OperationResult:
        result = self.registry.switch_theme(
            package_name, backup_history=self.settings.backup_history
        )
        return OperationResult.ok(
            f"Switched to {result.package_name}",
            previousTheme=result.previous_theme,
            newTheme=result.new_theme,
            packageName=result.package_name,
            **self._write_data(result.write),
        )

    # ------------------------------------------------------------------- reads

    def load_tokens(self, theme_id: str) -> Tuple[TokenModel, str, List[Path], List[str]]:
        """Token model for a theme plus where it came from (``index``, ``files`` or ``none``)."""
        paths = self.registry.paths(theme_id)
        modes = self.settings.color_modes
        if paths.index.is_file():
            resolved = self.resolver.resolve_file(paths.index)
            return parse_stylesheet(resolved.css, modes), "index", resolved.files, resolved.warnings
        existing = [
            p for p in (paths.tokens, paths.typography, paths.fonts, paths.dark) if p.is_file()
        ]
        if not existing:
            return TokenModel(), "none", [], []
        return parse_files(existing, modes), "files", existing, []

    @_operation
    def read_tokens(self, theme_id: Optional[str] = "current") -> OperationResult:
        theme_id = self.registry.resolve_theme_id(theme_id)
        model, source, files, warnings = self.load_tokens(theme_id)
        result = OperationResult.ok(
            themeId=theme_id,
            source=source,
            files=[self._rel(f) for f in files],
            isActive=self.registry.active_theme_id() == theme_id,
            tokens=model.to_json_dict(),
        )
        if warnings:
            result.details["warnings"] = warnings
        return result

    @_operation
    def read_css(self) -> OperationResult:
        path = self.settings.globals_path
        if not path.is_file():
            raise NotFoundError(f"{path.name} not found", details={"path": str(path)})
        resolved = self.resolver.resolve_file(path)
        result = OperationResult.ok(
            css=resolved.css, files=[self._rel(f) for f in resolved.files]
        )
        if resolved.warnings:
            result.details["warnings"] = resolved.warnings
        return result

    # ------------------------------------------------------------------ writes

    @_operation
    def write_token_values(
        self, theme_id: str, changes: Union[TokenValueChanges, Mapping[str, Any]]
    ) -> OperationResult:
        if not isinstance(changes, TokenValueChanges):
            changes = TokenValueChanges.from_payload(changes)
        changes.validate()
        theme_id = self.registry.resolve_theme_id(theme_id)
        paths = self.registry.ensure_writable(theme_id)
        outcome, write = self._patch(
            paths.tokens, lambda css: self.patcher.apply_token_values(css, changes)
        )
        return OperationResult.ok(
            f"Updated {outcome.changed_count} token value(s)",
            themeId=theme_id,
            updatedCount=outcome.changed_count,
            updated=outcome.updated,
            notFound=outcome.not_found,
            **self._write_data(write),
        )

    @_operation
    def write_semantic_mappings(
        self, theme_id: str, mappings: Mapping[str, str]
    ) -> OperationResult:
        if not mappings:
            raise InvalidRequestError("No mappings provided")
        bad = [
            f"{token} -> {base}"
            for token, base in mappings.items()
            if not validate_token_name(token) or not isinstance(base, str) or not validate_token_name(base)
        ]
        if bad:
            raise InvalidRequestError("Invalid semantic mappings", details={"problems": bad})
        theme_id = self.registry.resolve_theme_id(theme_id)
        paths = self.registry.ensure_writable(theme_id)
        modes = self.settings.color_modes

        def transform(css: str) -> PatchOutcome:
            known = {c.name for c in parse_stylesheet(css, modes).base_colors}
            return self.patcher.apply_semantic_mappings(css, mappings, known)

        outcome, write = self._patch(paths.tokens, transform)
        result = OperationResult.ok(
            f"Updated {outcome.changed_count} semantic mapping(s)",
            themeId=theme_id,
            updatedMappings=outcome.changed_count,
            updated=outcome.updated,
            notFound=outcome.not_found,
            **self._write_data(write),
        )
        if outcome.unresolved:
            result.details["unresolved"] = outcome.unresolved
        return result

    def _validate_write_css(self, request: WriteCssRequest) -> None:
        if request.is_empty:
            raise InvalidRequestError("No values provided")
        problems: List[str] = []
        for color in request.base_colors or []:
            if not validate_token_name(color.name) or not validate_css_value(color.value):
                problems.append(f"baseColors.{color.name}")
        for section, values in (
            ("borderRadius", request.border_radius),
            ("shadows", request.shadows),
        ):
            for name, value in (values or {}).items():
                if not validate_token_name(name) or not validate_css_value(value):
                    problems.append(f"{section}.{name}")
        for token in request.semantic_tokens or []:
            if not validate_token_name(token.name) or not validate_css_value(token.reference):
                problems.append(f"semanticTokens.{token.name}")
        for mode in request.color_modes or []:
            for token, ref in mode.overrides.items():
                if not validate_token_name(token) or not validate_css_value(ref):
                    problems.append(f"colorModes.{mode.name}.{token}")
        if problems:
            raise InvalidRequestError("Invalid token values", details={"problems": problems})

    @_operation
    def write_css(
        self, theme_id: str, request: Union[WriteCssRequest, Mapping[str, Any]]
    ) -> OperationResult:
        """Rewrite whole sections across the theme's files; each file succeeds or fails alone."""
        if not isinstance(request, WriteCssRequest):
            request = WriteCssRequest.model_validate(request)
        self._validate_write_css(request)
        theme_id = self.registry.resolve_theme_id(theme_id)
        paths = self.registry.ensure_writable(theme_id)

        sections: List[Tuple[Path, Callable[[str], PatchOutcome]]] = []
        if request.touches_tokens:
            sections.append(
                (
                    paths.tokens,
                    lambda css: self.patcher.sync_theme_blocks(
                        css,
                        base_colors=request.base_colors,
                        border_radius=request.border_radius,
                        shadows=request.shadows,
                        semantic_tokens=request.semantic_tokens,
                    ),
                )
            )
        if request.fonts is not None:
            fonts = request.fonts
            sections.append((paths.fonts, lambda css: self.patcher.rewrite_font_faces(css, fonts)))
        if request.typography is not None:
            styles = request.typography
            sections.append(
                (paths.typography, lambda css: self.patcher.rewrite_layer_base(css, styles))
            )
        if request.color_modes is not None:
            modes = request.color_modes
            sections.append((paths.dark, lambda css: self.patcher.rewrite_color_modes(css, modes)))

        report = WriteReport(theme_id=theme_id, dry_run=self.dry_run)
        unresolved: List[str] = []
        for path, transform in sections:
            try:
                outcome, write = self._patch(path, transform)
            except DevToolsError as exc:
                log.warning("write-css: %s", exc.message)
                report.record_failure(path.name, exc)
                continue
            report.record(path.name, write, outcome.updated)
            unresolved.extend(outcome.unresolved)

        data = {
            "themeId": theme_id,
            "written": report.written,
            "unchanged": report.unchanged,
            "changes": report.changes,
        }
        if not report.has_failures:
            result = OperationResult.ok(
                f"Updated {len(report.written)} file(s)", **data
            )
            if unresolved:
                result.details["unresolved"] = unresolved
            return result

        first = next(iter(report.failed.values()))
        applied = bool(report.written or report.unchanged)
        details: Dict[str, Any] = {"failed": report.failed}
        if unresolved:
            details["unresolved"] = unresolved
        return OperationResult(
            success=False,
            status="partial" if applied else first["status"],
            message="; ".join(report.summary_lines),
            data=data,
            details=details,
            hint=first["hint"],
        )

    # ------------------------------------------------------------ fonts/parts

    @_operation
    def list_fonts(self, theme_id: Optional[str] = None) -> OperationResult:
        """Fonts for a theme: its fonts/ folder, else its fonts.css, else public/fonts."""
        if theme_id in (None, "current"):
            theme_id = self.registry.active_theme_id()
        elif theme_id is not None:
            self.registry.validate_theme_id(theme_id)

        if theme_id:
            paths = self.registry.paths(theme_id)
            roles: Dict[str, str] = {}
            try:
                roles = self.registry.load_theme(theme_id).fonts
            except NotFoundError:
                log.debug("No package.json roles for %s", theme_id)
            if paths.fonts_dir.is_dir():
                fonts = scan_font_directory(paths.fonts_dir, f"/fonts/themes/{theme_id}", roles)
                return self._fonts_result(fonts, theme_id, "theme-local")
            if paths.fonts.is_file():
                fonts = parse_font_faces(paths.fonts.read_text(encoding="utf-8"))
                role_by_family = {family: role for role, family in roles.items()}
                for font in fonts:
                    font.role = role_by_family.get(font.family)
                return self._fonts_result(fonts, theme_id, "theme-css")

        public = self.settings.root / self.settings.public_fonts_dir
        if public.is_dir():
            return self._fonts_result(scan_font_directory(public, "/fonts"), theme_id, "public")
        return self._fonts_result([], theme_id, "none")

    def _fonts_result(self, fonts: list, theme_id: Optional[str], source: str) -> OperationResult:
        return OperationResult.ok(
            fonts=[dict(f.to_json_dict(), weights=f.weights) for f in fonts],
            themeId=theme_id,
            source=source,
        )

    @_operation
    def discover_components(self, folder: Optional[str] = None) -> OperationResult:
        components = self.components.discover(folder)
        return OperationResult.ok(components=[c.to_json_dict() for c in components])
