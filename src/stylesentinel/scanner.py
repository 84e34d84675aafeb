from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from stylesentinel.config import (
    CONFIG_FILENAME,
    PYPROJECT_FILENAME,
    StyleSentinelConfig,
    load_config,
    path_is_ignored,
)
from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.parser import parse
from stylesentinel.engine.tokens import load_source
from stylesentinel.languages.registry import allowed_extensions, detect_file_kind
from stylesentinel.suppressions import parse_suppressions
from stylesentinel.utils import safe_relpath

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vs",
    ".vscode",
    "Binaries",
    "DerivedDataCache",
    "Intermediate",
    "Saved",
    "node_modules",
    "__pycache__",
}

STYLESENTINEL_WORKERS_ENV = "STYLESENTINEL_WORKERS"
DEFAULT_MAX_WORKERS = 32


class ScanPathError(FileNotFoundError):
    """Raised when a path given on the command line does not exist."""


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_paths: tuple[Path, ...]
    config: StyleSentinelConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = max(1, default if default is not None else (cpu * 2))
    if raw_value is None:
        return min(resolved_default, max_workers)

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return min(resolved_default, max_workers)

    try:
        workers = int(normalized)
    except ValueError:
        return min(resolved_default, max_workers)

    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(STYLESENTINEL_WORKERS_ENV), default=default)


def prepare_target(scan_paths: Sequence[Path]) -> ScanTarget:
    """
    Resolve the project root and load its configuration.

    The root is found from the first scan path: the closest ancestor holding
    `.stylesentinel.toml` or `pyproject.toml`, without climbing past a
    directory that contains `.git`.
    """

    if not scan_paths:
        raise ScanPathError("No paths to check.")
    resolved: list[Path] = []
    for raw in scan_paths:
        path = raw.resolve()
        if not path.exists():
            raise ScanPathError(f"Path does not exist: {raw}")
        resolved.append(path)

    project_root = _detect_project_root(resolved[0])
    config = load_config(project_root)
    return ScanTarget(project_root=project_root, scan_paths=tuple(resolved), config=config)


def discover_files(target: ScanTarget) -> list[Path]:
    root = target.project_root
    ignore_patterns = target.config.ignore.paths
    allowed_exts = allowed_extensions(target.config.extensions)

    files: set[Path] = set()
    for scan_path in target.scan_paths:
        if scan_path.is_file():
            # Explicitly named files are checked even when their extension is not configured.
            if not path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
                files.add(scan_path)
            continue
        files.update(_walk(scan_path, root=root, allowed_exts=allowed_exts, ignore_patterns=ignore_patterns))

    return sorted(files)


def _walk(scan_path: Path, *, root: Path, allowed_exts: set[str], ignore_patterns: Iterable[str]) -> list[Path]:
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = sorted(d for d in dirnames if d not in DEFAULT_SKIP_DIRS)
        base = Path(dirpath)
        for filename in filenames:
            path = base / filename
            if path.suffix.lower() not in allowed_exts:
                continue
            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                continue
            found.append(path)
    return found


def build_project_context(target: ScanTarget, files: Sequence[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_paths=target.scan_paths,
        files=tuple(files),
        config=target.config,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext:
    """
    Read, tokenize and parse one file.

    `OSError` (unreadable file) and `ParseError` (unterminated literal or
    comment) propagate; the detection engine turns them into diagnostics.
    """

    source = load_source(path)
    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=safe_relpath(path, project.project_root),
        file_kind=detect_file_kind(path),
        source=source,
        tree=parse(source),
        suppressions=parse_suppressions(source.tokens),
        style=project.config.style,
    )


def _detect_project_root(start: Path) -> Path:
    first = start if start.is_dir() else start.parent
    for candidate in [first, *first.parents]:
        if (candidate / CONFIG_FILENAME).is_file() or (candidate / PYPROJECT_FILENAME).is_file():
            return candidate
        if (candidate / ".git").exists():
            return candidate
    return first
