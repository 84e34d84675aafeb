from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

FileKind = Literal["header", "inline", "source"]


@dataclass(frozen=True, slots=True)
class FileKindSpec:
    name: FileKind
    extensions: tuple[str, ...]


FILE_KINDS: tuple[FileKindSpec, ...] = (
    FileKindSpec("header", (".h", ".hh", ".hpp", ".hxx")),
    FileKindSpec("inline", (".inl", ".ipp")),
    FileKindSpec("source", (".cpp", ".cc", ".cxx", ".c++")),
)

DEFAULT_EXTENSIONS: tuple[str, ...] = tuple(ext for spec in FILE_KINDS for ext in spec.extensions)

_EXT_TO_KIND = {ext: spec.name for spec in FILE_KINDS for ext in spec.extensions}


def normalize_extension(value: str) -> str:
    ext = value.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def detect_file_kind(path: Path) -> FileKind:
    """
    Classify a file by extension.

    Extensions enabled through configuration but unknown here are treated as
    source files: header-only rules never run on them.
    """

    return _EXT_TO_KIND.get(path.suffix.lower(), "source")


def allowed_extensions(configured: Iterable[str]) -> set[str]:
    return {ext for ext in (normalize_extension(v) for v in configured) if ext}
