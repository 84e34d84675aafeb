from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from stylesentinel.config import StyleConfig, StyleSentinelConfig
from stylesentinel.engine.nodes import TranslationUnit
from stylesentinel.engine.tokens import SourceFile, Token
from stylesentinel.languages.registry import FileKind
from stylesentinel.suppressions import Suppressions


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_paths: tuple[Path, ...]
    files: tuple[Path, ...]
    config: StyleSentinelConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    project_root: Path
    path: Path
    relative_path: str
    file_kind: FileKind
    source: SourceFile
    tree: TranslationUnit
    suppressions: Suppressions
    style: StyleConfig

    @property
    def lines(self) -> tuple[str, ...]:
        return self.source.lines

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self.source.tokens

    @property
    def is_header(self) -> bool:
        return self.file_kind == "header"
