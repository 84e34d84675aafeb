from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Severity = Literal["info", "warn", "error"]

SEVERITY_RANK: dict[str, int] = {"info": 0, "warn": 1, "error": 2}


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    line: int | None = None  # 1-based
    col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Violation:
    rule_id: str
    severity: Severity
    message: str
    suggestion: str | None = None
    location: Location | None = None


@dataclass(frozen=True, slots=True)
class ScanSummary:
    files_scanned: int
    violations: tuple[Violation, ...]
    errors: int = 0
    warnings: int = 0
    infos: int = 0
    incomplete: bool = False
