from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from stylesentinel.engine.types import Violation
from stylesentinel.utils import safe_relpath


def render_github_annotations(violations: Iterable[Violation], *, project_root: Path) -> str:
    lines: list[str] = []
    for v in violations:
        level = _level(v.severity)
        msg = _escape(f"{v.rule_id} {v.message}")
        if v.location is None or v.location.path is None or v.location.line is None:
            lines.append(f"::{level}::{msg}")
            continue

        path = safe_relpath(v.location.path, project_root)
        col = v.location.col or 1
        lines.append(f"::{level} file={path},line={v.location.line},col={col}::{msg}")
    return "\n".join(lines)


def _escape(text: str) -> str:
    # Workflow commands treat `%` and newlines specially.
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _level(severity: str) -> str:
    if severity == "error":
        return "error"
    if severity == "warn":
        return "warning"
    return "notice"
