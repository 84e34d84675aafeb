from __future__ import annotations

from pathlib import Path

from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.utils import safe_relpath


def format_violation(v: Violation, *, project_root: Path) -> str:
    loc = v.location
    if loc is None or loc.path is None:
        return f"{v.severity}: {v.message} [{v.rule_id}]"
    path = safe_relpath(loc.path, project_root)
    return f"{path}:{loc.line or 1}:{loc.col or 1}: {v.severity}: {v.message} [{v.rule_id}]"


def render_text(summary: ScanSummary, *, project_root: Path) -> str:
    return "\n".join(format_violation(v, project_root=project_root) for v in summary.violations)
