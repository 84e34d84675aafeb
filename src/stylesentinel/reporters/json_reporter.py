from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stylesentinel import __version__
from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.utils import safe_relpath


def violation_record(v: Violation, *, project_root: Path) -> dict[str, Any]:
    """One diagnostic as `{file, line, column, ruleId, severity, message}` (+ suggestion)."""

    loc = v.location
    record: dict[str, Any] = {
        "file": safe_relpath(loc.path, project_root) if loc is not None and loc.path is not None else None,
        "line": loc.line if loc is not None else None,
        "column": loc.col if loc is not None else None,
        "ruleId": v.rule_id,
        "severity": v.severity,
        "message": v.message,
    }
    if v.suggestion:
        record["suggestion"] = v.suggestion
    return record


def render_json(summary: ScanSummary, *, project_root: Path) -> str:
    payload = {
        "tool": {"name": "StyleSentinel", "version": __version__},
        "files_scanned": summary.files_scanned,
        "incomplete": summary.incomplete,
        "counts": {"error": summary.errors, "warn": summary.warnings, "info": summary.infos},
        "violations": [violation_record(v, project_root=project_root) for v in summary.violations],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def render_jsonl(summary: ScanSummary, *, project_root: Path) -> str:
    return "\n".join(
        json.dumps(violation_record(v, project_root=project_root), sort_keys=False) for v in summary.violations
    )
