from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from stylesentinel import __version__
from stylesentinel.engine.types import Violation
from stylesentinel.rules.registry import rule_meta_by_id
from stylesentinel.utils import safe_relpath

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"


def render_sarif(violations: Iterable[Violation], *, project_root: Path) -> str:
    meta = rule_meta_by_id()

    driver_rules: list[dict[str, Any]] = []
    rule_index: dict[str, int] = {}
    for idx, (rule_id, m) in enumerate(sorted(meta.items())):
        rule_index[rule_id] = idx
        driver_rules.append(
            {
                "id": rule_id,
                "name": m.title,
                "shortDescription": {"text": m.title},
                "fullDescription": {"text": m.description},
                "defaultConfiguration": {"level": _sarif_level(m.default_severity)},
                "properties": {"group": m.group, "nodeKinds": list(m.node_kinds)},
            }
        )

    results: list[dict[str, Any]] = []
    for v in violations:
        res = _result(v, project_root=project_root, rule_index=rule_index)
        # Code scanning uploads reject results without a physical location.
        if "locations" not in res:
            continue
        results.append(res)

    sarif = {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {"driver": {"name": "StyleSentinel", "version": __version__, "rules": driver_rules}},
                "results": results,
            }
        ],
    }
    return json.dumps(sarif, indent=2, sort_keys=False)


def _result(v: Violation, *, project_root: Path, rule_index: dict[str, int]) -> dict[str, Any]:
    res: dict[str, Any] = {
        "ruleId": v.rule_id,
        "level": _sarif_level(v.severity),
        "message": {"text": v.message},
    }

    idx = rule_index.get(v.rule_id)
    if idx is not None:
        res["ruleIndex"] = idx
    if v.suggestion:
        res["properties"] = {"suggestion": v.suggestion}

    if v.location is not None and v.location.path is not None:
        res["locations"] = [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": safe_relpath(v.location.path, project_root)},
                    "region": {"startLine": v.location.line or 1, "startColumn": v.location.col or 1},
                }
            }
        ]

    return res


def _sarif_level(severity: str) -> str:
    if severity == "error":
        return "error"
    if severity == "warn":
        return "warning"
    return "note"
