from __future__ import annotations

from collections.abc import Iterable

from stylesentinel.config import FailOn
from stylesentinel.engine.types import SEVERITY_RANK, ScanSummary, Violation

EXIT_OK = 0
EXIT_POLICY = 1
EXIT_FAILURE = 2

# `fail-on` threshold -> lowest severity rank that trips it.
_FAIL_THRESHOLD: dict[str, int | None] = {
    "error": SEVERITY_RANK["error"],
    "warn": SEVERITY_RANK["warn"],
    "info": SEVERITY_RANK["info"],
    "never": None,
}


def sort_key(v: Violation) -> tuple[str, int, int, str, str]:
    loc = v.location
    path = loc.path.as_posix() if loc is not None and loc.path is not None else ""
    line = loc.line if loc is not None and loc.line is not None else 0
    col = loc.col if loc is not None and loc.col is not None else 0
    return path, line, col, v.rule_id, v.message


def sort_violations(violations: Iterable[Violation]) -> tuple[Violation, ...]:
    """Order by file, then line and column; rule id and message break ties."""

    return tuple(sorted(violations, key=sort_key))


def summarize(*, files_scanned: int, violations: Iterable[Violation], incomplete: bool = False) -> ScanSummary:
    ordered = sort_violations(violations)
    counts = {"error": 0, "warn": 0, "info": 0}
    for v in ordered:
        counts[v.severity] += 1
    return ScanSummary(
        files_scanned=files_scanned,
        violations=ordered,
        errors=counts["error"],
        warnings=counts["warn"],
        infos=counts["info"],
        incomplete=incomplete,
    )


def should_fail(summary: ScanSummary, fail_on: FailOn) -> bool:
    threshold = _FAIL_THRESHOLD[fail_on]
    if threshold is None:
        return False
    return any(SEVERITY_RANK[v.severity] >= threshold for v in summary.violations)


def exit_code(summary: ScanSummary, fail_on: FailOn = "error") -> int:
    return EXIT_POLICY if should_fail(summary, fail_on) else EXIT_OK
