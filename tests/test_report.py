from __future__ import annotations

from pathlib import Path

import pytest

from stylesentinel.engine.report import EXIT_OK, EXIT_POLICY, exit_code, should_fail, sort_violations, summarize
from stylesentinel.engine.types import Location, Violation


def _v(rule_id: str, severity: str, path: str | None, line: int | None = None, col: int | None = None, message: str = "m") -> Violation:
    location = Location(path=Path(path) if path else None, line=line, col=col)
    return Violation(rule_id=rule_id, severity=severity, message=message, location=location)  # type: ignore[arg-type]


def test_sort_by_path_line_col_rule_message() -> None:
    violations = [
        _v("N01", "warn", "b/B.h", 1, 1),
        _v("L02", "warn", "a/A.h", 10, 3),
        _v("C03", "error", "a/A.h", 2, 7),
        _v("N02", "warn", "a/A.h", 2, 7),
        _v("N02", "warn", "a/A.h", 2, 7, message="a"),
        _v("X03", "error", "a/A.h"),
        _v("L02", "warn", "a/A.h", 2, 1),
    ]
    ordered = sort_violations(violations)
    assert [(str(v.location.path), v.location.line, v.location.col, v.rule_id, v.message) for v in ordered] == [
        ("a/A.h", None, None, "X03", "m"),
        ("a/A.h", 2, 1, "L02", "m"),
        ("a/A.h", 2, 7, "C03", "m"),
        ("a/A.h", 2, 7, "N02", "a"),
        ("a/A.h", 2, 7, "N02", "m"),
        ("a/A.h", 10, 3, "L02", "m"),
        ("b/B.h", 1, 1, "N01", "m"),
    ]


def test_violation_without_location_sorts_first() -> None:
    bare = Violation(rule_id="X02", severity="info", message="m")
    ordered = sort_violations([_v("N01", "warn", "A.h", 1, 1), bare])
    assert ordered[0] is bare


def test_summarize_counts_severities() -> None:
    summary = summarize(
        files_scanned=4,
        violations=[_v("C03", "error", "A.h", 1), _v("N01", "warn", "A.h", 2), _v("N02", "warn", "B.h", 1), _v("L04", "info", "B.h", 3)],
        incomplete=True,
    )
    assert (summary.errors, summary.warnings, summary.infos) == (1, 2, 1)
    assert summary.files_scanned == 4
    assert summary.incomplete
    assert [v.rule_id for v in summary.violations] == ["C03", "N01", "N02", "L04"]


@pytest.mark.parametrize(
    ("severities", "fail_on", "expected"),
    [
        ([], "error", EXIT_OK),
        (["warn", "info"], "error", EXIT_OK),
        (["error"], "error", EXIT_POLICY),
        (["warn"], "warn", EXIT_POLICY),
        (["info"], "warn", EXIT_OK),
        (["info"], "info", EXIT_POLICY),
        (["error", "warn"], "never", EXIT_OK),
    ],
)
def test_exit_code_policy(severities: list[str], fail_on: str, expected: int) -> None:
    summary = summarize(files_scanned=1, violations=[_v("N01", s, "A.h", i) for i, s in enumerate(severities, start=1)])
    assert exit_code(summary, fail_on) == expected  # type: ignore[arg-type]
    assert should_fail(summary, fail_on) is (expected == EXIT_POLICY)  # type: ignore[arg-type]
