from __future__ import annotations

import json
from pathlib import Path

from helpers import CLEAN_HEADER, ERROR_HEADER, WARN_HEADER, write_file
from typer.testing import CliRunner

from stylesentinel import __version__
from stylesentinel.cli import app


def _project(tmp_path: Path, files: dict[str, str], config: str = "") -> Path:
    write_file(tmp_path, ".stylesentinel.toml", config)
    for relpath, content in files.items():
        write_file(tmp_path, relpath, content)
    return tmp_path


def test_version() -> None:
    res = CliRunner().invoke(app, ["--version"])
    assert res.exit_code == 0
    assert __version__ in res.output


def test_check_clean_project_exits_zero(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER})
    res = CliRunner().invoke(app, ["check", str(root), "--format", "text"])
    assert res.exit_code == 0
    assert res.stdout.strip() == ""


def test_check_error_violation_exits_one(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": ERROR_HEADER})
    res = CliRunner().invoke(app, ["check", str(root), "--format", "text"])
    assert res.exit_code == 1
    assert res.stdout.strip() == (
        "Source/Shape.h:3:7: error: Class `FShape` declares virtual function `Area` but no virtual destructor. [C03]"
    )


def test_fail_on_threshold_from_cli_and_config(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/State.h": WARN_HEADER})
    runner = CliRunner()
    assert runner.invoke(app, ["check", str(root), "--format", "text"]).exit_code == 0
    assert runner.invoke(app, ["check", str(root), "--format", "text", "--fail-on", "warn"]).exit_code == 1

    (root / ".stylesentinel.toml").write_text('fail-on = "warn"\n', encoding="utf-8")
    assert runner.invoke(app, ["check", str(root), "--format", "text"]).exit_code == 1
    assert runner.invoke(app, ["check", str(root), "--format", "text", "--fail-on", "never"]).exit_code == 0


def test_invalid_fail_on_and_format_are_usage_errors(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER})
    runner = CliRunner()
    assert runner.invoke(app, ["check", str(root), "--fail-on", "sometimes"]).exit_code == 2
    assert runner.invoke(app, ["check", str(root), "--format", "xml"]).exit_code == 2


def test_missing_path_exits_two(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["check", str(tmp_path / "nope")])
    assert res.exit_code == 2


def test_no_files_exits_two(tmp_path: Path) -> None:
    root = _project(tmp_path, {"README.md": "# game\n"})
    res = CliRunner().invoke(app, ["check", str(root)])
    assert res.exit_code == 2


def test_invalid_config_exits_two(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER}, config='fail-on = "sometimes"\n')
    res = CliRunner().invoke(app, ["check", str(root)])
    assert res.exit_code == 2


def test_missing_plugin_exits_two(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER}, config='plugins = ["no_such_style_plugin"]\n')
    res = CliRunner().invoke(app, ["check", str(root), "--format", "text"])
    assert res.exit_code == 2


def test_json_output(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": ERROR_HEADER, "Source/State.h": WARN_HEADER})
    res = CliRunner().invoke(app, ["check", str(root), "--format", "json"])
    assert res.exit_code == 1
    payload = json.loads(res.stdout)
    assert payload["files_scanned"] == 2
    assert payload["counts"] == {"error": 1, "warn": 1, "info": 0}
    assert [(v["file"], v["ruleId"]) for v in payload["violations"]] == [
        ("Source/Shape.h", "C03"),
        ("Source/State.h", "N01"),
    ]


def test_output_file(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": ERROR_HEADER})
    out = tmp_path / "report.jsonl"
    res = CliRunner().invoke(app, ["check", str(root / "Source"), "--format", "jsonl", "-o", str(out)])
    assert res.exit_code == 1
    assert res.stdout == ""
    (line,) = out.read_text(encoding="utf-8").splitlines()
    assert json.loads(line)["ruleId"] == "C03"


def test_explicit_file_argument(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": ERROR_HEADER, "Source/Other.h": ERROR_HEADER})
    res = CliRunner().invoke(app, ["check", str(root / "Source" / "Shape.h"), "--format", "json"])
    payload = json.loads(res.stdout)
    assert payload["files_scanned"] == 1


def test_terminal_output(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": ERROR_HEADER})
    res = CliRunner().invoke(app, ["--no-progress", "check", str(root)])
    assert res.exit_code == 1
    assert "Checked 1 files" in res.stdout
    assert "C03" in res.stdout


def test_fail_fast_marks_report_incomplete(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("STYLESENTINEL_WORKERS", "1")
    root = _project(tmp_path, {f"Source/Shape{i}.h": ERROR_HEADER for i in range(3)})
    res = CliRunner().invoke(app, ["check", str(root), "--format", "json", "--fail-fast"])
    assert res.exit_code == 1
    payload = json.loads(res.stdout)
    assert payload["incomplete"] is True
    assert payload["files_scanned"] == 1


def test_verbose_and_quiet_are_exclusive(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["--verbose", "--quiet", "check", str(tmp_path)])
    assert res.exit_code == 2


def test_verbose_enables_debug_logging(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER})
    res = CliRunner().invoke(app, ["--verbose", "check", str(root), "--format", "json"])
    assert res.exit_code == 0
    assert "discovered" in res.output.lower()


def test_quiet_suppresses_debug_logging(tmp_path: Path) -> None:
    root = _project(tmp_path, {"Source/Shape.h": CLEAN_HEADER})
    res = CliRunner().invoke(app, ["--quiet", "check", str(root), "--format", "json"])
    assert res.exit_code == 0
    assert "discovered" not in res.output.lower()


def test_rules_json_reflects_config(tmp_path: Path) -> None:
    root = _project(tmp_path, {}, config='[rules]\ndisable = ["layout"]\n\n[rules.C03]\nseverity = "warn"\n')
    res = CliRunner().invoke(app, ["rules", str(root), "--format", "json"])
    assert res.exit_code == 0
    rows = {row["rule_id"]: row for row in json.loads(res.stdout)}
    assert set(rows) == {"N01", "N02", "L01", "L02", "L03", "L04", "L05", "L06", "C01", "C02", "C03", "C04", "C05", "H01", "H02"}
    assert rows["L01"]["enabled"] is False
    assert rows["N01"]["enabled"] is True
    assert rows["C03"]["severity"] == "warn"
    assert rows["C03"]["default_severity"] == "error"
    assert rows["H01"]["headers_only"] is True

    enabled = CliRunner().invoke(app, ["rules", str(root), "--format", "json", "--enabled-only"])
    assert not any(row["rule_id"].startswith("L") for row in json.loads(enabled.stdout))


def test_rules_terminal_table(tmp_path: Path) -> None:
    root = _project(tmp_path, {})
    res = CliRunner().invoke(app, ["rules", str(root)])
    assert res.exit_code == 0
    assert "StyleSentinel Rules" in res.stdout
    assert "N01" in res.stdout


def test_explain_rule_json(tmp_path: Path) -> None:
    root = _project(tmp_path, {})
    res = CliRunner().invoke(app, ["explain", "n01", "--path", str(root), "--format", "json"])
    assert res.exit_code == 0
    payload = json.loads(res.stdout)
    assert payload["rule_id"] == "N01"
    assert payload["group"] == "naming"
    assert payload["example"]["bad"]


def test_explain_engine_diagnostic(tmp_path: Path) -> None:
    root = _project(tmp_path, {})
    res = CliRunner().invoke(app, ["explain", "X01", "--path", str(root), "--format", "json"])
    assert res.exit_code == 0
    payload = json.loads(res.stdout)
    assert payload["group"] == "engine"
    assert payload["default_severity"] == "warn"


def test_explain_terminal(tmp_path: Path) -> None:
    root = _project(tmp_path, {})
    res = CliRunner().invoke(app, ["explain", "C01", "--path", str(root)])
    assert res.exit_code == 0
    assert "Switch fallthrough" in res.stdout
    assert "style: disable-next-line=C01" in res.stdout


def test_explain_unknown_rule(tmp_path: Path) -> None:
    root = _project(tmp_path, {})
    res = CliRunner().invoke(app, ["explain", "Z99", "--path", str(root)])
    assert res.exit_code == 2
