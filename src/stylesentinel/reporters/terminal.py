from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from stylesentinel import __version__
from stylesentinel.engine.types import ScanSummary, Violation
from stylesentinel.utils import safe_relpath

_SEVERITY_ICON = {"error": "✖", "warn": "⚠", "info": "ℹ"}
_SEVERITY_STYLE = {"error": "bold red", "warn": "yellow", "info": "dim"}


def render_terminal(summary: ScanSummary, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    header = Text()
    header.append("StyleSentinel ", style="bold")
    header.append(f"v{__version__}", style="dim")

    console.print(
        Panel(
            header,
            subtitle=f"Checked {summary.files_scanned} files",
            border_style="cyan",
        )
    )

    if show_details:
        by_file: dict[str, list[Violation]] = defaultdict(list)
        for v in summary.violations:
            path = v.location.path if v.location is not None else None
            by_file[safe_relpath(path, project_root) if path is not None else "<unknown>"].append(v)

        for file_path in sorted(by_file):
            console.print(Text(file_path, style="bold"))
            file_lines = _read_lines(project_root / file_path)
            for v in by_file[file_path]:
                _print_violation(console, v, file_lines=file_lines)
            console.print()

    _print_summary(summary, console=console)


def _print_violation(console: Console, v: Violation, *, file_lines: list[str]) -> None:
    icon = _SEVERITY_ICON.get(v.severity, "•")
    style = _SEVERITY_STYLE.get(v.severity, "")

    loc = ""
    if v.location is not None and v.location.line is not None:
        loc = f"{v.location.line}"
        if v.location.col is not None:
            loc += f":{v.location.col}"

    line = Text()
    line.append(f"  {icon} ", style=style)
    line.append(v.rule_id, style="bold")
    if loc:
        line.append(f"  ({loc})", style="dim")
    line.append(f"  {v.message}")
    console.print(line)

    if v.location is not None and v.location.line is not None:
        idx = v.location.line - 1
        if 0 <= idx < len(file_lines):
            snippet = file_lines[idx].expandtabs(4)
            console.print(Text(f"     {v.location.line:>4} │ {snippet}", style="dim"))

    if v.suggestion:
        console.print(Text(f"     → {v.suggestion}", style="dim"))


def _print_summary(summary: ScanSummary, *, console: Console) -> None:
    console.print(Text("─" * 60, style="dim"))
    if not summary.violations:
        console.print(Text("No style violations found.", style="bold green"))
    else:
        counts = Text()
        counts.append(f"{summary.errors} error(s)", style=_SEVERITY_STYLE["error"])
        counts.append(", ")
        counts.append(f"{summary.warnings} warning(s)", style=_SEVERITY_STYLE["warn"])
        counts.append(", ")
        counts.append(f"{summary.infos} info", style=_SEVERITY_STYLE["info"])
        console.print(counts)
    if summary.incomplete:
        console.print(Text("Stopped early (--fail-fast): some files were not checked.", style="yellow"))
    console.print(Text("─" * 60, style="dim"))


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []
