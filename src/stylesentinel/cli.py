from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from stylesentinel import __version__
from stylesentinel.audit import AuditCallbacks, AuditResult, audit_files
from stylesentinel.config import ConfigError, FailOn, parse_fail_on
from stylesentinel.engine.report import EXIT_FAILURE, exit_code
from stylesentinel.engine.types import ScanSummary
from stylesentinel.logging_utils import configure_logging
from stylesentinel.reporters.github import render_github_annotations
from stylesentinel.reporters.json_reporter import render_json, render_jsonl
from stylesentinel.reporters.sarif import render_sarif
from stylesentinel.reporters.terminal import render_terminal
from stylesentinel.reporters.text import render_text
from stylesentinel.scanner import ScanPathError, ScanTarget

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="StyleSentinel: style-conformance checker for Unreal-style C++.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("terminal", "text", "json", "jsonl", "github", "sarif")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long runs.", show_default=True),
    ] = True,
) -> None:
    """StyleSentinel CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def _render(fmt: str, *, summary: ScanSummary, project_root: Path) -> str:
    if fmt == "text":
        return render_text(summary, project_root=project_root)
    if fmt == "json":
        return render_json(summary, project_root=project_root)
    if fmt == "jsonl":
        return render_jsonl(summary, project_root=project_root)
    if fmt == "github":
        return render_github_annotations(summary.violations, project_root=project_root)
    if fmt == "sarif":
        return render_sarif(summary.violations, project_root=project_root)
    raise typer.BadParameter(f"Unsupported format. Use: {', '.join(OUTPUT_FORMATS)}.")


def _emit_output(
    fmt: str,
    *,
    summary: ScanSummary,
    project_root: Path,
    output: Path | None,
    show_details: bool,
) -> None:
    if fmt == "terminal":
        if output is None:
            render_terminal(summary, project_root=project_root, console=console, show_details=show_details)
            return
        with output.open("w", encoding="utf-8") as fh:
            file_console = Console(file=fh, no_color=True, width=120)
            render_terminal(summary, project_root=project_root, console=file_console, show_details=show_details)
        return

    rendered = _render(fmt, summary=summary, project_root=project_root)
    if output is None:
        if rendered:
            typer.echo(rendered)
        return
    output.write_text(rendered + "\n" if rendered else "", encoding="utf-8")


def _audit_with_optional_progress(
    target: ScanTarget,
    files: list[Path],
    *,
    fail_fast: bool,
    show_progress: bool,
) -> AuditResult:
    if not show_progress:
        return audit_files(target, files=files, fail_fast=fail_fast)

    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )
    task = progress.add_task("Check", total=len(files))

    def _on_scanned(_path: Path) -> None:
        progress.advance(task, 1)

    with progress:
        return audit_files(
            target,
            files=files,
            fail_fast=fail_fast,
            callbacks=AuditCallbacks(on_file_scanned=_on_scanned),
        )


@app.command()
def check(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(help="Files or directories to check (default: current directory)."),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", help=f"Output format: {', '.join(OUTPUT_FORMATS)}.", show_default=True),
    ] = "terminal",
    fail_on: Annotated[
        str | None,
        typer.Option("--fail-on", help="Exit 1 at this severity or above: error, warn, info, never (default: config)."),
    ] = None,
    fail_fast: Annotated[
        bool,
        typer.Option("--fail-fast", help="Stop scheduling files after the first error-severity violation."),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", dir_okay=False, help="Write the report to a file instead of stdout."),
    ] = None,
) -> None:
    """
    Check C++ sources and report style violations.

    Exit codes:
    - 0: no violations at or above the fail-on severity
    - 1: at least one violation at or above the fail-on severity
    - 2: driver failure (bad path, no files, invalid config or plugin)
    """

    from stylesentinel.scanner import discover_files, prepare_target

    settings = _cli_settings()
    fmt = output_format.strip().lower()
    if fmt not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Unsupported format. Use: {', '.join(OUTPUT_FORMATS)}.")

    cli_fail_on: FailOn | None = None
    if fail_on is not None:
        try:
            cli_fail_on = parse_fail_on(fail_on, field_name="--fail-on")
        except ConfigError as exc:
            raise typer.BadParameter(str(exc)) from exc

    scan_paths = paths or [Path(".")]
    try:
        target = prepare_target(scan_paths)
        files = discover_files(target)
    except (ScanPathError, ConfigError) as exc:
        err_console.print(f"Check failed: {exc}")
        raise typer.Exit(code=EXIT_FAILURE) from exc
    if not files:
        err_console.print("No C++ files found under: " + ", ".join(str(p) for p in scan_paths))
        raise typer.Exit(code=EXIT_FAILURE)
    logger.debug("discovered %d candidate file(s) under %s", len(files), target.project_root)

    try:
        result = _audit_with_optional_progress(
            target,
            files,
            fail_fast=fail_fast,
            show_progress=settings["progress"] and not settings["quiet"] and fmt == "terminal" and output is None,
        )
    except RuntimeError as exc:
        # Plugin import failures and rule id conflicts.
        err_console.print(f"Check failed: {exc}")
        raise typer.Exit(code=EXIT_FAILURE) from exc

    _emit_output(
        fmt,
        summary=result.summary,
        project_root=result.target.project_root,
        output=output,
        show_details=not settings["quiet"],
    )

    code = exit_code(result.summary, cli_fail_on or result.target.config.fail_on)
    if code:
        raise typer.Exit(code=code)


def _load_target_rules(path: Path) -> ScanTarget:
    from stylesentinel.rules.plugins import load_plugin_rules
    from stylesentinel.rules.registry import set_extra_rules
    from stylesentinel.scanner import prepare_target

    try:
        target = prepare_target([path])
        set_extra_rules(load_plugin_rules(target.config.plugins))
    except (ScanPathError, ConfigError, RuntimeError) as exc:
        err_console.print(f"Failed to load configuration: {exc}")
        raise typer.Exit(code=EXIT_FAILURE) from exc
    return target


@app.command()
def rules(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
    enabled_only: Annotated[
        bool,
        typer.Option("--enabled-only", help="Only show rules enabled by the current config."),
    ] = False,
) -> None:
    """
    List built-in and plugin rules with their metadata.
    """

    from rich.table import Table

    from stylesentinel.config import compute_enabled_rule_ids
    from stylesentinel.rules.registry import all_rules

    target = _load_target_rules(path)
    available_rules = list(all_rules())
    enabled_ids = compute_enabled_rule_ids(
        target.config.rules,
        available_rule_ids=(r.meta.rule_id for r in available_rules),
    )

    rows = []
    for rule in available_rules:
        meta = rule.meta
        enabled = meta.rule_id in enabled_ids
        if enabled_only and not enabled:
            continue
        rows.append(
            {
                "rule_id": meta.rule_id,
                "enabled": enabled,
                "group": meta.group,
                "title": meta.title,
                "description": meta.description,
                "default_severity": meta.default_severity,
                "severity": target.config.rules.severity_for(meta.rule_id) or meta.default_severity,
                "node_kinds": list(meta.node_kinds),
                "headers_only": meta.headers_only,
            }
        )

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="StyleSentinel Rules")
    table.add_column("ID", style="bold")
    table.add_column("Enabled", justify="center")
    table.add_column("Severity")
    table.add_column("Group")
    table.add_column("Targets")
    table.add_column("Title")
    for row in rows:
        table.add_row(
            str(row["rule_id"]),
            "yes" if row["enabled"] else "no",
            str(row["severity"]),
            str(row["group"]),
            ", ".join(row["node_kinds"]) + (" (headers)" if row["headers_only"] else ""),
            str(row["title"]),
        )
    console.print(table)


@app.command()
def explain(
    rule_id: Annotated[
        str,
        typer.Argument(help="Rule id to explain (e.g. N01, L02, X01)."),
    ],
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory used to load config + plugin rules (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    Explain a single rule (metadata, examples, config and suppression hints).
    """

    from rich.panel import Panel
    from rich.syntax import Syntax
    from rich.text import Text

    from stylesentinel.rules.examples import EXAMPLES
    from stylesentinel.rules.registry import rule_meta_by_id

    _load_target_rules(path)

    canonical = rule_id.strip().upper()
    meta = rule_meta_by_id().get(canonical)
    if meta is None:
        raise typer.BadParameter(f"Unknown rule id: {rule_id!r}. Use `stylesentinel rules` to list available rules.")
    example = EXAMPLES.get(meta.rule_id)

    normalized = output_format.strip().lower()
    if normalized == "json":
        payload = {
            "rule_id": meta.rule_id,
            "title": meta.title,
            "description": meta.description,
            "default_severity": meta.default_severity,
            "group": meta.group,
            "node_kinds": list(meta.node_kinds),
            "headers_only": meta.headers_only,
            "example": (
                {
                    "language": example.language,
                    "bad": example.bad,
                    "good": example.good,
                    "notes": example.notes,
                }
                if example is not None
                else None
            ),
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    header = Text()
    header.append(meta.rule_id, style="bold")
    header.append(" · ", style="dim")
    header.append(meta.title)

    details = "\n".join(
        [
            meta.description,
            "",
            f"Default severity: {meta.default_severity}",
            f"Group: {meta.group}",
            f"Targets: {', '.join(meta.node_kinds)}" + (" (headers only)" if meta.headers_only else ""),
        ]
    )
    console.print(Panel(details, title=header, border_style="cyan"))

    console.print(Text("Config override (.stylesentinel.toml):", style="bold"))
    console.print(
        Syntax(f"[rules.{meta.rule_id}]\nseverity = \"info\"  # or warn/error\n", "toml", word_wrap=True)
    )
    console.print(Text("Suppressions (in-file):", style="bold"))
    console.print(
        Syntax(
            "\n".join(
                [
                    f"// style: disable-file={meta.rule_id}",
                    f"int32 Value = 1; // style: disable={meta.rule_id}",
                    f"// style: disable-next-line={meta.rule_id}",
                    "int32 Other = 2;",
                    "",
                ]
            ),
            "cpp",
            word_wrap=True,
        )
    )

    if example is not None:
        console.print(Text("Example:", style="bold"))
        if example.notes:
            console.print(Text(example.notes, style="dim"))
        console.print(Text("Bad:", style="bold"))
        console.print(Syntax(example.bad, example.language, word_wrap=True))
        if example.good is not None:
            console.print(Text("Good:", style="bold"))
            console.print(Syntax(example.good, example.language, word_wrap=True))
