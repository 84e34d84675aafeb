from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from stylesentinel.engine.detection import RuleSets, detect
from stylesentinel.engine.report import summarize
from stylesentinel.engine.types import ScanSummary
from stylesentinel.rules.plugins import load_plugin_rules
from stylesentinel.rules.registry import all_rules, rule_meta_by_id, set_extra_rules
from stylesentinel.scanner import (
    ScanTarget,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


class NoFilesError(RuntimeError):
    """Raised when the scan paths contain no checkable files."""


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    summary: ScanSummary


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    on_files_discovered: Callable[[int], None] | None = None
    on_file_scanned: Callable[[Path], None] | None = None


def audit_paths(
    scan_paths: Sequence[Path],
    *,
    fail_fast: bool = False,
    workers: int | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """
    Check every supported file under `scan_paths`.

    Raises `ScanPathError`, `ConfigError`, `PluginLoadError` or `NoFilesError`
    for failures that abort the whole run; anything file-local is reported
    as a diagnostic instead.
    """

    target = prepare_target(scan_paths)
    files = discover_files(target)
    if not files:
        raise NoFilesError("No C++ files found under: " + ", ".join(str(p) for p in scan_paths))
    return audit_files(target, files=files, fail_fast=fail_fast, workers=workers, callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: Sequence[Path],
    fail_fast: bool = False,
    workers: int | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    if callbacks is not None and callbacks.on_files_discovered is not None:
        callbacks.on_files_discovered(len(files))

    set_extra_rules(load_plugin_rules(target.config.plugins))
    _warn_unknown_rule_ids(target)

    project = build_project_context(target, files)
    rulesets = RuleSets.from_config(target.config, all_rules())
    effective_workers = workers if workers is not None else worker_count_from_env()
    logger.debug(
        "checking %d file(s) with %d rule(s), %d worker(s)",
        len(files),
        len(rulesets.default.rules),
        effective_workers,
    )

    result = detect(
        project,
        files,
        rulesets=rulesets,
        workers=effective_workers,
        fail_fast=fail_fast,
        on_file_done=callbacks.on_file_scanned if callbacks else None,
    )
    summary = summarize(
        files_scanned=result.files_checked,
        violations=result.violations,
        incomplete=result.incomplete,
    )
    return AuditResult(target=target, files=tuple(files), summary=summary)


def _warn_unknown_rule_ids(target: ScanTarget) -> None:
    known = set(rule_meta_by_id())
    config = target.config
    referenced = set(config.rules.overrides).union(config.rules.severity_overrides)
    for rules_cfg in config.directory_overrides.values():
        referenced.update(rules_cfg.overrides)
        referenced.update(rules_cfg.severity_overrides)
    for rule_id in sorted(referenced - known):
        logger.warning("unknown rule id in rules overrides: %s", rule_id)
