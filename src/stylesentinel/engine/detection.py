from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from stylesentinel.config import RulesConfig, StyleSentinelConfig, compute_enabled_rule_ids
from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.nodes import NodeKind, walk
from stylesentinel.engine.tokens import ParseError
from stylesentinel.engine.types import Location, Severity, Violation
from stylesentinel.rules.base import BaseRule
from stylesentinel.rules.registry import ENGINE_RULE_META, all_rules
from stylesentinel.scanner import build_file_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuleSet:
    """
    Enabled rules indexed by the node kind they target.

    Built once per distinct rules configuration and shared read-only between
    worker threads.
    """

    rules: tuple[BaseRule, ...]
    by_kind: Mapping[NodeKind, tuple[BaseRule, ...]]
    config: RulesConfig

    @classmethod
    def build(cls, config: RulesConfig, available: Iterable[BaseRule] | None = None) -> RuleSet:
        candidates = sorted(all_rules() if available is None else available, key=lambda r: r.meta.rule_id)
        enabled_ids = compute_enabled_rule_ids(config, available_rule_ids=(r.meta.rule_id for r in candidates))
        rules = tuple(r for r in candidates if r.meta.rule_id in enabled_ids)
        by_kind: dict[NodeKind, list[BaseRule]] = {}
        for rule in rules:
            for kind in rule.meta.node_kinds:
                by_kind.setdefault(kind, []).append(rule)
        return cls(
            rules=rules,
            by_kind=MappingProxyType({kind: tuple(rs) for kind, rs in by_kind.items()}),
            config=config,
        )

    @property
    def rule_ids(self) -> frozenset[str]:
        return frozenset(r.meta.rule_id for r in self.rules)

    def severity(self, rule_id: str, default: Severity) -> Severity:
        return self.config.severity_for(rule_id) or default


@dataclass(frozen=True, slots=True)
class RuleSets:
    """Top-level rule set plus one per directory override (longest prefix wins)."""

    default: RuleSet
    by_prefix: Mapping[str, RuleSet] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_config(cls, config: StyleSentinelConfig, available: Iterable[BaseRule] | None = None) -> RuleSets:
        rules = tuple(all_rules() if available is None else available)
        return cls(
            default=RuleSet.build(config.rules, rules),
            by_prefix=MappingProxyType(
                {prefix: RuleSet.build(rules_cfg, rules) for prefix, rules_cfg in config.directory_overrides.items()}
            ),
        )

    def for_path(self, relative_path: str) -> RuleSet:
        rel = relative_path.replace("\\", "/")
        best_len = -1
        best = self.default
        for prefix, ruleset in self.by_prefix.items():
            if rel.startswith(prefix) and len(prefix) > best_len:
                best = ruleset
                best_len = len(prefix)
        return best


@dataclass(frozen=True, slots=True)
class DetectionResult:
    violations: tuple[Violation, ...]
    files_checked: int
    incomplete: bool = False


def check_file(ruleset: RuleSet, ctx: FileContext) -> list[Violation]:
    """
    Dispatch every node of the parsed file to the rules targeting its kind.

    Severity overrides and inline suppressions are applied to the result. A
    rule that raises is reported once as X02 and skipped for the rest of the
    file.
    """

    violations: list[Violation] = []
    failed: set[str] = set()
    applicable = {r.meta.rule_id for r in ruleset.rules if r.applies_to(ctx)}

    for node in walk(ctx.tree):
        for rule in ruleset.by_kind.get(node.kind, ()):
            rule_id = rule.meta.rule_id
            if rule_id not in applicable or rule_id in failed:
                continue
            try:
                found = rule.check(node, ctx)
            except Exception as exc:  # noqa: BLE001
                failed.add(rule_id)
                logger.debug("rule %s failed on %s", rule_id, ctx.relative_path, exc_info=True)
                violations.append(
                    _engine_violation(
                        ruleset,
                        "X02",
                        message=f"Rule {rule_id} failed: {type(exc).__name__}: {exc}",
                        location=Location(path=ctx.path, line=node.line, col=node.col),
                    )
                )
                continue
            violations.extend(_with_severity(ruleset, found))

    return [v for v in violations if not _is_suppressed(ctx, v)]


def check_path(project: ProjectContext, rulesets: RuleSets, path: Path) -> list[Violation]:
    """Load, parse and check one file; file-local failures become diagnostics."""

    ruleset = rulesets.for_path(_relative(project, path))
    try:
        ctx = build_file_context(project, path)
    except ParseError as exc:
        return [
            _engine_violation(
                ruleset,
                "X01",
                message=f"Parse error: {exc.message}",
                location=Location(path=path, line=exc.line, col=exc.col),
            )
        ]
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return [
            _engine_violation(
                ruleset,
                "X03",
                message=f"Cannot read file: {exc.strerror or exc}",
                location=Location(path=path),
            )
        ]
    except Exception as exc:  # noqa: BLE001
        logger.debug("parser failed on %s", path, exc_info=True)
        return [
            _engine_violation(
                ruleset,
                "X01",
                message=f"Parse error: {type(exc).__name__}: {exc}",
                location=Location(path=path, line=1, col=1),
            )
        ]
    return check_file(ruleset, ctx)


def detect(
    project: ProjectContext,
    paths: Sequence[Path],
    *,
    rulesets: RuleSets | None = None,
    workers: int | None = None,
    fail_fast: bool = False,
    on_file_done: Callable[[Path], None] | None = None,
) -> DetectionResult:
    """
    Check `paths` and merge their violations.

    Files are independent; with `workers > 1` they run in a thread pool and
    results are merged as each file completes. With `fail_fast`, the first
    error-severity violation cancels the files that have not started yet and
    the result is marked incomplete. Ordering is left to the report step.
    """

    if rulesets is None:
        rulesets = RuleSets.from_config(project.config)
    file_list = list(paths)
    effective_workers = workers or 1

    violations: list[Violation] = []
    checked = 0

    if effective_workers <= 1 or len(file_list) <= 1:
        for path in file_list:
            found = check_path(project, rulesets, path)
            violations.extend(found)
            checked += 1
            if on_file_done is not None:
                on_file_done(path)
            if fail_fast and _has_error(found) and checked < len(file_list):
                logger.info("fail-fast: stopping after %s", _relative(project, path))
                return DetectionResult(violations=tuple(violations), files_checked=checked, incomplete=True)
        return DetectionResult(violations=tuple(violations), files_checked=checked)

    max_workers = min(max(1, effective_workers), len(file_list))
    incomplete = False
    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        pending: dict[Future[list[Violation]], Path] = {
            executor.submit(check_path, project, rulesets, path): path for path in file_list
        }
        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                path = pending.pop(future)
                found = future.result()
                violations.extend(found)
                checked += 1
                if on_file_done is not None:
                    on_file_done(path)
                if fail_fast and not incomplete and _has_error(found):
                    logger.info("fail-fast: stopping after %s", _relative(project, path))
                    for other in list(pending):
                        if other.cancel():
                            del pending[other]
                            incomplete = True
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return DetectionResult(violations=tuple(violations), files_checked=checked, incomplete=incomplete)


def _relative(project: ProjectContext, path: Path) -> str:
    try:
        return path.relative_to(project.project_root).as_posix()
    except ValueError:
        return path.as_posix()


def _engine_violation(ruleset: RuleSet, rule_id: str, *, message: str, location: Location) -> Violation:
    meta = ENGINE_RULE_META[rule_id]
    return Violation(
        rule_id=rule_id,
        severity=ruleset.severity(rule_id, meta.default_severity),
        message=message,
        location=location,
    )


def _with_severity(ruleset: RuleSet, violations: list[Violation]) -> list[Violation]:
    adjusted: list[Violation] = []
    for v in violations:
        severity = ruleset.config.severity_for(v.rule_id)
        if severity is None or severity == v.severity:
            adjusted.append(v)
            continue
        adjusted.append(
            Violation(
                rule_id=v.rule_id,
                severity=severity,
                message=v.message,
                suggestion=v.suggestion,
                location=v.location,
            )
        )
    return adjusted


def _is_suppressed(ctx: FileContext, violation: Violation) -> bool:
    line = violation.location.line if violation.location else None
    return ctx.suppressions.is_suppressed(violation.rule_id, line=line)


def _has_error(violations: Iterable[Violation]) -> bool:
    return any(v.severity == "error" for v in violations)
