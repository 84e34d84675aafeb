from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType

from stylesentinel.engine.nodes import NODE_KINDS
from stylesentinel.rules.base import BaseRule, RuleMeta
from stylesentinel.rules.correctness import builtin_correctness_rules
from stylesentinel.rules.headers import builtin_header_rules
from stylesentinel.rules.layout import builtin_layout_rules
from stylesentinel.rules.naming import builtin_naming_rules

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")
# Engine diagnostics (parse errors, rule failures, unreadable files) own the X prefix.
_RESERVED_PREFIX = "X"
_EXTRA_RULES: dict[str, BaseRule] = {}
_EXTRA_GENERATION = 0

# Diagnostics emitted by the engine; listed so reporters and `explain` can describe them.
ENGINE_RULE_META: Mapping[str, RuleMeta] = MappingProxyType(
    {
        "X01": RuleMeta(
            rule_id="X01",
            title="Parse error",
            description="The file could not be tokenized; structural checks were skipped for it.",
            default_severity="warn",
            node_kinds=("file",),
            group="engine",
        ),
        "X02": RuleMeta(
            rule_id="X02",
            title="Rule execution error",
            description="A rule raised an exception; its remaining checks for the file were skipped.",
            default_severity="info",
            node_kinds=("file",),
            group="engine",
        ),
        "X03": RuleMeta(
            rule_id="X03",
            title="Unreadable file",
            description="The file could not be read.",
            default_severity="error",
            node_kinds=("file",),
            group="engine",
        ),
    }
)


def _validate_meta(meta: RuleMeta) -> None:
    rule_id = meta.rule_id
    if rule_id != rule_id.strip() or rule_id != rule_id.upper():
        raise RuntimeError(f"Rule id must be canonical uppercase without whitespace: {rule_id!r}")
    if not _RULE_ID_RE.match(rule_id):
        raise RuntimeError(f"Rule id must match {_RULE_ID_RE.pattern}: {rule_id!r}")
    if rule_id.startswith(_RESERVED_PREFIX):
        raise RuntimeError(f"Rule id prefix {_RESERVED_PREFIX!r} is reserved for engine diagnostics: {rule_id}")
    if not meta.node_kinds:
        raise RuntimeError(f"Rule {rule_id} does not target any node kind")
    unknown = [kind for kind in meta.node_kinds if kind not in NODE_KINDS or kind == "opaque"]
    if unknown:
        raise RuntimeError(f"Rule {rule_id} targets unknown node kind(s): {', '.join(unknown)}")


@lru_cache(maxsize=1)
def builtin_rules() -> tuple[BaseRule, ...]:
    rules: list[BaseRule] = []
    rules.extend(builtin_naming_rules())
    rules.extend(builtin_layout_rules())
    rules.extend(builtin_correctness_rules())
    rules.extend(builtin_header_rules())

    by_id: dict[str, BaseRule] = {}
    for rule in rules:
        _validate_meta(rule.meta)
        if rule.meta.rule_id in by_id:  # pragma: no cover
            raise RuntimeError(f"Duplicate rule id: {rule.meta.rule_id}")
        by_id[rule.meta.rule_id] = rule

    return tuple(by_id[k] for k in sorted(by_id))


def set_extra_rules(rules: Iterable[BaseRule]) -> None:
    """
    Register extra (plugin) rules for this process.

    The CLI runs one check per process, so process-wide registration is
    sufficient and keeps reporters and `explain` able to resolve plugin rule
    metadata.
    """

    global _EXTRA_RULES, _EXTRA_GENERATION  # noqa: PLW0603

    by_id: dict[str, BaseRule] = {}
    builtin_ids = {r.meta.rule_id for r in builtin_rules()}
    for rule in rules:
        _validate_meta(rule.meta)
        rule_id = rule.meta.rule_id
        if rule_id in builtin_ids:
            raise RuntimeError(f"Plugin rule id conflicts with built-in rule id: {rule_id}")
        if rule_id in by_id:
            raise RuntimeError(f"Duplicate plugin rule id: {rule_id}")
        by_id[rule_id] = rule

    _EXTRA_RULES = by_id
    _EXTRA_GENERATION += 1


def all_rules() -> tuple[BaseRule, ...]:
    return _all_rules(_EXTRA_GENERATION)


@lru_cache(maxsize=4)
def _all_rules(extra_generation: int) -> tuple[BaseRule, ...]:
    _ = extra_generation
    rules = list(builtin_rules())
    rules.extend(_EXTRA_RULES.values())
    by_id = {r.meta.rule_id: r for r in rules}
    return tuple(by_id[k] for k in sorted(by_id))


def rule_ids() -> set[str]:
    return {r.meta.rule_id for r in all_rules()}


def rule_meta_by_id() -> Mapping[str, RuleMeta]:
    return _rule_meta_by_id_map(_EXTRA_GENERATION)


@lru_cache(maxsize=4)
def _rule_meta_by_id_map(extra_generation: int) -> Mapping[str, RuleMeta]:
    _ = extra_generation
    meta = {r.meta.rule_id: r.meta for r in all_rules()}
    meta.update(ENGINE_RULE_META)
    return MappingProxyType({k: meta[k] for k in sorted(meta)})


def rule_by_id(rule_id: str) -> BaseRule | None:
    return _rule_by_id_map(_EXTRA_GENERATION).get(rule_id)


@lru_cache(maxsize=4)
def _rule_by_id_map(extra_generation: int) -> Mapping[str, BaseRule]:
    _ = extra_generation
    return MappingProxyType({r.meta.rule_id: r for r in all_rules()})
