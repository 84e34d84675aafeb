from __future__ import annotations

from pathlib import Path

from stylesentinel.engine.context import FileContext, ProjectContext
from stylesentinel.engine.nodes import walk
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule
from stylesentinel.scanner import build_file_context


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str) -> FileContext:
    path = write_file(project_ctx.project_root, relpath, content)
    return build_file_context(project_ctx, path)


def run_rule(rule: BaseRule, ctx: FileContext) -> list[Violation]:
    if not rule.applies_to(ctx):
        return []
    violations: list[Violation] = []
    for node in walk(ctx.tree):
        if node.kind in rule.meta.node_kinds:
            violations.extend(rule.check(node, ctx))
    return violations


CLEAN_HEADER = (
    "#pragma once\n"
    "\n"
    '#include "CoreMinimal.h"\n'
    "\n"
    "class FShape\n"
    "{\n"
    "public:\n"
    "\tvirtual ~FShape() = default;\n"
    "\tvirtual float Area() const;\n"
    "};\n"
)

# Same class without a virtual destructor: one C03 (error) violation.
ERROR_HEADER = (
    "#pragma once\n"
    "\n"
    "class FShape\n"
    "{\n"
    "public:\n"
    "\tvirtual float Area() const;\n"
    "};\n"
)

# One N01 (warn) violation on `Alive`.
WARN_HEADER = (
    "#pragma once\n"
    "\n"
    "struct FState\n"
    "{\n"
    "\tbool Alive;\n"
    "};\n"
)


def write_file(root: Path, relpath: str, content: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
