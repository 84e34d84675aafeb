from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import IncludeDirective, IncludeList, StructuralNode
from stylesentinel.engine.tokens import TokenKind
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_line, loc_from_token
from stylesentinel.rules.utils import class_bases, strip_prefix

_PRAGMA_ONCE_RE = re.compile(r"^#\s*pragma\s+once\b")

INCLUDE_CATEGORIES = ("precompiled header", "base-class header", "generated header", "other")


def include_category(include: IncludeDirective, *, pch_patterns: tuple[str, ...], base_stems: set[str]) -> int:
    target = include.target.replace("\\", "/")
    basename = target.rsplit("/", 1)[-1]
    if any(fnmatch.fnmatchcase(basename, p) or fnmatch.fnmatchcase(target, p) for p in pch_patterns):
        return 0
    if basename.endswith(".generated.h"):
        return 2
    stem = basename.rsplit(".", 1)[0]
    if stem in base_stems:
        return 1
    return 3


@dataclass(frozen=True, slots=True)
class H01IncludeOrder(BaseRule):
    meta = RuleMeta(
        rule_id="H01",
        title="Include order",
        description=(
            "Includes in a header follow the order: precompiled header, base-class header, "
            "generated header, other."
        ),
        default_severity="warn",
        node_kinds=("include_list",),
        group="headers",
        headers_only=True,
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, IncludeList) or len(node.includes) < 2:
            return []

        base_stems: set[str] = set()
        for base in class_bases(ctx):
            base_stems.add(base)
            base_stems.add(strip_prefix(base))

        highest = -1
        highest_include: IncludeDirective | None = None
        for include in node.includes:
            rank = include_category(include, pch_patterns=ctx.style.pch, base_stems=base_stems)
            if rank < highest and highest_include is not None:
                return [
                    self._violation(
                        message=(
                            f"Include `{include.target}` ({INCLUDE_CATEGORIES[rank]}) appears after "
                            f"`{highest_include.target}` ({INCLUDE_CATEGORIES[highest]})."
                        ),
                        suggestion="Expected order: " + ", ".join(INCLUDE_CATEGORIES) + ".",
                        location=loc_from_token(ctx, include.token),
                    )
                ]
            if rank > highest:
                highest = rank
                highest_include = include
        return []


@dataclass(frozen=True, slots=True)
class H02PragmaOnce(BaseRule):
    meta = RuleMeta(
        rule_id="H02",
        title="Missing #pragma once",
        description="Header files are guarded with `#pragma once`.",
        default_severity="warn",
        node_kinds=("file",),
        group="headers",
        headers_only=True,
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        for token in ctx.tokens:
            if token.kind is TokenKind.PREPROCESSOR and _PRAGMA_ONCE_RE.match(token.text):
                return []
        return [
            self._violation(
                message="Header has no `#pragma once`.",
                suggestion="Add `#pragma once` at the top of the header instead of include guards.",
                location=loc_from_line(ctx, line=1),
            )
        ]


def builtin_header_rules() -> list[BaseRule]:
    return [H01IncludeOrder(), H02PragmaOnce()]
