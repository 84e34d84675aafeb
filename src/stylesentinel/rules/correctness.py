from __future__ import annotations

import re
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import ClassDecl, FunctionDecl, StructuralNode, SwitchBlock, VariableDecl
from stylesentinel.engine.tokens import TokenKind
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_line, loc_from_token


@dataclass(frozen=True, slots=True)
class C01SwitchFallthrough(BaseRule):
    meta = RuleMeta(
        rule_id="C01",
        title="Switch fallthrough",
        description=(
            "Every case block ends in `break`/`return`/`continue`/`goto`/`throw` or carries a "
            "fallthrough comment, unless it is empty and immediately followed by another label."
        ),
        default_severity="warn",
        node_kinds=("switch",),
        group="correctness",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, SwitchBlock):
            return []
        violations: list[Violation] = []
        for case in node.cases:
            if case.statements == 0 or case.terminator is not None or case.has_fallthrough_marker:
                continue
            label = "default" if case.is_default else "case"
            violations.append(
                self._violation(
                    message=f"`{label}` block falls through without `break`.",
                    suggestion="End the block with `break;` or mark the intent with a `// fall through` comment.",
                    location=loc_from_token(ctx, case.label),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class C02SwitchDefault(BaseRule):
    meta = RuleMeta(
        rule_id="C02",
        title="Switch without default",
        description="A `switch` statement handles the `default` case.",
        default_severity="info",
        node_kinds=("switch",),
        group="correctness",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, SwitchBlock) or node.open_brace is None or node.has_default:
            return []
        return [
            self._violation(
                message="`switch` statement has no `default` case.",
                suggestion="Add `default:` (for example with an ensure/check) to make unhandled values explicit.",
                location=loc_from_line(ctx, line=node.line, col=node.col),
            )
        ]


@dataclass(frozen=True, slots=True)
class C03VirtualDestructor(BaseRule):
    meta = RuleMeta(
        rule_id="C03",
        title="Missing virtual destructor",
        description="A base class that declares virtual functions also declares a virtual destructor.",
        default_severity="error",
        node_kinds=("class",),
        group="correctness",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, ClassDecl) or node.bases:
            return []
        functions = list(node.functions())
        virtual = [f for f in functions if (f.is_virtual or f.is_pure) and not f.is_destructor]
        if not virtual:
            return []
        if any(f.is_destructor and f.is_virtual for f in functions):
            return []
        return [
            self._violation(
                message=(
                    f"{node.keyword.capitalize()} `{node.name}` declares virtual function "
                    f"`{virtual[0].name}` but no virtual destructor."
                ),
                suggestion=f"Declare `virtual ~{node.name}() = default;`.",
                location=loc_from_token(ctx, node.name_token),
            )
        ]


@dataclass(frozen=True, slots=True)
class C04NullMacro(BaseRule):
    meta = RuleMeta(
        rule_id="C04",
        title="NULL macro",
        description="Use `nullptr` instead of the `NULL` macro.",
        default_severity="warn",
        node_kinds=("file",),
        group="correctness",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        return [
            self._violation(
                message="`NULL` used where `nullptr` is expected.",
                suggestion="Replace `NULL` with `nullptr`.",
                location=loc_from_token(ctx, token),
            )
            for token in ctx.tokens
            if token.kind is TokenKind.IDENTIFIER and token.text == "NULL"
        ]


_INTEGER_WORDS = frozenset({"char", "short", "int", "long", "signed", "unsigned"})
_TYPE_QUALIFIERS = frozenset({"const", "static", "volatile", "constexpr", "mutable", "inline", "extern", "thread_local"})
_WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def sized_replacement(type_text: str) -> str | None:
    """Return the sized alias for a builtin integer type (`unsigned int` -> `uint32`), or None."""

    words = [w for w in _WORD_RE.findall(type_text) if w not in _TYPE_QUALIFIERS]
    if not words or any(w not in _INTEGER_WORDS for w in words):
        return None
    unsigned = "unsigned" in words
    explicit_sign = unsigned or "signed" in words
    longs = words.count("long")
    if "short" in words:
        base = "int16"
    elif longs >= 2:
        base = "int64"
    elif longs == 1:
        base = "int32"
    elif "char" in words:
        if not explicit_sign:
            return None
        base = "int8"
    else:
        base = "int32"
    return "u" + base if unsigned else base


@dataclass(frozen=True, slots=True)
class C05SizedInteger(BaseRule):
    meta = RuleMeta(
        rule_id="C05",
        title="Sized integer types",
        description="Use the engine's sized integer aliases (`int32`, `uint8`, ...) instead of builtin integer types.",
        default_severity="info",
        node_kinds=("variable", "function"),
        group="correctness",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if isinstance(node, VariableDecl):
            type_text, what = node.type_text, f"`{node.name}`"
            token = node.name_token
        elif isinstance(node, FunctionDecl):
            if node.name == "main":
                return []
            type_text, what = node.return_type, f"return type of `{node.name}`"
            token = node.name_token
        else:
            return []

        replacement = sized_replacement(type_text)
        if replacement is None:
            return []
        return [
            self._violation(
                message=f"Builtin integer type `{type_text}` used for {what}.",
                suggestion=f"Use `{replacement}`.",
                location=loc_from_token(ctx, token),
            )
        ]


def builtin_correctness_rules() -> list[BaseRule]:
    return [
        C01SwitchFallthrough(),
        C02SwitchDefault(),
        C03VirtualDestructor(),
        C04NullMacro(),
        C05SizedInteger(),
    ]
