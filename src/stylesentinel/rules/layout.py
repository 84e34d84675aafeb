from __future__ import annotations

from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import (
    ClassDecl,
    ControlStmt,
    EnumDecl,
    FunctionDecl,
    NamespaceDecl,
    StructuralNode,
    SwitchBlock,
    VariableDecl,
)
from stylesentinel.engine.tokens import Token, TokenKind
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_line, loc_from_token
from stylesentinel.rules.utils import is_sole_token_on_line, whitespace_before

_POINTER_TOKENS = frozenset({"*", "&", "&&"})
# Comment markers that may follow `//` directly: doc comments, separators, `//~ Begin` blocks.
_COMMENT_MARKERS = frozenset("/!<~-=*#")


def _describe(node: StructuralNode) -> str:
    if isinstance(node, ClassDecl):
        return f"{node.keyword} `{node.name}`"
    if isinstance(node, FunctionDecl):
        return f"function `{node.name}`"
    if isinstance(node, EnumDecl):
        return f"enum `{node.name}`" if node.name else "enum"
    if isinstance(node, NamespaceDecl):
        return f"namespace `{node.name}`" if node.name else "anonymous namespace"
    if isinstance(node, SwitchBlock):
        return "`switch` statement"
    if isinstance(node, ControlStmt):
        return f"`{node.keyword}` statement"
    return node.kind


@dataclass(frozen=True, slots=True)
class L01BraceStyle(BaseRule):
    meta = RuleMeta(
        rule_id="L01",
        title="Brace on its own line",
        description="The opening brace of a type, function, namespace or control statement is the sole token on its line.",
        default_severity="warn",
        node_kinds=("class", "function", "enum", "namespace", "switch", "control"),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        brace: Token | None = getattr(node, "open_brace", None)
        if brace is None or is_sole_token_on_line(ctx.tokens, brace):
            return []
        return [
            self._violation(
                message=f"Opening brace of {_describe(node)} should be on its own line.",
                suggestion="Move `{` to the next line, aligned with the declaration.",
                location=loc_from_token(ctx, brace),
            )
        ]


@dataclass(frozen=True, slots=True)
class L02PointerSpacing(BaseRule):
    meta = RuleMeta(
        rule_id="L02",
        title="Pointer/reference spacing",
        description="Exactly one space precedes `*`/`&` in a declaration and none separates it from the name.",
        default_severity="warn",
        node_kinds=("variable", "function"),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if isinstance(node, FunctionDecl):
            if node.is_operator or node.is_constructor or node.is_destructor:
                return []
            start = _qualified_start(ctx.tokens, node.name_token.index)
        elif isinstance(node, VariableDecl):
            start = node.name_token.index
        else:
            return []

        tokens = ctx.tokens
        idx = start - 1
        space_after = False
        if idx >= 0 and tokens[idx].kind is TokenKind.WHITESPACE:
            if tokens[idx].is_newline:
                return []
            space_after = True
            idx -= 1

        run_end = idx
        while idx >= 0 and tokens[idx].kind is TokenKind.OPERATOR and tokens[idx].text in _POINTER_TOKENS:
            idx -= 1
        if idx == run_end:
            return []
        run_start = idx + 1

        before = whitespace_before(tokens, run_start)
        if before is None:
            return []
        if before == " " and not space_after:
            return []

        run = "".join(t.text for t in tokens[run_start : run_end + 1])
        if space_after and before == " ":
            detail = f"has a space between `{run}` and the name"
        elif space_after:
            detail = f"attaches `{run}` to the type"
        else:
            detail = f"needs exactly one space before `{run}`"
        return [
            self._violation(
                message=f"Declaration of `{node.name}` {detail}.",
                suggestion=f"Write `Type {run}{node.name}`.",
                location=loc_from_token(ctx, tokens[run_start]),
            )
        ]


def _qualified_start(tokens: tuple[Token, ...], index: int) -> int:
    # Walk back over `Owner::` qualifiers of an out-of-line definition.
    while index >= 2 and tokens[index - 1].text == "::" and tokens[index - 2].kind is TokenKind.IDENTIFIER:
        index -= 2
    return index


_MEMBER_ORDER = ("constructors", "destructor", "overrides", "functions", "variables")


def member_rank(member: StructuralNode) -> int | None:
    if isinstance(member, FunctionDecl):
        if member.is_constructor:
            return 0
        if member.is_destructor:
            return 1
        if member.is_override:
            return 2
        return 3
    if isinstance(member, VariableDecl):
        return 4
    return None


@dataclass(frozen=True, slots=True)
class L03MemberOrder(BaseRule):
    meta = RuleMeta(
        rule_id="L03",
        title="Member declaration order",
        description=(
            "Within a visibility block members follow the order: constructors, destructor, "
            "overrides, other functions, variables."
        ),
        default_severity="info",
        node_kinds=("class",),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, ClassDecl):
            return []
        violations: list[Violation] = []
        for group in node.groups:
            highest = -1
            highest_member: StructuralNode | None = None
            for member in group.members:
                rank = member_rank(member)
                if rank is None:
                    continue
                if rank < highest and highest_member is not None:
                    name = getattr(member, "name", "member")
                    violations.append(
                        self._violation(
                            message=(
                                f"`{name}` ({_MEMBER_ORDER[rank]}) is declared after "
                                f"`{getattr(highest_member, 'name', 'member')}` ({_MEMBER_ORDER[highest]}) "
                                f"in the {group.access or 'default'} section of `{node.name}`."
                            ),
                            suggestion="Expected order: " + ", ".join(_MEMBER_ORDER) + ".",
                            location=loc_from_line(ctx, line=member.line, col=member.col),
                        )
                    )
                    break
                if rank > highest:
                    highest = rank
                    highest_member = member
        return violations


@dataclass(frozen=True, slots=True)
class L04TabIndentation(BaseRule):
    meta = RuleMeta(
        rule_id="L04",
        title="Tab indentation",
        description="Lines are indented with tabs; spaces may only follow tabs for alignment.",
        default_severity="info",
        node_kinds=("file",),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        tokens = ctx.tokens
        violations: list[Violation] = []
        for i, token in enumerate(tokens):
            at_line_start = i == 0 or tokens[i - 1].is_newline
            if not at_line_start or token.kind is not TokenKind.WHITESPACE or token.is_newline:
                continue
            if i + 1 >= len(tokens) or tokens[i + 1].is_newline:
                continue  # whitespace-only line
            if token.text.startswith(" "):
                violations.append(
                    self._violation(
                        message="Line is indented with spaces.",
                        suggestion="Indent with tabs.",
                        location=loc_from_line(ctx, line=token.line, col=1),
                    )
                )
        return violations


@dataclass(frozen=True, slots=True)
class L05CommentSpacing(BaseRule):
    meta = RuleMeta(
        rule_id="L05",
        title="Comment spacing",
        description="A line comment marker `//` is followed by a space.",
        default_severity="info",
        node_kinds=("file",),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        violations: list[Violation] = []
        for token in ctx.tokens:
            if token.kind is not TokenKind.COMMENT or not token.text.startswith("//"):
                continue
            rest = token.text[2:]
            if not rest or rest[0].isspace() or rest[0] in _COMMENT_MARKERS:
                continue
            violations.append(
                self._violation(
                    message="Missing space after `//`.",
                    suggestion=f"Write `// {rest.strip()}`.",
                    location=loc_from_token(ctx, token),
                )
            )
        return violations


@dataclass(frozen=True, slots=True)
class L06ControlBraces(BaseRule):
    meta = RuleMeta(
        rule_id="L06",
        title="Braced control body",
        description="The body of `if`/`else`/`for`/`while`/`do` is always a braced block.",
        default_severity="warn",
        node_kinds=("control",),
        group="layout",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if not isinstance(node, ControlStmt) or node.open_brace is not None:
            return []
        return [
            self._violation(
                message=f"Body of `{node.keyword}` is not enclosed in braces.",
                suggestion="Wrap the body in `{ ... }`, even for a single statement.",
                location=loc_from_token(ctx, node.keyword_token),
            )
        ]


def builtin_layout_rules() -> list[BaseRule]:
    return [
        L01BraceStyle(),
        L02PointerSpacing(),
        L03MemberOrder(),
        L04TabIndentation(),
        L05CommentSpacing(),
        L06ControlBraces(),
    ]
