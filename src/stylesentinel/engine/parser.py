from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Literal

from stylesentinel.engine.nodes import (
    Access,
    CaseBlock,
    ClassDecl,
    ControlStmt,
    EnumDecl,
    Enumerator,
    FunctionDecl,
    IncludeDirective,
    IncludeList,
    NamespaceDecl,
    Opaque,
    Span,
    StructuralNode,
    SwitchBlock,
    TranslationUnit,
    VariableDecl,
    VariableRole,
    VisibilityGroup,
)
from stylesentinel.engine.tokens import SourceFile, Token, TokenKind, significant

# Each nesting level costs a handful of Python frames; deeper bodies are
# skipped iteratively and wrapped in an Opaque node.
MAX_NESTING_DEPTH = 64

ScopeKind = Literal["file", "namespace", "class", "block"]

MACRO_RE = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Za-z0-9]+)*$")
INCLUDE_RE = re.compile(r'^#\s*include\s*(?:<(?P<system>[^>]*)>|"(?P<local>[^"]*)"|(?P<other>\S.*))')
FALLTHROUGH_RE = re.compile(r"fall(?:s|ing)?[\s_-]*thr(?:ough|u)", re.IGNORECASE)
NEGATION_RE = re.compile(r"\b(?:not|never|no)\b|n't\b", re.IGNORECASE)
DECL_MACRO_RE = re.compile(r"^(?:[A-Z][A-Z0-9]*_API|FORCEINLINE(?:_DEBUGGABLE)?|FORCENOINLINE|UE_NODISCARD)$")

_OPENERS = frozenset("{([")
_CLOSERS = frozenset("})]")
_ACCESS = frozenset({"public", "protected", "private"})
_CONTROL = frozenset({"if", "else", "for", "while", "do", "try", "catch"})
_SKIPPED = frozenset({"typedef", "using", "friend", "static_assert", "asm", "export", "requires"})
_STATEMENT_KEYWORDS = frozenset(
    {
        "return",
        "break",
        "continue",
        "goto",
        "throw",
        "delete",
        "new",
        "co_return",
        "co_yield",
        "co_await",
        "this",
        "sizeof",
        "true",
        "false",
        "nullptr",
        "static_cast",
        "const_cast",
        "dynamic_cast",
        "reinterpret_cast",
        "typeid",
        "alignof",
        "case",
        "default",
    }
)
TERMINATORS = frozenset({"break", "return", "continue", "goto", "throw", "co_return"})
SPECIFIERS = frozenset(
    {
        "virtual",
        "static",
        "inline",
        "explicit",
        "constexpr",
        "consteval",
        "constinit",
        "extern",
        "friend",
        "mutable",
        "thread_local",
        "register",
    }
)
_QUALIFIERS = frozenset({"const", "volatile", "typename", "struct", "class", "enum", "union"})
TYPE_KEYWORDS = frozenset(
    {
        "unsigned",
        "signed",
        "short",
        "long",
        "int",
        "char",
        "char8_t",
        "char16_t",
        "char32_t",
        "wchar_t",
        "bool",
        "float",
        "double",
        "void",
        "auto",
        "decltype",
    }
    | SPECIFIERS
    | _QUALIFIERS
)
_TYPE_PUNCT = frozenset({"::", "*", "&", "&&"})


@dataclass(frozen=True, slots=True)
class _AccessLabel:
    access: Access


@dataclass(slots=True)
class _CaseState:
    label: Token
    is_default: bool
    body_depth: int = 0
    started: bool = False
    statements: int = 0
    last: str | None = None
    marker: bool = False

    def freeze(self) -> CaseBlock:
        return CaseBlock(
            label=self.label,
            is_default=self.is_default,
            statements=self.statements,
            terminator=self.last if self.last in TERMINATORS else None,
            has_fallthrough_marker=self.marker,
        )


def matching_index(tokens: Sequence[Token], i: int) -> int:
    """Index of the bracket closing `tokens[i]`, or the last index when unbalanced."""

    depth = 0
    for j in range(i, len(tokens)):
        text = tokens[j].text
        if text in _OPENERS:
            depth += 1
        elif text in _CLOSERS:
            depth -= 1
            if depth == 0:
                return j
    return len(tokens) - 1


def join_tokens(tokens: Sequence[Token]) -> str:
    out: list[str] = []
    prev: Token | None = None
    for t in tokens:
        if prev is not None and _wordlike(prev) and _wordlike(t):
            out.append(" ")
        out.append(t.text)
        prev = t
    return "".join(out)


def _wordlike(t: Token) -> bool:
    return t.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD, TokenKind.LITERAL)


def is_type_like(tokens: Sequence[Token]) -> bool:
    if not tokens:
        return False
    angle = 0
    has_core = False
    j = 0
    while j < len(tokens):
        t = tokens[j]
        text = t.text
        if text == "<":
            if j == 0 or tokens[j - 1].kind is not TokenKind.IDENTIFIER:
                return False
            angle += 1
        elif text == ">":
            if not angle:
                return False
            angle -= 1
        elif angle:
            if text in {";", "{", "}"}:
                return False
        elif text == "(" and j > 0 and tokens[j - 1].text in {"decltype", "alignas"}:
            j = matching_index(tokens, j)
        elif t.kind is TokenKind.IDENTIFIER:
            has_core = True
        elif t.kind is TokenKind.KEYWORD:
            if text not in TYPE_KEYWORDS:
                return False
            if text not in SPECIFIERS and text not in _QUALIFIERS:
                has_core = True
        elif text not in _TYPE_PUNCT:
            return False
        j += 1
    return has_core and angle == 0


def _skip_decorations(head: Sequence[Token], i: int) -> int:
    while i < len(head):
        t = head[i]
        nxt = head[i + 1] if i + 1 < len(head) else None
        if t.text == "[" and nxt is not None and nxt.text == "[":
            i = matching_index(head, i) + 1
            continue
        if t.kind is TokenKind.IDENTIFIER and MACRO_RE.match(t.text) and nxt is not None and nxt.text == "(":
            i = matching_index(head, i + 1) + 1
            continue
        if t.text == "extern" and nxt is not None and nxt.kind is TokenKind.LITERAL:
            i += 2
            continue
        break
    return i


def _split_top_level(tokens: Sequence[Token], *, track_angles: bool) -> list[list[Token]]:
    segments: list[list[Token]] = [[]]
    depth = 0
    angle = 0
    after_eq = False
    for idx, t in enumerate(tokens):
        text = t.text
        if text in _OPENERS:
            depth += 1
        elif text in _CLOSERS:
            depth = max(depth - 1, 0)
        elif depth == 0 and track_angles and not after_eq:
            if text == "<" and idx > 0 and tokens[idx - 1].kind is TokenKind.IDENTIFIER:
                angle += 1
            elif text == ">" and angle:
                angle -= 1
        if depth == 0 and angle == 0 and text == ",":
            segments.append([])
            after_eq = False
            continue
        if depth == 0 and text == "=":
            after_eq = True
        segments[-1].append(t)
    return [s for s in segments if s]


class StructuralParser:
    """
    Best-effort structural parser over a token stream.

    Produces a shallow tree of declarations and blocks. Anything it cannot
    classify becomes an `Opaque` node; it never raises on token input.
    """

    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens = tokens
        self._sig = significant(tokens)
        self._pos = 0
        self._depth = 0

    def parse(self) -> TranslationUnit:
        children: list[StructuralNode] = []
        while self._pos < len(self._sig):
            for item in self._parse_items("file"):
                if not isinstance(item, _AccessLabel):
                    children.append(item)
            if self._pos < len(self._sig):
                # Stray closing brace at file scope.
                self._pos += 1
        last = max(len(self._tokens) - 1, 0)
        return TranslationUnit(span=Span(0, last), line=1, col=1, children=tuple(children))

    # -- cursor helpers -------------------------------------------------

    def _peek(self, offset: int = 0) -> Token | None:
        idx = self._pos + offset
        if 0 <= idx < len(self._sig):
            return self._sig[idx]
        return None

    def _text_at(self, offset: int = 0) -> str | None:
        tok = self._peek(offset)
        return tok.text if tok is not None else None

    def _last_token(self) -> Token:
        return self._sig[min(self._pos, len(self._sig)) - 1]

    def _skip_balanced(self) -> Token:
        end = matching_index(self._sig, self._pos)
        self._pos = end + 1
        return self._sig[end]

    def _skip_statement(self) -> Token | None:
        depth = 0
        last: Token | None = None
        while self._pos < len(self._sig):
            tok = self._sig[self._pos]
            if tok.text in _OPENERS:
                depth += 1
            elif tok.text in _CLOSERS:
                if depth == 0:
                    break
                depth -= 1
            elif tok.text == ";" and depth == 0:
                self._pos += 1
                return tok
            last = tok
            self._pos += 1
        return last

    def _opaque(self, first: Token, last: Token | None, children: Sequence[StructuralNode] = ()) -> Opaque:
        end = last.index if last is not None else first.index
        return Opaque(span=Span(first.index, max(end, first.index)), line=first.line, col=first.col, children=tuple(children))

    def _opaque_statement(self) -> Opaque:
        first = self._sig[self._pos]
        return self._opaque(first, self._skip_statement())

    # -- scopes ---------------------------------------------------------

    def _parse_items(
        self,
        scope: ScopeKind,
        *,
        owner: str | None = None,
        access: Access = "",
    ) -> list[StructuralNode | _AccessLabel]:
        items: list[StructuralNode | _AccessLabel] = []
        while (tok := self._peek()) is not None and tok.text != "}":
            start = self._pos
            if tok.kind is TokenKind.PREPROCESSOR:
                if INCLUDE_RE.match(tok.text):
                    items.append(self._parse_include_list())
                else:
                    self._pos += 1
                continue
            if tok.text == ";":
                self._pos += 1
                continue
            if scope == "class" and tok.text in _ACCESS and self._text_at(1) == ":":
                access = tok.text  # type: ignore[assignment]
                items.append(_AccessLabel(access))
                self._pos += 2
                continue
            items.extend(self._parse_item(scope, owner=owner, access=access))
            if self._pos == start:
                self._pos += 1
        return items

    def _parse_body(
        self,
        scope: ScopeKind,
        *,
        owner: str | None = None,
        access: Access = "",
    ) -> tuple[Token, Token, list[StructuralNode | _AccessLabel]]:
        open_brace = self._sig[self._pos]
        if self._depth >= MAX_NESTING_DEPTH:
            close = self._skip_balanced()
            return open_brace, close, [self._opaque(open_brace, close)]

        self._pos += 1
        self._depth += 1
        try:
            items = self._parse_items(scope, owner=owner, access=access)
        finally:
            self._depth -= 1

        close = self._peek()
        if close is not None and close.text == "}":
            self._pos += 1
        else:
            close = self._last_token()
        return open_brace, close, items

    def _parse_item(
        self,
        scope: ScopeKind,
        *,
        owner: str | None,
        access: Access,
        is_template: bool = False,
    ) -> list[StructuralNode]:
        tok = self._sig[self._pos]
        text = tok.text

        if text == "{":
            open_brace, close, items = self._parse_body("block" if scope == "block" else scope, owner=owner, access=access)
            return [self._opaque(open_brace, close, _nodes_only(items))]
        if text == "template":
            return self._parse_template(scope, owner=owner, access=access)
        if scope in {"file", "namespace"} and (
            text == "namespace" or (text == "inline" and self._text_at(1) == "namespace")
        ):
            return [self._parse_namespace()]
        if text in {"class", "struct", "union"}:
            node = self._parse_class(access=access, is_template=is_template)
            if node is not None:
                return [node]
        if text == "enum":
            return [self._parse_enum(access=access)]
        if text == "extern" and self._peek(1) is not None and self._peek(1).kind is TokenKind.LITERAL and self._text_at(2) == "{":  # type: ignore[union-attr]
            self._pos += 2
            open_brace, close, items = self._parse_body(scope)
            return [self._opaque(tok, close, _nodes_only(items))]
        if text in _SKIPPED:
            return [self._opaque_statement()]
        if scope == "block":
            if text == "switch":
                return [self._parse_switch()]
            if text in _CONTROL:
                return [self._parse_control()]
            if text in {"case", "default"} and self._skip_label():
                return []
            if text in _STATEMENT_KEYWORDS:
                self._skip_statement()
                return []
        if tok.kind is TokenKind.IDENTIFIER and MACRO_RE.match(tok.text) and len(text) > 1 and self._text_at(1) == "(":
            self._pos += 1
            last = self._skip_balanced()
            if self._text_at() == ";":
                last = self._sig[self._pos]
                self._pos += 1
            return [self._opaque(tok, last)]
        return self._parse_declaration(scope, owner=owner, access=access)

    def _skip_label(self) -> bool:
        depth = 0
        for j in range(self._pos + 1, len(self._sig)):
            text = self._sig[j].text
            if text in _OPENERS:
                depth += 1
            elif text in _CLOSERS:
                depth -= 1
            elif text in {";", "{"} and depth <= 0:
                return False
            elif text == ":" and depth == 0:
                self._pos = j + 1
                return True
        return False

    # -- declarations ---------------------------------------------------

    def _parse_include_list(self) -> IncludeList:
        first = self._sig[self._pos]
        includes: list[IncludeDirective] = []
        while (tok := self._peek()) is not None and tok.kind is TokenKind.PREPROCESSOR:
            match = INCLUDE_RE.match(tok.text)
            if match is None:
                break
            if match.group("system") is not None:
                target, is_system = match.group("system").strip(), True
            elif match.group("local") is not None:
                target, is_system = match.group("local").strip(), False
            else:
                target, is_system = match.group("other").strip(), False
            includes.append(IncludeDirective(target=target, is_system=is_system, token=tok))
            self._pos += 1
        last = includes[-1].token
        return IncludeList(span=Span(first.index, last.index), line=first.line, col=first.col, includes=tuple(includes))

    def _parse_template(self, scope: ScopeKind, *, owner: str | None, access: Access) -> list[StructuralNode]:
        first = self._sig[self._pos]
        # Nested heads (`template<class T> template<class U>`) are consumed here, not by recursion.
        while self._text_at() == "template":
            self._pos += 1
            if self._text_at() == "<":
                self._skip_template_args()
        if self._peek() is None or self._text_at() in {";", "}"}:
            return [self._opaque(first, self._last_token())]
        nodes = self._parse_item(scope, owner=owner, access=access, is_template=True)
        return [replace(node, span=Span(first.index, node.span.last)) for node in nodes]

    def _skip_template_args(self) -> None:
        angle = 0
        while (tok := self._peek()) is not None:
            self._pos += 1
            if tok.text == "<":
                angle += 1
            elif tok.text == ">":
                angle -= 1
                if angle == 0:
                    return
            elif tok.text in {"(", "["}:
                self._pos -= 1
                self._skip_balanced()
            elif tok.text in {";", "{", "}"}:
                self._pos -= 1
                return

    def _parse_namespace(self) -> StructuralNode:
        start = self._pos
        first = self._sig[start]
        if first.text == "inline":
            self._pos += 1
        self._pos += 1
        name_parts: list[Token] = []
        while (tok := self._peek()) is not None and tok.text not in {"{", ";", "=", "}"}:
            name_parts.append(tok)
            self._pos += 1
        if self._text_at() != "{":
            self._pos = start
            return self._opaque_statement()
        open_brace, close, items = self._parse_body("namespace")
        return NamespaceDecl(
            span=Span(first.index, close.index),
            line=first.line,
            col=first.col,
            name=join_tokens(name_parts) or None,
            open_brace=open_brace,
            children=_nodes_only(items),
        )

    def _parse_class(self, *, access: Access, is_template: bool) -> StructuralNode | None:
        start = self._pos
        keyword = self._sig[start]
        sig = self._sig
        i = start + 1
        name_tok: Token | None = None
        angle = 0
        bases_at: int | None = None
        while i < len(sig):
            t = sig[i]
            text = t.text
            if text in {"(", "["}:
                i = matching_index(sig, i) + 1
                continue
            if text == "<":
                angle += 1
            elif text == ">":
                angle = max(angle - 1, 0)
            elif angle == 0:
                if text in {"{", ";"}:
                    break
                if text == ":":
                    bases_at = i + 1
                    break
                if t.kind is TokenKind.IDENTIFIER:
                    name_tok = t
                elif text not in {"final", "alignas", "::"}:
                    return None
            i += 1
        if i >= len(sig):
            return None

        bases: list[str] = []
        if bases_at is not None:
            i = bases_at
            segment: list[Token] = []
            angle = 0
            while i < len(sig):
                t = sig[i]
                if t.text in {"(", "["}:
                    i = matching_index(sig, i) + 1
                    continue
                if t.text == "<":
                    angle += 1
                elif t.text == ">":
                    angle = max(angle - 1, 0)
                elif angle == 0 and t.text in {"{", ";", ","}:
                    base = _base_name(segment)
                    if base:
                        bases.append(base)
                    segment = []
                    if t.text != ",":
                        break
                    i += 1
                    continue
                segment.append(t)
                i += 1
            if i >= len(sig):
                return None

        if sig[i].text == ";":
            self._pos = start
            if bases_at is None and name_tok is not None and sig[i - 1] is name_tok:
                return self._opaque_statement()
            return None

        self._pos = i
        default_access: Access = "private" if keyword.text == "class" else "public"
        open_brace, close, items = self._parse_body("class", owner=name_tok.text if name_tok else None, access=default_access)
        last = close
        if self._text_at() == ";":
            last = self._sig[self._pos]
            self._pos += 1
        elif self._peek() is not None and self._text_at() != "}" and self._peek().kind is TokenKind.IDENTIFIER:  # type: ignore[union-attr]
            last = self._skip_statement() or close

        if name_tok is None:
            return self._opaque(keyword, last, _nodes_only(items))

        groups: list[VisibilityGroup] = []
        current_access: Access = default_access
        members: list[StructuralNode] = []
        for item in items:
            if isinstance(item, _AccessLabel):
                if members:
                    groups.append(VisibilityGroup(access=current_access, members=tuple(members)))
                current_access = item.access
                members = []
                continue
            members.append(item)
        if members:
            groups.append(VisibilityGroup(access=current_access, members=tuple(members)))

        return ClassDecl(
            span=Span(keyword.index, last.index),
            line=keyword.line,
            col=keyword.col,
            keyword=keyword.text,
            name=name_tok.text,
            name_token=name_tok,
            bases=tuple(bases),
            is_template=is_template,
            open_brace=open_brace,
            groups=tuple(groups),
            access=access,
        )

    def _parse_enum(self, *, access: Access) -> StructuralNode:
        start = self._pos
        first = self._sig[start]
        sig = self._sig
        i = start + 1
        scoped = i < len(sig) and sig[i].text in {"class", "struct"}
        if scoped:
            i += 1
        while i < len(sig) and sig[i].text == "[":
            i = matching_index(sig, i) + 1
        name_tok: Token | None = None
        if i < len(sig) and sig[i].kind is TokenKind.IDENTIFIER:
            name_tok = sig[i]
            i += 1
        if i < len(sig) and sig[i].text == ":":
            while i < len(sig) and sig[i].text not in {"{", ";", "}"}:
                i += 1
        if i >= len(sig) or sig[i].text != "{":
            return self._opaque_statement()

        open_brace = sig[i]
        close_idx = matching_index(sig, i)
        enumerators: list[Enumerator] = []
        expect_name = True
        j = i + 1
        while j < close_idx:
            t = sig[j]
            if t.text in _OPENERS:
                j = matching_index(sig, j) + 1
                continue
            if t.text == ",":
                expect_name = True
            elif expect_name and t.kind is TokenKind.IDENTIFIER:
                enumerators.append(Enumerator(name=t.text, token=t))
                expect_name = False
            j += 1

        self._pos = close_idx + 1
        last = sig[close_idx]
        if self._text_at() == ";":
            last = sig[self._pos]
            self._pos += 1
        elif self._peek() is not None and self._peek().kind is TokenKind.IDENTIFIER:  # type: ignore[union-attr]
            last = self._skip_statement() or last

        return EnumDecl(
            span=Span(first.index, last.index),
            line=first.line,
            col=first.col,
            name=name_tok.text if name_tok else None,
            name_token=name_tok,
            is_scoped=scoped,
            enumerators=tuple(enumerators),
            open_brace=open_brace,
            access=access,
        )

    def _collect_head(self) -> tuple[list[Token], Token | None]:
        head: list[Token] = []
        paren = 0
        seen_eq = False
        seen_call = False
        in_init = False
        sig = self._sig
        while self._pos < len(sig):
            t = sig[self._pos]
            text = t.text
            if paren == 0:
                if text == ";":
                    return head, t
                if text == "}":
                    return head, None
                if text == "{":
                    initializer = seen_eq or not seen_call or (
                        in_init and bool(head) and (head[-1].kind is TokenKind.IDENTIFIER or head[-1].text == ">")
                    )
                    if initializer:
                        end = matching_index(sig, self._pos)
                        head.extend(sig[self._pos : end + 1])
                        self._pos = end + 1
                        continue
                    return head, t
                if text == "=":
                    seen_eq = True
                elif text == ":" and head and head[-1].text == ")":
                    in_init = True
            if text in {"(", "["}:
                if paren == 0 and text == "(":
                    seen_call = True
                paren += 1
            elif text in {")", "]"}:
                paren = max(paren - 1, 0)
            head.append(t)
            self._pos += 1
        return head, None

    def _parse_declaration(self, scope: ScopeKind, *, owner: str | None, access: Access) -> list[StructuralNode]:
        first = self._sig[self._pos]
        head, term = self._collect_head()

        if scope != "block":
            function = self._as_function(head, term, scope=scope, owner=owner, access=access)
            if function is not None:
                return [function]

        role: VariableRole = {"file": "global", "namespace": "global", "class": "member", "block": "local"}[scope]
        variables = _as_variables(head, role=role, access=access)

        if term is not None and term.text == "{":
            open_brace, close, items = self._parse_body("block")
            return [self._opaque(first, close, _nodes_only(items))]
        last: Token | None = head[-1] if head else None
        if term is not None:
            self._pos += 1
            last = term

        if variables:
            span = Span(first.index, last.index if last is not None else first.index)
            return [replace(v, span=span) for v in variables]
        if scope == "block" or last is None:
            return []
        return [self._opaque(first, last)]

    def _as_function(
        self,
        head: list[Token],
        term: Token | None,
        *,
        scope: ScopeKind,
        owner: str | None,
        access: Access,
    ) -> FunctionDecl | None:
        i0 = _skip_decorations(head, 0)
        located = _params_index(head, i0)
        if located is None:
            return None
        k, name_start = located
        name_tok = head[name_start]
        is_operator = name_tok.text == "operator"
        if not is_operator and name_tok.kind is not TokenKind.IDENTIFIER:
            return None
        name = join_tokens(head[name_start:k]) if is_operator else name_tok.text

        prefix = head[i0:name_start]
        is_destructor = bool(prefix) and prefix[-1].text == "~"
        if is_destructor:
            prefix = prefix[:-1]
        qualifier: str | None = None
        while len(prefix) >= 2 and prefix[-1].text == "::":
            if prefix[-2].kind is TokenKind.IDENTIFIER and qualifier is None:
                qualifier = prefix[-2].text
            prefix = prefix[:-2]
            if prefix and prefix[-1].text == ">":
                return None

        flags = {t.text for t in prefix if t.text in SPECIFIERS}
        return_tokens = [
            t
            for t in prefix
            if t.text not in SPECIFIERS and not DECL_MACRO_RE.match(t.text)
        ]
        is_constructor = not is_destructor and not return_tokens and name in {owner, qualifier}
        if not return_tokens and not (is_constructor or is_destructor or is_operator):
            return None
        if return_tokens and not is_type_like(return_tokens):
            return None

        close = matching_index(head, k)
        trailer = head[close + 1 :]
        trailer_text = [t.text for t in trailer]
        is_pure = any(
            trailer_text[j] == "=" and j + 1 < len(trailer_text) and trailer_text[j + 1] == "0" for j in range(len(trailer_text))
        )
        parameters = _parameters(head[k + 1 : close])

        open_brace: Token | None = None
        body: tuple[StructuralNode, ...] = ()
        last = head[-1]
        if term is not None and term.text == "{":
            open_brace, last, items = self._parse_body("block")
            body = _nodes_only(items)
        elif term is not None:
            self._pos += 1
            last = term

        first = head[0]
        return FunctionDecl(
            span=Span(first.index, last.index),
            line=first.line,
            col=first.col,
            name=name,
            name_token=name_tok,
            return_type=join_tokens(return_tokens),
            parameters=parameters,
            open_brace=open_brace,
            body=body,
            access=access if scope == "class" else "",
            is_virtual="virtual" in flags,
            is_override="override" in trailer_text,
            is_static="static" in flags,
            is_pure=is_pure,
            is_constructor=is_constructor,
            is_destructor=is_destructor,
            is_operator=is_operator,
        )

    # -- statements -----------------------------------------------------

    def _parse_switch(self) -> SwitchBlock:
        first = self._sig[self._pos]
        self._pos += 1
        if self._text_at() == "(":
            self._skip_balanced()
        if self._text_at() != "{":
            children = self._parse_single_statement()
            return SwitchBlock(
                span=Span(first.index, self._last_token().index),
                line=first.line,
                col=first.col,
                open_brace=None,
                cases=(),
                children=tuple(children),
            )
        open_brace, close, items = self._parse_body("block")
        return SwitchBlock(
            span=Span(first.index, close.index),
            line=first.line,
            col=first.col,
            open_brace=open_brace,
            cases=self._collect_cases(open_brace, close),
            children=_nodes_only(items),
        )

    def _collect_cases(self, open_brace: Token, close: Token) -> tuple[CaseBlock, ...]:
        tokens = self._tokens
        end = close.index if close.text == "}" else close.index + 1
        cases: list[CaseBlock] = []
        current: _CaseState | None = None
        depth = 0
        paren = 0
        at_stmt_start = True
        stmt_first: Token | None = None
        stmt_fallthrough = False
        i = open_brace.index + 1
        while i < end:
            t = tokens[i]
            if t.kind is TokenKind.COMMENT:
                # Only a comment after the last statement of the case marks intent.
                if current is not None and FALLTHROUGH_RE.search(t.text) and not NEGATION_RE.search(t.text):
                    current.marker = True
                i += 1
                continue
            if t.kind in (TokenKind.WHITESPACE, TokenKind.PREPROCESSOR):
                i += 1
                continue
            if depth == 0 and paren == 0 and at_stmt_start and t.text in {"case", "default"}:
                colon = _label_colon(tokens, i + 1, end)
                if colon is not None:
                    if current is not None:
                        cases.append(current.freeze())
                    current = _CaseState(label=t, is_default=t.text == "default", body_depth=depth)
                    i = colon + 1
                    continue
            if current is not None and not current.started:
                current.started = True
                # `case N: { ... }` makes the braced block the case body.
                if t.text == "{":
                    current.body_depth = depth + 1
            if t.text == "fallthrough":
                stmt_fallthrough = True
            if at_stmt_start and t.text not in {"{", "}"}:
                stmt_first = t
                at_stmt_start = False
            if t.text in {"(", "["}:
                paren += 1
            elif t.text in {")", "]"}:
                paren = max(paren - 1, 0)
            elif paren == 0:
                if t.text == "{":
                    depth += 1
                    at_stmt_start = True
                elif t.text == "}":
                    depth = max(depth - 1, 0)
                    at_stmt_start = True
                    if current is not None:
                        if depth < current.body_depth:
                            current.body_depth = depth
                        elif depth == current.body_depth:
                            # A compound statement (loop, if, nested block) closed at case level.
                            current.statements = max(current.statements, 1)
                            current.last = None
                            current.marker = False
                elif t.text == ";":
                    if current is not None and stmt_first is not None:
                        current.statements += 1
                        if depth == current.body_depth:
                            current.last = stmt_first.text
                            current.marker = stmt_fallthrough
                    at_stmt_start = True
                    stmt_first = None
                    stmt_fallthrough = False
            i += 1
        if current is not None:
            cases.append(current.freeze())
        return tuple(cases)

    def _parse_control(self) -> ControlStmt:
        keyword_token = self._sig[self._pos]
        keyword = keyword_token.text
        if keyword == "else" and self._text_at(1) == "if":
            keyword = "else if"
            self._pos += 1
        self._pos += 1
        if keyword in {"if", "else if"} and self._text_at() == "constexpr":
            self._pos += 1
        if keyword in {"if", "else if", "for", "while", "catch"} and self._text_at() == "(":
            self._skip_balanced()

        open_brace: Token | None = None
        if self._text_at() == "{":
            open_brace, last, items = self._parse_body("block")
            children = _nodes_only(items)
        else:
            children = tuple(self._parse_single_statement())
            last = self._last_token()

        if keyword == "do" and self._text_at() == "while":
            self._pos += 1
            if self._text_at() == "(":
                last = self._skip_balanced()
            if self._text_at() == ";":
                last = self._sig[self._pos]
                self._pos += 1

        return ControlStmt(
            span=Span(keyword_token.index, max(last.index, keyword_token.index)),
            line=keyword_token.line,
            col=keyword_token.col,
            keyword=keyword,
            keyword_token=keyword_token,
            open_brace=open_brace,
            children=children,
        )

    def _parse_single_statement(self) -> list[StructuralNode]:
        if self._peek() is None or self._text_at() == "}":
            return []
        if self._depth >= MAX_NESTING_DEPTH:
            self._skip_statement()
            return []
        start = self._pos
        self._depth += 1
        try:
            nodes = self._parse_item("block", owner=None, access="")
        finally:
            self._depth -= 1
        if self._pos == start:
            self._pos += 1
        return nodes


def _nodes_only(items: Sequence[StructuralNode | _AccessLabel]) -> tuple[StructuralNode, ...]:
    return tuple(item for item in items if not isinstance(item, _AccessLabel))


def _label_colon(tokens: Sequence[Token], start: int, end: int) -> int | None:
    paren = 0
    for j in range(start, end):
        t = tokens[j]
        if t.is_trivia:
            continue
        if t.text in {"(", "["}:
            paren += 1
        elif t.text in {")", "]"}:
            paren -= 1
        elif t.text in {";", "{", "}"}:
            return None
        elif t.text == ":" and paren == 0:
            return j
    return None


def _base_name(segment: Sequence[Token]) -> str | None:
    name: str | None = None
    angle = 0
    for t in segment:
        if t.text == "<":
            angle += 1
        elif t.text == ">":
            angle = max(angle - 1, 0)
        elif angle == 0 and t.kind is TokenKind.IDENTIFIER:
            name = t.text
    return name


def _params_index(head: Sequence[Token], start: int) -> tuple[int, int] | None:
    """Locate the parameter list of a function head: (index of '(', index of name start)."""

    angle = 0
    j = start
    while j < len(head):
        t = head[j]
        text = t.text
        if text == "operator":
            m = j + 1
            if m + 1 < len(head) and head[m].text == "(" and head[m + 1].text == ")":
                m += 2
            else:
                while m < len(head) and head[m].text != "(":
                    m += 1
            return (m, j) if m < len(head) else None
        if text == "<" and j > 0 and head[j - 1].kind is TokenKind.IDENTIFIER:
            angle += 1
        elif text == ">" and angle:
            angle -= 1
        elif angle == 0:
            if text == "(":
                if j > start and head[j - 1].text in {"decltype", "alignas", "noexcept"}:
                    j = matching_index(head, j) + 1
                    continue
                return (j, j - 1) if j > start else None
            if text in {"=", "[", "{", "."} or text == "->":
                return None
        j += 1
    return None


def _parameters(tokens: Sequence[Token]) -> tuple[VariableDecl, ...]:
    params: list[VariableDecl] = []
    for segment in _split_top_level(tokens, track_angles=True):
        i0 = _skip_decorations(segment, 0)
        seg = segment[i0:]
        for j, t in enumerate(seg):
            if t.text == "=":
                seg = seg[:j]
                break
        if len(seg) < 2 or any(t.text == "(" for t in seg):
            continue
        if seg[-1].text == "]":
            k = len(seg) - 1
            while k > 0 and seg[k].text != "[":
                k -= 1
            seg = seg[:k]
            if len(seg) < 2:
                continue
        name = seg[-1]
        type_tokens = seg[:-1]
        if name.kind is not TokenKind.IDENTIFIER or type_tokens[-1].text == "::" or not is_type_like(type_tokens):
            continue
        params.append(
            VariableDecl(
                span=Span(segment[0].index, segment[-1].index),
                line=seg[0].line,
                col=seg[0].col,
                name=name.text,
                name_token=name,
                type_text=join_tokens(type_tokens),
                role="parameter",
            )
        )
    return tuple(params)


def _as_variables(head: Sequence[Token], *, role: VariableRole, access: Access) -> list[VariableDecl]:
    i0 = _skip_decorations(head, 0)
    if i0 >= len(head):
        return []
    first = head[i0]
    if first.kind is TokenKind.KEYWORD and first.text not in TYPE_KEYWORDS:
        return []
    if first.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
        return []

    angle = 0
    end = len(head)
    j = i0
    while j < len(head):
        t = head[j]
        text = t.text
        if text == "<" and j > i0 and head[j - 1].kind is TokenKind.IDENTIFIER:
            angle += 1
        elif text == ">" and angle:
            angle -= 1
        elif angle == 0 and text in {"=", "{", "[", ":", "(", ","}:
            if text == "(" and head[j - 1].text in {"decltype", "alignas"}:
                j = matching_index(head, j) + 1
                continue
            end = j
            break
        j += 1
    if angle or end - i0 < 2:
        return []

    name = head[end - 1]
    type_tokens = list(head[i0 : end - 1])
    if name.kind is not TokenKind.IDENTIFIER or type_tokens[-1].text == "::" or not is_type_like(type_tokens):
        return []

    bitfield: int | None = None
    if end + 1 < len(head) and head[end].text == ":" and head[end + 1].text.isdigit():
        bitfield = int(head[end + 1].text)

    type_text = join_tokens(type_tokens)
    decls = [_variable(head[i0], name, type_text, role=role, access=access, bitfield=bitfield)]

    tail = head[end:]
    segments = _split_top_level(tail, track_angles=False)
    if tail and tail[0].text != ",":
        segments = segments[1:]
    for segment in segments:
        k = 0
        while k < len(segment) and segment[k].text in {"*", "&", "&&"}:
            k += 1
        if k < len(segment) and segment[k].kind is TokenKind.IDENTIFIER:
            decls.append(_variable(segment[0], segment[k], type_text, role=role, access=access, bitfield=None))
    return decls


def _variable(
    first: Token,
    name: Token,
    type_text: str,
    *,
    role: VariableRole,
    access: Access,
    bitfield: int | None,
) -> VariableDecl:
    return VariableDecl(
        span=Span(first.index, name.index),
        line=first.line,
        col=first.col,
        name=name.text,
        name_token=name,
        type_text=type_text,
        role=role,
        access=access if role == "member" else "",
        bitfield_width=bitfield,
    )


def parse(source: SourceFile) -> TranslationUnit:
    return StructuralParser(source.tokens).parse()
