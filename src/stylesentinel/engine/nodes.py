from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar, Literal

from stylesentinel.engine.tokens import Token

NodeKind = Literal[
    "file",
    "namespace",
    "class",
    "function",
    "variable",
    "enum",
    "include_list",
    "switch",
    "control",
    "opaque",
]
NODE_KINDS: tuple[NodeKind, ...] = (
    "file",
    "namespace",
    "class",
    "function",
    "variable",
    "enum",
    "include_list",
    "switch",
    "control",
    "opaque",
)

Access = Literal["public", "protected", "private", ""]
VariableRole = Literal["member", "parameter", "local", "global"]


@dataclass(frozen=True, slots=True)
class Span:
    first: int  # token index, inclusive
    last: int  # token index, inclusive


@dataclass(frozen=True, slots=True)
class Opaque:
    kind: ClassVar[NodeKind] = "opaque"
    span: Span
    line: int
    col: int
    children: tuple[StructuralNode, ...] = ()


@dataclass(frozen=True, slots=True)
class VariableDecl:
    kind: ClassVar[NodeKind] = "variable"
    span: Span
    line: int
    col: int
    name: str
    name_token: Token
    type_text: str
    role: VariableRole
    access: Access = ""
    bitfield_width: int | None = None
    children: tuple[StructuralNode, ...] = ()

    @property
    def is_bool(self) -> bool:
        core = [w for w in self.type_text.replace("&", " ").split() if w not in {"const", "static", "mutable", "constexpr", "volatile", "inline"}]
        return core == ["bool"] or self.bitfield_width == 1


@dataclass(frozen=True, slots=True)
class FunctionDecl:
    kind: ClassVar[NodeKind] = "function"
    span: Span
    line: int
    col: int
    name: str
    name_token: Token
    return_type: str
    parameters: tuple[VariableDecl, ...]
    open_brace: Token | None
    body: tuple[StructuralNode, ...] = ()
    access: Access = ""
    is_virtual: bool = False
    is_override: bool = False
    is_static: bool = False
    is_pure: bool = False
    is_constructor: bool = False
    is_destructor: bool = False
    is_operator: bool = False

    @property
    def children(self) -> tuple[StructuralNode, ...]:
        return (*self.parameters, *self.body)


@dataclass(frozen=True, slots=True)
class Enumerator:
    name: str
    token: Token


@dataclass(frozen=True, slots=True)
class EnumDecl:
    kind: ClassVar[NodeKind] = "enum"
    span: Span
    line: int
    col: int
    name: str | None
    name_token: Token | None
    is_scoped: bool
    enumerators: tuple[Enumerator, ...]
    open_brace: Token
    access: Access = ""
    children: tuple[StructuralNode, ...] = ()


@dataclass(frozen=True, slots=True)
class VisibilityGroup:
    access: Access
    members: tuple[StructuralNode, ...]


@dataclass(frozen=True, slots=True)
class ClassDecl:
    kind: ClassVar[NodeKind] = "class"
    span: Span
    line: int
    col: int
    keyword: str
    name: str
    name_token: Token
    bases: tuple[str, ...]
    is_template: bool
    open_brace: Token
    groups: tuple[VisibilityGroup, ...]
    access: Access = ""

    @property
    def children(self) -> tuple[StructuralNode, ...]:
        return tuple(member for group in self.groups for member in group.members)

    def functions(self) -> Iterator[FunctionDecl]:
        return (m for m in self.children if isinstance(m, FunctionDecl))

    def variables(self) -> Iterator[VariableDecl]:
        return (m for m in self.children if isinstance(m, VariableDecl))


@dataclass(frozen=True, slots=True)
class NamespaceDecl:
    kind: ClassVar[NodeKind] = "namespace"
    span: Span
    line: int
    col: int
    name: str | None
    open_brace: Token
    children: tuple[StructuralNode, ...] = ()


@dataclass(frozen=True, slots=True)
class IncludeDirective:
    target: str
    is_system: bool
    token: Token


@dataclass(frozen=True, slots=True)
class IncludeList:
    kind: ClassVar[NodeKind] = "include_list"
    span: Span
    line: int
    col: int
    includes: tuple[IncludeDirective, ...]
    children: tuple[StructuralNode, ...] = ()


@dataclass(frozen=True, slots=True)
class CaseBlock:
    label: Token
    is_default: bool
    statements: int
    terminator: str | None
    has_fallthrough_marker: bool


@dataclass(frozen=True, slots=True)
class SwitchBlock:
    kind: ClassVar[NodeKind] = "switch"
    span: Span
    line: int
    col: int
    open_brace: Token | None
    cases: tuple[CaseBlock, ...]
    children: tuple[StructuralNode, ...] = ()

    @property
    def has_default(self) -> bool:
        return any(case.is_default for case in self.cases)


@dataclass(frozen=True, slots=True)
class ControlStmt:
    kind: ClassVar[NodeKind] = "control"
    span: Span
    line: int
    col: int
    keyword: str
    keyword_token: Token
    open_brace: Token | None
    children: tuple[StructuralNode, ...] = ()


@dataclass(frozen=True, slots=True)
class TranslationUnit:
    kind: ClassVar[NodeKind] = "file"
    span: Span
    line: int
    col: int
    children: tuple[StructuralNode, ...] = ()


StructuralNode = (
    TranslationUnit
    | NamespaceDecl
    | ClassDecl
    | FunctionDecl
    | VariableDecl
    | EnumDecl
    | IncludeList
    | SwitchBlock
    | ControlStmt
    | Opaque
)


def walk(node: StructuralNode) -> Iterator[StructuralNode]:
    """Pre-order traversal preserving source order."""

    stack: list[StructuralNode] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))
