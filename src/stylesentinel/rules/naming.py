from __future__ import annotations

import re
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import ClassDecl, EnumDecl, FunctionDecl, StructuralNode, VariableDecl
from stylesentinel.engine.types import Violation
from stylesentinel.rules.base import BaseRule, RuleMeta, loc_from_token
from stylesentinel.rules.utils import acronym_runs, base_prefix, declared_prefix

_BOOL_NAME_RE = re.compile(r"^b[A-Z0-9]")
_PASCAL_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")

_CATEGORY_LABELS = {
    "T": "template",
    "A": "actor-derived",
    "U": "object-derived",
    "S": "widget-derived",
    "I": "interface",
    "F": "plain",
}


def expected_class_prefix(cls: ClassDecl) -> str:
    """
    Map a class declaration to the prefix letter its category requires.

    Precedence: template, actor base, object base, widget base, interface
    shape (every member function pure virtual and no data members), plain.
    """

    if cls.is_template:
        return "T"
    prefixes = {base_prefix(base) for base in cls.bases}
    for letter in ("A", "U", "S"):
        if letter in prefixes:
            return letter
    if _is_interface_shape(cls):
        return "I"
    return "F"


def _is_interface_shape(cls: ClassDecl) -> bool:
    if any(True for _ in cls.variables()):
        return False
    methods = [f for f in cls.functions() if not (f.is_constructor or f.is_destructor)]
    return bool(methods) and all(f.is_pure for f in methods)


@dataclass(frozen=True, slots=True)
class N01NamingPrefix(BaseRule):
    meta = RuleMeta(
        rule_id="N01",
        title="Type or boolean prefix",
        description=(
            "Type names carry a prefix letter for their category (A/U/S/I/T/F, E for enums); "
            "boolean variables start with `b`."
        ),
        default_severity="warn",
        node_kinds=("class", "enum", "variable"),
        group="naming",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if isinstance(node, ClassDecl):
            expected = expected_class_prefix(node)
            if declared_prefix(node.name) == expected:
                return []
            label = _CATEGORY_LABELS[expected]
            return [
                self._violation(
                    message=f"{node.keyword.capitalize()} `{node.name}` is {label} and should be prefixed with `{expected}`.",
                    suggestion=f"Rename to `{expected}{_bare(node.name)}`.",
                    location=loc_from_token(ctx, node.name_token),
                )
            ]

        if isinstance(node, EnumDecl):
            if node.name is None or node.name_token is None or declared_prefix(node.name) == "E":
                return []
            return [
                self._violation(
                    message=f"Enum `{node.name}` should be prefixed with `E`.",
                    suggestion=f"Rename to `E{_bare(node.name)}`.",
                    location=loc_from_token(ctx, node.name_token),
                )
            ]

        if isinstance(node, VariableDecl) and node.is_bool and not _BOOL_NAME_RE.match(node.name):
            return [
                self._violation(
                    message=f"Boolean {node.role} `{node.name}` should be prefixed with `b`.",
                    suggestion=f"Rename to `b{node.name[:1].upper()}{node.name[1:]}`.",
                    location=loc_from_token(ctx, node.name_token),
                )
            ]
        return []


def _bare(name: str) -> str:
    stripped = name[1:] if declared_prefix(name) else name
    return stripped[:1].upper() + stripped[1:]


@dataclass(frozen=True, slots=True)
class N02PascalCase(BaseRule):
    meta = RuleMeta(
        rule_id="N02",
        title="PascalCase identifier",
        description="Type, function and variable names use PascalCase; acronyms capitalize only their first letter.",
        default_severity="warn",
        node_kinds=("class", "enum", "function", "variable"),
        group="naming",
    )

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        if isinstance(node, FunctionDecl) and (node.is_constructor or node.is_destructor or node.is_operator):
            return []
        if isinstance(node, ClassDecl | EnumDecl | FunctionDecl | VariableDecl):
            name = node.name
            token = node.name_token
        else:
            return []
        if name is None or token is None:
            return []

        body = _strip_naming_prefix(node, name)
        if not body:
            return []

        problem: str | None = None
        if "_" in body:
            problem = "contains underscores"
        elif not _PASCAL_RE.match(body):
            problem = "does not start with an uppercase letter"
        else:
            limit = ctx.style.max_acronym_run
            for _, acronym in acronym_runs(body):
                if len(acronym) > limit:
                    problem = f"capitalizes the acronym `{acronym}`; capitalize only its first letter"
                    break
        if problem is None:
            return []

        return [
            self._violation(
                message=f"Identifier `{name}` {problem}.",
                suggestion="Use PascalCase, e.g. `HttpRequest` rather than `HTTPRequest` or `http_request`.",
                location=loc_from_token(ctx, token),
            )
        ]


def _strip_naming_prefix(node: StructuralNode, name: str) -> str:
    if isinstance(node, ClassDecl | EnumDecl):
        return name[1:] if declared_prefix(name) else name
    if isinstance(node, VariableDecl) and node.is_bool and _BOOL_NAME_RE.match(name):
        return name[1:]
    return name


def builtin_naming_rules() -> list[BaseRule]:
    return [N01NamingPrefix(), N02PascalCase()]
