from __future__ import annotations

from abc import ABC
from dataclasses import dataclass

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import NodeKind, StructuralNode
from stylesentinel.engine.tokens import Token
from stylesentinel.engine.types import Location, Severity, Violation


@dataclass(frozen=True, slots=True)
class RuleMeta:
    rule_id: str
    title: str
    description: str
    default_severity: Severity
    node_kinds: tuple[NodeKind, ...]
    group: str = "plugin"
    headers_only: bool = False


class BaseRule(ABC):
    """
    A single style check.

    `check` receives one node of a kind listed in `meta.node_kinds` and must
    not keep state between calls: the same rule instance is shared by every
    worker thread.
    """

    meta: RuleMeta

    def applies_to(self, ctx: FileContext) -> bool:
        return ctx.is_header or not self.meta.headers_only

    def check(self, node: StructuralNode, ctx: FileContext) -> list[Violation]:
        return []

    def _violation(
        self,
        *,
        message: str,
        suggestion: str | None = None,
        location: Location | None = None,
        severity: Severity | None = None,
    ) -> Violation:
        return Violation(
            rule_id=self.meta.rule_id,
            severity=severity or self.meta.default_severity,
            message=message,
            suggestion=suggestion,
            location=location,
        )


def loc_from_line(ctx: FileContext, *, line: int, col: int | None = 1) -> Location:
    return Location(path=ctx.path, line=line, col=col)


def loc_from_token(ctx: FileContext, token: Token) -> Location:
    return Location(path=ctx.path, line=token.line, col=token.col)
