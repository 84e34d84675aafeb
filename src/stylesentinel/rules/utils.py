from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

from stylesentinel.engine.context import FileContext
from stylesentinel.engine.nodes import ClassDecl, walk
from stylesentinel.engine.tokens import Token, TokenKind, line_segment

_UPPER_RUN_RE = re.compile(r"[A-Z]+")
_TEMPLATE_ARGS_RE = re.compile(r"<.*>")


def declared_prefix(name: str) -> str | None:
    """
    Return the type prefix letter of `name`, if it carries one.

    A prefix is a leading uppercase letter followed by another uppercase
    letter (`AActor`, `UObject`, `FVector`); `Actor` has no prefix.
    """

    if len(name) >= 2 and name[0].isupper() and name[1].isupper():
        return name[0]
    return None


def base_prefix(base: str) -> str | None:
    bare = _TEMPLATE_ARGS_RE.sub("", base).rsplit("::", 1)[-1].strip()
    return declared_prefix(bare)


def strip_prefix(name: str) -> str:
    return name[1:] if declared_prefix(name) else name


def acronym_runs(name: str) -> Iterator[tuple[int, str]]:
    """
    Yield (offset, acronym) for each uppercase run in `name`.

    When a run is followed by a lowercase letter, its last letter starts the
    next word and is not part of the acronym: `HTTPServer` yields `HTTP`.
    """

    for match in _UPPER_RUN_RE.finditer(name):
        run = match.group(0)
        end = match.end()
        if end < len(name) and name[end].islower() and len(run) > 1:
            run = run[:-1]
        yield match.start(), run


def is_sole_token_on_line(tokens: Sequence[Token], token: Token) -> bool:
    for other in line_segment(tokens, token.index):
        if other is token or other.is_trivia:
            continue
        return False
    return True


def whitespace_before(tokens: Sequence[Token], index: int) -> str | None:
    """Text of the whitespace token directly before `tokens[index]` on the same line ("" if none)."""

    if index == 0:
        return ""
    prev = tokens[index - 1]
    if prev.kind is not TokenKind.WHITESPACE:
        return ""
    if prev.is_newline:
        return None
    return prev.text


def class_bases(ctx: FileContext) -> set[str]:
    bases: set[str] = set()
    for node in walk(ctx.tree):
        if isinstance(node, ClassDecl):
            bases.update(node.bases)
    return bases
