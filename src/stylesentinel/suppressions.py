from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from stylesentinel.engine.tokens import Token, TokenKind


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Line-level rule suppressions extracted from comment directives.

    Supported directives (case-insensitive):
    - `style: disable-file=N01,L02` (suppresses violations anywhere in the file)
    - `style: disable=N01` (suppresses violations on that same line)
    - `style: disable-next-line=L02` (suppresses violations on the next line)
    """

    disabled_in_file: frozenset[str]
    disabled_on_line: Mapping[int, frozenset[str]]

    def is_suppressed(self, rule_id: str, *, line: int | None) -> bool:
        normalized_id = rule_id.upper()
        if "all" in self.disabled_in_file or normalized_id in self.disabled_in_file:
            return True
        if line is None:
            return False
        disabled = self.disabled_on_line.get(line)
        if not disabled:
            return False
        return "all" in disabled or normalized_id in disabled


EMPTY_SUPPRESSIONS = Suppressions(disabled_in_file=frozenset(), disabled_on_line=MappingProxyType({}))

_DISABLE_FILE_RE = re.compile(r"style:\s*disable[-_]?file\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)
_DISABLE_RE = re.compile(r"style:\s*disable\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)
_DISABLE_NEXT_RE = re.compile(r"style:\s*disable[-_]next[-_]line\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)


def parse_suppressions(tokens: Iterable[Token]) -> Suppressions:
    """
    Collect directives from COMMENT tokens.

    A directive inside a block comment applies to the line the comment ends on.
    """

    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}

    for token in tokens:
        if token.kind is not TokenKind.COMMENT:
            continue
        text = token.text
        line = token.end_line

        match_file = _DISABLE_FILE_RE.search(text)
        if match_file:
            disabled_in_file.update(_parse_ids(match_file.group("ids")))

        match = _DISABLE_RE.search(text)
        if match:
            disabled_on_line.setdefault(line, set()).update(_parse_ids(match.group("ids")))

        match_next = _DISABLE_NEXT_RE.search(text)
        if match_next:
            disabled_on_line.setdefault(line + 1, set()).update(_parse_ids(match_next.group("ids")))

    frozen = {line: frozenset(ids) for line, ids in disabled_on_line.items()}
    return Suppressions(disabled_in_file=frozenset(disabled_in_file), disabled_on_line=MappingProxyType(frozen))


def _parse_ids(value: str) -> set[str]:
    ids = set()
    for token in re.split(r"[,\s]+", value.strip()):
        if not token:
            continue
        if token.lower() == "all":
            ids.add("all")
        else:
            ids.add(token.upper())
    return ids
