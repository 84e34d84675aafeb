from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    BRACE = "brace"
    LITERAL = "literal"
    COMMENT = "comment"
    OPERATOR = "operator"
    WHITESPACE = "whitespace"
    PREPROCESSOR = "preprocessor"


class ParseError(ValueError):
    """Raised when a file cannot be split into tokens (unterminated literal or comment)."""

    def __init__(self, message: str, *, line: int, col: int) -> None:
        super().__init__(f"{message} (line {line}, col {col})")
        self.message = message
        self.line = line
        self.col = col


KEYWORDS = frozenset(
    {
        "alignas",
        "alignof",
        "asm",
        "auto",
        "bool",
        "break",
        "case",
        "catch",
        "char",
        "char8_t",
        "char16_t",
        "char32_t",
        "class",
        "const",
        "consteval",
        "constexpr",
        "constinit",
        "const_cast",
        "continue",
        "co_await",
        "co_return",
        "co_yield",
        "decltype",
        "default",
        "delete",
        "do",
        "double",
        "dynamic_cast",
        "else",
        "enum",
        "explicit",
        "export",
        "extern",
        "false",
        "final",
        "float",
        "for",
        "friend",
        "goto",
        "if",
        "inline",
        "int",
        "long",
        "mutable",
        "namespace",
        "new",
        "noexcept",
        "nullptr",
        "operator",
        "override",
        "private",
        "protected",
        "public",
        "register",
        "reinterpret_cast",
        "requires",
        "return",
        "short",
        "signed",
        "sizeof",
        "static",
        "static_assert",
        "static_cast",
        "struct",
        "switch",
        "template",
        "this",
        "thread_local",
        "throw",
        "true",
        "try",
        "typedef",
        "typeid",
        "typename",
        "union",
        "unsigned",
        "using",
        "virtual",
        "void",
        "volatile",
        "wchar_t",
        "while",
    }
)

# Longest match first.
_OPERATORS: tuple[str, ...] = (
    "...",
    "->*",
    "::",
    "->",
    ".*",
    "==",
    "!=",
    "<=",
    ">=",
    "&&",
    "||",
    "++",
    "--",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
)
_BRACES = frozenset("{}()[]")
_STRING_PREFIXES = frozenset({"L", "u", "U", "u8"})
_RAW_PREFIXES = frozenset({"R", "LR", "uR", "UR", "u8R"})

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(r"\.?\d(?:[eEpP][+-]|'(?=[0-9A-Za-z])|[0-9A-Za-z_.])*")
_SPACE_RE = re.compile(r"(?:[ \t\f\v]|\r(?!\n)|\\\r?\n)+")
_RAW_DELIM_RE = re.compile(r'[^\s()\\"]{0,16}\(')


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    line: int  # 1-based
    col: int  # 1-based
    end_line: int  # position just past the token
    end_col: int
    index: int

    @property
    def is_trivia(self) -> bool:
        return self.kind in (TokenKind.WHITESPACE, TokenKind.COMMENT)

    @property
    def is_newline(self) -> bool:
        return self.kind is TokenKind.WHITESPACE and "\n" in self.text


@dataclass(frozen=True, slots=True)
class SourceFile:
    path: Path
    lines: tuple[str, ...]
    tokens: tuple[Token, ...]


class _Scanner:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._line = 1
        self._col = 1
        self._at_line_start = True
        self._tokens: list[Token] = []

    def scan(self) -> list[Token]:
        text = self._text
        n = len(text)
        while self._pos < n:
            ch = text[self._pos]
            start = self._pos

            if ch == "\n" or text.startswith("\r\n", start):
                self._emit(TokenKind.WHITESPACE, start + (2 if ch == "\r" else 1))
                self._at_line_start = True
                continue

            space = _SPACE_RE.match(text, start)
            if space is not None:
                self._emit(TokenKind.WHITESPACE, space.end(), keep_line_start=True)
                continue

            if text.startswith("//", start):
                end = text.find("\n", start)
                if end == -1:
                    end = n
                elif end > start and text[end - 1] == "\r":
                    end -= 1
                self._emit(TokenKind.COMMENT, end)
                continue

            if text.startswith("/*", start):
                end = text.find("*/", start + 2)
                if end == -1:
                    raise ParseError("unterminated block comment", line=self._line, col=self._col)
                self._emit(TokenKind.COMMENT, end + 2)
                continue

            if ch == "#" and self._at_line_start:
                self._emit(TokenKind.PREPROCESSOR, self._directive_end(start))
                continue

            if ch == '"' or ch == "'":
                self._emit(TokenKind.LITERAL, self._quoted_end(start, ch))
                continue

            ident = _IDENT_RE.match(text, start)
            if ident is not None:
                word = ident.group(0)
                end = ident.end()
                nxt = text[end] if end < n else ""
                if word in _RAW_PREFIXES and nxt == '"':
                    self._emit(TokenKind.LITERAL, self._raw_string_end(end))
                    continue
                if word in _STRING_PREFIXES and nxt in {'"', "'"}:
                    self._emit(TokenKind.LITERAL, self._quoted_end(end, nxt))
                    continue
                self._emit(TokenKind.KEYWORD if word in KEYWORDS else TokenKind.IDENTIFIER, end)
                continue

            number = _NUMBER_RE.match(text, start)
            if number is not None:
                self._emit(TokenKind.LITERAL, number.end())
                continue

            if ch in _BRACES:
                self._emit(TokenKind.BRACE, start + 1)
                continue

            for op in _OPERATORS:
                if text.startswith(op, start):
                    self._emit(TokenKind.OPERATOR, start + len(op))
                    break
            else:
                self._emit(TokenKind.OPERATOR, start + 1)

        return self._tokens

    def _emit(self, kind: TokenKind, end: int, *, keep_line_start: bool = False) -> None:
        value = self._text[self._pos : end]
        line, col = self._line, self._col
        newlines = value.count("\n")
        if newlines:
            self._line += newlines
            self._col = len(value) - value.rfind("\n")
        else:
            self._col += len(value)
        self._tokens.append(
            Token(
                kind=kind,
                text=value,
                line=line,
                col=col,
                end_line=self._line,
                end_col=self._col,
                index=len(self._tokens),
            )
        )
        self._pos = end
        if not keep_line_start:
            self._at_line_start = False

    def _directive_end(self, start: int) -> int:
        # Runs to end of line, honouring backslash continuations; a trailing
        # comment becomes its own token.
        text = self._text
        n = len(text)
        i = start + 1
        in_string = False
        while i < n:
            ch = text[i]
            if in_string:
                if ch == "\\":
                    i += 2
                    continue
                if ch == '"' or ch == "\n":
                    in_string = False
                    if ch == "\n":
                        break
                i += 1
                continue
            if ch == '"':
                in_string = True
            elif ch == "\\" and text.startswith("\n", i + 1):
                i += 2
                continue
            elif ch == "\\" and text.startswith("\r\n", i + 1):
                i += 3
                continue
            elif ch == "\n" or text.startswith("//", i) or text.startswith("/*", i):
                break
            i += 1
        end = min(i, n)
        while end > start + 1 and text[end - 1] in " \t\r":
            end -= 1
        return end

    def _quoted_end(self, quote_pos: int, quote: str) -> int:
        text = self._text
        n = len(text)
        kind = "string" if quote == '"' else "character"
        i = quote_pos + 1
        while i < n:
            ch = text[i]
            if ch == "\\":
                i += 2
                continue
            if ch == "\n":
                break
            if ch == quote:
                return i + 1
            i += 1
        raise ParseError(f"unterminated {kind} literal", line=self._line, col=self._col)

    def _raw_string_end(self, quote_pos: int) -> int:
        text = self._text
        delim = _RAW_DELIM_RE.match(text, quote_pos + 1)
        if delim is None:
            raise ParseError("malformed raw string literal", line=self._line, col=self._col)
        closing = ")" + delim.group(0)[:-1] + '"'
        end = text.find(closing, delim.end())
        if end == -1:
            raise ParseError("unterminated raw string literal", line=self._line, col=self._col)
        return end + len(closing)


def tokenize(text: str) -> tuple[Token, ...]:
    """
    Split C++ source text into coarse lexical tokens.

    Concatenating the text of every returned token reproduces `text` exactly.
    Raises `ParseError` on unterminated literals or block comments.
    """

    return tuple(_Scanner(text).scan())


def scan_source(path: Path, text: str) -> SourceFile:
    return SourceFile(path=path, lines=tuple(text.splitlines()), tokens=tokenize(text))


def load_source(path: Path) -> SourceFile:
    """Read and tokenize a file. OSError and ParseError propagate to the caller."""

    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return scan_source(path, text)


def significant(tokens: Sequence[Token]) -> list[Token]:
    return [t for t in tokens if not t.is_trivia]


def line_segment(tokens: Sequence[Token], index: int) -> list[Token]:
    """Return the tokens sharing a physical line with `tokens[index]` (newline tokens excluded)."""

    start = index
    while start > 0 and not tokens[start - 1].is_newline:
        start -= 1
    end = index
    while end + 1 < len(tokens) and not tokens[end + 1].is_newline:
        end += 1
    return list(tokens[start : end + 1])
