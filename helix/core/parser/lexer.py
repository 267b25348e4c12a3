"""
Blueprint lexer — .helix source text → token stream.

Token kinds:
    LBRACE  "{"
    RBRACE  "}"
    COLON   ":"
    STRING  double-quoted literal (value is unescaped)
    WORD    any run of characters other than whitespace, braces,
            colons and quotes (keywords, names, types, bare values)
    EOF     end of input

Whitespace and ``//`` line comments are discarded.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum

from helix.core.errors import ParseError


class TokenKind(StrEnum):
    LBRACE = "{"
    RBRACE = "}"
    COLON = ":"
    STRING = "string"
    WORD = "word"
    EOF = "end of input"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    offset: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<comment>//[^\n]*)
  | (?P<lbrace>\{)
  | (?P<rbrace>\})
  | (?P<colon>:)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<word>[^\s{}:"]+)
    """,
    re.VERBOSE,
)

_KINDS = {
    "lbrace": TokenKind.LBRACE,
    "rbrace": TokenKind.RBRACE,
    "colon": TokenKind.COLON,
    "string": TokenKind.STRING,
    "word": TokenKind.WORD,
}


def tokenize(text: str) -> list[Token]:
    """Split source text into tokens, ending with an EOF token.

    Raises:
        ParseError: On an unterminated string literal.
    """
    tokens: list[Token] = []
    pos = 0
    end = len(text)

    while pos < end:
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            # Only a stray quote can fail every alternative
            raise ParseError("Unterminated string literal", pos, text)
        group = m.lastgroup
        if group in _KINDS:
            value = m.group()
            if group == "string":
                value = _unquote(value, pos, text)
            tokens.append(Token(_KINDS[group], value, pos))
        pos = m.end()

    tokens.append(Token(TokenKind.EOF, "", end))
    return tokens


def _unquote(literal: str, offset: int, text: str) -> str:
    try:
        return json.loads(literal)
    except ValueError as e:
        raise ParseError(f"Invalid string literal {literal}: {e}", offset, text) from e
