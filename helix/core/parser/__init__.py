"""Blueprint parsing — lexer and single-pass parser."""

from helix.core.parser.lexer import Token, TokenKind, tokenize
from helix.core.parser.parser import parse

__all__ = ["Token", "TokenKind", "parse", "tokenize"]
