"""
Blueprint parser — token stream → Blueprint AST.

Grammar:
    blueprint := block*
    block     := "strand" NAME "{" field* "}"
               | "view" NAME "{" prop* "}"
    field     := "field" NAME ":" TYPE
    prop      := NAME ":" VALUE

Single linear pass: each block keyword is unambiguous, so there is no
backtracking. Any deviation is a ParseError; there is no recovery and
no type coercion.

After the pass, every view's ``list`` reference must name a declared
strand (blocks may appear in any order). An unknown strand raises
UnresolvedReferenceError rather than falling back to another strand.
"""

from __future__ import annotations

import logging
import re

from helix.core.errors import ParseError, UnresolvedReferenceError
from helix.core.models.blueprint import (
    TYPE_TOKENS,
    VIEW_KEYS,
    Blueprint,
    Field,
    Strand,
    View,
)
from helix.core.parser.lexer import Token, TokenKind, tokenize
from helix.core.services.naming import snake_case

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse(text: str) -> Blueprint:
    """Parse .helix source text into a Blueprint.

    Raises:
        ParseError: The text does not match the grammar.
        UnresolvedReferenceError: A view lists an undeclared strand.
    """
    return _Parser(text).parse()


class _Parser:
    def __init__(self, text: str):
        self._text = text
        self._tokens = tokenize(text)
        self._pos = 0
        self._strands: list[Strand] = []
        self._views: list[View] = []
        # view name → offset of its list value, for error reporting
        self._list_offsets: dict[str, int] = {}

    # ── Entry ───────────────────────────────────────────────────

    def parse(self) -> Blueprint:
        while self._peek().kind != TokenKind.EOF:
            keyword = self._peek()
            if keyword.kind == TokenKind.WORD and keyword.value == "strand":
                self._parse_strand()
            elif keyword.kind == TokenKind.WORD and keyword.value == "view":
                self._parse_view()
            else:
                self._fail(f"Expected 'strand' or 'view', got {self._describe(keyword)}", keyword)

        blueprint = Blueprint(strands=tuple(self._strands), views=tuple(self._views))
        self._resolve_references(blueprint)

        logger.debug(
            "Parsed blueprint: %d strand(s), %d view(s)",
            len(blueprint.strands),
            len(blueprint.views),
        )
        return blueprint

    # ── Blocks ──────────────────────────────────────────────────

    def _parse_strand(self) -> None:
        self._advance()  # "strand"
        name_tok = self._expect_name("strand name")
        if any(s.name == name_tok.value for s in self._strands):
            self._fail(f"Duplicate strand '{name_tok.value}'", name_tok)
        self._check_normalized("strand", name_tok, [s.name for s in self._strands])
        self._expect(TokenKind.LBRACE)

        fields: list[Field] = []
        while not self._at(TokenKind.RBRACE):
            kw = self._peek()
            if kw.kind != TokenKind.WORD or kw.value != "field":
                self._fail(
                    f"Expected 'field' or '}}' in strand '{name_tok.value}', "
                    f"got {self._describe(kw)}",
                    kw,
                )
            self._advance()
            field_tok = self._expect_name("field name")
            if any(f.name == field_tok.value for f in fields):
                self._fail(
                    f"Duplicate field '{field_tok.value}' in strand '{name_tok.value}'",
                    field_tok,
                )
            self._expect(TokenKind.COLON)
            type_tok = self._peek()
            if type_tok.kind != TokenKind.WORD or type_tok.value not in TYPE_TOKENS:
                self._fail(
                    f"Unknown type {self._describe(type_tok)} for field "
                    f"'{field_tok.value}' (expected one of: {', '.join(TYPE_TOKENS)})",
                    type_tok,
                )
            self._advance()
            fields.append(Field(name=field_tok.value, type=TYPE_TOKENS[type_tok.value]))

        self._expect(TokenKind.RBRACE)
        self._strands.append(Strand(name=name_tok.value, fields=tuple(fields)))

    def _parse_view(self) -> None:
        self._advance()  # "view"
        name_tok = self._expect_name("view name")
        if any(v.name == name_tok.value for v in self._views):
            self._fail(f"Duplicate view '{name_tok.value}'", name_tok)
        self._check_normalized("view", name_tok, [v.name for v in self._views])
        self._expect(TokenKind.LBRACE)

        properties: dict[str, str] = {}
        while not self._at(TokenKind.RBRACE):
            key_tok = self._expect_name("property key")
            if key_tok.value in properties:
                self._fail(
                    f"Duplicate property '{key_tok.value}' in view '{name_tok.value}'",
                    key_tok,
                )
            self._expect(TokenKind.COLON)
            value_tok = self._peek()
            if value_tok.kind not in (TokenKind.WORD, TokenKind.STRING):
                self._fail(
                    f"Expected a value for '{key_tok.value}', got {self._describe(value_tok)}",
                    value_tok,
                )
            self._advance()
            properties[key_tok.value] = value_tok.value
            if key_tok.value == "list":
                self._list_offsets[name_tok.value] = value_tok.offset
            elif key_tok.value not in VIEW_KEYS:
                logger.warning(
                    "View '%s': ignoring unrecognized property '%s'",
                    name_tok.value,
                    key_tok.value,
                )

        self._expect(TokenKind.RBRACE)
        self._views.append(View(name=name_tok.value, properties=properties))

    def _check_normalized(self, kind: str, name_tok: Token, existing: list[str]) -> None:
        # artifact paths use the snake_case form, so it must be unique too
        key = snake_case(name_tok.value)
        if not key:
            self._fail(f"{kind.capitalize()} name '{name_tok.value}' has no letters or digits", name_tok)
        for other in existing:
            if snake_case(other) == key:
                self._fail(
                    f"{kind.capitalize()} '{name_tok.value}' collides with '{other}' "
                    f"(both become '{key}')",
                    name_tok,
                )

    def _resolve_references(self, blueprint: Blueprint) -> None:
        for view in blueprint.views:
            if view.list_source is None:
                continue
            target = view.list_strand
            if target is None or blueprint.get_strand(target) is None:
                raise UnresolvedReferenceError(
                    view.name,
                    target or view.list_source,
                    self._list_offsets.get(view.name, 0),
                    self._text,
                )

    # ── Token helpers ───────────────────────────────────────────

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _at(self, kind: TokenKind) -> bool:
        tok = self._peek()
        if tok.kind == TokenKind.EOF and kind != TokenKind.EOF:
            self._fail(f"Unexpected end of input, expected '{kind.value}'", tok)
        return tok.kind == kind

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.kind != TokenKind.EOF:
            self._pos += 1
        return tok

    def _expect(self, kind: TokenKind) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            self._fail(f"Expected '{kind.value}', got {self._describe(tok)}", tok)
        return self._advance()

    def _expect_name(self, what: str) -> Token:
        tok = self._peek()
        if tok.kind != TokenKind.WORD or not _IDENT_RE.match(tok.value):
            self._fail(f"Expected {what}, got {self._describe(tok)}", tok)
        return self._advance()

    @staticmethod
    def _describe(tok: Token) -> str:
        if tok.kind == TokenKind.EOF:
            return "end of input"
        if tok.kind == TokenKind.STRING:
            return f'string "{tok.value}"'
        return f"'{tok.value}'"

    def _fail(self, message: str, tok: Token) -> None:
        raise ParseError(message, tok.offset, self._text)
