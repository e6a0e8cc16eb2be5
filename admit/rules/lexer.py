"""Tokenizer for invariant rule text."""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum

from .errors import RuleSyntaxError

_IDENT_START = frozenset(string.ascii_letters + "_")
_IDENT_CHARS = _IDENT_START | frozenset(string.digits + "-")

# Longest match first; single characters are handled after these.
_OPERATORS = (
    ("=>", "IMPLY"),
    ("==", "EQUAL"),
    ("!=", "NOT_EQUAL"),
    ("⇒", "IMPLY"),
)


class TokenType(Enum):
    EOF = "EOF"
    IDENT = "IDENT"
    STRING = "STRING"
    DOT = "DOT"
    IMPLY = "IMPLY"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str = ""
    pos: int = 0

    def describe(self) -> str:
        return "end of input" if self.type is TokenType.EOF else repr(self.value)


class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def next_token(self) -> Token:
        self._skip_whitespace()
        start = self.pos
        if start >= len(self.text):
            return Token(TokenType.EOF, "", start)

        for lexeme, kind in _OPERATORS:
            if self.text.startswith(lexeme, start):
                self.pos += len(lexeme)
                return Token(TokenType[kind], lexeme, start)

        ch = self.text[start]
        if ch == ".":
            self.pos += 1
            return Token(TokenType.DOT, ".", start)
        if ch == '"':
            return self._read_string()
        if ch in _IDENT_START:
            return self._read_ident()

        raise RuleSyntaxError(f"unexpected character {ch!r} at position {start}")

    def _read_string(self) -> Token:
        start = self.pos
        end = self.text.find('"', start + 1)
        if end == -1:
            raise RuleSyntaxError(f"unterminated string literal at position {start}")
        self.pos = end + 1
        return Token(TokenType.STRING, self.text[start + 1 : end], start)

    def _read_ident(self) -> Token:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in _IDENT_CHARS:
            self.pos += 1
        return Token(TokenType.IDENT, self.text[start : self.pos], start)

    def tokens(self) -> list[Token]:
        """Tokenize the remaining input, EOF token included."""
        out: list[Token] = []
        while True:
            tok = self.next_token()
            out.append(tok)
            if tok.type is TokenType.EOF:
                return out


def tokenize(text: str) -> list[Token]:
    return Lexer(text).tokens()
