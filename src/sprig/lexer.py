"""Lexer for the Sprig language.

Produces a stream of tokens from source text. Whitespace is insignificant
and ``//`` comments run to the end of the line. The first lexical error
stops the scan and is raised as a :class:`CompileError`.
"""

from __future__ import annotations

from collections.abc import Iterator

from sprig.errors import CompileError, Diagnostic, LexErrorKind
from sprig.source import Span
from sprig.tokens import (
    KEYWORDS,
    ONE_CHAR_OPERATORS,
    TWO_CHAR_OPERATORS,
    Token,
    TokenKind,
)

_ESCAPES = {
    'n': '\n', 'r': '\r', 't': '\t', '0': '\0',
    '\\': '\\', '"': '"', "'": "'",
}

# Digits accepted after each base prefix.
_BASE_DIGITS = {
    'b': frozenset('01'),
    'o': frozenset('01234567'),
    'x': frozenset('0123456789abcdefABCDEF'),
}

_BASE_NAMES = {'b': "binary", 'o': "octal", 'x': "hexadecimal"}


# ASCII only: str.isdigit/isalpha also accept other Unicode scripts.
def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _is_ident_start(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'


class Lexer:
    """Tokenizes Sprig source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        self._seek(0)
        self.tokens = list(self._scan())
        return self.tokens

    def iter_tokens(self, offset: int = 0) -> Iterator[Token]:
        """Lazily tokenize from ``offset`` (a saved ``Span.start_offset``).

        Every call returns an independent iterator, so a stream can be
        re-scanned from any earlier token boundary.
        """
        scanner = Lexer(self.source, self.filename)
        scanner._seek(offset)
        return scanner._scan()

    def _scan(self) -> Iterator[Token]:
        while True:
            self._skip_trivia()
            if self.pos >= len(self.source):
                break
            yield self._next_token()
        yield self._make(TokenKind.EOF, "", self.line, self.col, self.pos)

    def _next_token(self) -> Token:
        ch = self.source[self.pos]
        if ch == '"':
            return self._lex_string()
        if ch == "'":
            return self._lex_char()
        if _is_digit(ch):
            return self._lex_number()
        if _is_ident_start(ch):
            return self._lex_identifier()
        return self._lex_operator_or_punct()

    # ── Helpers ───────────────────────────────────────────────────

    def _seek(self, offset: int) -> None:
        offset = max(0, min(offset, len(self.source)))
        self.pos = offset
        self.line = self.source.count('\n', 0, offset) + 1
        self.col = offset - (self.source.rfind('\n', 0, offset) + 1) + 1

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _is_ident_char(self) -> bool:
        ch = self._peek()
        return _is_ident_start(ch) or _is_digit(ch)

    def _make(
        self, kind: TokenKind, value: str,
        start_line: int, start_col: int, start_offset: int,
    ) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        span = Span(
            self.filename, start_line, start_col, self.line, end_col,
            start_offset, self.pos,
        )
        return Token(kind, value, span)

    def _error(
        self, kind: LexErrorKind, message: str,
        line: int, col: int, offset: int,
    ) -> CompileError:
        end_col = max(col, self.col - 1) if self.line == line else col
        span = Span(self.filename, line, col, line, end_col,
                    offset, max(offset + 1, self.pos))
        return CompileError([Diagnostic.error(kind, message, span)])

    def _skip_trivia(self) -> None:
        """Skip whitespace and line comments."""
        while not self._at_end():
            ch = self.source[self.pos]
            if ch.isspace():
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while not self._at_end() and self.source[self.pos] != '\n':
                    self._advance()
            else:
                return

    # ── Strings and chars ────────────────────────────────────────

    def _lex_string(self) -> Token:
        start_line, start_col, start = self.line, self.col, self.pos
        self._advance()  # skip opening "
        text = []
        while not self._at_end() and self.source[self.pos] != '"':
            if self.source[self.pos] == '\\':
                text.append(self._lex_escape_sequence(start_line, start_col, start))
            else:
                text.append(self._advance())
        if self._at_end():
            raise self._error(
                LexErrorKind.UNTERMINATED_LITERAL,
                "unterminated string literal", start_line, start_col, start,
            )
        self._advance()  # skip closing "
        return self._make(TokenKind.STRING_LIT, ''.join(text),
                          start_line, start_col, start)

    def _lex_escape_sequence(self, line: int, col: int, offset: int) -> str:
        self._advance()  # skip backslash
        if self._at_end():
            raise self._error(
                LexErrorKind.UNTERMINATED_LITERAL,
                "unexpected end of input in escape sequence", line, col, offset,
            )
        ch = self._advance()
        return _ESCAPES.get(ch, ch)

    def _lex_char(self) -> Token:
        start_line, start_col, start = self.line, self.col, self.pos
        self._advance()  # skip opening '
        if self._at_end():
            raise self._error(
                LexErrorKind.UNTERMINATED_LITERAL,
                "unterminated character literal", start_line, start_col, start,
            )
        if self.source[self.pos] == '\\':
            ch = self._lex_escape_sequence(start_line, start_col, start)
        else:
            ch = self._advance()
        if self._peek() != "'":
            raise self._error(
                LexErrorKind.UNTERMINATED_LITERAL,
                "unterminated character literal", start_line, start_col, start,
            )
        self._advance()  # skip closing '
        return self._make(TokenKind.CHAR_LIT, ch, start_line, start_col, start)

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> Token:
        start_line, start_col, start = self.line, self.col, self.pos

        def malformed(message: str) -> CompileError:
            # Swallow the rest of the word so the span covers the whole literal
            while self._is_ident_char():
                self._advance()
            return self._error(LexErrorKind.MALFORMED_NUMBER, message,
                               start_line, start_col, start)

        text = []

        # 0b, 0o, 0x prefixes
        if self._peek() == '0' and self._peek(1) in _BASE_DIGITS:
            prefix = self._peek(1)
            text.append(self._advance())  # 0
            text.append(self._advance())  # base letter
            digits = []
            while self._is_ident_char():
                digits.append(self._advance())
            if not digits:
                raise malformed(f"missing digits after '0{prefix}'")
            allowed = _BASE_DIGITS[prefix]
            for d in digits:
                if d not in allowed:
                    raise malformed(
                        f"invalid digit {d!r} in {_BASE_NAMES[prefix]} literal"
                    )
            text.extend(digits)
            return self._make(TokenKind.NUMBER_LIT, ''.join(text),
                              start_line, start_col, start)

        while _is_digit(self._peek()):
            text.append(self._advance())

        if self._peek() == '.':
            if not _is_digit(self._peek(1)):
                self._advance()
                raise malformed("expected digits after decimal point")
            text.append(self._advance())  # .
            while _is_digit(self._peek()):
                text.append(self._advance())

        if self._peek() in ('e', 'E'):
            text.append(self._advance())
            if self._peek() not in ('+', '-'):
                raise malformed("exponent requires an explicit '+' or '-' sign")
            text.append(self._advance())
            if not _is_digit(self._peek()):
                raise malformed("expected digits in exponent")
            while _is_digit(self._peek()):
                text.append(self._advance())

        if self._is_ident_char():
            raise malformed(f"invalid character {self._peek()!r} in number literal")

        return self._make(TokenKind.NUMBER_LIT, ''.join(text),
                          start_line, start_col, start)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> Token:
        start_line, start_col, start = self.line, self.col, self.pos
        text = []
        while self._is_ident_char():
            text.append(self._advance())
        word = ''.join(text)
        kind = KEYWORDS.get(word, TokenKind.IDENTIFIER)
        return self._make(kind, word, start_line, start_col, start)

    # ── Operators and Punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> Token:
        start_line, start_col, start = self.line, self.col, self.pos

        two = self.source[self.pos:self.pos + 2]
        if two in TWO_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._make(TWO_CHAR_OPERATORS[two], two,
                              start_line, start_col, start)

        ch = self._advance()
        kind = ONE_CHAR_OPERATORS.get(ch)
        if kind is None:
            raise self._error(
                LexErrorKind.UNRECOGNIZED_CHARACTER,
                f"unexpected character: {ch!r}", start_line, start_col, start,
            )
        return self._make(kind, ch, start_line, start_col, start)
