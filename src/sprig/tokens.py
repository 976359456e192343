"""Token kinds and token representation for the Sprig lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sprig.source import Span


class TokenKind(Enum):
    # Declarations
    IMP = auto()
    FUN = auto()
    TYPE = auto()
    EXTERN = auto()

    # Statements
    LET = auto()
    MUT = auto()
    RETURN = auto()
    LOOP = auto()
    BREAK = auto()
    CONT = auto()

    # Expressions
    MATCH = auto()
    IF = auto()
    ELSE = auto()

    # Built-in types (bool, char, unit, i8 .. f64)
    PRIMITIVE = auto()

    # Literals
    NUMBER_LIT = auto()
    STRING_LIT = auto()
    CHAR_LIT = auto()
    BOOLEAN_LIT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    AMP = auto()
    PIPE = auto()
    TILDE = auto()
    CARET = auto()
    LESS = auto()
    GREATER = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS_EQUAL = auto()
    GREATER_EQUAL = auto()
    SHL = auto()
    SHR = auto()
    AND = auto()
    OR = auto()
    BANG = auto()
    ASSIGN = auto()
    ARROW = auto()
    DOT = auto()
    HASH = auto()
    DOLLAR = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    LBRACE = auto()
    RBRACE = auto()
    COMMA = auto()
    COLON = auto()
    SEMICOLON = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span


PRIMITIVE_TYPES: frozenset[str] = frozenset({
    "bool", "char", "unit",
    "i8", "i16", "i32", "i64",
    "u8", "u16", "u32", "u64",
    "f32", "f64",
})

KEYWORDS: dict[str, TokenKind] = {
    "imp": TokenKind.IMP,
    "fun": TokenKind.FUN,
    "type": TokenKind.TYPE,
    "extern": TokenKind.EXTERN,
    "let": TokenKind.LET,
    "mut": TokenKind.MUT,
    "return": TokenKind.RETURN,
    "loop": TokenKind.LOOP,
    "break": TokenKind.BREAK,
    "cont": TokenKind.CONT,
    "match": TokenKind.MATCH,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "true": TokenKind.BOOLEAN_LIT,
    "false": TokenKind.BOOLEAN_LIT,
    **{name: TokenKind.PRIMITIVE for name in PRIMITIVE_TYPES},
}

# Longest match first: every two-character operator is tried before
# its one-character prefix.
TWO_CHAR_OPERATORS: dict[str, TokenKind] = {
    "<=": TokenKind.LESS_EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "<<": TokenKind.SHL,
    ">>": TokenKind.SHR,
    "&&": TokenKind.AND,
    "||": TokenKind.OR,
    "==": TokenKind.EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    "->": TokenKind.ARROW,
}

ONE_CHAR_OPERATORS: dict[str, TokenKind] = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "&": TokenKind.AMP,
    "|": TokenKind.PIPE,
    "~": TokenKind.TILDE,
    "^": TokenKind.CARET,
    "<": TokenKind.LESS,
    ">": TokenKind.GREATER,
    "!": TokenKind.BANG,
    "=": TokenKind.ASSIGN,
    ".": TokenKind.DOT,
    "#": TokenKind.HASH,
    "$": TokenKind.DOLLAR,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    ";": TokenKind.SEMICOLON,
}

# Keywords that start a top-level declaration; used for error recovery.
DECLARATION_KEYWORDS: frozenset[TokenKind] = frozenset({
    TokenKind.IMP,
    TokenKind.FUN,
    TokenKind.TYPE,
})

# Keywords that can only start a statement, never an expression.
STATEMENT_KEYWORDS: frozenset[TokenKind] = frozenset({
    TokenKind.LET,
    TokenKind.MUT,
    TokenKind.RETURN,
    TokenKind.LOOP,
    TokenKind.BREAK,
    TokenKind.CONT,
})
