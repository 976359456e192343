"""Parser for the Sprig language.

Transforms a token list into an AST using a Pratt expression parser for
expressions and recursive descent for types, statements and
declarations. Fatal errors unwind to the nearest statement or
declaration boundary; structural violations (duplicate fields, extern
functions with bodies, misplaced wildcards) are recorded without
unwinding. All diagnostics are raised together at the end as a
:class:`CompileError`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sprig.ast_nodes import (
    AliasBody,
    ArrayLit,
    ArrayType,
    Assignment,
    BinaryExpr,
    BlockExpr,
    Body,
    BoolLit,
    BreakStmt,
    CallExpr,
    CastExpr,
    CharLit,
    ContinueStmt,
    Declaration,
    Expr,
    ExprStmt,
    FieldExpr,
    FieldInit,
    FunctionDecl,
    FunctionDef,
    FunctionType,
    IdentifierExpr,
    IfExpr,
    ImportDecl,
    IndexExpr,
    Literal,
    LiteralPattern,
    LoopStmt,
    MatchArm,
    MatchExpr,
    Module,
    NamedType,
    NumberLit,
    Param,
    Path,
    PathExpr,
    Pattern,
    PointerType,
    PrimitiveType,
    ReturnStmt,
    Stmt,
    StringLit,
    StructBody,
    StructField,
    StructLit,
    TupleLit,
    TypeBody,
    TypeDef,
    TypeExpr,
    TypeTagPattern,
    UnaryExpr,
    UnionBody,
    VarDecl,
    WildcardPattern,
)
from sprig.errors import CompileError, Diagnostic, ErrorKind, ParseErrorKind
from sprig.source import Span
from sprig.tokens import (
    DECLARATION_KEYWORDS,
    KEYWORDS,
    ONE_CHAR_OPERATORS,
    STATEMENT_KEYWORDS,
    TWO_CHAR_OPERATORS,
    Token,
    TokenKind,
)

T = TypeVar("T")

# ── Binding powers for Pratt parser ─────────────────────────────

# (left_bp, right_bp) for infix operators; right = left + 1 keeps every
# level left-associative.
_INFIX_BP: dict[TokenKind, tuple[int, int]] = {
    TokenKind.OR: (1, 2),
    TokenKind.AND: (1, 2),
    TokenKind.AMP: (3, 4),
    TokenKind.CARET: (3, 4),
    TokenKind.PIPE: (3, 4),
    TokenKind.EQUAL: (5, 6),
    TokenKind.NOT_EQUAL: (5, 6),
    TokenKind.LESS: (7, 8),
    TokenKind.GREATER: (7, 8),
    TokenKind.LESS_EQUAL: (7, 8),
    TokenKind.GREATER_EQUAL: (7, 8),
    TokenKind.SHL: (9, 10),
    TokenKind.SHR: (9, 10),
    TokenKind.PLUS: (11, 12),
    TokenKind.MINUS: (11, 12),
    TokenKind.STAR: (13, 14),
    TokenKind.SLASH: (13, 14),
    TokenKind.PERCENT: (13, 14),
}

_PREFIX_BP = 15  # right bp for unary ! - ~ and the operand of a cast
_POSTFIX_BP = 17  # left bp for .name, .(args), [index]

_PREFIX_OPS: dict[TokenKind, str] = {
    TokenKind.BANG: '!',
    TokenKind.MINUS: '-',
    TokenKind.TILDE: '~',
}

_TYPE_START = frozenset({
    TokenKind.PRIMITIVE, TokenKind.IDENTIFIER, TokenKind.STAR,
    TokenKind.LBRACKET, TokenKind.LPAREN,
})

_BLOCK_LIKE = frozenset({TokenKind.IF, TokenKind.MATCH, TokenKind.LBRACE})

_CLOSING = frozenset({TokenKind.RPAREN, TokenKind.RBRACKET, TokenKind.RBRACE})

_LITERAL_TOKENS = frozenset({
    TokenKind.NUMBER_LIT, TokenKind.STRING_LIT,
    TokenKind.CHAR_LIT, TokenKind.BOOLEAN_LIT,
})

_BASE_PREFIXES = {'0b': 2, '0o': 8, '0x': 16}

_KIND_TEXT: dict[TokenKind, str] = {
    **{kind: text for text, kind in ONE_CHAR_OPERATORS.items()},
    **{kind: text for text, kind in TWO_CHAR_OPERATORS.items()},
    **{kind: word for word, kind in KEYWORDS.items()
       if kind not in (TokenKind.PRIMITIVE, TokenKind.BOOLEAN_LIT)},
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.PRIMITIVE: "primitive type",
    TokenKind.NUMBER_LIT: "number",
    TokenKind.STRING_LIT: "string",
    TokenKind.CHAR_LIT: "character",
    TokenKind.BOOLEAN_LIT: "boolean",
    TokenKind.EOF: "end of input",
}


_UNQUOTED_KINDS = frozenset({
    TokenKind.IDENTIFIER, TokenKind.PRIMITIVE, TokenKind.EOF,
}) | _LITERAL_TOKENS


def describe_kind(kind: TokenKind) -> str:
    text = _KIND_TEXT.get(kind, kind.name.lower())
    if kind in _UNQUOTED_KINDS:
        return text
    return f"'{text}'"


def describe_token(tok: Token) -> str:
    if tok.kind == TokenKind.EOF:
        return "end of input"
    if tok.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER_LIT):
        return f"{describe_kind(tok.kind)} {tok.value!r}"
    if tok.kind in (TokenKind.STRING_LIT, TokenKind.CHAR_LIT):
        return describe_kind(tok.kind)
    return f"'{tok.value}'"


class Parser:
    """Parses a list of tokens into a Sprig AST."""

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<stdin>",
        *,
        recover: bool = True,
        max_errors: int = 0,
    ) -> None:
        # Copied so the split-token rule can rewrite the buffer in place
        self.tokens = list(tokens)
        self.pos = 0
        self.filename = filename
        self.recover = recover
        self.max_errors = max_errors
        self.diagnostics: list[Diagnostic] = []
        self._previous: Token | None = None
        self._generic_depth = 0

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _at_any(self, *kinds: TokenKind) -> bool:
        return self._current().kind in kinds

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self._previous = tok
        return tok

    def _prev_span(self) -> Span:
        if self._previous is None:
            return self._current().span
        return self._previous.span

    def _expect(self, kind: TokenKind) -> Token:
        tok = self._current()
        if tok.kind == kind:
            return self._advance()
        if kind in _CLOSING and (tok.kind in _CLOSING or tok.kind == TokenKind.EOF):
            raise self._fail(
                ParseErrorKind.UNBALANCED_DELIMITER,
                f"expected closing {describe_kind(kind)}, found {describe_token(tok)}",
                tok.span,
            )
        raise self._fail(
            ParseErrorKind.EXPECTED_TOKEN,
            f"expected {describe_kind(kind)}, found {describe_token(tok)}",
            tok.span,
        )

    def _expect_ident(self, what: str) -> Token:
        tok = self._current()
        if tok.kind == TokenKind.IDENTIFIER:
            return self._advance()
        if KEYWORDS.get(tok.value) == tok.kind:
            raise self._fail(
                ParseErrorKind.EXPECTED_TOKEN,
                f"expected {what}, found reserved word '{tok.value}'",
                tok.span,
                label="reserved words cannot be used as identifiers",
            )
        raise self._fail(
            ParseErrorKind.EXPECTED_TOKEN,
            f"expected {what}, found {describe_token(tok)}",
            tok.span,
        )

    def _error(
        self, kind: ErrorKind, message: str, span: Span, label: str = "",
    ) -> Diagnostic:
        diag = Diagnostic.error(kind, message, span, label)
        self.diagnostics.append(diag)
        if self.max_errors and len(self.diagnostics) >= self.max_errors:
            raise _TooManyErrors
        return diag

    def _fail(
        self, kind: ErrorKind, message: str, span: Span, label: str = "",
    ) -> _ParseError:
        """Record a fatal error and return the exception that unwinds it."""
        self._error(kind, message, span, label)
        return _ParseError(message)

    def _span(self, start: Span, end: Span) -> Span:
        """Build a Span from a start span to an end span."""
        return Span(
            self.filename,
            start.start_line, start.start_col,
            end.end_line, end.end_col,
            start.start_offset, end.end_offset,
        )

    def _parse_comma_list(
        self, close: TokenKind, parse_item: Callable[[], T],
    ) -> tuple[list[T], Token]:
        """Parse ``item, item, ...`` up to ``close``; a trailing comma is allowed."""
        items: list[T] = []
        while not self._at(close) and not self._at(TokenKind.EOF):
            items.append(parse_item())
            if not self._at(TokenKind.COMMA):
                break
            self._advance()
        end = self._expect(close)
        return items, end

    # ── Error recovery ───────────────────────────────────────────

    def _synchronize_declaration(self, failed_at: int) -> None:
        """Skip to the next top-level keyword."""
        if self.pos == failed_at:
            self._advance()
        while not self._at(TokenKind.EOF):
            if self._current().kind in DECLARATION_KEYWORDS:
                return
            self._advance()

    def _synchronize_statement(self, failed_at: int) -> None:
        """Skip to the next statement boundary inside the enclosing body.

        Stops after a ``;``, before a statement keyword or before the
        body's closing brace. A declaration keyword means the body was
        never closed, so control returns to the top level.
        """
        depth = 0
        while not self._at(TokenKind.EOF):
            tok = self._current()
            if depth == 0:
                if tok.kind == TokenKind.RBRACE:
                    return
                if tok.kind == TokenKind.SEMICOLON:
                    self._advance()
                    return
                if tok.kind in STATEMENT_KEYWORDS and self.pos != failed_at:
                    return
                if tok.kind in DECLARATION_KEYWORDS:
                    raise _ParseError("unclosed body")
            if tok.kind == TokenKind.LBRACE:
                depth += 1
            elif tok.kind == TokenKind.RBRACE:
                depth -= 1
            self._advance()

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Module:
        """Parse the entire token stream into a Module."""
        declarations: list[Declaration] = []
        start = self._current().span

        try:
            while not self._at(TokenKind.EOF):
                failed_at = self.pos
                try:
                    declarations.append(self._parse_declaration())
                except _ParseError:
                    if not self.recover:
                        break
                    self._synchronize_declaration(failed_at)
        except _TooManyErrors:
            pass

        if self.diagnostics:
            raise CompileError(self.diagnostics)
        end = self._current().span
        return Module(tuple(declarations), self._span(start, end))

    def _parse_declaration(self) -> Declaration:
        """Parse a single top-level declaration."""
        tok = self._current()
        if tok.kind == TokenKind.IMP:
            return self._parse_import_decl()
        if tok.kind == TokenKind.TYPE:
            return self._parse_type_def()
        if tok.kind == TokenKind.FUN:
            return self._parse_function()
        raise self._fail(
            ParseErrorKind.EXPECTED_TOKEN,
            f"expected 'imp', 'type' or 'fun', found {describe_token(tok)}",
            tok.span,
        )

    # ── Import declarations ──────────────────────────────────────

    def _parse_import_decl(self) -> ImportDecl:
        start = self._advance().span  # 'imp'
        path = self._parse_path()
        return ImportDecl(path, self._span(start, path.span))

    def _parse_path(self) -> Path:
        first = self._expect_ident("identifier")
        parts = [first.value]
        end = first.span
        while self._at(TokenKind.COLON):
            self._advance()
            tok = self._expect_ident("identifier after ':'")
            parts.append(tok.value)
            end = tok.span
        return Path(tuple(parts), self._span(first.span, end))

    # ── Function declarations ────────────────────────────────────

    def _parse_function(self) -> FunctionDecl | FunctionDef:
        start = self._advance().span  # 'fun'
        name = self._expect_ident("function name").value

        params: list[Param] = []
        if self._current().kind in _TYPE_START:
            params.append(self._parse_param())
            while self._at(TokenKind.COMMA):
                self._advance()
                params.append(self._parse_param())

        return_type = None
        if self._at(TokenKind.ARROW):
            self._advance()
            return_type = self._parse_type_expr()

        if self._at(TokenKind.EXTERN):
            self._advance()
            if self._at(TokenKind.LBRACE):
                brace = self._current()
                self._error(
                    ParseErrorKind.EXTERN_WITH_BODY,
                    f"extern function '{name}' cannot have a body",
                    brace.span,
                    label="remove this body or the 'extern' marker",
                )
                self._parse_body()
            return FunctionDecl(
                name, tuple(params), return_type, True,
                self._span(start, self._prev_span()),
            )

        if self._at(TokenKind.LBRACE):
            body = self._parse_body()
            return FunctionDef(
                name, tuple(params), return_type, body,
                self._span(start, body.span),
            )

        tok = self._current()
        if tok.kind in DECLARATION_KEYWORDS or tok.kind == TokenKind.EOF:
            return FunctionDecl(
                name, tuple(params), return_type, False,
                self._span(start, self._prev_span()),
            )
        raise self._fail(
            ParseErrorKind.MISSING_BODY_FOR_NON_EXTERN,
            f"expected a body or 'extern' for function '{name}', "
            f"found {describe_token(tok)}",
            tok.span,
        )

    def _parse_param(self) -> Param:
        type_expr = self._parse_type_expr()
        name_tok = self._expect_ident("parameter name")
        return Param(type_expr, name_tok.value,
                     self._span(type_expr.span, name_tok.span))

    # ── Type definitions ─────────────────────────────────────────

    def _parse_type_def(self) -> TypeDef:
        start = self._advance().span  # 'type'
        name = self._expect_ident("type name").value

        type_params: list[str] = []
        if self._at(TokenKind.LESS):
            self._advance()
            self._generic_depth += 1
            try:
                type_params.append(self._expect_ident("type parameter").value)
                while self._at(TokenKind.COMMA):
                    self._advance()
                    if self._at_closing_angle():
                        break
                    type_params.append(self._expect_ident("type parameter").value)
                self._expect_generic_close()
            finally:
                self._generic_depth -= 1

        self._expect(TokenKind.ASSIGN)
        body = self._parse_type_body()
        return TypeDef(name, tuple(type_params), body,
                       self._span(start, body.span))

    def _parse_type_body(self) -> TypeBody:
        if self._at(TokenKind.LBRACE):
            return self._parse_struct_body()

        first = self._parse_type_expr()
        variants = [first]
        while self._at(TokenKind.PIPE):
            self._advance()
            variants.append(self._parse_type_expr())
        span = self._span(first.span, variants[-1].span)
        if len(variants) == 1:
            return AliasBody(first, span)
        return UnionBody(tuple(variants), span)

    def _parse_struct_body(self) -> StructBody:
        start = self._advance().span  # {
        fields: list[StructField] = []
        seen: dict[str, StructField] = {}

        while not self._at(TokenKind.RBRACE) and not self._at(TokenKind.EOF):
            type_expr = self._parse_type_expr()
            name = None
            end = type_expr.span
            if self._at(TokenKind.IDENTIFIER):
                name_tok = self._advance()
                name, end = name_tok.value, name_tok.span
            elif not (self._at(TokenKind.RBRACE)
                      or (self._at(TokenKind.COMMA)
                          and self._peek(1).kind == TokenKind.RBRACE)):
                tok = self._current()
                raise self._fail(
                    ParseErrorKind.EXPECTED_TOKEN,
                    f"expected field name, found {describe_token(tok)}",
                    tok.span,
                    label="only the last field may omit its name",
                )
            field = StructField(type_expr, name, self._span(type_expr.span, end))
            if name is not None and name in seen:
                self._duplicate_field(name, field.span, seen[name].span)
            elif name is not None:
                seen[name] = field
            fields.append(field)
            if not self._at(TokenKind.COMMA):
                break
            self._advance()

        end_tok = self._expect(TokenKind.RBRACE)
        return StructBody(tuple(fields), self._span(start, end_tok.span))

    def _duplicate_field(self, name: str, span: Span, first: Span) -> None:
        diag = self._error(
            ParseErrorKind.DUPLICATE_FIELD,
            f"field '{name}' is defined more than once",
            span,
        )
        diag.notes.append(f"first defined at {first}")

    # ── Type expressions ─────────────────────────────────────────

    def _parse_type_expr(self) -> TypeExpr:
        """Parse a type: primitive, named (with generics), pointer, array or function."""
        tok = self._current()

        if tok.kind == TokenKind.PRIMITIVE:
            self._advance()
            return PrimitiveType(tok.value, tok.span)

        if tok.kind == TokenKind.IDENTIFIER:
            path = self._parse_path()
            args: list[TypeExpr] = []
            if self._at(TokenKind.LESS):
                args = self._parse_generic_args()
            return NamedType(path, tuple(args),
                             self._span(path.span, self._prev_span()))

        if tok.kind == TokenKind.STAR:
            self._advance()
            target = self._parse_type_expr()
            return PointerType(target, self._span(tok.span, target.span))

        if tok.kind == TokenKind.LBRACKET:
            return self._parse_array_type()

        if tok.kind == TokenKind.LPAREN:
            return self._parse_function_type()

        raise self._fail(
            ParseErrorKind.EXPECTED_TYPE,
            f"expected type, found {describe_token(tok)}",
            tok.span,
        )

    def _parse_generic_args(self) -> list[TypeExpr]:
        self._advance()  # <
        self._generic_depth += 1
        try:
            args = [self._parse_type_expr()]
            while self._at(TokenKind.COMMA):
                self._advance()
                if self._at_closing_angle():
                    break
                args.append(self._parse_type_expr())
            self._expect_generic_close()
        finally:
            self._generic_depth -= 1
        return args

    def _at_closing_angle(self) -> bool:
        return self._at_any(TokenKind.GREATER, TokenKind.SHR, TokenKind.GREATER_EQUAL)

    def _expect_generic_close(self) -> Token:
        """Consume one '>', splitting '>>' or '>=' when needed.

        The lexer prefers the longest operator, so ``Foo<Bar<i32>>`` ends
        in a single ``>>`` token and ``type Foo<T>= i32`` in a ``>=``.
        The first character closes the current list; the remainder is
        written back into the token buffer with its own span.
        """
        tok = self._current()
        if tok.kind == TokenKind.GREATER:
            return self._advance()
        if tok.kind == TokenKind.SHR:
            if self._generic_depth <= 1:
                # No enclosing list can take the second '>'
                self._error(
                    ParseErrorKind.AMBIGUOUS_GENERIC_CLOSE,
                    "'>>' closes more generic argument lists than are open",
                    tok.span,
                )
                return self._advance()
            return self._split_current(TokenKind.GREATER, '>')
        if tok.kind == TokenKind.GREATER_EQUAL:
            return self._split_current(TokenKind.ASSIGN, '=')
        raise self._fail(
            ParseErrorKind.EXPECTED_TOKEN,
            f"expected '>' to close generic arguments, found {describe_token(tok)}",
            tok.span,
        )

    def _split_current(self, rest_kind: TokenKind, rest_value: str) -> Token:
        tok = self._current()
        s = tok.span
        head = Token(TokenKind.GREATER, '>', Span(
            s.file, s.start_line, s.start_col, s.start_line, s.start_col,
            s.start_offset, s.start_offset + 1,
        ))
        rest = Token(rest_kind, rest_value, Span(
            s.file, s.start_line, s.start_col + 1, s.end_line, s.end_col,
            s.start_offset + 1, s.end_offset,
        ))
        self.tokens[self.pos] = rest
        self._previous = head
        return head

    def _parse_array_type(self) -> ArrayType:
        start = self._advance().span  # [
        size = None
        if self._at(TokenKind.NUMBER_LIT):
            tok = self._advance()
            lit = self._number_literal(tok)
            if lit.has_fraction or lit.has_exponent:
                raise self._fail(
                    ParseErrorKind.EXPECTED_TOKEN,
                    f"array size must be a non-negative integer, found {tok.value!r}",
                    tok.span,
                )
            size = lit.value
        elif self._at(TokenKind.MINUS):
            tok = self._current()
            raise self._fail(
                ParseErrorKind.EXPECTED_TOKEN,
                "array size must be a non-negative integer",
                tok.span,
            )
        self._expect(TokenKind.RBRACKET)
        element = self._parse_type_expr()
        return ArrayType(size, element, self._span(start, element.span))

    def _parse_function_type(self) -> TypeExpr:
        """Parse ``(A, B) -> R``, ``(A, B)`` or a transparent ``(T)``."""
        start = self._advance().span  # (
        params: list[TypeExpr] = []
        trailing_comma = False
        while not self._at(TokenKind.RPAREN) and not self._at(TokenKind.EOF):
            params.append(self._parse_type_expr())
            trailing_comma = False
            if not self._at(TokenKind.COMMA):
                break
            self._advance()
            trailing_comma = True
        end = self._expect(TokenKind.RPAREN)

        if self._at(TokenKind.ARROW):
            self._advance()
            ret = self._parse_type_expr()
            return FunctionType(tuple(params), ret, self._span(start, ret.span))
        if len(params) == 1 and not trailing_comma:
            return params[0]
        return FunctionType(tuple(params), None, self._span(start, end.span))

    # ── Bodies and statements ────────────────────────────────────

    def _parse_body(self) -> Body:
        start = self._expect(TokenKind.LBRACE).span
        stmts: list[Stmt] = []
        while not self._at(TokenKind.RBRACE) and not self._at(TokenKind.EOF):
            if self._at(TokenKind.SEMICOLON):
                self._advance()
                continue
            failed_at = self.pos
            try:
                stmts.append(self._parse_statement())
            except _ParseError:
                if not self.recover:
                    raise
                self._synchronize_statement(failed_at)
        end = self._expect(TokenKind.RBRACE)
        return Body(tuple(stmts), self._span(start, end.span))

    def _parse_statement(self) -> Stmt:
        """Parse a statement: declaration, assignment, control flow or expression."""
        tok = self._current()

        if tok.kind in (TokenKind.LET, TokenKind.MUT):
            decl = self._parse_var_decl()
            if not self._at(TokenKind.ASSIGN):
                return decl
            self._advance()
            value = self._parse_expression(0)
            return Assignment(decl, value, self._span(decl.span, value.span))

        if tok.kind == TokenKind.RETURN:
            self._advance()
            value = None
            if not (self._at_any(TokenKind.RBRACE, TokenKind.SEMICOLON, TokenKind.EOF)
                    or self._current().kind in STATEMENT_KEYWORDS):
                value = self._parse_expression(0)
            return ReturnStmt(value, self._span(tok.span, self._prev_span()))

        if tok.kind == TokenKind.BREAK:
            self._advance()
            return BreakStmt(tok.span)

        if tok.kind == TokenKind.CONT:
            self._advance()
            return ContinueStmt(tok.span)

        if tok.kind == TokenKind.LOOP:
            self._advance()
            body = self._parse_body()
            return LoopStmt(body, self._span(tok.span, body.span))

        if tok.kind in _BLOCK_LIKE:
            # A statement-level if/match/block ends at its closing brace,
            # so the next line cannot continue it as an operand.
            expr = self._parse_prefix()
            return ExprStmt(expr, expr.span)

        expr = self._parse_expression(0)
        if not self._at(TokenKind.ASSIGN):
            return ExprStmt(expr, expr.span)

        if not isinstance(expr, (IdentifierExpr, IndexExpr, FieldExpr)):
            self._error(
                ParseErrorKind.INVALID_ASSIGN_TARGET,
                "cannot assign to this expression",
                expr.span,
                label="expected a variable, index or field",
            )
        self._advance()  # =
        value = self._parse_expression(0)
        return Assignment(expr, value, self._span(expr.span, value.span))

    def _parse_var_decl(self) -> VarDecl:
        start = self._advance()  # let / mut
        type_expr = None
        if self._at(TokenKind.LPAREN):
            self._advance()
            type_expr = self._parse_type_expr()
            self._expect(TokenKind.RPAREN)
        name_tok = self._expect_ident("variable name")
        return VarDecl(start.kind == TokenKind.MUT, type_expr, name_tok.value,
                       self._span(start.span, name_tok.span))

    # ── Pratt expression parser ──────────────────────────────────

    def _parse_expression(self, min_bp: int) -> Expr:
        """Parse an expression using Pratt parsing with binding powers."""
        left = self._parse_prefix()

        while True:
            tok = self._current()

            # Postfix: .name, .(args), [index]
            if tok.kind == TokenKind.DOT:
                if _POSTFIX_BP < min_bp:
                    break
                self._advance()
                if self._at(TokenKind.LPAREN):
                    self._advance()
                    args, end = self._parse_comma_list(
                        TokenKind.RPAREN, lambda: self._parse_expression(0),
                    )
                    left = CallExpr(left, tuple(args),
                                    self._span(left.span, end.span))
                else:
                    field_tok = self._expect_ident("field name or '('")
                    left = FieldExpr(left, field_tok.value,
                                     self._span(left.span, field_tok.span))
                continue

            if tok.kind == TokenKind.LBRACKET:
                if _POSTFIX_BP < min_bp:
                    break
                self._advance()
                index = self._parse_expression(0)
                end = self._expect(TokenKind.RBRACKET)
                left = IndexExpr(left, index, self._span(left.span, end.span))
                continue

            # Infix operators
            if tok.kind in _INFIX_BP:
                left_bp, right_bp = _INFIX_BP[tok.kind]
                if left_bp < min_bp:
                    break
                op_tok = self._advance()
                right = self._parse_expression(right_bp)
                left = BinaryExpr(left, op_tok.value, right,
                                  self._span(left.span, right.span))
                continue

            break

        return left

    def _parse_prefix(self) -> Expr:
        """Parse a prefix expression (atom, unary operator or cast)."""
        tok = self._current()

        if tok.kind in _PREFIX_OPS:
            self._advance()
            operand = self._parse_expression(_PREFIX_BP)
            return UnaryExpr(_PREFIX_OPS[tok.kind], operand,
                             self._span(tok.span, operand.span))

        if tok.kind == TokenKind.DOLLAR:
            self._advance()
            target = self._parse_type_expr()
            operand = self._parse_expression(_PREFIX_BP)
            return CastExpr(target, operand, self._span(tok.span, operand.span))

        if tok.kind in _LITERAL_TOKENS:
            return self._parse_scalar_literal()

        if tok.kind == TokenKind.IDENTIFIER:
            path = self._parse_path()
            if len(path.parts) == 1:
                return IdentifierExpr(path.parts[0], path.span)
            return PathExpr(path, path.span)

        if tok.kind == TokenKind.LPAREN:
            return self._parse_paren_or_tuple()

        if tok.kind == TokenKind.LBRACKET:
            self._advance()
            elements, end = self._parse_comma_list(
                TokenKind.RBRACKET, lambda: self._parse_expression(0),
            )
            return ArrayLit(tuple(elements), self._span(tok.span, end.span))

        if tok.kind == TokenKind.HASH:
            return self._parse_struct_literal()

        if tok.kind == TokenKind.LBRACE:
            body = self._parse_body()
            return BlockExpr(body, body.span)

        if tok.kind == TokenKind.IF:
            return self._parse_if_expr()

        if tok.kind == TokenKind.MATCH:
            return self._parse_match_expr()

        raise self._fail(
            ParseErrorKind.EXPECTED_TOKEN,
            f"expected expression, found {describe_token(tok)}",
            tok.span,
        )

    def _parse_scalar_literal(self) -> Literal:
        tok = self._advance()
        if tok.kind == TokenKind.NUMBER_LIT:
            return self._number_literal(tok)
        if tok.kind == TokenKind.STRING_LIT:
            return StringLit(tok.value, tok.span)
        if tok.kind == TokenKind.CHAR_LIT:
            return CharLit(tok.value, tok.span)
        return BoolLit(tok.value == 'true', tok.span)

    def _number_literal(self, tok: Token, sign: str = "") -> NumberLit:
        text = tok.value
        base = _BASE_PREFIXES.get(text[:2])
        if base is not None:
            return NumberLit(sign + text[2:], base, False, False, tok.span)
        return NumberLit(sign + text, 10, '.' in text, 'e' in text.lower(), tok.span)

    def _parse_paren_or_tuple(self) -> Expr:
        """``(e)`` is ``e``; ``()``, ``(e,)`` and ``(a, b)`` are tuples."""
        start = self._advance()  # (
        if self._at(TokenKind.RPAREN):
            end = self._advance()
            return TupleLit((), self._span(start.span, end.span))
        if self._at(TokenKind.COMMA):
            tok = self._current()
            raise self._fail(
                ParseErrorKind.INVALID_TUPLE_ARITY,
                "tuple literal needs an element before ','",
                tok.span,
                label="write '()' for the empty tuple",
            )

        first = self._parse_expression(0)
        if self._at(TokenKind.RPAREN):
            self._advance()
            return first

        elements = [first]
        while self._at(TokenKind.COMMA):
            self._advance()
            if self._at(TokenKind.RPAREN):
                break
            elements.append(self._parse_expression(0))
        end = self._expect(TokenKind.RPAREN)
        return TupleLit(tuple(elements), self._span(start.span, end.span))

    def _parse_struct_literal(self) -> StructLit:
        start = self._advance().span  # #
        type_expr = None
        if not self._at(TokenKind.LBRACE):
            type_expr = self._parse_type_expr()
        self._expect(TokenKind.LBRACE)

        fields: list[FieldInit] = []
        seen: dict[str, FieldInit] = {}
        while not self._at(TokenKind.RBRACE) and not self._at(TokenKind.EOF):
            name_tok = self._expect_ident("field name")
            self._expect(TokenKind.ASSIGN)
            value = self._parse_expression(0)
            field = FieldInit(name_tok.value, value,
                              self._span(name_tok.span, value.span))
            if field.name in seen:
                self._duplicate_field(field.name, field.span, seen[field.name].span)
            else:
                seen[field.name] = field
            fields.append(field)
            if not self._at(TokenKind.COMMA):
                break
            self._advance()

        end = self._expect(TokenKind.RBRACE)
        return StructLit(type_expr, tuple(fields), self._span(start, end.span))

    def _parse_if_expr(self) -> IfExpr:
        start = self._advance().span  # 'if'
        condition = self._parse_expression(0)
        then_body = self._parse_body()

        else_branch: Body | IfExpr | None = None
        if self._at(TokenKind.ELSE):
            self._advance()
            if self._at(TokenKind.IF):
                else_branch = self._parse_if_expr()
            else:
                else_branch = self._parse_body()

        end = else_branch.span if else_branch is not None else then_body.span
        return IfExpr(condition, then_body, else_branch, self._span(start, end))

    def _parse_match_expr(self) -> MatchExpr:
        start = self._advance().span  # 'match'
        subject = self._parse_expression(0)
        self._expect(TokenKind.LBRACE)

        arms: list[MatchArm] = []
        wildcard: MatchArm | None = None
        while not self._at(TokenKind.RBRACE) and not self._at(TokenKind.EOF):
            arm = self._parse_match_arm()
            is_wildcard = isinstance(arm.pattern, WildcardPattern)
            if wildcard is not None and is_wildcard:
                diag = self._error(
                    ParseErrorKind.DUPLICATE_WILDCARD,
                    "match has more than one default arm",
                    arm.span,
                )
                diag.notes.append(f"first default arm at {wildcard.span}")
            elif wildcard is not None:
                self._error(
                    ParseErrorKind.WILDCARD_NOT_LAST,
                    "arm follows the default arm",
                    arm.span,
                    label="the default arm must be the last arm",
                )
            elif is_wildcard:
                wildcard = arm
            arms.append(arm)
            if not self._at(TokenKind.COMMA):
                break
            self._advance()

        end = self._expect(TokenKind.RBRACE)
        if not arms:
            raise self._fail(
                ParseErrorKind.EXPECTED_TOKEN,
                "match needs at least one arm",
                end.span,
            )
        return MatchExpr(subject, tuple(arms), self._span(start, end.span))

    def _parse_match_arm(self) -> MatchArm:
        start = self._current().span
        pattern = self._parse_pattern()
        self._expect(TokenKind.ARROW)
        body = self._parse_expression(0)
        return MatchArm(pattern, body, self._span(start, body.span))

    # ── Patterns ─────────────────────────────────────────────────

    def _parse_pattern(self) -> Pattern:
        tok = self._current()

        # An arm that starts with '->' has no matchcase
        if tok.kind == TokenKind.ARROW:
            return WildcardPattern(tok.span)

        if tok.kind in _LITERAL_TOKENS:
            lit = self._parse_scalar_literal()
            return LiteralPattern(lit, lit.span)

        if tok.kind == TokenKind.MINUS and self._peek(1).kind == TokenKind.NUMBER_LIT:
            self._advance()
            num_tok = self._advance()
            lit = self._number_literal(num_tok, sign='-')
            span = self._span(tok.span, num_tok.span)
            return LiteralPattern(
                NumberLit(lit.digits, lit.base, lit.has_fraction, lit.has_exponent, span),
                span,
            )

        type_expr = self._parse_type_expr()
        binding = None
        end = type_expr.span
        if self._at(TokenKind.IDENTIFIER):
            name_tok = self._advance()
            binding, end = name_tok.value, name_tok.span
        return TypeTagPattern(type_expr, binding, self._span(type_expr.span, end))


class _ParseError(Exception):
    """Internal exception for parser error recovery."""


class _TooManyErrors(Exception):
    """Raised once ``max_errors`` diagnostics have been collected."""
