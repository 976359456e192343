"""AST node definitions for the Sprig language.

Every node is a frozen dataclass holding tuples, so a parsed tree cannot
be changed after construction. Node families are closed ``Union`` types;
consumers dispatch over them with ``match`` (see :mod:`sprig.printer`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sprig.source import Span


@dataclass(frozen=True)
class Path:
    """A ``:``-separated, possibly module-qualified name."""

    parts: tuple[str, ...]
    span: Span

    def __str__(self) -> str:
        return ":".join(self.parts)


# ── Type expressions ─────────────────────────────────────────────


@dataclass(frozen=True)
class PrimitiveType:
    name: str  # bool, char, unit, i8 .. i64, u8 .. u64, f32, f64
    span: Span


@dataclass(frozen=True)
class NamedType:
    path: Path
    args: tuple[TypeExpr, ...]
    span: Span


@dataclass(frozen=True)
class PointerType:
    target: TypeExpr
    span: Span


@dataclass(frozen=True)
class ArrayType:
    size: int | None  # None for an unsized array
    element: TypeExpr
    span: Span


@dataclass(frozen=True)
class FunctionType:
    params: tuple[TypeExpr, ...]
    return_type: TypeExpr | None
    span: Span


TypeExpr = Union[PrimitiveType, NamedType, PointerType, ArrayType, FunctionType]


# ── Literals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class StringLit:
    value: str
    span: Span


@dataclass(frozen=True)
class BoolLit:
    value: bool
    span: Span


@dataclass(frozen=True)
class CharLit:
    value: str
    span: Span


@dataclass(frozen=True)
class NumberLit:
    digits: str  # without the base prefix
    base: int
    has_fraction: bool
    has_exponent: bool
    span: Span

    @property
    def value(self) -> int | float:
        if self.has_fraction or self.has_exponent:
            return float(self.digits)
        return int(self.digits, self.base)


@dataclass(frozen=True)
class ArrayLit:
    elements: tuple[Expr, ...]
    span: Span


@dataclass(frozen=True)
class TupleLit:
    elements: tuple[Expr, ...]
    span: Span


@dataclass(frozen=True)
class FieldInit:
    name: str
    value: Expr
    span: Span


@dataclass(frozen=True)
class StructLit:
    type_expr: TypeExpr | None
    fields: tuple[FieldInit, ...]
    span: Span


Literal = Union[StringLit, BoolLit, CharLit, NumberLit, ArrayLit, TupleLit, StructLit]


# ── Patterns ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class TypeTagPattern:
    type_expr: TypeExpr
    binding: str | None
    span: Span


@dataclass(frozen=True)
class LiteralPattern:
    literal: Literal
    span: Span


@dataclass(frozen=True)
class WildcardPattern:
    span: Span


Pattern = Union[TypeTagPattern, LiteralPattern, WildcardPattern]


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span


@dataclass(frozen=True)
class PathExpr:
    path: Path
    span: Span


@dataclass(frozen=True)
class IndexExpr:
    obj: Expr
    index: Expr
    span: Span


@dataclass(frozen=True)
class FieldExpr:
    obj: Expr
    field: str
    span: Span


@dataclass(frozen=True)
class CallExpr:
    func: Expr
    args: tuple[Expr, ...]
    span: Span


@dataclass(frozen=True)
class UnaryExpr:
    op: str
    operand: Expr
    span: Span


@dataclass(frozen=True)
class BinaryExpr:
    left: Expr
    op: str
    right: Expr
    span: Span


@dataclass(frozen=True)
class IfExpr:
    condition: Expr
    then_body: Body
    else_branch: Body | IfExpr | None
    span: Span


@dataclass(frozen=True)
class MatchArm:
    pattern: Pattern
    body: Expr
    span: Span


@dataclass(frozen=True)
class MatchExpr:
    subject: Expr
    arms: tuple[MatchArm, ...]
    span: Span

    @property
    def wildcard(self) -> MatchArm | None:
        for arm in self.arms:
            if isinstance(arm.pattern, WildcardPattern):
                return arm
        return None


@dataclass(frozen=True)
class CastExpr:
    target: TypeExpr
    operand: Expr
    span: Span


@dataclass(frozen=True)
class BlockExpr:
    body: Body
    span: Span


Expr = Union[
    StringLit, BoolLit, CharLit, NumberLit, ArrayLit, TupleLit, StructLit,
    IdentifierExpr, PathExpr, IndexExpr, FieldExpr, CallExpr,
    UnaryExpr, BinaryExpr, IfExpr, MatchExpr, CastExpr, BlockExpr,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class VarDecl:
    mutable: bool
    type_expr: TypeExpr | None
    name: str
    span: Span


@dataclass(frozen=True)
class Assignment:
    target: IdentifierExpr | IndexExpr | FieldExpr | VarDecl
    value: Expr
    span: Span


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span


@dataclass(frozen=True)
class ReturnStmt:
    value: Expr | None
    span: Span


@dataclass(frozen=True)
class BreakStmt:
    span: Span


@dataclass(frozen=True)
class ContinueStmt:
    span: Span


@dataclass(frozen=True)
class LoopStmt:
    body: Body
    span: Span


Stmt = Union[
    VarDecl, Assignment, ExprStmt, ReturnStmt,
    BreakStmt, ContinueStmt, LoopStmt,
]


@dataclass(frozen=True)
class Body:
    """A brace-delimited statement list; its own scope."""

    stmts: tuple[Stmt, ...]
    span: Span


# ── Type definitions ─────────────────────────────────────────────


@dataclass(frozen=True)
class StructField:
    type_expr: TypeExpr
    name: str | None  # only the last field may be unnamed
    span: Span


@dataclass(frozen=True)
class StructBody:
    fields: tuple[StructField, ...]
    span: Span


@dataclass(frozen=True)
class AliasBody:
    target: TypeExpr
    span: Span


@dataclass(frozen=True)
class UnionBody:
    variants: tuple[TypeExpr, ...]  # at least two
    span: Span


TypeBody = Union[StructBody, AliasBody, UnionBody]


# ── Top-level declarations ───────────────────────────────────────


@dataclass(frozen=True)
class Param:
    type_expr: TypeExpr
    name: str
    span: Span


@dataclass(frozen=True)
class FunctionDecl:
    """A prototype without a body, either ``extern`` or a forward declaration."""

    name: str
    params: tuple[Param, ...]
    return_type: TypeExpr | None
    is_extern: bool
    span: Span


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: tuple[Param, ...]
    return_type: TypeExpr | None
    body: Body
    span: Span


@dataclass(frozen=True)
class TypeDef:
    name: str
    type_params: tuple[str, ...]
    body: TypeBody
    span: Span


@dataclass(frozen=True)
class ImportDecl:
    path: Path
    span: Span


Declaration = Union[ImportDecl, FunctionDecl, FunctionDef, TypeDef]


@dataclass(frozen=True)
class Module:
    declarations: tuple[Declaration, ...]
    span: Span

    @property
    def imports(self) -> list[ImportDecl]:
        return [d for d in self.declarations if isinstance(d, ImportDecl)]

    @property
    def types(self) -> list[TypeDef]:
        return [d for d in self.declarations if isinstance(d, TypeDef)]

    @property
    def functions(self) -> list[FunctionDecl | FunctionDef]:
        return [
            d for d in self.declarations
            if isinstance(d, (FunctionDecl, FunctionDef))
        ]
