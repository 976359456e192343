"""AST-walking printer for Sprig modules.

Renders any node as an s-expression (types are rendered in source
syntax). Dispatch is a ``match`` over the closed node unions, so a new
node kind fails loudly here until it is handled.
"""

from __future__ import annotations

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
    ExprStmt,
    FieldExpr,
    FunctionDecl,
    FunctionDef,
    FunctionType,
    IdentifierExpr,
    IfExpr,
    ImportDecl,
    IndexExpr,
    LiteralPattern,
    LoopStmt,
    MatchArm,
    MatchExpr,
    Module,
    NamedType,
    NumberLit,
    Param,
    PathExpr,
    PointerType,
    PrimitiveType,
    ReturnStmt,
    StringLit,
    StructBody,
    StructLit,
    TupleLit,
    TypeDef,
    TypeExpr,
    TypeTagPattern,
    UnaryExpr,
    UnionBody,
    VarDecl,
    WildcardPattern,
)

_BASE_PREFIX = {2: "0b", 8: "0o", 10: "", 16: "0x"}


def _quote(text: str, delim: str) -> str:
    escaped = (text.replace("\\", "\\\\").replace(delim, "\\" + delim)
               .replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")
               .replace("\0", "\\0"))
    return f"{delim}{escaped}{delim}"


def _sexpr(head: str, *items: str) -> str:
    return "(" + " ".join((head, *items)) + ")"


def format_type(t: TypeExpr) -> str:
    """Render a type expression in source syntax."""
    match t:
        case PrimitiveType(name=name):
            return name
        case NamedType(path=path, args=args):
            if not args:
                return str(path)
            return f"{path}<{', '.join(format_type(a) for a in args)}>"
        case PointerType(target=target):
            return "*" + format_type(target)
        case ArrayType(size=size, element=element):
            return f"[{'' if size is None else size}]{format_type(element)}"
        case FunctionType(params=params, return_type=ret):
            text = f"({', '.join(format_type(p) for p in params)})"
            if ret is not None:
                text += f" -> {format_type(ret)}"
            return text
        case _:
            raise TypeError(f"not a type expression: {type(t).__name__}")


def dump(node: object) -> str:
    """Render a module or any node as an s-expression."""
    match node:
        # Module and declarations
        case Module(declarations=decls):
            return "\n".join(dump(d) for d in decls)
        case ImportDecl(path=path):
            return _sexpr("imp", str(path))
        case FunctionDecl(name=name, params=params, return_type=ret, is_extern=ext):
            head = "extern-fun" if ext else "fun"
            return _sexpr(head, name, _params(params), *_return(ret))
        case FunctionDef(name=name, params=params, return_type=ret, body=body):
            return _sexpr("fun", name, _params(params), *_return(ret), dump(body))
        case TypeDef(name=name, type_params=tparams, body=body):
            if tparams:
                name = f"{name}<{', '.join(tparams)}>"
            return _sexpr("type", name, dump(body))
        case StructBody(fields=fields):
            return _sexpr("struct", *(
                _sexpr(format_type(f.type_expr), *([f.name] if f.name else []))
                for f in fields
            ))
        case AliasBody(target=target):
            return _sexpr("alias", format_type(target))
        case UnionBody(variants=variants):
            return _sexpr("union", *(format_type(v) for v in variants))

        # Statements
        case Body(stmts=stmts):
            return _sexpr("body", *(dump(s) for s in stmts))
        case VarDecl(mutable=mutable, type_expr=type_expr, name=name):
            head = "mut" if mutable else "let"
            if type_expr is None:
                return _sexpr(head, name)
            return _sexpr(head, format_type(type_expr), name)
        case Assignment(target=target, value=value):
            return _sexpr("=", dump(target), dump(value))
        case ExprStmt(expr=expr):
            return dump(expr)
        case ReturnStmt(value=value):
            return _sexpr("return", *([] if value is None else [dump(value)]))
        case BreakStmt():
            return "(break)"
        case ContinueStmt():
            return "(cont)"
        case LoopStmt(body=body):
            return _sexpr("loop", dump(body))

        # Literals
        case NumberLit(digits=digits, base=base):
            sign = "-" if digits.startswith("-") else ""
            return sign + _BASE_PREFIX[base] + digits.lstrip("-")
        case StringLit(value=value):
            return _quote(value, '"')
        case CharLit(value=value):
            return _quote(value, "'")
        case BoolLit(value=value):
            return "true" if value else "false"
        case ArrayLit(elements=elements):
            return _sexpr("array", *(dump(e) for e in elements))
        case TupleLit(elements=elements):
            return _sexpr("tuple", *(dump(e) for e in elements))
        case StructLit(type_expr=type_expr, fields=fields):
            items = [] if type_expr is None else [format_type(type_expr)]
            items += [_sexpr(f.name, dump(f.value)) for f in fields]
            return _sexpr("struct", *items)

        # Expressions
        case IdentifierExpr(name=name):
            return name
        case PathExpr(path=path):
            return str(path)
        case IndexExpr(obj=obj, index=index):
            return _sexpr("index", dump(obj), dump(index))
        case FieldExpr(obj=obj, field=field):
            return _sexpr(".", dump(obj), field)
        case CallExpr(func=func, args=args):
            return _sexpr("call", dump(func), *(dump(a) for a in args))
        case UnaryExpr(op=op, operand=operand):
            return _sexpr(op, dump(operand))
        case BinaryExpr(left=left, op=op, right=right):
            return _sexpr(op, dump(left), dump(right))
        case CastExpr(target=target, operand=operand):
            return _sexpr("cast", format_type(target), dump(operand))
        case BlockExpr(body=body):
            return _sexpr("block", *(dump(s) for s in body.stmts))
        case IfExpr(condition=cond, then_body=then_body, else_branch=else_branch):
            items = [dump(cond), dump(then_body)]
            if else_branch is not None:
                items.append(dump(else_branch))
            return _sexpr("if", *items)
        case MatchExpr(subject=subject, arms=arms):
            return _sexpr("match", dump(subject), *(dump(a) for a in arms))
        case MatchArm(pattern=pattern, body=body):
            return _sexpr("arm", dump(pattern), dump(body))

        # Patterns
        case WildcardPattern():
            return "_"
        case LiteralPattern(literal=literal):
            return dump(literal)
        case TypeTagPattern(type_expr=type_expr, binding=binding):
            return _sexpr("tag", format_type(type_expr), *([binding] if binding else []))

        case _:
            raise TypeError(f"cannot print {type(node).__name__}")


def _params(params: tuple[Param, ...]) -> str:
    return "(" + " ".join(_sexpr(format_type(p.type_expr), p.name) for p in params) + ")"


def _return(ret: TypeExpr | None) -> list[str]:
    return [] if ret is None else ["->", format_type(ret)]
