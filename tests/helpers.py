"""Shared test helpers for the Sprig front-end test suite."""

from __future__ import annotations

import pytest

from sprig.config import ParserConfig
from sprig.errors import CompileError, Diagnostic, ErrorKind
from sprig.frontend import parse_source
from sprig.printer import dump


def parse(source: str, **config):
    """Lex and parse source, return the Module."""
    return parse_source(source, "test.sg", ParserConfig(**config) if config else None)


def parse_decl(source: str):
    """Parse and return the first declaration."""
    mod = parse(source)
    assert len(mod.declarations) >= 1
    return mod.declarations[0]


def parse_expr(source: str):
    """Parse ``source`` as the single expression statement of a function body."""
    fn = parse_decl(f"fun f {{ {source} }}")
    assert len(fn.body.stmts) == 1, fn.body.stmts
    return fn.body.stmts[0].expr


def dump_expr(source: str) -> str:
    return dump(parse_expr(source))


def parse_fails(source: str, kind: ErrorKind, **config) -> list[Diagnostic]:
    """Parse source, asserting a diagnostic of ``kind`` appears."""
    with pytest.raises(CompileError) as exc_info:
        parse(source, **config)
    matching = [d for d in exc_info.value.diagnostics if d.is_kind(kind)]
    assert matching, (
        f"Expected error {kind.value} but got: "
        f"{[f'{d.code}: {d.message}' for d in exc_info.value.diagnostics]}"
    )
    return matching
