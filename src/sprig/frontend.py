"""Entry points that run the lexer and parser over one module."""

from __future__ import annotations

from pathlib import Path

from sprig.ast_nodes import Module
from sprig.config import ParserConfig, SprigConfig
from sprig.lexer import Lexer
from sprig.parser import Parser
from sprig.source import SourceFile


def parse_source(
    source: str,
    filename: str = "<stdin>",
    config: ParserConfig | None = None,
) -> Module:
    """Lex and parse ``source``. Raises CompileError on any diagnostic."""
    config = config or ParserConfig()
    tokens = Lexer(source, filename).lex()
    parser = Parser(
        tokens, filename,
        recover=config.recover, max_errors=config.max_errors,
    )
    return parser.parse()


def parse_file(
    path: Path | SourceFile, config: ParserConfig | None = None,
) -> Module:
    """Parse a file from disk, or a SourceFile that is already loaded."""
    source = path if isinstance(path, SourceFile) else SourceFile(path)
    return parse_source(source.content, source.name, config)


def project_sources(project_dir: Path, config: SprigConfig) -> list[Path]:
    """All source files of a project, in a stable order."""
    src_dir = project_dir / config.sources.root
    if not src_dir.is_dir():
        src_dir = project_dir  # fallback to project root
    return sorted(src_dir.rglob(f"*{config.sources.extension}"))
