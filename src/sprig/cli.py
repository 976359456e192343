"""Sprig front-end CLI."""

from __future__ import annotations

from pathlib import Path

import click

from sprig import __version__
from sprig.ast_nodes import Module
from sprig.config import CONFIG_NAME, ParserConfig, SprigConfig, find_config, load_config
from sprig.errors import CompileError, DiagnosticRenderer
from sprig.frontend import parse_file, project_sources
from sprig.printer import dump as dump_ast
from sprig.source import SourceFile


def _load_config(config_path: Path) -> SprigConfig:
    try:
        return load_config(config_path)
    except ValueError as e:  # includes tomllib.TOMLDecodeError
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


def _parse_one(
    path: Path, parser_config: ParserConfig, renderer: DiagnosticRenderer,
) -> Module | None:
    """Parse one file, printing its diagnostics. Returns None on failure."""
    try:
        source = SourceFile(path)
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"error: cannot read {path}: {e}", err=True)
        return None

    renderer.register_source(source)
    try:
        return parse_file(source, parser_config)
    except CompileError as e:
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        return None


def _parse_project(project_dir: Path, config: SprigConfig, renderer: DiagnosticRenderer) -> bool:
    """Parse every source file of the project. Returns True if OK."""
    files = project_sources(project_dir, config)
    if not files:
        click.echo(f"warning: no {config.sources.extension} files found", err=True)
        return True

    ok = True
    for path in files:
        if _parse_one(path, config.parser, renderer) is None:
            ok = False
    return ok


@click.group()
@click.version_option(__version__, prog_name="sprig")
def main() -> None:
    """The Sprig language front end."""


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--color/--no-color", default=True, help="Colorize diagnostics.")
def check(path: str, color: bool) -> None:
    """Parse every source file of a Sprig project."""
    try:
        config_path = find_config(Path(path))
    except FileNotFoundError:
        click.echo(f"error: no {CONFIG_NAME} found", err=True)
        raise SystemExit(1)

    config = _load_config(config_path)
    pkg = config.package
    click.echo(f"checking {pkg.name} {pkg.version}...")
    renderer = DiagnosticRenderer(color=color)
    if not _parse_project(config_path.parent, config, renderer):
        raise SystemExit(1)
    click.echo(f"checked {pkg.name}: no errors")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--color/--no-color", default=True, help="Colorize diagnostics.")
def dump(file: str, color: bool) -> None:
    """Print the syntax tree of FILE as s-expressions."""
    try:
        parser_config = _load_config(find_config(Path(file))).parser
    except FileNotFoundError:
        parser_config = ParserConfig()

    module = _parse_one(Path(file), parser_config, DiagnosticRenderer(color=color))
    if module is None:
        raise SystemExit(1)
    click.echo(dump_ast(module))
