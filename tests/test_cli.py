"""Tests for the Sprig CLI, config, and error rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from sprig.cli import main
from sprig.config import SprigConfig, find_config, load_config
from sprig.errors import (
    CompileError,
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    ParseErrorKind,
    Severity,
)
from sprig.frontend import parse_file, parse_source, project_sources
from sprig.source import SourceFile, Span


@pytest.fixture
def runner():
    return CliRunner()


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Sprig" in result.output
        assert "check" in result.output
        assert "dump" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_check_with_project(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "checking testproj 1.0.0" in result.output
        assert "checked testproj: no errors" in result.output

    def test_check_reports_errors(self, runner, tmp_project):
        (tmp_project / "src" / "bad.sg").write_text("fun f {\n    (,)\n}\n")
        result = runner.invoke(main, ["check", "--no-color", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E208]" in result.output
        assert "bad.sg:2:6" in result.output
        assert "(,)" in result.output

    def test_check_reports_every_file(self, runner, tmp_project):
        src = tmp_project / "src"
        (src / "a.sg").write_text("fun a -> { }\n")
        (src / "b.sg").write_text("type B = { i32 x, i32 x }\n")
        result = runner.invoke(main, ["check", "--no-color", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E202]" in result.output
        assert "error[E204]" in result.output

    def test_check_nested_sources(self, runner, tmp_project):
        nested = tmp_project / "src" / "util"
        nested.mkdir()
        (nested / "math.sg").write_text("fun sq i32 x -> i32 { return x * x }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0

    def test_check_no_sources(self, runner, tmp_path):
        (tmp_path / "sprig.toml").write_text('[package]\nname = "empty"\n')
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "no .sg files found" in result.output

    def test_check_without_config(self, runner, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(main, ["check", str(empty)])
        assert result.exit_code == 1
        assert "no sprig.toml found" in result.output

    def test_dump(self, runner, tmp_project):
        result = runner.invoke(main, ["dump", str(tmp_project / "src" / "main.sg")])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "(imp std:io)"
        assert lines[1] == "(type Point (struct (i32 x) (i32 y)))"
        assert lines[2].startswith("(fun main () -> i32 (body")

    def test_dump_reports_errors(self, runner, tmp_path):
        f = tmp_path / "broken.sg"
        f.write_text("fun f extern { }\n")
        result = runner.invoke(main, ["dump", "--no-color", str(f)])
        assert result.exit_code == 1
        assert "error[E205]" in result.output

    def test_dump_uses_project_parser_config(self, runner, tmp_path):
        (tmp_path / "sprig.toml").write_text("[parser]\nrecover = false\n")
        f = tmp_path / "two.sg"
        f.write_text("fun a -> { }\nfun b -> { }\n")
        result = runner.invoke(main, ["dump", "--no-color", str(f)])
        assert result.exit_code == 1
        assert result.output.count("error[E202]") == 1

    def test_dump_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["dump", str(tmp_path / "nope.sg")])
        assert result.exit_code != 0

    def test_check_invalid_config(self, runner, tmp_project):
        (tmp_project / "sprig.toml").write_text('[parser]\nrecover = "false"\n')
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error:" in result.output
        assert "parser.recover" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_check_malformed_toml(self, runner, tmp_project):
        (tmp_project / "sprig.toml").write_text("[package\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error:" in result.output

    def test_dump_invalid_config(self, runner, tmp_path):
        (tmp_path / "sprig.toml").write_text("[parser]\nmax_errors = true\n")
        f = tmp_path / "ok.sg"
        f.write_text("fun f { }\n")
        result = runner.invoke(main, ["dump", str(f)])
        assert result.exit_code == 1
        assert "parser.max_errors" in result.output

    def test_check_undecodable_file(self, runner, tmp_project):
        (tmp_project / "src" / "latin.sg").write_bytes(b"fun f { \xff }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error: cannot read" in result.output
        assert "latin.sg" in result.output

    def test_dump_undecodable_file(self, runner, tmp_path):
        f = tmp_path / "latin.sg"
        f.write_bytes(b"\xfe\xff")
        result = runner.invoke(main, ["dump", str(f)])
        assert result.exit_code == 1
        assert "error: cannot read" in result.output


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_project):
        config = load_config(tmp_project / "sprig.toml")
        assert config.package.name == "testproj"
        assert config.package.version == "1.0.0"
        assert config.parser.recover is True
        assert config.parser.max_errors == 10

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text("[package]\n")
        config = load_config(toml)
        assert config.package.name == "untitled"
        assert config.parser.max_errors == 50
        assert config.sources.root == "src"
        assert config.sources.extension == ".sg"

    def test_extension_gets_dot(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text('[sources]\nroot = "lib"\nextension = "spr"\n')
        config = load_config(toml)
        assert config.sources.root == "lib"
        assert config.sources.extension == ".spr"

    def test_negative_max_errors(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text("[parser]\nmax_errors = -1\n")
        with pytest.raises(ValueError, match="max_errors"):
            load_config(toml)

    def test_boolean_max_errors(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text("[parser]\nmax_errors = true\n")
        with pytest.raises(ValueError, match="max_errors"):
            load_config(toml)

    def test_string_recover(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text('[parser]\nrecover = "false"\n')
        with pytest.raises(ValueError, match="parser.recover"):
            load_config(toml)

    def test_recover_false(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text("[parser]\nrecover = false\nmax_errors = 0\n")
        config = load_config(toml)
        assert config.parser.recover is False
        assert config.parser.max_errors == 0

    def test_non_string_extension(self, tmp_path):
        toml = tmp_path / "sprig.toml"
        toml.write_text("[sources]\nextension = 5\n")
        with pytest.raises(ValueError, match="sources"):
            load_config(toml)

    def test_find_config(self, tmp_project):
        sub = tmp_project / "src"
        found = find_config(sub)
        assert found == tmp_project / "sprig.toml"

    def test_find_config_from_file(self, tmp_project):
        found = find_config(tmp_project / "src" / "main.sg")
        assert found == tmp_project / "sprig.toml"

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No sprig.toml found"):
            find_config(empty)


# --- Frontend tests ---


class TestFrontend:
    def test_project_sources(self, tmp_project):
        files = project_sources(tmp_project, SprigConfig())
        assert [f.name for f in files] == ["main.sg"]

    def test_project_sources_without_src_dir(self, tmp_path):
        (tmp_path / "b.sg").write_text("")
        (tmp_path / "a.sg").write_text("")
        (tmp_path / "notes.txt").write_text("")
        files = project_sources(tmp_path, SprigConfig())
        assert [f.name for f in files] == ["a.sg", "b.sg"]

    def test_parse_file_names_spans(self, tmp_path):
        f = tmp_path / "bad.sg"
        f.write_text("fun f { (,) }")
        with pytest.raises(CompileError) as exc_info:
            parse_file(f)
        assert exc_info.value.diagnostics[0].span.file == str(f)

    def test_parse_file_loaded_source(self, tmp_path):
        source = SourceFile(tmp_path / "mem.sg", "imp std:io")
        mod = parse_file(source)
        assert mod.span.file == source.name
        assert len(mod.imports) == 1

    def test_parse_source(self):
        mod = parse_source("fun f { }", "inline.sg")
        assert mod.span.file == "inline.sg"


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        span = Span("shapes.sg", 12, 19, 12, 23)
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E204",
            message="field 'x' is defined more than once",
            labels=[DiagnosticLabel(span=span, message="")],
            notes=["first defined at shapes.sg:12:12"],
        )

        renderer = DiagnosticRenderer(color=False)
        output = renderer.render(diag)

        assert "error[E204]" in output
        assert "field 'x' is defined more than once" in output
        assert "shapes.sg:12:19" in output
        assert "note: first defined" in output

    def test_render_source_line(self):
        renderer = DiagnosticRenderer(color=False)
        renderer.register_source(SourceFile(Path("mem.sg"), "fun f { (,) }\n"))
        with pytest.raises(CompileError) as exc_info:
            parse_source("fun f { (,) }", "mem.sg")
        output = renderer.render(exc_info.value.diagnostics[0])
        lines = output.splitlines()
        assert "   1 | fun f { (,) }" in output
        assert lines[-2].endswith(" " * 10 + "^")
        assert "write '()' for the empty tuple" in output

    def test_render_color(self):
        span = Span("main.sg", 1, 1, 1, 3)
        diag = Diagnostic.error(ParseErrorKind.EXPECTED_TOKEN, "boom", span)
        assert "\033[" in DiagnosticRenderer(color=True).render(diag)
        assert "\033[" not in DiagnosticRenderer(color=False).render(diag)

    def test_render_reads_file_on_demand(self, tmp_path):
        f = tmp_path / "disk.sg"
        f.write_text("fun g {\n    (,)\n}\n")
        span = Span(str(f), 2, 6, 2, 6)
        diag = Diagnostic.error(ParseErrorKind.INVALID_TUPLE_ARITY, "bad tuple", span)
        assert "   2 |     (,)" in DiagnosticRenderer(color=False).render(diag)

    def test_render_missing_file_skips_source_line(self):
        span = Span("does-not-exist.sg", 1, 1, 1, 1)
        diag = Diagnostic.error(ParseErrorKind.EXPECTED_TOKEN, "boom", span)
        output = DiagnosticRenderer(color=False).render(diag)
        assert "   1 |" not in output

    def test_diagnostic_error_constructor(self):
        span = Span("main.sg", 3, 4, 3, 4)
        diag = Diagnostic.error(ParseErrorKind.DUPLICATE_FIELD, "dup", span)
        assert diag.code == "E204"
        assert diag.severity == Severity.ERROR
        assert diag.span == span
        assert diag.is_kind(ParseErrorKind.DUPLICATE_FIELD)

    def test_compile_error(self):
        diags = [
            Diagnostic(Severity.ERROR, "E201", "first error"),
            Diagnostic(Severity.ERROR, "E202", "second error"),
        ]
        err = CompileError(diags)
        assert len(err.diagnostics) == 2
        assert "2 error(s)" in str(err)

    def test_compile_error_sorts_by_position(self):
        late = Diagnostic.error(ParseErrorKind.EXPECTED_TOKEN, "late",
                                Span("a.sg", 9, 1, 9, 1))
        early = Diagnostic.error(ParseErrorKind.EXPECTED_TYPE, "early",
                                 Span("a.sg", 2, 5, 2, 5))
        err = CompileError([late, early])
        assert [d.message for d in err.diagnostics] == ["early", "late"]
        assert err.has(ParseErrorKind.EXPECTED_TYPE)
        assert not err.has(ParseErrorKind.DUPLICATE_FIELD)


# --- Source tests ---


class TestSource:
    def test_source_file(self, tmp_path):
        f = tmp_path / "test.sg"
        f.write_text("line one\nline two\nline three\n")
        sf = SourceFile(f)
        assert sf.line_at(1) == "line one"
        assert sf.line_at(3) == "line three"
        assert sf.line_at(0) == ""
        assert sf.line_at(99) == ""
        assert sf.name == str(f)

    def test_in_memory_content(self, tmp_path):
        sf = SourceFile(tmp_path / "virtual.sg", "abc")
        assert sf.line_at(1) == "abc"


    def test_span_str(self):
        span = Span("file.sg", 10, 5, 10, 20)
        assert str(span) == "file.sg:10:5"
