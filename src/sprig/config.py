"""TOML config loading for sprig.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "sprig.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"


@dataclass
class ParserConfig:
    recover: bool = True
    max_errors: int = 50  # 0 = unlimited


@dataclass
class SourcesConfig:
    root: str = "src"
    extension: str = ".sg"


@dataclass
class SprigConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find sprig.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> SprigConfig:
    """Parse a sprig.toml file into a SprigConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = SprigConfig()

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
        )

    if "parser" in data:
        prs = data["parser"]
        recover = prs.get("recover", True)
        if not isinstance(recover, bool):
            raise ValueError(f"{path}: parser.recover must be true or false")
        max_errors = prs.get("max_errors", 50)
        # bool is an int subclass; 'max_errors = true' is not a count
        if (isinstance(max_errors, bool) or not isinstance(max_errors, int)
                or max_errors < 0):
            raise ValueError(
                f"{path}: parser.max_errors must be a non-negative integer"
            )
        config.parser = ParserConfig(recover=recover, max_errors=max_errors)

    if "sources" in data:
        src = data["sources"]
        root = src.get("root", "src")
        extension = src.get("extension", ".sg")
        if not isinstance(root, str) or not isinstance(extension, str):
            raise ValueError(f"{path}: sources.root and sources.extension must be strings")
        if not extension.startswith("."):
            extension = "." + extension
        config.sources = SourcesConfig(root=root, extension=extension)

    return config
