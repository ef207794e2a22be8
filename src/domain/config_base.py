"""TOML loading shared by file-backed season definitions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar
import tomllib


@dataclass(frozen=True)
class FileBackedConfig:
    """Name and provenance of a config loaded from one TOML file."""

    name: str
    description: str | None
    file_path: Path

    @property
    def file_name(self) -> str:
        return self.file_path.name

    def as_config_json(self) -> dict[str, Any]:
        raise NotImplementedError


T = TypeVar("T", bound=FileBackedConfig)


def load_toml_configs(
    config_dir: Path,
    parser: Callable[[dict[str, Any], Path], T],
    *,
    label: str = "season",
) -> list[T]:
    """Parse every *.toml in `config_dir`; config names must be unique."""
    if not config_dir.exists():
        raise FileNotFoundError(f"Config directory not found: {config_dir}")
    if not config_dir.is_dir():
        raise NotADirectoryError(f"Config path is not a directory: {config_dir}")

    config_files = sorted(config_dir.glob("*.toml"))
    if not config_files:
        raise ValueError(f"No .toml config files found in: {config_dir}")

    configs = [load_toml_config(file_path, parser) for file_path in config_files]

    names = [config.name for config in configs]
    if len(names) != len(set(names)):
        raise ValueError(f"Duplicate {label} config names found in {config_dir}: {names}")
    return configs


def load_toml_config(file_path: Path, parser: Callable[[dict[str, Any], Path], T]) -> T:
    with file_path.open("rb") as file:
        raw = tomllib.load(file)
    return parser(raw, file_path)


def select_config(configs: Iterable[T], file_name: str) -> T:
    """Pick a loaded config by its file name."""
    available = []
    for config in configs:
        if config.file_name == file_name:
            return config
        available.append(config.file_name)
    raise LookupError(f"No config file named '{file_name}'; available: {sorted(available)}")


__all__ = ["FileBackedConfig", "load_toml_config", "load_toml_configs", "select_config"]
