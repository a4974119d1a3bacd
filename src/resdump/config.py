from __future__ import annotations

"""Configuration loading utilities for resdump."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
import os
import textwrap

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11 fallback
    import tomli as tomllib  # type: ignore

__all__ = ["Config", "load_config", "write_default_config", "DEFAULT_CONFIG_TOML"]

DEFAULT_CONFIG_TOML = textwrap.dedent(
    """
    [display]
    locale = "en"
    max_value_width = 120

    [export]
    default_format = "resources"

    [logging]
    level = "WARNING"
    file = false
    directory = "~/.cache/resdump/logs"
    """
)

EXPORT_FORMATS = ("resources", "resx")


@dataclass(slots=True)
class Config:
    """Runtime configuration for the resdump command."""

    display_locale: str = "en"
    max_value_width: int = 120
    default_format: str = "resources"
    log_level: str = "WARNING"
    log_to_file: bool = False
    log_directory: str = "~/.cache/resdump/logs"

    def log_path(self) -> Path:
        return Path(self.log_directory).expanduser()


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a candidate list of paths.

    Resolution order:
        1. explicit ``config_path`` argument
        2. ``RESDUMP_CONFIG`` environment variable
        3. ``~/.config/resdump/config.toml``
        4. packaged default configuration
    """

    candidates: list[Path] = []
    if config_path:
        candidates.append(Path(config_path).expanduser())

    env_path = os.environ.get("RESDUMP_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser())

    candidates.append(Path.home() / ".config" / "resdump" / "config.toml")

    for candidate in candidates:
        if candidate.is_file():
            return _config_from_path(candidate)

    return _config_from_toml(DEFAULT_CONFIG_TOML)


def _config_from_path(path: Path) -> Config:
    raw = path.read_text(encoding="utf-8")
    return _config_from_toml(raw)


def _config_from_toml(content: str) -> Config:
    data = tomllib.loads(content)
    display = data.get("display", {})
    export = data.get("export", {})
    logging_section = data.get("logging", {})

    default_format = str(export.get("default_format", "resources")).lower().lstrip(".")
    if default_format not in EXPORT_FORMATS:
        raise ValueError(
            f"export.default_format must be one of {', '.join(EXPORT_FORMATS)}, got {default_format!r}"
        )

    return Config(
        display_locale=str(display.get("locale", "en")),
        max_value_width=_positive_int(display, "max_value_width", 120),
        default_format=default_format,
        log_level=str(logging_section.get("level", "WARNING")).upper(),
        log_to_file=bool(logging_section.get("file", False)),
        log_directory=str(logging_section.get("directory", "~/.cache/resdump/logs")),
    )


def _positive_int(section: Mapping[str, Any], name: str, fallback: int) -> int:
    value = section.get(name)
    if value is None:
        return fallback
    value = int(value)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def write_default_config(target_path: str | Path) -> Path:
    """Write the default configuration to ``target_path``.

    Creates parent directories if needed and returns the absolute path
    to the created file.
    """

    target = Path(target_path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
    return target.resolve()
