"""Command-line interface for resdump."""

import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console

from .classifier import EntryClassifier
from .collector import resources_file_for
from .config import Config, load_config, write_default_config
from .errors import ExportError
from .exporter import ExportFormat, SaveStatus, suggest_file_name
from .log import setup_logger
from .output import print_summary, render_resources
from .resolvers import ImageResolver


app = typer.Typer(
    name="resdump",
    help="Inspect and convert .resources containers",
    add_completion=False,
)
console = Console()

# exit codes
EXIT_OK = 0
EXIT_NOT_HANDLED = 1
EXIT_FATAL = 2


def _prepare(config_path: Optional[Path]) -> Config:
    try:
        cfg = load_config(config_path)
    except (ValueError, OSError) as e:
        console.print(f"[red]invalid config: {e}[/red]")
        raise typer.Exit(EXIT_FATAL)
    setup_logger(cfg.log_level, cfg.log_path() if cfg.log_to_file else None)
    return cfg


def _open_resources_file(path: Path, cfg: Config):
    if not path.is_file():
        console.print(f"[red]file not found: {path}[/red]")
        raise typer.Exit(EXIT_NOT_HANDLED)
    classifier = EntryClassifier(ImageResolver(), cfg.display_locale)
    resources_file = resources_file_for(path.name, lambda: open(path, "rb"), classifier)
    if resources_file is None:
        console.print(f"[yellow]not a .resources file: {path}[/yellow]")
        raise typer.Exit(EXIT_NOT_HANDLED)
    return resources_file


@app.command()
def show(
    path: Path = typer.Argument(..., help="Path to a .resources file"),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file"),
):
    """List the strings, objects and embedded blobs of a container."""
    cfg = _prepare(config)
    resources_file = _open_resources_file(path, cfg)
    resources = resources_file.resources

    if json_output:
        console.print_json(json.dumps(resources.to_dict(), ensure_ascii=False))
        return
    if resources.is_empty():
        console.print(f"[yellow]no resources to show: {path}[/yellow]")
    render_resources(resources, console, cfg.max_value_width)
    print_summary(path.name, resources, console)


@app.command()
def export(
    path: Path = typer.Argument(..., help="Path to a .resources file"),
    fmt: Optional[ExportFormat] = typer.Option(None, "--format", "-f", help="Output format"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Destination file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file"),
):
    """Copy a container verbatim or convert it to ResX."""
    cfg = _prepare(config)
    resources_file = _open_resources_file(path, cfg)
    fmt = fmt or ExportFormat(cfg.default_format)
    destination = output or Path.cwd() / suggest_file_name(path.name, fmt)

    try:
        status = resources_file.save(fmt, destination)
    except ExportError as e:
        logger.error(f"export failed: {e}")
        console.print(f"[red]export failed: {e}[/red]")
        raise typer.Exit(EXIT_FATAL)

    if status is SaveStatus.NOT_HANDLED:
        console.print(f"[yellow]cannot open source: {path}[/yellow]")
        raise typer.Exit(EXIT_NOT_HANDLED)
    console.print(f"[green]saved[/green] {destination}")


@app.command("init-config")
def init_config(
    target: Path = typer.Argument(
        Path.home() / ".config" / "resdump" / "config.toml", help="Where to write the config"
    ),
):
    """Write the default configuration file."""
    written = write_default_config(target)
    console.print(f"[green]config written[/green] {written}")


def main():
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
