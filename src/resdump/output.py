from __future__ import annotations
from typing import Any
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from .model import ResourceSet


def _clip(text: str, width: int) -> str:
    text = text.replace("\r", "\\r").replace("\n", "\\n")
    return text if len(text) <= width else text[: width - 1] + "…"


def build_string_table(resources: ResourceSet, max_width: int = 120) -> Table:
    table = Table(title="String Table", show_lines=False)
    table.add_column("Name", overflow="fold")
    table.add_column("Value", overflow="fold")
    for e in resources.text_entries:
        table.add_row(Text(e.key), Text(_clip(e.text, max_width)))
    return table


def build_object_table(resources: ResourceSet, max_width: int = 120) -> Table:
    table = Table(title="Other Entries", show_lines=False)
    table.add_column("Name", overflow="fold")
    table.add_column("Type", overflow="fold", style="cyan")
    table.add_column("Value", overflow="fold")
    for e in resources.complex_entries:
        table.add_row(Text(e.key), Text(e.type_name), Text(_clip(e.display_text, max_width)))
    return table


def build_children_table(resources: ResourceSet) -> Table:
    table = Table(title="Embedded Resources", show_lines=False)
    table.add_column("Node", overflow="fold")
    for node in resources.child_nodes:
        table.add_row(Text(_describe_node(node)))
    return table


def _describe_node(node: Any) -> str:
    key = getattr(node, "key", None)
    kind = getattr(node, "kind", None)
    size = getattr(node, "size", None)
    if key is not None and kind is not None:
        return f"{key} ({kind}, {size} bytes)" if size is not None else f"{key} ({kind})"
    return str(node)


def render_resources(resources: ResourceSet, console: Console, max_width: int = 120) -> None:
    """Print the non-empty tables of ``resources`` to ``console``."""
    if resources.child_nodes:
        console.print(build_children_table(resources))
    if resources.text_entries:
        console.print(build_string_table(resources, max_width))
        console.print()
    if resources.complex_entries:
        console.print(build_object_table(resources, max_width))
        console.print()


def print_summary(name: str, resources: ResourceSet, console: Console) -> None:
    console.print(
        f"[bold]{escape(name)}[/bold] strings={len(resources.text_entries)} "
        f"objects={len(resources.complex_entries)} children={len(resources.child_nodes)}"
    )
