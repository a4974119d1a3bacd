from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class RawRecord:
    """One key/value pair as stored in the container, before classification."""
    key: str
    value: Any


@dataclass(frozen=True)
class SerializedObject:
    """Opaque payload of a user-typed entry; the bytes are never deserialized."""
    type_name: str
    data: bytes

    def __str__(self) -> str:
        return f"<{self.type_name}: {len(self.data)} bytes serialized>"


@dataclass(frozen=True)
class TextEntry:
    key: str
    text: str


@dataclass(frozen=True)
class BlobEntry:
    key: str
    data: bytes
    node: Any  # produced by the blob resolver


@dataclass(frozen=True)
class ComplexEntry:
    key: str
    type_name: str
    display_text: str


ClassifiedEntry = Union[TextEntry, BlobEntry, ComplexEntry]


@dataclass(frozen=True)
class ResourceSet:
    text_entries: tuple[TextEntry, ...] = ()
    complex_entries: tuple[ComplexEntry, ...] = ()
    child_nodes: tuple[Any, ...] = field(default=())

    def total(self) -> int:
        return len(self.text_entries) + len(self.complex_entries) + len(self.child_nodes)

    def is_empty(self) -> bool:
        return self.total() == 0

    def to_dict(self):  # for JSON
        return {
            "strings": [{"key": e.key, "value": e.text} for e in self.text_entries],
            "objects": [
                {"key": e.key, "type": e.type_name, "value": e.display_text}
                for e in self.complex_entries
            ],
            "children": [_node_to_dict(n) for n in self.child_nodes],
            "stats": {
                "strings": len(self.text_entries),
                "objects": len(self.complex_entries),
                "children": len(self.child_nodes),
            },
        }


def _node_to_dict(node: Any) -> Any:
    to_dict = getattr(node, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return str(node)
