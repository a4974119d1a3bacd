"""Blob resolvers: turn byte payloads into richer nodes."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional

# (magic, kind); checked in order
IMAGE_SIGNATURES = [
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"BM", "bmp"),
    (b"\x00\x00\x01\x00", "ico"),
    (b"\x00\x00\x02\x00", "cur"),
]


@dataclass(frozen=True)
class ImageNode:
    key: str
    kind: str
    size: int

    def to_dict(self):
        return {"key": self.key, "kind": self.kind, "size": self.size}


def sniff_image(header: bytes) -> Optional[str]:
    for magic, kind in IMAGE_SIGNATURES:
        if header.startswith(magic):
            return kind
    return None


class ImageResolver:
    """Accepts blobs that start with a known image signature."""

    def resolve(self, key: str, stream: io.BytesIO) -> Optional[ImageNode]:
        stream.seek(0)
        kind = sniff_image(stream.read(16))
        if kind is None:
            return None
        size = stream.seek(0, io.SEEK_END)
        return ImageNode(key, kind, size)
