from __future__ import annotations

import io
from typing import Any, Optional, Protocol

from babel import Locale, UnknownLocaleError
from loguru import logger

from .model import (
    BlobEntry,
    ClassifiedEntry,
    ComplexEntry,
    RawRecord,
    SerializedObject,
    TextEntry,
)


class BlobResolver(Protocol):
    """Turns a blob into a richer node, or returns ``None`` to decline it."""

    def resolve(self, key: str, stream: io.BytesIO) -> Optional[Any]:
        ...


def runtime_type_name(value: Any) -> str:
    if isinstance(value, SerializedObject):
        return value.type_name
    cls = type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def _blob_bytes(value: Any) -> Optional[bytes]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, io.BytesIO):
        return value.getvalue()
    return None


class EntryClassifier:
    """Sorts one record into text, resolved blob or complex entry.

    ``classify`` never raises; anything it cannot handle otherwise becomes a
    :class:`ComplexEntry`.
    """

    def __init__(self, resolver: Optional[BlobResolver] = None, display_locale: str = "en"):
        self.resolver = resolver
        try:
            self.display_locale = Locale.parse(display_locale, sep="-" if "-" in display_locale else "_")
        except (ValueError, UnknownLocaleError):
            logger.warning(f"unknown display locale {display_locale!r}, using en")
            self.display_locale = Locale("en")

    def classify(self, record: RawRecord) -> ClassifiedEntry:
        key, value = record.key, record.value
        if isinstance(value, str):
            return TextEntry(key, value)

        data = _blob_bytes(value)
        if data is not None:
            node = self._resolve(key, data)
            if node is not None:
                return BlobEntry(key, data, node)
            if isinstance(value, (bytes, bytearray)):
                text = self.display_text(value)
            else:
                # str() of a stream or view shows a memory address
                text = f"<{len(data)} bytes>"
            return ComplexEntry(key, runtime_type_name(value), text)

        return ComplexEntry(key, runtime_type_name(value), self.display_text(value))

    def _resolve(self, key: str, data: bytes) -> Optional[Any]:
        if self.resolver is None:
            return None
        try:
            return self.resolver.resolve(key, io.BytesIO(data))
        except Exception as e:
            logger.warning(f"blob resolver failed for {key!r}: {e}")
            return None

    def display_text(self, value: Any) -> str:
        if isinstance(value, Locale):
            name = value.get_display_name(self.display_locale)
            if name:
                return name
        try:
            return str(value)
        except Exception as e:
            logger.debug(f"str() failed for {runtime_type_name(value)}: {e}")
        try:
            return repr(value)
        except Exception:
            return f"<unprintable {runtime_type_name(value)}>"
