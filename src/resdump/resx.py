"""ResX (XML resource) output.

Values are written in their invariant string form with a ``type`` attribute,
or base64 encoded with a ``mimetype`` for binary data. There is no fallback:
a value the format cannot carry raises :class:`ResXError`.
"""

from __future__ import annotations

import base64
import io
import math
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from .errors import ResXError
from .model import RawRecord, SerializedObject

MSCORLIB = "mscorlib, Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089"
WINFORMS = "System.Windows.Forms, Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089"

RESX_MIMETYPE = "text/microsoft-resx"
BYTEARRAY_MIMETYPE = "application/x-microsoft.net.object.bytearray.base64"
BINARY_MIMETYPE = "application/x-microsoft.net.object.binary.base64"

RESX_READER = f"System.Resources.ResXResourceReader, {WINFORMS}"
RESX_WRITER = f"System.Resources.ResXResourceWriter, {WINFORMS}"
NULL_REF_TYPE = f"System.Resources.ResXNullRef, {WINFORMS}"

_XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
_BASE64_LINE = 80

# anything outside the XML 1.0 Char production
_INVALID_XML_CHAR = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _net_type(name: str) -> str:
    return f"{name}, {MSCORLIB}"


def _format_int(value: int) -> tuple[str, str]:
    if -(1 << 31) <= value < (1 << 31):
        return "System.Int32", str(value)
    if -(1 << 63) <= value < (1 << 63):
        return "System.Int64", str(value)
    if 0 <= value < (1 << 64):
        return "System.UInt64", str(value)
    raise OverflowError(value)


def _format_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def format_timespan(value: timedelta) -> str:
    """Invariant ``[-][d.]hh:mm:ss[.fffffff]`` form."""
    micros = value // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    seconds, micros = divmod(micros, 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    text = f"{sign}{f'{days}.' if days else ''}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if micros:
        text += f".{micros * 10:07d}"
    return text


def _check_xml_text(key: str, text: str, what: str) -> None:
    match = _INVALID_XML_CHAR.search(text)
    if match:
        raise ResXError(
            key, text, f"{what} contains U+{ord(match.group()):04X}, which XML cannot carry"
        )


def _wrap_base64(data: bytes) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    lines = [encoded[i:i + _BASE64_LINE] for i in range(0, len(encoded), _BASE64_LINE)]
    return "\n" + "\n".join(lines) + "\n" if lines else ""


class ResXWriter:
    """Collects resources into a ResX document.

    Nothing is serialized until :meth:`to_bytes` is called, so a value that
    fails to convert leaves the destination untouched.
    """

    def __init__(self):
        self.root = ET.Element("root")
        for name, value in (
            ("resmimetype", RESX_MIMETYPE),
            ("version", "2.0"),
            ("reader", RESX_READER),
            ("writer", RESX_WRITER),
        ):
            header = ET.SubElement(self.root, "resheader", name=name)
            ET.SubElement(header, "value").text = value
        self.count = 0

    def add_resource(self, key: str, value: object) -> None:
        _check_xml_text(key, key, "name")
        node = ET.Element("data", name=key)
        text = self._encode(key, value, node)
        ET.SubElement(node, "value").text = text
        self.root.append(node)
        self.count += 1

    @staticmethod
    def _encode(key: str, value: object, node: ET.Element) -> str | None:
        if value is None:
            node.set("type", NULL_REF_TYPE)
            return None
        if isinstance(value, str):
            _check_xml_text(key, value, "value")
            node.set(_XML_SPACE, "preserve")
            return value
        if isinstance(value, bool):
            node.set("type", _net_type("System.Boolean"))
            return "True" if value else "False"
        if isinstance(value, int):
            try:
                type_name, text = _format_int(value)
            except OverflowError:
                raise ResXError(key, value) from None
            node.set("type", _net_type(type_name))
            return text
        if isinstance(value, float):
            node.set("type", _net_type("System.Double"))
            return _format_double(value)
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise ResXError(key, value)
            node.set("type", _net_type("System.Decimal"))
            return format(value, "f")
        if isinstance(value, datetime):
            node.set("type", _net_type("System.DateTime"))
            return value.isoformat()
        if isinstance(value, timedelta):
            node.set("type", _net_type("System.TimeSpan"))
            return format_timespan(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            node.set("type", _net_type("System.Byte[]"))
            node.set("mimetype", BYTEARRAY_MIMETYPE)
            return _wrap_base64(bytes(value))
        if isinstance(value, io.BytesIO):
            node.set("type", _net_type("System.IO.MemoryStream"))
            node.set("mimetype", BYTEARRAY_MIMETYPE)
            return _wrap_base64(value.getvalue())
        if isinstance(value, SerializedObject):
            node.set("mimetype", BINARY_MIMETYPE)
            return _wrap_base64(value.data)
        raise ResXError(key, value)

    def to_bytes(self) -> bytes:
        tree = ET.ElementTree(self.root)
        ET.indent(tree, space="  ")
        out = io.BytesIO()
        tree.write(out, encoding="utf-8", xml_declaration=True)
        return out.getvalue()


def build_resx(records: Iterable[RawRecord]) -> bytes:
    writer = ResXWriter()
    for record in records:
        writer.add_resource(record.key, record.value)
    return writer.to_bytes()
