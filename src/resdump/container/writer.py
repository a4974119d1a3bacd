"""Writer for version 2 ``.resources`` containers."""

from __future__ import annotations

import io
import struct
from datetime import datetime, timedelta
from decimal import Decimal
from typing import BinaryIO, Iterable, Union

from ..model import RawRecord, SerializedObject
from .format import (
    MAGIC,
    PAD,
    READER_TYPE_NAME,
    READER_VERSION,
    RESOURCE_MANAGER_HEADER_VERSION,
    RESOURCE_SET_TYPE_NAME,
    TypeCode,
    datetime_to_binary,
    decimal_to_bits,
    name_hash,
    timedelta_to_ticks,
)

RecordLike = Union[RawRecord, tuple]


def encode_7bit_int(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"cannot 7-bit encode negative value {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return encode_7bit_int(len(raw)) + raw


class _ValueEncoder:
    """Encodes python values into type-coded data, collecting user type names."""

    def __init__(self):
        self.type_names: list[str] = []

    def _user_code(self, type_name: str) -> int:
        if type_name not in self.type_names:
            self.type_names.append(type_name)
        return TypeCode.START_OF_USER_TYPES + self.type_names.index(type_name)

    def encode(self, value: object) -> bytes:
        if value is None:
            return encode_7bit_int(TypeCode.NULL)
        if isinstance(value, str):
            return encode_7bit_int(TypeCode.STRING) + encode_string(value)
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return encode_7bit_int(TypeCode.BOOLEAN) + struct.pack("<?", value)
        if isinstance(value, int):
            return self._encode_int(value)
        if isinstance(value, float):
            return encode_7bit_int(TypeCode.DOUBLE) + struct.pack("<d", value)
        if isinstance(value, Decimal):
            return encode_7bit_int(TypeCode.DECIMAL) + struct.pack("<IIII", *decimal_to_bits(value))
        if isinstance(value, datetime):
            return encode_7bit_int(TypeCode.DATETIME) + struct.pack("<Q", datetime_to_binary(value))
        if isinstance(value, timedelta):
            return encode_7bit_int(TypeCode.TIMESPAN) + struct.pack("<q", timedelta_to_ticks(value))
        if isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
            return encode_7bit_int(TypeCode.BYTE_ARRAY) + struct.pack("<i", len(data)) + data
        if isinstance(value, io.BytesIO):
            data = value.getvalue()
            return encode_7bit_int(TypeCode.STREAM) + struct.pack("<i", len(data)) + data
        if isinstance(value, SerializedObject):
            return encode_7bit_int(self._user_code(value.type_name)) + value.data
        raise TypeError(
            f"cannot store {type(value).__module__}.{type(value).__qualname__} in a container"
        )

    @staticmethod
    def _encode_int(value: int) -> bytes:
        if -(1 << 31) <= value < (1 << 31):
            return encode_7bit_int(TypeCode.INT32) + struct.pack("<i", value)
        if -(1 << 63) <= value < (1 << 63):
            return encode_7bit_int(TypeCode.INT64) + struct.pack("<q", value)
        if 0 <= value < (1 << 64):
            return encode_7bit_int(TypeCode.UINT64) + struct.pack("<Q", value)
        raise ValueError(f"integer {value} does not fit in 64 bits")


def _as_record(item: RecordLike) -> RawRecord:
    if isinstance(item, RawRecord):
        return item
    key, value = item
    return RawRecord(str(key), value)


def build_container(records: Iterable[RecordLike]) -> bytes:
    """Encode ``records`` (RawRecord or ``(key, value)`` pairs) as container bytes.

    Duplicate keys are written as separate entries.
    """
    encoder = _ValueEncoder()
    entries = []
    for record in map(_as_record, records):
        entries.append((name_hash(record.key), record.key, encoder.encode(record.value)))
    # stable: equal hashes keep input order
    entries.sort(key=lambda e: e[0])

    out = io.BytesIO()
    header_strings = encode_string(READER_TYPE_NAME) + encode_string(RESOURCE_SET_TYPE_NAME)
    out.write(struct.pack("<Iii", MAGIC, RESOURCE_MANAGER_HEADER_VERSION, len(header_strings)))
    out.write(header_strings)
    out.write(struct.pack("<iii", READER_VERSION, len(entries), len(encoder.type_names)))
    for type_name in encoder.type_names:
        out.write(encode_string(type_name))
    pad = 0
    while out.tell() & 7:
        out.write(PAD[pad % len(PAD):pad % len(PAD) + 1])
        pad += 1

    names = io.BytesIO()
    data = io.BytesIO()
    positions = []
    for _, key, payload in entries:
        positions.append(names.tell())
        raw_name = key.encode("utf-16-le")
        names.write(encode_7bit_int(len(raw_name)) + raw_name)
        names.write(struct.pack("<i", data.tell()))
        data.write(payload)

    count = len(entries)
    out.write(struct.pack(f"<{count}i", *(e[0] for e in entries)))
    out.write(struct.pack(f"<{count}i", *positions))
    data_section = out.tell() + 4 + names.tell()
    out.write(struct.pack("<i", data_section))
    out.write(names.getvalue())
    out.write(data.getvalue())
    return out.getvalue()


def write_container(records: Iterable[RecordLike], sink: BinaryIO) -> int:
    """Write a container to ``sink`` and return the number of bytes written."""
    payload = build_container(records)
    sink.write(payload)
    return len(payload)
