"""Constants and value codecs shared by the container reader and writer.

Layout of a ``.resources`` stream (all integers little-endian)::

    int32   magic (0xBEEFCACE)
    int32   resource manager header version
    int32   number of bytes to skip (covers the two strings below)
    string  reader type name
    string  resource set type name
    int32   resource reader version (1 or 2)
    int32   number of resources
    int32   number of types
    string  type name * number of types
    bytes   "PAD" filler up to an 8 byte boundary
    int32   name hash * number of resources (sorted)
    int32   name position * number of resources
    int32   data section offset
    ...     name section: 7-bit length, UTF-16LE name, int32 data offset
    ...     data section: 7-bit type code followed by the encoded value

Strings are BinaryWriter strings: a 7-bit encoded byte length then UTF-8.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import IntEnum

MAGIC = 0xBEEFCACE
RESOURCE_MANAGER_HEADER_VERSION = 1
READER_VERSION = 2

READER_TYPE_NAME = (
    "System.Resources.ResourceReader, mscorlib, Version=4.0.0.0, "
    "Culture=neutral, PublicKeyToken=b77a5c561934e089"
)
RESOURCE_SET_TYPE_NAME = "System.Resources.RuntimeResourceSet"

PAD = b"PAD"

TICKS_PER_MICROSECOND = 10
TICKS_PER_DAY = 864_000_000_000
TICKS_MASK = 0x3FFFFFFFFFFFFFFF
TICKS_CEILING = 0x4000000000000000
KIND_UTC = 0x4000000000000000
KIND_LOCAL = 0x8000000000000000
MASK64 = 0xFFFFFFFFFFFFFFFF
DECIMAL_MAX_SCALE = 28

_EPOCH = datetime(1, 1, 1)


class TypeCode(IntEnum):
    NULL = 0x00
    STRING = 0x01
    BOOLEAN = 0x02
    CHAR = 0x03
    BYTE = 0x04
    SBYTE = 0x05
    INT16 = 0x06
    UINT16 = 0x07
    INT32 = 0x08
    UINT32 = 0x09
    INT64 = 0x0A
    UINT64 = 0x0B
    SINGLE = 0x0C
    DOUBLE = 0x0D
    DECIMAL = 0x0E
    DATETIME = 0x0F
    TIMESPAN = 0x10
    BYTE_ARRAY = 0x20
    STREAM = 0x21
    START_OF_USER_TYPES = 0x40


# struct formats for fixed-size primitives
PRIMITIVE_FORMATS = {
    TypeCode.BOOLEAN: "<?",
    TypeCode.CHAR: "<H",
    TypeCode.BYTE: "<B",
    TypeCode.SBYTE: "<b",
    TypeCode.INT16: "<h",
    TypeCode.UINT16: "<H",
    TypeCode.INT32: "<i",
    TypeCode.UINT32: "<I",
    TypeCode.INT64: "<q",
    TypeCode.UINT64: "<Q",
    TypeCode.SINGLE: "<f",
    TypeCode.DOUBLE: "<d",
}

# version 1 containers name the type of every value instead of using a code
V1_TYPE_CODES = {
    "System.String": TypeCode.STRING,
    "System.Boolean": TypeCode.BOOLEAN,
    "System.Char": TypeCode.CHAR,
    "System.Byte": TypeCode.BYTE,
    "System.SByte": TypeCode.SBYTE,
    "System.Int16": TypeCode.INT16,
    "System.UInt16": TypeCode.UINT16,
    "System.Int32": TypeCode.INT32,
    "System.UInt32": TypeCode.UINT32,
    "System.Int64": TypeCode.INT64,
    "System.UInt64": TypeCode.UINT64,
    "System.Single": TypeCode.SINGLE,
    "System.Double": TypeCode.DOUBLE,
    "System.Decimal": TypeCode.DECIMAL,
    "System.DateTime": TypeCode.DATETIME,
    "System.TimeSpan": TypeCode.TIMESPAN,
}


def short_type_name(assembly_qualified: str) -> str:
    """``"System.Int32, mscorlib, ..."`` -> ``"System.Int32"``."""
    return assembly_qualified.split(",", 1)[0].strip()


def name_hash(name: str) -> int:
    """Hash used to order the name table, returned as a signed 32-bit value."""
    h = 5381
    for ch in name:
        for unit in _utf16_units(ch):
            h = (((h << 5) + h) ^ unit) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def _utf16_units(ch: str):
    code = ord(ch)
    if code < 0x10000:
        return (code,)
    code -= 0x10000
    return (0xD800 | (code >> 10), 0xDC00 | (code & 0x3FF))


def decimal_from_bits(lo: int, mid: int, hi: int, flags: int) -> Decimal:
    scale = (flags >> 16) & 0xFF
    if scale > DECIMAL_MAX_SCALE:
        raise ValueError(f"decimal scale {scale} out of range")
    coefficient = (hi << 64) | (mid << 32) | lo
    sign = 1 if flags & 0x80000000 else 0
    return Decimal((sign, tuple(int(d) for d in str(coefficient)), -scale))


def decimal_to_bits(value: Decimal) -> tuple[int, int, int, int]:
    sign, digits, exponent = value.as_tuple()
    if not isinstance(exponent, int):
        raise ValueError(f"cannot encode {value} as a decimal")
    coefficient = int("".join(map(str, digits)) or "0")
    if exponent > 0:
        coefficient *= 10 ** exponent
        exponent = 0
    scale = -exponent
    if scale > DECIMAL_MAX_SCALE or coefficient >= 1 << 96:
        raise ValueError(f"decimal {value} out of range")
    flags = (scale << 16) | (0x80000000 if sign else 0)
    return (
        coefficient & 0xFFFFFFFF,
        (coefficient >> 32) & 0xFFFFFFFF,
        coefficient >> 64,
        flags,
    )


def datetime_from_binary(raw: int) -> datetime:
    raw &= MASK64
    ticks = raw & TICKS_MASK
    if raw & KIND_LOCAL:
        # stored as UTC ticks, possibly wrapped below zero
        if ticks > TICKS_CEILING - TICKS_PER_DAY:
            ticks -= TICKS_CEILING
        utc = _EPOCH + timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)
        return utc.replace(tzinfo=timezone.utc).astimezone()
    value = _EPOCH + timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)
    if raw & KIND_UTC:
        return value.replace(tzinfo=timezone.utc)
    return value


def datetime_to_binary(value: datetime) -> int:
    """Naive datetimes are written as unspecified, aware ones as UTC."""
    if value.tzinfo is None:
        return _ticks(value)
    utc = value.astimezone(timezone.utc).replace(tzinfo=None)
    return _ticks(utc) | KIND_UTC


def _ticks(value: datetime) -> int:
    return (value - _EPOCH) // timedelta(microseconds=1) * TICKS_PER_MICROSECOND


def timedelta_from_ticks(ticks: int) -> timedelta:
    micros = abs(ticks) // TICKS_PER_MICROSECOND
    return timedelta(microseconds=-micros if ticks < 0 else micros)


def timedelta_to_ticks(value: timedelta) -> int:
    return value // timedelta(microseconds=1) * TICKS_PER_MICROSECOND
