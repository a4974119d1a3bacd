"""Lazy reader for ``.resources`` containers.

The header and the offset tables are parsed when the reader is created, so a
stream that is not a container fails immediately with :class:`FormatError`.
Records are decoded one at a time while iterating.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Callable, Iterator, Mapping, Optional

from loguru import logger

from ..errors import FormatError
from ..model import RawRecord, SerializedObject
from .format import (
    MAGIC,
    PRIMITIVE_FORMATS,
    TypeCode,
    V1_TYPE_CODES,
    datetime_from_binary,
    decimal_from_bits,
    short_type_name,
    timedelta_from_ticks,
)

# payload bytes -> python value, keyed by short type name
UserTypeDecoder = Callable[[bytes], object]


class ContainerReader:
    """Reads the records of one container stream, exactly once."""

    def __init__(
        self,
        stream: BinaryIO,
        decoders: Optional[Mapping[str, UserTypeDecoder]] = None,
    ):
        self._stream = stream
        self._decoders = dict(decoders or {})
        self._consumed = False
        self._data_offsets: list[int] | None = None
        try:
            self._base = stream.tell()
            self._end = stream.seek(0, io.SEEK_END)
            stream.seek(self._base)
        except (OSError, ValueError) as e:
            raise FormatError(f"stream is not seekable: {e}") from e
        self._read_header()

    # ---- header -------------------------------------------------------

    def _read_header(self) -> None:
        magic = self._unpack("<I")
        if magic != MAGIC:
            raise FormatError(f"bad magic number {magic:#010x}", 0)

        header_version = self._unpack("<i")
        skip = self._unpack("<i")
        if skip < 0:
            raise FormatError("negative header length", self._pos())
        if header_version > 1:
            self._seek(self._pos() + skip)
            self.reader_type = ""
            self.resource_set_type = ""
        elif header_version == 1:
            self.reader_type = self._read_string()
            self.resource_set_type = self._read_string()
        else:
            raise FormatError(f"unsupported header version {header_version}")

        self.version = self._unpack("<i")
        if self.version not in (1, 2):
            raise FormatError(f"unsupported reader version {self.version}")

        self.resource_count = self._unpack("<i")
        type_count = self._unpack("<i")
        if self.resource_count < 0 or type_count < 0:
            raise FormatError("negative resource or type count", self._pos())
        # every resource needs at least a hash and a name position
        if self.resource_count * 8 > self._end - self._abs(self._pos()):
            raise FormatError(f"resource count {self.resource_count} exceeds stream size")
        self.type_names = [self._read_string() for _ in range(type_count)]

        # align to 8 bytes; the filler is "PAD" repeated
        while self._pos() & 7:
            self._read(1)

        self._read(4 * self.resource_count)  # name hashes, not needed for iteration
        self._name_positions = list(
            struct.unpack(f"<{self.resource_count}i", self._read(4 * self.resource_count))
        )
        self._data_section = self._unpack("<i")
        self._name_section = self._pos()
        if not self._name_section <= self._data_section <= self._end - self._base:
            raise FormatError(f"data section offset {self._data_section} out of range")
        logger.debug(
            f"container v{self.version}: {self.resource_count} resources, "
            f"{len(self.type_names)} types"
        )

    # ---- records ------------------------------------------------------

    def __iter__(self) -> Iterator[RawRecord]:
        if self._consumed:
            raise RuntimeError("container records can only be iterated once")
        self._consumed = True
        return self._records()

    def _records(self) -> Iterator[RawRecord]:
        for index in range(self.resource_count):
            key, data_offset = self._read_name_entry(index)
            yield RawRecord(key, self._read_value(data_offset))

    def _read_name_entry(self, index: int) -> tuple[str, int]:
        position = self._name_section + self._name_positions[index]
        if not self._name_section <= position < self._data_section:
            raise FormatError(f"name position of resource {index} out of range")
        self._seek(position)
        raw = self._read(self._read_7bit_int())
        try:
            key = raw.decode("utf-16-le")
        except UnicodeDecodeError as e:
            raise FormatError(f"resource name {index} is not UTF-16", position) from e
        data_offset = self._unpack("<i")
        if not 0 <= data_offset < self._end - self._base - self._data_section:
            raise FormatError(f"data offset of {key!r} out of range", position)
        return key, data_offset

    def _read_value(self, data_offset: int) -> object:
        self._seek(self._data_section + data_offset)
        if self.version == 1:
            return self._read_value_v1(data_offset)
        code = self._read_7bit_int()
        if code >= TypeCode.START_OF_USER_TYPES:
            index = code - TypeCode.START_OF_USER_TYPES
            if index >= len(self.type_names):
                raise FormatError(f"type code {code:#x} has no type name", self._pos())
            return self._read_user_type(self.type_names[index], data_offset)
        try:
            type_code = TypeCode(code)
        except ValueError:
            raise FormatError(f"unknown type code {code:#x}", self._pos()) from None
        return self._read_typed(type_code)

    def _read_value_v1(self, data_offset: int) -> object:
        index = self._unpack("<i")
        if index == -1:
            return None
        if not 0 <= index < len(self.type_names):
            raise FormatError(f"type index {index} out of range", self._pos())
        type_name = self.type_names[index]
        type_code = V1_TYPE_CODES.get(short_type_name(type_name))
        if type_code is None:
            return self._read_user_type(type_name, data_offset)
        return self._read_typed(type_code)

    def _read_typed(self, code: TypeCode) -> object:
        if code == TypeCode.NULL:
            return None
        if code == TypeCode.STRING:
            return self._read_string()
        if code == TypeCode.CHAR:
            return chr(self._unpack("<H"))
        if code in PRIMITIVE_FORMATS:
            return self._unpack(PRIMITIVE_FORMATS[code])
        if code == TypeCode.DECIMAL:
            bits = struct.unpack("<IIII", self._read(16))
            try:
                return decimal_from_bits(*bits)
            except ValueError as e:
                raise FormatError(str(e), self._pos()) from e
        if code == TypeCode.DATETIME:
            try:
                return datetime_from_binary(self._unpack("<q"))
            except (OverflowError, ValueError) as e:
                raise FormatError(f"datetime out of range: {e}", self._pos()) from e
        if code == TypeCode.TIMESPAN:
            try:
                return timedelta_from_ticks(self._unpack("<q"))
            except OverflowError as e:
                raise FormatError(f"timespan out of range: {e}", self._pos()) from e
        if code in (TypeCode.BYTE_ARRAY, TypeCode.STREAM):
            length = self._unpack("<i")
            if length < 0:
                raise FormatError("negative byte array length", self._pos())
            data = self._read(length)
            return data if code == TypeCode.BYTE_ARRAY else io.BytesIO(data)
        raise FormatError(f"type code {code!r} is not a value type", self._pos())

    def _read_user_type(self, type_name: str, data_offset: int) -> object:
        # the serialized payload carries no length; it runs to the next value
        start = self._pos()
        end = self._next_data_offset(data_offset)
        payload = self._read(self._data_section + end - start)
        short = short_type_name(type_name)
        decoder = self._decoders.get(short)
        if decoder is not None:
            try:
                return decoder(payload)
            except Exception as e:
                logger.warning(f"decoder for {short} failed, keeping raw payload: {e}")
        return SerializedObject(type_name, payload)

    def _next_data_offset(self, data_offset: int) -> int:
        if self._data_offsets is None:
            resume = self._pos()
            offsets = {self._read_name_entry(i)[1] for i in range(self.resource_count)}
            self._data_offsets = sorted(offsets)
            self._seek(resume)
        for offset in self._data_offsets:
            if offset > data_offset:
                return offset
        return self._end - self._base - self._data_section

    # ---- primitives ---------------------------------------------------

    def _pos(self) -> int:
        return self._stream.tell() - self._base

    def _abs(self, pos: int) -> int:
        return self._base + pos

    def _seek(self, pos: int) -> None:
        self._stream.seek(self._abs(pos))

    def _read(self, size: int) -> bytes:
        if size < 0:
            raise FormatError(f"negative length {size}", self._pos())
        data = self._stream.read(size)
        if len(data) != size:
            raise FormatError(f"unexpected end of stream, wanted {size} bytes", self._pos())
        return data

    def _unpack(self, fmt: str):
        return struct.unpack(fmt, self._read(struct.calcsize(fmt)))[0]

    def _read_7bit_int(self) -> int:
        result = shift = 0
        for _ in range(5):
            byte = self._read(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                if result > 0x7FFFFFFF:
                    raise FormatError("7-bit encoded integer overflows int32", self._pos())
                return result
            shift += 7
        raise FormatError("bad 7-bit encoded integer", self._pos())

    def _read_string(self) -> str:
        raw = self._read(self._read_7bit_int())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError("string is not UTF-8", self._pos()) from e


def open_container(
    stream: BinaryIO,
    decoders: Optional[Mapping[str, UserTypeDecoder]] = None,
) -> ContainerReader:
    """Open ``stream`` (positioned at the container start) as a container."""
    return ContainerReader(stream, decoders)
