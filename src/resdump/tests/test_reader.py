"""
container 读写测试
包含属性测试（随机字节、截断数据、哈希范围）
"""

import io
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from babel import Locale
from hypothesis import assume, given, settings, strategies as st

from resdump.container import build_container, open_container
from resdump.container.format import (
    MAGIC,
    READER_TYPE_NAME,
    RESOURCE_SET_TYPE_NAME,
    decimal_from_bits,
    decimal_to_bits,
    name_hash,
)
from resdump.container.writer import encode_7bit_int, encode_string
from resdump.errors import FormatError
from resdump.model import RawRecord, SerializedObject


def read_all(data: bytes, **kwargs) -> list[RawRecord]:
    return list(open_container(io.BytesIO(data), **kwargs))


def v1_container(key: str, type_names: list[str], payload: bytes) -> bytes:
    """手工构造单条记录的 version 1 容器"""
    out = io.BytesIO()
    strings = encode_string(READER_TYPE_NAME) + encode_string(RESOURCE_SET_TYPE_NAME)
    out.write(struct.pack("<Iii", MAGIC, 1, len(strings)) + strings)
    out.write(struct.pack("<iii", 1, 1, len(type_names)))
    for type_name in type_names:
        out.write(encode_string(type_name))
    while out.tell() % 8:
        out.write(b"P")
    out.write(struct.pack("<ii", name_hash(key), 0))
    raw = key.encode("utf-16-le")
    name_entry = encode_7bit_int(len(raw)) + raw + struct.pack("<i", 0)
    out.write(struct.pack("<i", out.tell() + 4 + len(name_entry)))
    out.write(name_entry)
    out.write(payload)
    return out.getvalue()


# ==================== 属性测试 ====================

@settings(max_examples=50, deadline=None)
@given(st.binary(max_size=256))
def test_random_bytes_are_rejected(data):
    assume(not data.startswith(struct.pack("<I", MAGIC)))
    with pytest.raises(FormatError):
        open_container(io.BytesIO(data))


@settings(max_examples=50, deadline=None)
@given(st.data())
def test_truncated_container_is_rejected(data):
    payload = build_container([("alpha", "first value"), ("beta", "second"), ("gamma", "x")])
    cut = data.draw(st.integers(min_value=0, max_value=len(payload) - 1))
    with pytest.raises(FormatError):
        read_all(payload[:cut])


@settings(max_examples=100, deadline=None)
@given(st.text(max_size=40))
def test_name_hash_is_signed_32_bit(name):
    assert -(1 << 31) <= name_hash(name) < (1 << 31)


# ==================== 单元测试 ====================

class TestValueRoundTrip:
    """写入后读取，值保持不变"""

    RECORDS = [
        ("name", "hello"),
        ("empty", ""),
        ("flag", True),
        ("count", 42),
        ("negative", -7),
        ("big", 2 ** 40),
        ("huge", 2 ** 64 - 1),
        ("ratio", 1.5),
        ("price", Decimal("-12.340")),
        ("when", datetime(2024, 1, 15, 10, 30, 0, 123456)),
        ("utc", datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)),
        ("span", timedelta(days=2, hours=1, minutes=2, seconds=3)),
        ("blob", b"\x00\x01\x02"),
        ("nothing", None),
        ("obj", SerializedObject("My.Type, MyAssembly", b"\x00\x01\x02\x03")),
        ("unicode", "Grüße 日本"),
    ]

    def test_values(self):
        values = {r.key: r.value for r in read_all(build_container(self.RECORDS))}
        for key, expected in self.RECORDS:
            assert values[key] == expected, key
        assert isinstance(values["flag"], bool)
        assert isinstance(values["price"], Decimal)
        assert str(values["price"]) == "-12.340"

    def test_stream_value(self):
        records = read_all(build_container([("s", io.BytesIO(b"abc"))]))
        assert isinstance(records[0].value, io.BytesIO)
        assert records[0].value.getvalue() == b"abc"

    def test_user_type_payload_boundaries(self):
        records = [
            ("a", SerializedObject("T1, A", b"first")),
            ("b", SerializedObject("T2, A", b"second payload")),
            ("c", "tail"),
        ]
        values = {r.key: r.value for r in read_all(build_container(records))}
        assert values["a"] == SerializedObject("T1, A", b"first")
        assert values["b"] == SerializedObject("T2, A", b"second payload")
        assert values["c"] == "tail"


class TestHeader:
    def test_header_fields(self):
        reader = open_container(io.BytesIO(build_container([("a", "1"), ("b", 2)])))
        assert reader.version == 2
        assert reader.resource_count == 2
        assert reader.reader_type == READER_TYPE_NAME
        assert reader.resource_set_type == RESOURCE_SET_TYPE_NAME
        assert reader.type_names == []

    def test_empty_container(self):
        assert read_all(build_container([])) == []

    def test_bad_magic(self):
        data = bytearray(build_container([("a", "1")]))
        data[0] ^= 0xFF
        with pytest.raises(FormatError, match="magic"):
            open_container(io.BytesIO(bytes(data)))

    def test_unsupported_version(self):
        data = bytearray(build_container([("a", "1")]))
        skip = struct.unpack_from("<i", data, 8)[0]
        struct.pack_into("<i", data, 12 + skip, 7)
        with pytest.raises(FormatError, match="version"):
            open_container(io.BytesIO(bytes(data)))

    def test_newer_header_is_skipped(self):
        data = bytearray(build_container([("a", "1"), ("b", 2)]))
        skip = struct.unpack_from("<i", data, 8)[0]
        struct.pack_into("<i", data, 4, 2)
        data[12:12 + skip] = b"\xff" * skip  # opaque to this reader
        reader = open_container(io.BytesIO(bytes(data)))
        assert reader.reader_type == ""
        assert reader.resource_set_type == ""
        assert sorted(list(reader), key=lambda r: r.key) == [RawRecord("a", "1"), RawRecord("b", 2)]

    def test_header_version_zero(self):
        data = bytearray(build_container([("a", "1")]))
        struct.pack_into("<i", data, 4, 0)
        with pytest.raises(FormatError, match="header version"):
            open_container(io.BytesIO(bytes(data)))

    def test_container_not_at_stream_start(self):
        stream = io.BytesIO(b"junk" + build_container([("a", "1")]))
        stream.seek(4)
        assert list(open_container(stream)) == [RawRecord("a", "1")]


class TestIteration:
    def test_records_can_only_be_read_once(self):
        reader = open_container(io.BytesIO(build_container([("a", "1")])))
        assert len(list(reader)) == 1
        with pytest.raises(RuntimeError):
            list(reader)

    def test_records_are_lazy(self):
        data = bytearray(build_container([("a", "1")]))
        reader = open_container(io.BytesIO(bytes(data)))
        records = iter(reader)
        assert next(records) == RawRecord("a", "1")
        with pytest.raises(StopIteration):
            next(records)

    def test_duplicate_keys_are_kept(self):
        records = read_all(build_container([("k", "first"), ("k", "second")]))
        assert [r.value for r in records] == ["first", "second"]


class TestVersionOne:
    def test_string(self):
        data = v1_container("greeting", ["System.String, mscorlib"], struct.pack("<i", 0) + encode_string("hi"))
        assert read_all(data) == [RawRecord("greeting", "hi")]

    def test_int(self):
        data = v1_container("n", ["System.Int32, mscorlib"], struct.pack("<ii", 0, 99))
        assert read_all(data) == [RawRecord("n", 99)]

    def test_null(self):
        data = v1_container("nil", [], struct.pack("<i", -1))
        assert read_all(data) == [RawRecord("nil", None)]

    def test_unknown_type(self):
        data = v1_container("x", ["Foo.Bar, Baz"], struct.pack("<i", 0) + b"xyz")
        assert read_all(data) == [RawRecord("x", SerializedObject("Foo.Bar, Baz", b"xyz"))]

    def test_type_index_out_of_range(self):
        data = v1_container("x", [], struct.pack("<i", 3))
        with pytest.raises(FormatError):
            read_all(data)


class TestDecoders:
    CULTURE = "System.Globalization.CultureInfo, mscorlib"

    def test_registered_decoder(self):
        data = build_container([("loc", SerializedObject(self.CULTURE, b"en-US"))])
        decoders = {"System.Globalization.CultureInfo": lambda raw: Locale.parse(raw.decode(), sep="-")}
        (record,) = read_all(data, decoders=decoders)
        assert isinstance(record.value, Locale)
        assert str(record.value) == "en_US"

    def test_failing_decoder_keeps_payload(self):
        data = build_container([("loc", SerializedObject(self.CULTURE, b"\xff"))])

        def broken(raw):
            raise ValueError("nope")

        (record,) = read_all(data, decoders={"System.Globalization.CultureInfo": broken})
        assert record.value == SerializedObject(self.CULTURE, b"\xff")


class TestDecimalBits:
    @pytest.mark.parametrize("text", ["0", "1.50", "-1.50", "79228162514264337593543950335", "0.0000000000000000000000000001"])
    def test_round_trip(self, text):
        value = Decimal(text)
        result = decimal_from_bits(*decimal_to_bits(value))
        assert result == value
        assert str(result) == str(value)

    def test_positive_exponent(self):
        assert decimal_from_bits(*decimal_to_bits(Decimal("1E+3"))) == Decimal(1000)

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            decimal_to_bits(Decimal(2) ** 100)


def test_name_hash_known_value():
    assert name_hash("A") == 177636


def test_writer_rejects_unknown_types():
    with pytest.raises(TypeError):
        build_container([("x", object())])
