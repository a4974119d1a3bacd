"""条目分类测试"""

import io
from datetime import timedelta

from babel import Locale
from hypothesis import given, settings, strategies as st

from resdump.classifier import EntryClassifier, runtime_type_name
from resdump.model import BlobEntry, ComplexEntry, RawRecord, SerializedObject, TextEntry
from resdump.resolvers import ImageNode, ImageResolver


class RecordingResolver:
    """记录收到的 blob，并按需返回节点"""

    def __init__(self, accept=True):
        self.accept = accept
        self.calls = []

    def resolve(self, key, stream):
        self.calls.append((key, stream.read()))
        return f"node:{key}" if self.accept else None


class BrokenResolver:
    def resolve(self, key, stream):
        raise RuntimeError("boom")


class Unprintable:
    def __str__(self):
        raise ValueError("no str")


class VeryUnprintable(Unprintable):
    def __repr__(self):
        raise ValueError("no repr")


# ==================== 属性测试 ====================

@settings(max_examples=100, deadline=None)
@given(st.one_of(st.text(), st.binary(), st.integers(), st.floats(), st.none(), st.booleans()))
def test_classify_never_raises(value):
    entry = EntryClassifier(ImageResolver()).classify(RawRecord("k", value))
    assert isinstance(entry, (TextEntry, BlobEntry, ComplexEntry))
    assert entry.key == "k"


# ==================== 单元测试 ====================

class TestText:
    def test_string_is_text(self):
        assert EntryClassifier().classify(RawRecord("A", "hello")) == TextEntry("A", "hello")

    def test_empty_string_is_text(self):
        assert EntryClassifier().classify(RawRecord("A", "")) == TextEntry("A", "")


class TestBlobs:
    def test_accepted_blob(self):
        resolver = RecordingResolver()
        entry = EntryClassifier(resolver).classify(RawRecord("img", b"\x01\x02"))
        assert entry == BlobEntry("img", b"\x01\x02", "node:img")
        assert resolver.calls == [("img", b"\x01\x02")]

    def test_stream_value_is_a_blob(self):
        resolver = RecordingResolver()
        entry = EntryClassifier(resolver).classify(RawRecord("s", io.BytesIO(b"abc")))
        assert isinstance(entry, BlobEntry)
        assert resolver.calls == [("s", b"abc")]

    def test_declined_blob_falls_back_to_complex(self):
        entry = EntryClassifier(RecordingResolver(accept=False)).classify(RawRecord("b", b"abc"))
        assert entry == ComplexEntry("b", "builtins.bytes", "b'abc'")

    def test_no_resolver(self):
        entry = EntryClassifier().classify(RawRecord("b", bytearray(b"ab")))
        assert entry == ComplexEntry("b", "builtins.bytearray", "bytearray(b'ab')")

    def test_declined_stream_shows_length(self):
        entry = EntryClassifier(RecordingResolver(accept=False)).classify(RawRecord("s", io.BytesIO(b"abcd")))
        assert entry == ComplexEntry("s", "_io.BytesIO", "<4 bytes>")

    def test_no_resolver_memoryview(self):
        entry = EntryClassifier().classify(RawRecord("m", memoryview(b"xyz")))
        assert entry == ComplexEntry("m", "builtins.memoryview", "<3 bytes>")

    def test_failing_resolver_falls_back(self):
        entry = EntryClassifier(BrokenResolver()).classify(RawRecord("b", b"abc"))
        assert isinstance(entry, ComplexEntry)

    def test_image_resolver(self, png_bytes):
        entry = EntryClassifier(ImageResolver()).classify(RawRecord("img", png_bytes))
        assert isinstance(entry, BlobEntry)
        assert entry.node == ImageNode("img", "png", len(png_bytes))


class TestComplex:
    def test_locale_display_name(self):
        entry = EntryClassifier().classify(RawRecord("loc", Locale("en", "US")))
        assert entry == ComplexEntry("loc", "babel.core.Locale", "English (United States)")

    def test_locale_in_other_display_language(self):
        entry = EntryClassifier(display_locale="de").classify(RawRecord("loc", Locale("en", "US")))
        assert entry.display_text == "Englisch (Vereinigte Staaten)"

    def test_unknown_display_locale_uses_english(self):
        classifier = EntryClassifier(display_locale="xx-NOPE")
        assert str(classifier.display_locale) == "en"

    def test_int(self):
        assert EntryClassifier().classify(RawRecord("n", 42)) == ComplexEntry("n", "builtins.int", "42")

    def test_none(self):
        assert EntryClassifier().classify(RawRecord("n", None)) == ComplexEntry("n", "builtins.NoneType", "None")

    def test_timedelta(self):
        entry = EntryClassifier().classify(RawRecord("t", timedelta(minutes=1)))
        assert entry == ComplexEntry("t", "datetime.timedelta", "0:01:00")

    def test_serialized_object_uses_container_type(self):
        value = SerializedObject("My.Type, MyAssembly", b"\x00\x01")
        entry = EntryClassifier().classify(RawRecord("o", value))
        assert entry == ComplexEntry("o", "My.Type, MyAssembly", "<My.Type, MyAssembly: 2 bytes serialized>")

    def test_str_failure_uses_repr(self):
        entry = EntryClassifier().classify(RawRecord("u", Unprintable()))
        assert entry.type_name.endswith("Unprintable")
        assert "Unprintable object" in entry.display_text

    def test_str_and_repr_failure(self):
        entry = EntryClassifier().classify(RawRecord("u", VeryUnprintable()))
        assert entry.display_text.startswith("<unprintable ")


def test_runtime_type_name():
    assert runtime_type_name(1.5) == "builtins.float"
    assert runtime_type_name(Locale("fr")) == "babel.core.Locale"
