import pytest

from gxt_encoding import (
    SINGLE_BYTE, PythonCodec, decode_8bit, decode_utf16, encode_8bit, encode_utf16,
    get_codec, single_byte_table,
)
from gxt_errors import GxtEncodingError


class TestUtf16:
    def test_encode_adds_terminator(self):
        assert encode_utf16("Hi") == b"H\x00i\x00\x00\x00"

    def test_decode_stops_at_first_zero(self):
        assert decode_utf16(b"A\x00B\x00\x00\x00C\x00") == "AB"

    def test_decode_ignores_padding(self):
        assert decode_utf16("汉字".encode("utf-16-le") + b"\x00" * 6) == "汉字"

    def test_decode_odd_length(self):
        assert decode_utf16(b"A\x00B") == "A"

    def test_decode_empty(self):
        assert decode_utf16(b"") == ""
        assert decode_utf16(b"\x00\x00") == ""

    def test_lone_surrogate_survives(self):
        raw = b"\x00\xd8"
        text = decode_utf16(raw)
        assert "\ufffd" not in text
        assert encode_utf16(text) == raw + b"\x00\x00"

    def test_encode_rejects_nul(self):
        with pytest.raises(GxtEncodingError):
            encode_utf16("ab\x00cd")


class TestSingleByte:
    def test_table_is_total(self):
        table = single_byte_table()
        assert len(table) == 256
        assert len(set(table)) == 256
        assert "\ufffd" not in table

    def test_decode_every_byte(self):
        text = decode_8bit(bytes(range(1, 256)))
        assert len(text) == 255
        assert "\ufffd" not in text

    def test_western_symbols(self):
        assert decode_8bit(b"\x80") == "€"
        assert decode_8bit(b"\xe9") == "é"
        assert decode_8bit(b"\x81") == "\x81"

    def test_decode_stops_at_zero(self):
        assert decode_8bit(b"abc\x00def") == "abc"

    def test_encode_round_trip(self):
        raw = bytes(range(1, 256))
        assert encode_8bit(decode_8bit(raw)) == raw + b"\x00"

    def test_encode_unmapped_raises(self):
        with pytest.raises(GxtEncodingError):
            encode_8bit("中文")

    def test_encode_rejects_nul(self):
        with pytest.raises(GxtEncodingError):
            encode_8bit("ab\x00cd")


class TestPythonCodec:
    def test_get_codec_default(self):
        assert get_codec() is SINGLE_BYTE
        assert get_codec(None) is SINGLE_BYTE

    def test_named_codec(self):
        codec = get_codec("cp1250")
        assert isinstance(codec, PythonCodec)
        assert codec.decode(b"\x8a\x00junk") == "Š"
        assert codec.encode("Š") == b"\x8a\x00"

    def test_utf8(self):
        codec = PythonCodec("utf-8")
        assert codec.decode("中文".encode("utf-8") + b"\x00") == "中文"

    def test_unknown_codec(self):
        with pytest.raises(GxtEncodingError):
            get_codec("no-such-codec")

    def test_encode_error(self):
        with pytest.raises(GxtEncodingError):
            PythonCodec("ascii").encode("é")

    def test_decode_error(self):
        with pytest.raises(GxtEncodingError):
            PythonCodec("utf-8").decode(b"\xff\xfe")

    def test_encode_rejects_nul(self):
        with pytest.raises(GxtEncodingError):
            PythonCodec("utf-8").encode("ab\x00cd")

    def test_encoded_bytes_contain_nul(self):
        with pytest.raises(GxtEncodingError):
            PythonCodec("utf-16-le").encode("ab")
