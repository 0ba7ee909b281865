"""
GXT 文本编解码

III / VC 的文本是 UTF-16LE 双字节，SA / IV 的文本是单字节。
单字节表以 Windows-1252 为基础，cp1252 中未定义的五个字节 (0x81 0x8D 0x8F 0x90 0x9D)
映射到同值的 C1 控制字符，这样 256 个字节值都有对应字符，解码永远不会产生替换符。
"""
import codecs
from functools import lru_cache

import numpy as np

from gxt_errors import GxtEncodingError


@lru_cache(maxsize=None)
def single_byte_table():
    """字节值 -> 字符，共 256 项"""
    chars = []
    for b in range(256):
        try:
            chars.append(bytes([b]).decode("cp1252"))
        except UnicodeDecodeError:
            chars.append(chr(b))
    return tuple(chars)


@lru_cache(maxsize=None)
def _single_byte_decode_map():
    # str.translate 用的映射：latin-1 解码后的码位 -> 表中字符
    return {b: c for b, c in enumerate(single_byte_table()) if ord(c) != b}


@lru_cache(maxsize=None)
def _single_byte_encode_map():
    return {c: b for b, c in enumerate(single_byte_table())}


class TextCodec:
    """一种 TDAT 字符串编码"""

    name = ""

    def decode(self, data: bytes) -> str:
        raise NotImplementedError

    def encode(self, text: str) -> bytes:
        """编码并附加终止符"""
        raise NotImplementedError

    def check_terminator(self, text: str):
        """文本中间的 0 字符会被当作终止符，读回时字符串被截断"""
        pos = text.find("\x00")
        if pos != -1:
            raise GxtEncodingError(f"文本在位置 {pos} 含有 0 字符，无法写入以 0 结尾的字符串")

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class Utf16Codec(TextCodec):
    name = "utf-16-le"

    def decode(self, data: bytes) -> str:
        # 奇数长度时丢弃最后半个码元
        units = np.frombuffer(data, dtype="<u2", count=len(data) // 2)
        zeros = np.flatnonzero(units == 0)
        if zeros.size:
            units = units[:zeros[0]]
        if not units.size:
            return ""
        # surrogatepass: 孤立的代理码元原样保留，写回时字节不变
        return units.tobytes().decode("utf-16-le", errors="surrogatepass")

    def encode(self, text: str) -> bytes:
        self.check_terminator(text)
        return text.encode("utf-16-le", errors="surrogatepass") + b"\x00\x00"


class SingleByteCodec(TextCodec):
    name = "gxt-8bit"

    def decode(self, data: bytes) -> str:
        end = data.find(b"\x00")
        if end != -1:
            data = data[:end]
        return data.decode("latin-1").translate(_single_byte_decode_map())

    def encode(self, text: str) -> bytes:
        self.check_terminator(text)
        table = _single_byte_encode_map()
        out = bytearray()
        for pos, c in enumerate(text):
            b = table.get(c)
            if b is None:
                raise GxtEncodingError(
                    f"字符 {c!r} (U+{ord(c):04X}, 位置 {pos}) 无法用单字节编码表示"
                )
            out.append(b)
        out.append(0)
        return bytes(out)


class PythonCodec(TextCodec):
    """用户指定的 Python 编码（例如 cp1250、utf-8），字符串中不能出现 0 字节"""

    def __init__(self, name):
        try:
            self.name = codecs.lookup(name).name
        except LookupError as e:
            raise GxtEncodingError(f"未知的文本编码: {name}") from e

    def decode(self, data: bytes) -> str:
        end = data.find(b"\x00")
        if end != -1:
            data = data[:end]
        try:
            return data.decode(self.name)
        except UnicodeDecodeError as e:
            raise GxtEncodingError(f"无法用 {self.name} 解码字符串: {e}") from e

    def encode(self, text: str) -> bytes:
        self.check_terminator(text)
        try:
            raw = text.encode(self.name)
        except UnicodeEncodeError as e:
            raise GxtEncodingError(f"无法用 {self.name} 编码字符串: {e}") from e
        if b"\x00" in raw:
            raise GxtEncodingError(f"{self.name} 编码后的字符串含有 0 字节")
        return raw + b"\x00"


UTF16 = Utf16Codec()
SINGLE_BYTE = SingleByteCodec()


def get_codec(encoding=None) -> TextCodec:
    """None 表示内置单字节表；其余名字交给 Python 的 codecs"""
    if encoding is None:
        return SINGLE_BYTE
    return PythonCodec(encoding)


def decode_utf16(data: bytes) -> str:
    return UTF16.decode(data)


def encode_utf16(text: str) -> bytes:
    return UTF16.encode(text)


def decode_8bit(data: bytes) -> str:
    return SINGLE_BYTE.decode(data)


def encode_8bit(text: str) -> bytes:
    return SINGLE_BYTE.encode(text)
