"""
GXT 解析

支持三种磁盘布局：
    III: 文件直接以 TKEY 开头，只有一张 MAIN 表
    VC:  以 TABL 开头的多表文件，8 字节字符串键，UTF-16LE 文本
    SA/IV: 4 字节版本号 + TABL 的多表文件，32 位 CRC 键，单字节文本
所有整数均为小端序。
"""
import io
import logging
import os
import struct
from enum import Enum

import numpy as np

from gxt_encoding import UTF16, get_codec
from gxt_errors import GxtFormatError, GxtTruncatedError
from gxt_model import MAIN_TABLE, GxtFile, GxtTable, GxtVersion, TableHeader

logger = logging.getLogger(__name__)

TKEY = b"TKEY"
TDAT = b"TDAT"
TABL = b"TABL"

SIZE_OF_TABL = 12     # 8 字节表名 + 4 字节偏移
SIZE_OF_TKEY_STR = 12  # 4 字节偏移 + 8 字节键名
SIZE_OF_TKEY_HASH = 8  # 4 字节偏移 + 4 字节哈希
NAME_LENGTH = 8

TKEY_STR_DTYPE = np.dtype([("offset", "<i4"), ("key", "S8")])
TKEY_HASH_DTYPE = np.dtype([("offset", "<i4"), ("hash", "<u4")])

_CSTRING_CHUNK = 256


class GxtLayout(Enum):
    SINGLE_TABLE = "III"
    MULTI_TABLE = "VC"
    HASHED = "SA/IV"


def decode_name(raw: bytes) -> str:
    """8 字节名字：截断到第一个 0 字节，只接受 7 位 ASCII，其余字节记为 '?'"""
    raw = bytes(raw).split(b"\x00", 1)[0]
    return "".join(chr(b) if b < 0x80 else "?" for b in raw)


class StreamReader:
    """在可 seek 的二进制流上读取定长字段；偏移相对于流的起始位置"""

    def __init__(self, stream):
        self._stream = stream
        self._base = stream.tell()

    def tell(self):
        return self._stream.tell() - self._base

    def seek(self, offset):
        self._stream.seek(self._base + offset, os.SEEK_SET)

    def read(self, size):
        return self._stream.read(size)

    def read_exact(self, size, what):
        data = self._stream.read(size)
        if len(data) != size:
            raise GxtTruncatedError(what, size, len(data))
        return data

    def read_i32(self, what):
        return struct.unpack("<i", self.read_exact(4, what))[0]

    def read_cstring(self, what):
        """读取以 0 字节结尾的字符串，返回不含终止符的字节，流停在终止符之后"""
        start = self.tell()
        buf = bytearray()
        while True:
            chunk = self._stream.read(_CSTRING_CHUNK)
            if not chunk:
                raise GxtTruncatedError(what, len(buf) + 1, len(buf))
            end = chunk.find(b"\x00")
            if end != -1:
                buf += chunk[:end]
                self.seek(start + len(buf) + 1)
                return bytes(buf)
            buf += chunk


def get_layout(reader: StreamReader):
    """
    根据文件头判断布局，返回 (布局, 版本号)。
    版本号只有 SA/IV 布局才有，其它布局为 None。
    """
    head = reader.read(4)
    if len(head) < 4:
        raise GxtFormatError("文件太短，无法识别 GXT 格式")
    if head == TKEY:
        reader.seek(0)
        return GxtLayout.SINGLE_TABLE, None
    if head == TABL:
        return GxtLayout.MULTI_TABLE, None
    if reader.read(4) != TABL:
        raise GxtFormatError(f"无法识别的 GXT 文件: 文件头 {head.hex(' ')} 之后没有 'TABL' 标记")
    return GxtLayout.HASHED, struct.unpack("<I", head)[0]


def read_table_headers(reader: StreamReader):
    """读取 TABL 目录，按文件中的顺序返回 TableHeader 列表"""
    size = reader.read_i32("TABL 长度")
    if size < 0:
        raise GxtFormatError(f"非法的表头长度: {size}")
    if size % SIZE_OF_TABL:
        raise GxtFormatError(f"表头长度必须是 {SIZE_OF_TABL} 的倍数: {size}")

    headers = []
    for _ in range(size // SIZE_OF_TABL):
        raw_name = reader.read_exact(NAME_LENGTH, "表名")
        offset = reader.read_i32("表偏移")
        name = decode_name(raw_name)
        if offset < 0:
            raise GxtFormatError(f"表 {name} 的偏移非法: {offset}")
        headers.append(TableHeader(name, offset))
    return headers


def _read_block_header(reader, marker, table_name):
    if reader.read_exact(4, f"{marker.decode()} 标记") != marker:
        raise GxtFormatError(f"表 {table_name} 缺少 '{marker.decode()}' 标记")
    size = reader.read_i32(f"{marker.decode()} 长度")
    if size < 0:
        raise GxtFormatError(f"表 {table_name} 的 {marker.decode()} 长度非法: {size}")
    return size


def _seek_body(reader, header):
    # 表数据前面可能重复了 8 字节表名：第一张表通常没有，其余的表都有
    reader.seek(header.offset)
    prefixed = reader.read(4) != TKEY
    reader.seek(header.offset + (NAME_LENGTH if prefixed else 0))


class StringKeyedReader:
    """III / VC：12 字节 TKEY 记录，字符串长度需要从相邻偏移推算"""

    version = GxtVersion.STRING_KEYED

    def __init__(self, layout):
        self.layout = layout
        self.codec = UTF16

    def has_tables(self):
        return self.layout is GxtLayout.MULTI_TABLE

    def parse_tables(self, reader):
        if not self.has_tables():
            return [TableHeader(MAIN_TABLE, 0)]
        return read_table_headers(reader)

    def parse_tkey_tdat(self, reader, header, keep_key_names=True):
        _seek_body(reader, header)
        size = _read_block_header(reader, TKEY, header.name)
        if size % SIZE_OF_TKEY_STR:
            raise GxtFormatError(f"表 {header.name} 的 TKEY 长度必须是 {SIZE_OF_TKEY_STR} 的倍数: {size}")
        records = np.frombuffer(reader.read_exact(size, "TKEY 记录"), dtype=TKEY_STR_DTYPE)

        tdat_size = _read_block_header(reader, TDAT, header.name)
        tdat = reader.read_exact(tdat_size, "TDAT 数据")

        offsets = records["offset"].astype(np.int64)
        bad = (offsets < 0) | (offsets > tdat_size)
        if bad.any():
            raise GxtFormatError(
                f"表 {header.name} 中的字符串偏移超出 TDAT 范围: {int(offsets[bad][0])}")

        # 格式里没有字符串长度：按偏移排序后，每个字符串延伸到下一个更大的偏移，
        # 最后一个延伸到 TDAT 的声明长度
        starts = np.unique(offsets)
        ends = np.append(starts[1:], tdat_size)
        region_end = ends[np.searchsorted(starts, offsets)]
        order = np.argsort(offsets, kind="stable")

        table = GxtTable(header.name, keep_key_names)
        for i in order.tolist():
            start = int(offsets[i])
            text = self.codec.decode(tdat[start:int(region_end[i])])
            table.set(decode_name(records["key"][i]), text)
        return table


class HashKeyedReader:
    """SA / IV：8 字节 TKEY 记录，字符串以 0 字节结尾"""

    version = GxtVersion.HASH_KEYED

    def __init__(self, encoding=None):
        self.codec = get_codec(encoding)

    def has_tables(self):
        return True

    def parse_tables(self, reader):
        return read_table_headers(reader)

    def parse_tkey_tdat(self, reader, header, keep_key_names=True):
        _seek_body(reader, header)
        size = _read_block_header(reader, TKEY, header.name)
        if size % SIZE_OF_TKEY_HASH:
            raise GxtFormatError(f"表 {header.name} 的 TKEY 长度必须是 {SIZE_OF_TKEY_HASH} 的倍数: {size}")
        records = np.frombuffer(reader.read_exact(size, "TKEY 记录"), dtype=TKEY_HASH_DTYPE)

        _read_block_header(reader, TDAT, header.name)
        tdat_start = reader.tell()

        offsets = records["offset"]
        if (offsets < 0).any():
            raise GxtFormatError(f"表 {header.name} 中有负的字符串偏移")

        # 这种布局里没有键名可保留，keep_key_names 对它没有意义
        table = GxtTable(header.name, keep_key_names)
        # 按偏移排序只是为了顺序读取流
        for i in np.argsort(offsets, kind="stable").tolist():
            reader.seek(tdat_start + int(offsets[i]))
            raw = reader.read_cstring("TDAT 字符串")
            table.set(int(records["hash"][i]), self.codec.decode(raw))
        return table


def get_reader(layout: GxtLayout, encoding=None):
    if layout is GxtLayout.HASHED:
        return HashKeyedReader(encoding)
    if encoding is not None:
        logger.debug("III/VC 文本固定为 UTF-16LE，忽略编码参数 %s", encoding)
    return StringKeyedReader(layout)


class GxtLoader:
    """
    从流中读取 GXT：构造时识别布局并读出表目录，
    read_table / read_all_tables 再解析各表的内容。
    """

    def __init__(self, stream, encoding=None, keep_key_names=True):
        self.reader = StreamReader(stream)
        self.encoding = encoding
        self.keep_key_names = keep_key_names
        self.layout, self.version_tag = get_layout(self.reader)
        self.parser = get_reader(self.layout, encoding)
        self.headers = self.parser.parse_tables(self.reader)
        logger.debug("GXT 布局 %s，%d 张表: %s", self.layout.value, len(self.headers),
                     ", ".join(str(h) for h in self.headers))

    @property
    def version(self) -> GxtVersion:
        return self.parser.version

    def read_table(self, index: int) -> GxtTable:
        header = self.headers[index]
        table = self.parser.parse_tkey_tdat(
            self.reader, header, keep_key_names=self.keep_key_names)
        logger.debug("表 %s: %d 个条目", table.name, len(table))
        return table

    def read_all_tables(self):
        return [self.read_table(i) for i in range(len(self.headers))]

    def load(self) -> GxtFile:
        gxt = GxtFile(self.version, self.read_all_tables(),
                      version_tag=self.version_tag,
                      encoding=self.encoding if self.layout is GxtLayout.HASHED else None)
        logger.info("已读取 GXT (%s): %d 张表, %d 个条目",
                    self.layout.value, len(gxt), gxt.total_entry_count())
        return gxt


def load_gxt(source, encoding=None, keep_key_names=True) -> GxtFile:
    """
    读取 GXT 文件。
    source 可以是路径、bytes 或已打开的二进制流（流不会被关闭）。
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return GxtLoader(io.BytesIO(bytes(source)), encoding, keep_key_names).load()
    if hasattr(source, "read"):
        return GxtLoader(source, encoding, keep_key_names).load()
    with open(source, "rb") as f:
        return GxtLoader(f, encoding, keep_key_names).load()
