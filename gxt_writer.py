"""
GXT 写出

与 gxt_parser 的读取逻辑一一对应：
    STRING_KEYED 只有一张 MAIN 表时写成 III 布局，否则写成 VC 布局（MAIN 在前，其余按表名排序）
    HASH_KEYED 写成 SA/IV 布局，表的顺序与模型一致
物理上的第一张表不写重复的 8 字节表名，其余的表都写。
条目顺序：字符串键按 8 字节键名的字节序排序，哈希键按数值升序排序。
"""
import logging
import struct

import numpy as np

from gxt_encoding import UTF16, get_codec
from gxt_errors import GxtEncodingError, GxtFormatError
from gxt_model import MAIN_TABLE, GxtFile, GxtTable, GxtVersion
from gxt_parser import (
    NAME_LENGTH, SIZE_OF_TABL, TABL, TDAT, TKEY, TKEY_HASH_DTYPE, TKEY_STR_DTYPE, decode_name,
)

logger = logging.getLogger(__name__)

INT32_MAX = 0x7FFFFFFF


def name_to_8_bytes(name: str, what="表名") -> bytes:
    try:
        raw = name.encode("ascii")
    except UnicodeEncodeError as e:
        raise GxtEncodingError(f"{what} {name!r} 只能包含 ASCII 字符") from e
    if len(raw) > NAME_LENGTH:
        raise GxtEncodingError(f"{what} {name!r} 超过 {NAME_LENGTH} 字节")
    return raw.ljust(NAME_LENGTH, b"\x00")


def _check_int32(value, what):
    if value > INT32_MAX:
        raise GxtFormatError(f"{what} 超出 32 位有符号整数范围: {value}")
    return value


def _block(marker: bytes, payload: bytes) -> bytes:
    return marker + struct.pack("<i", _check_int32(len(payload), marker.decode() + " 长度")) + payload


class StringKeyedWriter:
    """III / VC 表体：TKEY(偏移 + 8 字节键名) + TDAT(UTF-16LE 字符串)"""

    def __init__(self):
        self.codec = UTF16

    def key_entries(self, table: GxtTable):
        """返回按键名排序的 [(8 字节键名, 文本)]"""
        entries = []
        synthesized = truncated = 0
        for key_hash, text in table.items():
            name = table.key_name(key_hash)
            if name is None:
                name = f"KEY{key_hash:08X}"
                synthesized += 1
            try:
                raw = name.encode("ascii")
            except UnicodeEncodeError as e:
                raise GxtEncodingError(f"表 {table.name} 的键名 {name!r} 只能包含 ASCII 字符") from e
            if len(raw) > NAME_LENGTH:
                truncated += 1
            entries.append((raw[:NAME_LENGTH].ljust(NAME_LENGTH, b"\x00"), text))

        if synthesized:
            logger.warning("表 %s: %d 个条目没有原始键名，已生成 KEYxxxxxxxx 形式的键名", table.name, synthesized)
        if truncated:
            logger.warning("表 %s: %d 个键名超过 %d 字节，已截断", table.name, truncated, NAME_LENGTH)
        entries.sort(key=lambda entry: entry[0])
        return entries

    def build_body(self, table: GxtTable) -> bytes:
        entries = self.key_entries(table)
        records = np.zeros(len(entries), dtype=TKEY_STR_DTYPE)
        blob = bytearray()
        for i, (key, text) in enumerate(entries):
            records[i] = (_check_int32(len(blob), "字符串偏移"), key)
            try:
                blob += self.codec.encode(text)
            except GxtEncodingError as e:
                raise GxtEncodingError(f"表 {table.name} 键 {decode_name(key)}: {e}") from e
        return _block(TKEY, records.tobytes()) + _block(TDAT, bytes(blob))


class HashKeyedWriter:
    """SA / IV 表体：TKEY(偏移 + 哈希) + TDAT(单字节字符串)"""

    def __init__(self, encoding=None):
        self.codec = get_codec(encoding)

    def build_body(self, table: GxtTable) -> bytes:
        records = np.zeros(len(table), dtype=TKEY_HASH_DTYPE)
        blob = bytearray()
        for i, key_hash in enumerate(sorted(table.keys())):
            records[i] = (_check_int32(len(blob), "字符串偏移"), key_hash)
            try:
                blob += self.codec.encode(table[key_hash])
            except GxtEncodingError as e:
                raise GxtEncodingError(f"表 {table.name} 键 0x{key_hash:08X}: {e}") from e
        return _block(TKEY, records.tobytes()) + _block(TDAT, bytes(blob))


def order_tables(gxt: GxtFile):
    """写出时的表顺序"""
    if gxt.version is GxtVersion.HASH_KEYED:
        return list(gxt.tables)
    main = [t for t in gxt.tables if t.name.upper() == MAIN_TABLE]
    rest = sorted((t for t in gxt.tables if t.name.upper() != MAIN_TABLE),
                  key=lambda t: name_to_8_bytes(t.name))
    return main + rest


def is_single_table(gxt: GxtFile) -> bool:
    return (gxt.version is GxtVersion.STRING_KEYED and len(gxt.tables) == 1
            and gxt.tables[0].name.upper() == MAIN_TABLE)


def get_writer(gxt: GxtFile):
    if gxt.version is GxtVersion.HASH_KEYED:
        return HashKeyedWriter(gxt.encoding)
    return StringKeyedWriter()


def build_gxt(gxt: GxtFile) -> bytes:
    writer = get_writer(gxt)
    if is_single_table(gxt):
        return writer.build_body(gxt.tables[0])

    tables = order_tables(gxt)
    if tables and tables[0].name.upper() != MAIN_TABLE:
        logger.warning("第一张表 %s 不是 %s，它的数据前不会写重复的表名", tables[0].name, MAIN_TABLE)
    out = bytearray()
    if gxt.version is GxtVersion.HASH_KEYED:
        out += struct.pack("<I", gxt.version_tag & 0xFFFFFFFF)
    header_size = len(tables) * SIZE_OF_TABL
    out += TABL + struct.pack("<i", _check_int32(header_size, "TABL 长度"))

    bodies = []
    offset = len(out) + header_size
    for index, table in enumerate(tables):
        name = name_to_8_bytes(table.name)
        body = writer.build_body(table)
        if index > 0:
            body = name + body
        out += name + struct.pack("<i", _check_int32(offset, "表偏移"))
        bodies.append(body)
        offset += len(body)

    for body in bodies:
        out += body
    return bytes(out)


def save_gxt(gxt: GxtFile, target):
    """
    写出 GXT 文件。
    target 可以是路径或已打开的二进制流（流不会被关闭）。
    整个文件先在内存中生成，出错时不会留下写了一半的文件。
    """
    data = build_gxt(gxt)
    if hasattr(target, "write"):
        target.write(data)
    else:
        with open(target, "wb") as f:
            f.write(data)
    logger.info("已写出 GXT (%s): %d 张表, %d 个条目, %d 字节",
                gxt.version.name, len(gxt), gxt.total_entry_count(), len(data))
    return len(data)
