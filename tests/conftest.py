"""
测试用的 GXT 字节构造器，三种布局都在内存中用 struct 拼出来
"""
import struct

import pytest


def _block(marker, payload):
    return marker + struct.pack("<i", len(payload)) + payload


def _name8(name):
    return name.encode("ascii").ljust(8, b"\x00")


def string_keyed_body(entries):
    """entries: [(键名, 文本)]，按给定顺序写入"""
    keys = bytearray()
    tdat = bytearray()
    for key, text in entries:
        keys += struct.pack("<i", len(tdat)) + _name8(key)
        tdat += text.encode("utf-16-le") + b"\x00\x00"
    return _block(b"TKEY", bytes(keys)) + _block(b"TDAT", bytes(tdat))


def hash_keyed_body(entries):
    """entries: [(哈希, 不含终止符的字节串)]，按给定顺序写入"""
    keys = bytearray()
    tdat = bytearray()
    for key_hash, raw in entries:
        keys += struct.pack("<iI", len(tdat), key_hash)
        tdat += raw + b"\x00"
    return _block(b"TKEY", bytes(keys)) + _block(b"TDAT", bytes(tdat))


def directory_file(tables, body_fn, prefix=b"", unprefixed=0):
    """tables: [(表名, entries)]；除下标为 unprefixed 的表外，表体前重复写 8 字节表名"""
    header_size = 12 * len(tables)
    offset = len(prefix) + 8 + header_size
    headers = bytearray()
    bodies = bytearray()
    for index, (name, entries) in enumerate(tables):
        body = body_fn(entries)
        if index != unprefixed:
            body = _name8(name) + body
        headers += _name8(name) + struct.pack("<i", offset)
        bodies += body
        offset += len(body)
    return prefix + b"TABL" + struct.pack("<i", header_size) + bytes(headers) + bytes(bodies)


@pytest.fixture
def iii_bytes():
    return string_keyed_body


@pytest.fixture
def vc_bytes():
    def build(tables, unprefixed=0):
        return directory_file(tables, string_keyed_body, unprefixed=unprefixed)
    return build


@pytest.fixture
def sa_bytes():
    def build(tables, version=0x00080004, unprefixed=0):
        return directory_file(tables, hash_keyed_body, struct.pack("<I", version), unprefixed)
    return build
