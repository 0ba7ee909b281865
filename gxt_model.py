"""
GXT 内存模型：版本、表头、表和整个文件

表中的条目一律以 32 位键哈希为键；按名字访问时先经 gxt_key_hash 计算哈希。
"""
import operator
from dataclasses import dataclass
from enum import Enum

from gxt_crc import gxt_key_hash

MAIN_TABLE = "MAIN"
DEFAULT_HASHED_VERSION = 0x00080004  # 格式号 4，每字符 8 位


class GxtVersion(Enum):
    """
    STRING_KEYED: III / VC，8 字节字符串键 + UTF-16LE 文本
    HASH_KEYED:   SA / IV，32 位 CRC 键 + 单字节文本
    """
    STRING_KEYED = "string_keyed"
    HASH_KEYED = "hash_keyed"


@dataclass(frozen=True)
class TableHeader:
    name: str
    offset: int

    def __str__(self):
        return f"{self.name} @ 0x{self.offset:X}"


def resolve_key(key) -> int:
    """str 视为键名并计算哈希，整数视为已有的哈希值"""
    if key is None or isinstance(key, str):
        return gxt_key_hash(key)
    value = operator.index(key)
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"键哈希超出 32 位范围: {value}")
    return value


class GxtTable:
    """一张 GXT 表：哈希 -> 文本，可选地记录原始键名"""

    def __init__(self, name: str, keep_key_names: bool = False):
        self.name = name
        self.keep_key_names = keep_key_names
        self._entries = {}
        self._key_names = {}

    # ====== 读取 ======
    def get(self, key, default=None):
        return self._entries.get(resolve_key(key), default)

    def __getitem__(self, key):
        return self._entries[resolve_key(key)]

    def __contains__(self, key):
        return resolve_key(key) in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def keys(self):
        return self._entries.keys()

    def values(self):
        return self._entries.values()

    def items(self):
        return self._entries.items()

    # ====== 修改 ======
    def set(self, key, value: str):
        if not isinstance(value, str):
            raise TypeError(f"GXT 文本必须是 str，而不是 {type(value).__name__}")
        key_hash = resolve_key(key)
        self._entries[key_hash] = value
        if self.keep_key_names and isinstance(key, str) and key:
            self._key_names[key_hash] = key
        return key_hash

    __setitem__ = set

    def remove(self, key) -> bool:
        key_hash = resolve_key(key)
        self._key_names.pop(key_hash, None)
        return self._entries.pop(key_hash, None) is not None

    def __delitem__(self, key):
        if not self.remove(key):
            raise KeyError(key)

    def clear(self):
        self._entries.clear()
        self._key_names.clear()

    # ====== 原始键名 ======
    def key_name(self, key_hash: int):
        """返回哈希对应的原始键名，未保留时返回 None"""
        if not self.keep_key_names:
            return None
        return self._key_names.get(key_hash)

    def set_key_name(self, key_hash: int, name: str):
        if self.keep_key_names:
            self._key_names[resolve_key(key_hash)] = name

    def __repr__(self):
        return f"GxtTable({self.name!r}, {len(self)} entries)"


class GxtFile:
    """
    一个完整的 GXT 文件。
    tables 保持读取（或插入）顺序；按名字查找不区分大小写，
    同名的表后出现者覆盖先出现者，并占据先出现者的位置。
    """

    def __init__(self, version: GxtVersion, tables=(), version_tag=None, encoding=None):
        self.version = version
        self.version_tag = DEFAULT_HASHED_VERSION if version_tag is None else version_tag
        self.encoding = encoding
        self.tables = []
        self._by_name = {}
        for table in tables:
            self.add_table(table)

    def add_table(self, table: GxtTable):
        folded = table.name.upper()
        existing = self._by_name.get(folded)
        if existing is not None:
            self.tables[self.tables.index(existing)] = table
        else:
            self.tables.append(table)
        self._by_name[folded] = table
        return table

    def remove_table(self, name: str) -> bool:
        table = self._by_name.pop(name.upper(), None)
        if table is None:
            return False
        self.tables.remove(table)
        return True

    def get(self, name: str, default=None):
        return self._by_name.get(name.upper(), default)

    def __getitem__(self, key):
        if isinstance(key, str):
            table = self._by_name.get(key.upper())
            if table is None:
                raise KeyError(key)
            return table
        return self.tables[key]

    def __contains__(self, name):
        return isinstance(name, str) and name.upper() in self._by_name

    def __iter__(self):
        return iter(self.tables)

    def __len__(self):
        return len(self.tables)

    @property
    def table_names(self):
        return [table.name for table in self.tables]

    def total_entry_count(self) -> int:
        return sum(len(table) for table in self.tables)

    def find_value(self, key, default=None):
        """按表的顺序在所有表中查找键，返回第一个命中的文本"""
        key_hash = resolve_key(key)
        for table in self.tables:
            if key_hash in table:
                return table[key_hash]
        return default

    def __repr__(self):
        return (f"GxtFile({self.version.name}, {len(self.tables)} tables, "
                f"{self.total_entry_count()} entries)")
