"""
GXT 与 TXT 文本的互相转换

TXT 格式：
    [MAIN]
    KEYNAME=文本
    0x1A2B3C4D=文本
以 ; 开头的行是注释。键名为 0x 加 8 位十六进制数时视为哈希值，其余视为键名。
"""
import logging
import re
from pathlib import Path

from gxt_crc import gxt_key_hash
from gxt_errors import GxtFormatError
from gxt_model import MAIN_TABLE, GxtFile, GxtTable, GxtVersion

logger = logging.getLogger(__name__)

TABLE_RE = re.compile(r"^\[([0-9A-Za-z_]{1,8})\]$")
ENTRY_RE = re.compile(r"^([^=]+)=(.*)$")
HASH_RE = re.compile(r"^0[xX]([0-9A-Fa-f]{8})$")


def format_key(table: GxtTable, key_hash: int) -> str:
    name = table.key_name(key_hash)
    if name is not None and gxt_key_hash(name) == key_hash:
        return name
    return f"0x{key_hash:08X}"


def dump_txt(gxt: GxtFile) -> str:
    lines = []
    for table in gxt.tables:
        lines.append(f"[{table.name}]")
        for key_hash, text in table.items():
            lines.append(f"{format_key(table, key_hash)}={text}")
        lines.append("")
    return "\n".join(lines)


def _table_for(gxt, name, keep_key_names):
    table = gxt.get(name)
    if table is None:
        table = gxt.add_table(GxtTable(name, keep_key_names))
    return table


def parse_txt(text: str, version: GxtVersion, keep_key_names=True, encoding=None) -> GxtFile:
    if text.startswith("\ufeff"):
        text = text[1:]

    gxt = GxtFile(version, encoding=encoding)
    current = None
    for line_num, line in enumerate(text.splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith(";"):
            continue

        m_table = TABLE_RE.match(stripped)
        if m_table:
            name = m_table.group(1)
            current = _table_for(gxt, name, keep_key_names)
            continue

        m_entry = ENTRY_RE.match(line.lstrip())
        if not m_entry or not m_entry.group(1).strip():
            logger.warning("第 %d 行格式无效，已跳过: %s", line_num, stripped)
            continue

        if current is None:
            logger.warning("第 %d 行的条目不属于任何表，已放入 %s", line_num, MAIN_TABLE)
            current = _table_for(gxt, MAIN_TABLE, keep_key_names)

        key = m_entry.group(1).strip()
        m_hash = HASH_RE.match(key)
        if m_hash:
            current.set(int(m_hash.group(1), 16), m_entry.group(2))
        else:
            current.set(key, m_entry.group(2))
    return gxt


def save_txt(gxt: GxtFile, path):
    path = Path(path)
    path.write_text(dump_txt(gxt), encoding="utf-8")
    logger.info("已导出 TXT: %s (%d 张表, %d 个条目)", path, len(gxt), gxt.total_entry_count())


def load_txt(path, version: GxtVersion, keep_key_names=True, encoding=None) -> GxtFile:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise GxtFormatError(f"TXT 文件 {path} 不是有效的 UTF-8: {e}") from e
    gxt = parse_txt(text, version, keep_key_names, encoding)
    logger.info("已导入 TXT: %s (%d 张表, %d 个条目)", path, len(gxt), gxt.total_entry_count())
    return gxt
