from functools import lru_cache

CRC32_POLYNOMIAL = 0xEDB88320


@lru_cache(maxsize=None)
def crc32_table():
    """标准 CRC32 查找表（反射多项式 0xEDB88320），首次使用时生成"""
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ CRC32_POLYNOMIAL
            else:
                crc >>= 1
        table.append(crc)
    return tuple(table)


def crc32_bytes(data: bytes) -> int:
    if not data:
        return 0
    table = crc32_table()
    crc = 0xFFFFFFFF
    for b in data:
        crc = (crc >> 8) ^ table[(crc ^ b) & 0xFF]
    return ~crc & 0xFFFFFFFF


def gxt_key_hash(key) -> int:
    """
    计算 GXT 键名的哈希。
    每个字符先转成大写，再取低 8 位参与 CRC32，因此对大小写不敏感。
    空键名或 None 返回 0。
    """
    if not key:
        return 0
    table = crc32_table()
    crc = 0xFFFFFFFF
    for c in key:
        b = ord(c.upper()[0]) & 0xFF
        crc = (crc >> 8) ^ table[(crc ^ b) & 0xFF]
    return ~crc & 0xFFFFFFFF
