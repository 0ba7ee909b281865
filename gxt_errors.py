class GxtError(Exception):
    """GXT 读写过程中的所有错误的基类"""


class GxtFormatError(GxtError):
    """文件结构不合法：魔数、长度、偏移或标记错误"""


class GxtTruncatedError(GxtFormatError):
    """数据在读取完某个字段之前就结束了"""

    def __init__(self, what, wanted, got):
        super().__init__(f"数据被截断: 读取 {what} 需要 {wanted} 字节, 实际只有 {got} 字节")
        self.what = what
        self.wanted = wanted
        self.got = got


class GxtEncodingError(GxtError, ValueError):
    """写出时遇到无法编码的文本、键名或表名"""
