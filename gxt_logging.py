"""
日志配置：控制台（可选彩色）+ 可选的滚动日志文件
"""
import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s : %(levelname)-8s : %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """只给日志级别上色的控制台格式化器"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        formatted = super().format(record)
        if record.levelname in formatted:
            formatted = formatted.replace(record.levelname, f"{color}{record.levelname}{reset}", 1)
        return formatted


def setup_logging(level="INFO", use_colors=True, log_file=None):
    """
    配置根日志器。重复调用时会先清掉已有的处理器。
    log_file 不为空时额外写入滚动日志文件（10MB x 5），文件始终记录 DEBUG。
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter_cls = ColoredFormatter if use_colors else logging.Formatter
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    console_handler.setFormatter(formatter_cls(fmt=LOG_FORMAT, datefmt=CONSOLE_DATEFMT))
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=FILE_DATEFMT))
            root_logger.addHandler(file_handler)
        except OSError as e:
            # 日志文件不可用时只保留控制台输出
            root_logger.warning("无法创建日志文件 %s: %s", log_file, e)

    logging.getLogger(__name__).debug("日志已初始化 (控制台级别 %s, 彩色 %s)", level, use_colors)
