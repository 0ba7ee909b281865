"""
命令行工具的持久化设置（JSON 文件）
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Optional

from gxt_model import DEFAULT_HASHED_VERSION

logger = logging.getLogger(__name__)

SETTINGS_PATH = "gxt_settings.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    keep_key_names: bool = True
    text_encoding: Optional[str] = None
    hashed_version: int = DEFAULT_HASHED_VERSION
    log_level: str = "INFO"
    console_colors: bool = True
    log_file: Optional[str] = None


_FIELD_TYPES = {
    "keep_key_names": (bool,),
    "text_encoding": (str, type(None)),
    "hashed_version": (int,),
    "log_level": (str,),
    "console_colors": (bool,),
    "log_file": (str, type(None)),
}


def _valid(name, value):
    # bool 也是 int，hashed_version 不接受 true/false
    if name == "hashed_version" and isinstance(value, bool):
        return False
    if name == "log_level" and isinstance(value, str):
        return value.upper() in LOG_LEVELS
    return isinstance(value, _FIELD_TYPES[name])


def settings_from_dict(data: dict) -> Settings:
    settings = Settings()
    known = {f.name for f in fields(Settings)}
    for name, value in data.items():
        if name not in known:
            continue
        if not _valid(name, value):
            logger.warning("设置项 %s 的值无效，使用默认值: %r", name, value)
            continue
        if name == "log_level":
            value = value.upper()
        setattr(settings, name, value)
    return settings


def load_settings(path=SETTINGS_PATH) -> Settings:
    """从 JSON 文件加载设置，文件不存在或损坏时返回默认设置"""
    if not os.path.exists(path):
        return Settings()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("无法加载设置 %s: %s", path, e)
        return Settings()
    if not isinstance(data, dict):
        logger.warning("设置文件 %s 的内容不是 JSON 对象", path)
        return Settings()
    return settings_from_dict(data)


def save_settings(settings: Settings, path=SETTINGS_PATH):
    """将设置保存到 JSON 文件"""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(settings), f, indent=4, ensure_ascii=False)
