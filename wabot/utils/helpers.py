"""
工具函数集合 - wabot 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir
- 时间工具：rfc3339
- 字符串工具：truncate_string
"""

from datetime import datetime
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def rfc3339(moment: datetime | None = None) -> str:
    """
    将时间格式化为 RFC 3339 字符串（秒级精度，带时区偏移）。

    示例: 2024-01-02T15:04:05+08:00

    参数:
        moment: 要格式化的时间，为 None 时使用当前本地时间。
            不带时区信息的时间按本地时区处理。
    """
    moment = moment or datetime.now()
    return moment.astimezone().isoformat(timespec="seconds")


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """截断字符串到指定最大长度（包含后缀），超出时添加后缀。"""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix
