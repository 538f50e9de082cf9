"""
工具函数模块 - 提供 wabot 项目全局通用的辅助函数。

本模块包含：
- ensure_dir：确保目录存在
- rfc3339：时间格式化
- truncate_string：字符串截断
"""

from wabot.utils.helpers import ensure_dir, rfc3339, truncate_string

__all__ = ["ensure_dir", "rfc3339", "truncate_string"]
