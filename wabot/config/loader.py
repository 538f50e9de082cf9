"""
配置加载工具模块 (config/loader.py)
=================================
本模块负责 wabot 配置文件的加载、保存和格式转换：
- 配置文件默认路径: ~/.wabot/config.json
- 配置文件使用 camelCase（驼峰命名），Python 内部使用 snake_case（下划线命名）
- 加载时自动将 camelCase → snake_case，保存时自动将 snake_case → camelCase
- PORT 环境变量优先级最高，覆盖 server.port
"""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from wabot.config.schema import Config


def get_config_path() -> Path:
    """获取默认配置文件路径: ~/.wabot/config.json"""
    return Path.home() / ".wabot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    从 JSON 文件加载配置，若文件不存在则返回默认配置。

    加载流程：
    1. 确定配置文件路径（传入的路径 或 默认路径 ~/.wabot/config.json）
    2. 读取 JSON 文件内容，将 camelCase 键名转换为 snake_case
    3. 构造 Config（WABOT_ 前缀的环境变量同样生效）
    4. 应用 PORT 环境变量覆盖

    参数:
        config_path: 可选的配置文件路径。为 None 时使用默认路径。

    返回:
        Config 配置对象实例
    """
    path = config_path or get_config_path()
    config: Config | None = None

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            config = Config(**convert_keys(data))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            # 配置文件损坏时降级使用默认配置，而非直接报错退出
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")

    return apply_env_overrides(config or Config())


def apply_env_overrides(config: Config) -> Config:
    """
    应用不带前缀的部署环境变量。

    目前只有 PORT：容器平台（Heroku、Railway 等）通过它指定监听端口。
    非法值会被忽略并记录警告。
    """
    port = os.environ.get("PORT")
    if port:
        try:
            config.server.port = int(port)
        except ValueError:
            logger.warning(f"Ignoring invalid PORT value: {port!r}")
    return config


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """
    将配置对象保存为 JSON 文件（camelCase 键名，带缩进格式化）。

    返回:
        写入的文件路径
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def convert_keys(data: Any) -> Any:
    """
    递归地将字典中所有 camelCase 键名转换为 snake_case。

    示例: {"restartDelayS": 2} → {"restart_delay_s": 2}
    """
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """递归地将字典中所有 snake_case 键名转换为 camelCase。"""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """
    将 camelCase 字符串转换为 snake_case。
    例: "logCapacity" → "log_capacity"
    """
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """
    将 snake_case 字符串转换为 camelCase。
    例: "restart_delay_s" → "restartDelayS"
    """
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
