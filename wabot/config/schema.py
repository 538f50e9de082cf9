"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 wabot 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── server   - HTTP 控制接口的监听地址和端口
├── bridge   - WhatsApp 桥接服务的 WebSocket 地址和认证令牌
├── store    - 设备身份存储（SQLite 文件路径）
└── runtime  - 运行时行为（重启延迟、自动回复策略、日志缓冲区容量）
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP 控制接口配置。"""
    host: str = "0.0.0.0"  # 监听地址（0.0.0.0 表示监听所有网卡）
    port: int = 3000  # 监听端口（可被 PORT 环境变量覆盖）


class BridgeConfig(BaseModel):
    """WhatsApp 桥接服务配置。Python 端通过 WebSocket 与 Node.js 桥接层交换 JSON 消息。"""
    url: str = "ws://localhost:3001"  # 桥接服务的 WebSocket 地址
    token: str = ""  # 桥接认证令牌（可选但推荐设置）


class StoreConfig(BaseModel):
    """设备身份存储配置。"""
    path: str = "whatsapp.db"  # SQLite 文件路径，重置时连同 -shm/-wal 一起删除

    @property
    def resolved_path(self) -> Path:
        """展开 ~ 后的存储文件路径。"""
        return Path(self.path).expanduser()


class RuntimeConfig(BaseModel):
    """运行时行为配置。"""
    restart_delay_s: float = 2.0  # 手动重置后重新启动连接前的等待时间（秒）
    responder: str = "echo"  # 自动回复策略名称：echo | silent
    log_capacity: int = Field(default=100, ge=1)  # 日志缓冲区容量


class Config(BaseSettings):
    """
    wabot 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: WABOT_
    - 嵌套分隔符: __ (双下划线)
    - 示例: WABOT_BRIDGE__URL=ws://bridge:3001 可覆盖 bridge.url

    另外 PORT 环境变量会覆盖 server.port（见 loader.apply_env_overrides）。
    """
    server: ServerConfig = Field(default_factory=ServerConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    model_config = SettingsConfigDict(
        env_prefix="WABOT_",
        env_nested_delimiter="__",
    )
