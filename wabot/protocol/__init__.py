"""
协议模块 - 与 WhatsApp 网络通信的外部协议客户端。

- events：封闭的事件类型联合及文本提取
- base：ProtocolClient 抽象接口
- bridge：基于 Node.js 桥接服务的 WebSocket 实现
"""

from wabot.protocol.base import ProtocolClient
from wabot.protocol.bridge import BridgeClient
from wabot.protocol.events import (
    Connected,
    Disconnected,
    EventKind,
    InboundMessage,
    LoggedOut,
    OtherEvent,
    PairingCode,
    ProtocolEvent,
    build_dispatch_table,
    extract_text,
)

__all__ = [
    "ProtocolClient",
    "BridgeClient",
    "EventKind",
    "ProtocolEvent",
    "Connected",
    "Disconnected",
    "LoggedOut",
    "InboundMessage",
    "PairingCode",
    "OtherEvent",
    "build_dispatch_table",
    "extract_text",
]
