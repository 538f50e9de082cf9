"""
协议事件类型定义模块 - 桥接客户端向上层发出的所有事件。

事件是一个封闭的标签联合（tagged union），每个事件类都带有类级别的 kind 标签：

    Connected | Disconnected | LoggedOut | InboundMessage | PairingCode | OtherEvent

消费者（EventDispatcher、PairingFlow）通过 build_dispatch_table() 为每种
EventKind 注册处理函数，注册表在构造时校验是否覆盖全部事件类型，
新增事件类型而忘记处理会在启动时立即失败，而不是在运行时静默丢弃。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Mapping


class EventKind(str, Enum):
    """事件类型标签。"""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    LOGGED_OUT = "logged_out"
    MESSAGE = "message"
    PAIRING_CODE = "pairing_code"
    OTHER = "other"


@dataclass(frozen=True)
class Connected:
    """已连接（首次配对成功或使用已有身份重连成功）。"""

    kind: ClassVar[EventKind] = EventKind.CONNECTED
    jid: str | None = None  # 本机设备 ID（配对成功后由桥接层告知）


@dataclass(frozen=True)
class Disconnected:
    kind: ClassVar[EventKind] = EventKind.DISCONNECTED
    reason: str = ""


@dataclass(frozen=True)
class LoggedOut:
    """设备在手机端被移除，身份失效，需要重置后重新扫码。"""

    kind: ClassVar[EventKind] = EventKind.LOGGED_OUT
    reason: str = ""


@dataclass(frozen=True)
class PairingCode:
    """一个新的配对码（协议侧会周期性轮换）。"""

    kind: ClassVar[EventKind] = EventKind.PAIRING_CODE
    code: str


@dataclass(frozen=True)
class OtherEvent:
    """协议层的其他信息性事件（如配对超时、成功等），只记录日志，不触发状态变化。"""

    kind: ClassVar[EventKind] = EventKind.OTHER
    name: str
    detail: str = ""


@dataclass(frozen=True)
class InboundMessage:
    """
    入站消息。

    属性:
        sender: 发送者 ID（如 "12345@s.whatsapp.net"）
        chat: 会话 ID，回复发往这里（私聊时与 sender 相同，群聊时为群 ID）
        message: 桥接层转发的原始消息体（WhatsApp Message 结构的 JSON 形式）
        is_from_self: 是否为本机账号自己发出的消息
        message_id: 消息 ID
        timestamp: 消息时间戳（Unix 秒）
    """

    kind: ClassVar[EventKind] = EventKind.MESSAGE
    sender: str
    chat: str
    message: dict[str, Any] = field(default_factory=dict)
    is_from_self: bool = False
    message_id: str | None = None
    timestamp: int | None = None

    @property
    def text(self) -> str:
        return extract_text(self.message)


ProtocolEvent = Connected | Disconnected | LoggedOut | InboundMessage | PairingCode | OtherEvent

EventHandler = Callable[[Any], Awaitable[None]]


def extract_text(message: Any) -> str:
    """
    从消息体中提取文本内容。

    支持两种文本表示：
    - 普通文本：{"conversation": "hi"}
    - 扩展文本（带引用、链接预览等）：{"extendedTextMessage": {"text": "hi"}}

    其他类型（图片、语音、贴纸等）或格式异常一律返回空字符串。
    """
    if not isinstance(message, dict):
        return ""

    conversation = message.get("conversation")
    if isinstance(conversation, str) and conversation:
        return conversation

    extended = message.get("extendedTextMessage")
    if isinstance(extended, dict):
        text = extended.get("text")
        if isinstance(text, str):
            return text

    return ""


def build_dispatch_table(handlers: Mapping[EventKind, EventHandler]) -> dict[EventKind, EventHandler]:
    """
    构造事件分发表，并校验它覆盖了全部事件类型。

    异常:
        ValueError: 有事件类型缺少处理函数
    """
    missing = [kind.value for kind in EventKind if kind not in handlers]
    if missing:
        raise ValueError(f"Missing handlers for event kinds: {', '.join(missing)}")
    return dict(handlers)
