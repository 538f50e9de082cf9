"""
协议客户端基类模块 - 定义与消息网络通信的统一接口。

ProtocolClient 是 wabot 核心与外部协议实现之间的边界：
核心只依赖这里定义的接口，具体实现（bridge.BridgeClient）负责线路协议、
加密和多设备会话。测试中使用内存实现替代。

【事件投递模型】
协议客户端不回调上层代码，而是把事件放进两个有序队列：
- events：生命周期事件与入站消息，由 EventDispatcher 单一消费者排空
- 配对通道（get_pairing_channel）：配对码与配对过程中的信息事件，
  由 PairingFlow 单一消费者排空

队列中的 None 是结束标记，表示该事件流已关闭。
"""

import asyncio
from abc import ABC, abstractmethod

from wabot.protocol.events import ProtocolEvent

# 事件流结束标记
STREAM_CLOSED = None


class ProtocolClient(ABC):
    """
    协议客户端抽象基类。

    属性:
        events: 生命周期/消息事件队列
        _pairing: 当前打开的配对通道（未配对时为 None）
    """

    name: str = "base"

    def __init__(self) -> None:
        self.events: asyncio.Queue[ProtocolEvent | None] = asyncio.Queue()
        self._pairing: asyncio.Queue[ProtocolEvent | None] | None = None

    def get_pairing_channel(self) -> asyncio.Queue[ProtocolEvent | None]:
        """
        打开配对通道。

        必须在 connect() 之前调用（没有已保存身份时），
        否则连接后立即下发的第一个配对码可能会丢失。
        """
        if self._pairing is None:
            self._pairing = asyncio.Queue()
        return self._pairing

    def _emit(self, event: ProtocolEvent) -> None:
        """投递事件到生命周期/消息事件队列。"""
        self.events.put_nowait(event)

    def _emit_pairing(self, event: ProtocolEvent) -> bool:
        """投递事件到配对通道。通道未打开时返回 False。"""
        if self._pairing is None:
            return False
        self._pairing.put_nowait(event)
        return True

    def _close_pairing(self) -> None:
        """关闭配对通道（配对成功或连接失败时调用）。"""
        if self._pairing is not None:
            self._pairing.put_nowait(STREAM_CLOSED)
            self._pairing = None

    def _close_events(self) -> None:
        self.events.put_nowait(STREAM_CLOSED)

    @abstractmethod
    async def connect(self) -> None:
        """
        建立连接。

        异常:
            ConnectError: 连接失败
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """断开连接并关闭所有事件流。重复调用是安全的。"""

    @abstractmethod
    async def send_text(self, chat: str, text: str) -> None:
        """
        发送文本消息。

        异常:
            SendError: 未连接或发送失败
        """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """当前是否已连接。"""
