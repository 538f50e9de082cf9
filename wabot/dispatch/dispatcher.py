"""
事件分发器 - 协议客户端所有异步事件的唯一入口。

分发规则（按事件类型）：
- Connected      → 记录日志，状态迁移到 connected
- Disconnected   → 记录日志，状态迁移到 disconnected
- LoggedOut      → 记录日志，状态迁移到 logged_out
- InboundMessage → 忽略自己发出的消息和空文本；否则记录日志 → 计算回复 →
                   发回原会话 → 记录发送结果
- OtherEvent     → 记录日志
- PairingCode    → 配对码应走配对通道，这里只记录调试日志

副作用只限于：会话状态更新、日志追加，以及每条合格入站消息的一次发送。
发送失败不会改变连接状态，也不会抛出到事件源。
"""

import asyncio

from loguru import logger

from wabot.dispatch.responder import Responder, echo_reply
from wabot.errors import SendError
from wabot.protocol.base import ProtocolClient
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
)
from wabot.session.logbuffer import LogBuffer
from wabot.session.state import ConnectionStatus, SessionState


class EventDispatcher:
    """
    事件分发器。

    属性:
        session: 共享会话状态
        logs: 共享日志缓冲区
        client: 协议客户端（用于发送回复）
        responder: 自动回复策略
    """

    def __init__(
        self,
        session: SessionState,
        logs: LogBuffer,
        client: ProtocolClient,
        responder: Responder = echo_reply,
    ):
        self.session = session
        self.logs = logs
        self.client = client
        self.responder = responder
        self._handlers = build_dispatch_table({
            EventKind.CONNECTED: self._on_connected,
            EventKind.DISCONNECTED: self._on_disconnected,
            EventKind.LOGGED_OUT: self._on_logged_out,
            EventKind.MESSAGE: self._on_message,
            EventKind.PAIRING_CODE: self._on_pairing_code,
            EventKind.OTHER: self._on_other,
        })

    async def run(self, queue: asyncio.Queue[ProtocolEvent | None]) -> None:
        """
        单一消费者循环：排空事件队列直到收到结束标记。

        单个事件处理中的意外异常只记录日志，不会终止循环。
        """
        while True:
            event = await queue.get()
            if event is None:
                break
            try:
                await self.handle(event)
            except Exception as e:
                logger.exception(f"Error dispatching {event.kind.value} event: {e}")
        logger.debug("Event stream closed")

    async def handle(self, event: ProtocolEvent) -> None:
        await self._handlers[event.kind](event)

    async def _on_connected(self, event: Connected) -> None:
        self.logs.append("Connected to WhatsApp!")
        self.session.set_status(ConnectionStatus.CONNECTED)

    async def _on_disconnected(self, event: Disconnected) -> None:
        self.logs.append("Disconnected from WhatsApp")
        self.session.set_status(ConnectionStatus.DISCONNECTED)

    async def _on_logged_out(self, event: LoggedOut) -> None:
        self.logs.append("Logged out from WhatsApp")
        self.session.set_status(ConnectionStatus.LOGGED_OUT)

    async def _on_message(self, event: InboundMessage) -> None:
        # 不回复自己发出的消息，否则会与自己无限对话
        if event.is_from_self:
            return

        text = event.text
        if not text:
            return

        self.logs.append(f"Message received from {event.sender}: {text}")

        reply = self.responder(text)
        if not reply:
            logger.debug(f"Responder produced no reply for {event.sender}")
            return

        try:
            await self.client.send_text(event.chat, reply)
        except SendError as e:
            self.logs.append(f"Error sending reply to {event.sender}: {e}")
        else:
            self.logs.append(f"Reply sent to {event.sender}")

    async def _on_pairing_code(self, event: PairingCode) -> None:
        logger.debug("Pairing code delivered on the event stream, ignoring")

    async def _on_other(self, event: OtherEvent) -> None:
        detail = f" ({event.detail})" if event.detail else ""
        self.logs.append(f"Event: {event.name}{detail}")
