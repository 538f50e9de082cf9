"""
扫码配对流程 - 消费协议客户端的配对通道，发布当前二维码。

只在没有已保存身份时运行。对于配对通道中的每个事件：
- 配对码：记录日志 → 进入 scanning 状态 → 渲染二维码 → 更新二维码
  渲染失败时记录错误并跳过这个码（协议侧会定期轮换新的码）
- 其他信息事件：只记录日志，不改变状态

配对通道关闭（配对成功或连接失败）时流程自然结束。
"""

import asyncio

from loguru import logger

from wabot.errors import RenderError
from wabot.pairing.renderer import CodeRenderer
from wabot.protocol.events import EventKind, OtherEvent, PairingCode, ProtocolEvent, build_dispatch_table
from wabot.session.logbuffer import LogBuffer
from wabot.session.state import ConnectionStatus, SessionState


class PairingFlow:
    """
    配对流程。

    属性:
        session: 共享会话状态
        logs: 共享日志缓冲区
        renderer: 配对码渲染器
        codes_seen: 已处理的配对码数量
    """

    def __init__(self, session: SessionState, logs: LogBuffer, renderer: CodeRenderer):
        self.session = session
        self.logs = logs
        self.renderer = renderer
        self.codes_seen = 0
        self._handlers = build_dispatch_table({
            EventKind.PAIRING_CODE: self._on_code,
            EventKind.OTHER: self._on_other,
            EventKind.CONNECTED: self._on_unexpected,
            EventKind.DISCONNECTED: self._on_unexpected,
            EventKind.LOGGED_OUT: self._on_unexpected,
            EventKind.MESSAGE: self._on_unexpected,
        })

    async def run(self, channel: asyncio.Queue[ProtocolEvent | None]) -> int:
        """
        排空配对通道直到收到结束标记。

        返回:
            本次流程处理的配对码数量
        """
        while True:
            event = await channel.get()
            if event is None:
                break
            await self.handle(event)
        logger.debug(f"Pairing channel closed after {self.codes_seen} code(s)")
        return self.codes_seen

    async def handle(self, event: ProtocolEvent) -> None:
        await self._handlers[event.kind](event)

    async def _on_code(self, event: PairingCode) -> None:
        self.codes_seen += 1
        self.logs.append("New pairing code received - scan the QR code with WhatsApp")
        self.session.set_status(ConnectionStatus.SCANNING)

        # 渲染是 CPU 密集操作，放到线程中执行，不阻塞事件循环
        try:
            payload = await asyncio.to_thread(self.renderer.render, event.code)
        except RenderError as e:
            self.logs.append(f"Failed to generate QR image: {e}")
            return

        self.session.set_pairing_artifact(payload)

    async def _on_other(self, event: OtherEvent) -> None:
        self.logs.append(f"QR event: {event.name}")

    async def _on_unexpected(self, event: ProtocolEvent) -> None:
        logger.warning(f"Unexpected {event.kind.value} event on pairing channel")
