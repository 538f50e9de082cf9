"""
WhatsApp 桥接客户端 - 基于 Node.js 桥接服务的 ProtocolClient 实现。

架构特点：
- 桥接模式：Python <-> WebSocket <-> Node.js Bridge <-> WhatsApp Web
- Node.js 桥接负责 WhatsApp Web 协议、加密与多设备会话
- Python 端只做 JSON 消息交换，并把桥接消息翻译为协议事件

消息协议（Bridge -> Python）：
- qr：新的配对码             {"type": "qr", "qr": "<code>"}
- status：连接状态更新        {"type": "status", "status": "connected", "jid": "..."}
- message：入站消息           {"type": "message", "id", "sender", "chat", "fromMe", "timestamp", "message"}
- pairing：配对过程信息事件   {"type": "pairing", "event": "timeout"}
- error：桥接服务报告的错误   {"type": "error", "error": "..."}

消息协议（Python -> Bridge）：
- auth：认证令牌              {"type": "auth", "token": "..."}
- send：发送文本消息          {"type": "send", "to": "<chat>", "text": "..."}

与旧版渠道实现不同，这里不做断线自动重连：连接关闭时发出 Disconnected 事件，
是否重连由上层（手动重置或进程重启）决定。
"""

import asyncio
import json
from typing import Any

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from wabot.config.schema import BridgeConfig
from wabot.errors import ConnectError, InitializationError, SendError
from wabot.protocol.base import ProtocolClient
from wabot.protocol.events import (
    Connected,
    Disconnected,
    InboundMessage,
    LoggedOut,
    OtherEvent,
    PairingCode,
)
from wabot.store.sqlite import SessionStore
from wabot.utils.helpers import truncate_string


class BridgeClient(ProtocolClient):
    """
    WhatsApp 桥接客户端。

    属性:
        config: 桥接配置（url、token）
        store: 设备身份存储，配对成功后在这里保存 jid
        _ws: WebSocket 连接对象
        _reader: 读取循环任务
        _connected: 协议层是否已连接（收到 status=connected）
        _closing: 是否正在主动断开（主动断开不再发出 Disconnected）
    """

    name = "whatsapp"

    def __init__(self, config: BridgeConfig, store: SessionStore):
        super().__init__()
        self.config = config
        self.store = store
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._connected = False
        self._closing = False

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._connected

    async def connect(self) -> None:
        """
        连接桥接服务并启动读取循环。

        流程：
        1. 建立 WebSocket 连接
        2. 发送认证令牌（如果配置了）
        3. 启动后台读取任务，桥接消息从此开始转换为事件

        异常:
            ConnectError: 桥接服务不可达或握手失败
        """
        logger.info(f"Connecting to WhatsApp bridge at {self.config.url}...")
        self._closing = False
        try:
            ws = await websockets.connect(self.config.url)
            if self.config.token:
                await ws.send(json.dumps({"type": "auth", "token": self.config.token}))
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self._close_pairing()
            raise ConnectError(f"cannot reach bridge at {self.config.url}: {e}") from e

        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))
        logger.info("Connected to WhatsApp bridge")

    async def disconnect(self) -> None:
        """主动断开：关闭连接、取消读取任务、关闭全部事件流。"""
        self._closing = True
        self._connected = False

        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except WebSocketException as e:
                logger.warning(f"Error closing bridge connection: {e}")

        if self._reader is not None and self._reader is not asyncio.current_task():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._reader = None

        self._close_pairing()
        self._close_events()

    async def send_text(self, chat: str, text: str) -> None:
        """
        通过桥接服务发送文本消息。

        异常:
            SendError: 未连接或写入失败
        """
        if not self.is_connected:
            raise SendError("WhatsApp bridge not connected")

        payload = {"type": "send", "to": chat, "text": text}
        try:
            await self._ws.send(json.dumps(payload))
        except (WebSocketException, OSError) as e:
            raise SendError(str(e)) from e

    async def _read_loop(self, ws: Any) -> None:
        """持续读取桥接消息直到连接关闭。单条消息处理失败不会中断循环。"""
        try:
            async for raw in ws:
                try:
                    self.handle_frame(raw)
                except Exception as e:
                    logger.error(f"Error handling bridge message: {e}")
        except ConnectionClosed as e:
            logger.warning(f"WhatsApp bridge connection closed: {e}")
        finally:
            self._connected = False
            self._close_pairing()
            if not self._closing:
                self._ws = None
                self._emit(Disconnected(reason="bridge connection closed"))

    def handle_frame(self, raw: str | bytes) -> None:
        """
        处理从桥接服务收到的一帧消息，翻译为协议事件。

        参数:
            raw: 原始 JSON 文本
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {truncate_string(raw)}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Unexpected frame from bridge: {truncate_string(raw)}")
            return

        msg_type = data.get("type")

        if msg_type == "qr":
            code = data.get("qr") or ""
            if not self._emit_pairing(PairingCode(code=code)):
                # 没有打开配对通道（已有身份却被要求扫码），交给事件分发记录
                self._emit(OtherEvent(name="qr", detail="pairing code received without pairing channel"))

        elif msg_type == "status":
            self._handle_status(data)

        elif msg_type == "message":
            sender = data.get("sender", "")
            self._emit(InboundMessage(
                sender=sender,
                chat=data.get("chat") or sender,  # 私聊时回复地址就是发送者
                message=data.get("message") or {},
                is_from_self=bool(data.get("fromMe", False)),
                message_id=data.get("id"),
                timestamp=data.get("timestamp"),
            ))

        elif msg_type == "pairing":
            event = OtherEvent(name=str(data.get("event", "unknown")), detail=str(data.get("detail", "")))
            if not self._emit_pairing(event):
                self._emit(event)

        elif msg_type == "error":
            logger.error(f"WhatsApp bridge error: {data.get('error')}")

        else:
            logger.debug(f"Ignoring bridge frame type {msg_type!r}")

    def _handle_status(self, data: dict[str, Any]) -> None:
        status = data.get("status")

        if status == "connected":
            self._connected = True
            jid = data.get("jid")
            if jid:
                try:
                    self.store.save_identity(jid)
                except InitializationError as e:
                    logger.error(f"Failed to save device identity: {e}")
            self._emit(Connected(jid=jid))
            # 配对完成，配对通道随之关闭
            self._close_pairing()
        elif status == "disconnected":
            self._connected = False
            self._emit(Disconnected(reason=str(data.get("reason", ""))))
        elif status == "logged_out":
            self._connected = False
            # 身份已在手机端失效，保留它会让下次启动跳过扫码
            try:
                self.store.clear_identity()
            except InitializationError as e:
                logger.error(f"Failed to clear device identity: {e}")
            self._emit(LoggedOut(reason=str(data.get("reason", ""))))
        else:
            logger.info(f"WhatsApp status: {status}")
