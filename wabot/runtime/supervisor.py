"""
运行时编排 - 启动流程、手动重置与后台任务的统一管理。

启动流程（后台任务，每次启动/重置后各运行一次）：
1. 打开设备身份存储
2. 创建协议客户端，并启动事件分发器消费其事件流
3. 没有已保存身份 → 打开配对通道 → 连接 → 运行配对流程直到配对通道关闭
   已有身份 → 直接连接

所有后台任务都持有显式句柄：
- _startup_task：启动流程
- _dispatch_task：事件分发器消费循环
- _restart_task：重置后的延迟重启（可取消，连续两次重置时后一次取代前一次）

后台任务中的失败只记录到日志缓冲区并终止本次尝试，不会自动重试，
恢复只能通过手动重置或重启进程。
"""

import asyncio
from typing import Callable

from loguru import logger

from wabot.config.schema import Config
from wabot.dispatch.dispatcher import EventDispatcher
from wabot.dispatch.responder import Responder, get_responder
from wabot.errors import ConnectError, InitializationError, NotInitializedError
from wabot.pairing.flow import PairingFlow
from wabot.pairing.renderer import CodeRenderer, QRCodeRenderer
from wabot.protocol.base import ProtocolClient
from wabot.protocol.bridge import BridgeClient
from wabot.session.logbuffer import LogBuffer
from wabot.session.state import SessionState
from wabot.store.sqlite import SessionStore

ClientFactory = Callable[[Config, SessionStore], ProtocolClient]
StoreFactory = Callable[[Config], SessionStore]


def default_client_factory(config: Config, store: SessionStore) -> ProtocolClient:
    return BridgeClient(config.bridge, store)


def default_store_factory(config: Config) -> SessionStore:
    return SessionStore(config.store.resolved_path)


class BotRuntime:
    """
    机器人运行时 - 持有共享状态并编排后台任务。

    属性:
        config: 全局配置
        session: 共享会话状态
        logs: 共享日志缓冲区
        renderer: 配对码渲染器
        responder: 自动回复策略
    """

    def __init__(
        self,
        config: Config,
        session: SessionState | None = None,
        logs: LogBuffer | None = None,
        renderer: CodeRenderer | None = None,
        responder: Responder | None = None,
        client_factory: ClientFactory = default_client_factory,
        store_factory: StoreFactory = default_store_factory,
    ):
        self.config = config
        self.session = session or SessionState()
        self.logs = logs or LogBuffer(config.runtime.log_capacity)
        self.renderer = renderer or QRCodeRenderer()
        self.responder = responder or get_responder(config.runtime.responder)
        self.client_factory = client_factory
        self.store_factory = store_factory

        self._client: ProtocolClient | None = None
        self._store: SessionStore | None = None
        self._startup_task: asyncio.Task | None = None
        self._dispatch_task: asyncio.Task | None = None
        self._restart_task: asyncio.Task | None = None
        # reset/stop 互斥：前一次重置完成（重启任务已登记）后，后一次才能取代它
        self._lifecycle_lock = asyncio.Lock()

    @property
    def client(self) -> ProtocolClient | None:
        """当前协议客户端，启动流程尚未创建客户端时为 None。"""
        return self._client

    @property
    def startup_task(self) -> asyncio.Task | None:
        return self._startup_task

    @property
    def restart_task(self) -> asyncio.Task | None:
        return self._restart_task

    def start(self) -> asyncio.Task:
        """在后台调度启动流程，返回任务句柄。"""
        self._startup_task = asyncio.create_task(self._run_startup())
        return self._startup_task

    async def _run_startup(self) -> None:
        try:
            await self._startup()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Startup sequence crashed")
            self.logs.append(f"Startup failed: {e}")

    async def _startup(self) -> None:
        self.logs.append("Starting WhatsApp connection...")

        # 先登记再打开：打开期间被取消时，stop() 仍能关闭它
        store = self._store = self.store_factory(self.config)
        try:
            # SQLite 调用是阻塞 I/O，放到线程中执行
            has_identity = await asyncio.to_thread(lambda: store.open().has_identity())
        except InitializationError as e:
            self.logs.append(f"Failed to open session store: {e}")
            return

        client = self.client_factory(self.config, store)
        self._client = client
        dispatcher = EventDispatcher(self.session, self.logs, client, self.responder)
        self._dispatch_task = asyncio.create_task(dispatcher.run(client.events))

        if has_identity:
            self.logs.append("Session found, connecting...")
            await self._connect(client)
            return

        self.logs.append("No session found, generating QR code...")
        # 必须在 connect() 之前打开配对通道，否则可能丢失第一个配对码
        channel = client.get_pairing_channel()
        if not await self._connect(client):
            return
        await PairingFlow(self.session, self.logs, self.renderer).run(channel)

    async def _connect(self, client: ProtocolClient) -> bool:
        try:
            await client.connect()
        except ConnectError as e:
            self.logs.append(f"Failed to connect: {e}")
            return False
        return True

    async def reset(self, delay: float | None = None) -> None:
        """
        手动重置：断开连接、删除身份、清空状态，并在短暂延迟后重新启动。

        状态在停止后台任务后立即回到 disconnected，不等待网络断开完成。
        重启是"发射后不管"的延迟任务；再次重置会取消尚未执行的重启。
        并发的重置按到达顺序串行执行，最终只有最后一次重置的重启会生效。
        删除存储文件失败只记录日志，重启照常调度。

        参数:
            delay: 重启延迟秒数，为 None 时使用 runtime.restart_delay_s
        """
        self.logs.append("Manual reset requested...")
        if delay is None:
            delay = self.config.runtime.restart_delay_s

        async with self._lifecycle_lock:
            self._cancel_restart()
            await self._cancel_tasks()
            self.session.reset()

            client, self._client = self._client, None
            if client is not None:
                try:
                    await client.disconnect()
                except Exception as e:
                    self.logs.append(f"Error disconnecting client: {e}")

            store, self._store = self._store, None
            store = store or self.store_factory(self.config)
            try:
                removed = await asyncio.to_thread(store.wipe)
            except OSError as e:
                self.logs.append(f"Failed to remove session files: {e}")
            else:
                if removed:
                    logger.info(f"Removed session files: {', '.join(str(p) for p in removed)}")

            self._restart_task = asyncio.create_task(self._delayed_restart(delay))

    async def _delayed_restart(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # 已被后一次重置或 stop() 取代的重启不再执行
        if asyncio.current_task() is not self._restart_task:
            return
        self.start()

    def _cancel_restart(self) -> None:
        if self._restart_task is not None and not self._restart_task.done():
            self._restart_task.cancel()
            logger.debug("Superseded pending restart")
        self._restart_task = None

    async def _cancel_tasks(self) -> None:
        """取消启动流程与事件分发任务，并等待它们结束。"""
        tasks = [t for t in (self._startup_task, self._dispatch_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._startup_task = None
        self._dispatch_task = None

    async def stop(self) -> None:
        """停止所有后台任务、断开客户端、关闭身份存储。"""
        async with self._lifecycle_lock:
            self._cancel_restart()
            await self._cancel_tasks()

            client, self._client = self._client, None
            if client is not None:
                try:
                    await client.disconnect()
                except Exception as e:
                    logger.error(f"Error disconnecting client: {e}")

            if self._store is not None:
                self._store.close()
                self._store = None

    async def send(self, to: str, text: str) -> None:
        """
        出站发送扩展点。

        目前只校验客户端是否存在，不做实际投递：会话 ID 解析与消息类型支持
        需要先明确定义，再接入 ProtocolClient.send_text。

        异常:
            NotInitializedError: 客户端尚未创建
        """
        if self._client is None:
            raise NotInitializedError("Bot not initialized")
        self.logs.append(f"Send request for {to} accepted (outbound delivery not implemented)")
