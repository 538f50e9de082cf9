"""
会话状态机实现模块 - 连接状态与配对二维码的唯一数据源。

状态迁移图：
    disconnected ──► scanning ──► connected ──► logged_out
         │                            ▲
         └────────────────────────────┘   （已有身份时直接重连）
    任意状态 ──► disconnected              （断线或手动重置）

不变式：pairing_artifact 非空 ⇒ status == scanning。
迁移到 scanning 以外的任何状态都会清空二维码。

【并发模型】
SessionState 持有一把 threading.Lock，所有读写只在锁内完成，
锁内不做任何 I/O，也不跨越 await。事件循环中的协程、uvicorn 线程池中的
请求处理函数、以及 asyncio.to_thread 中的渲染任务都可以安全地访问。
"""

import threading
from dataclasses import dataclass
from enum import Enum

from loguru import logger


class ConnectionStatus(str, Enum):
    """连接状态枚举。值即对外暴露的字符串（/qr、/health 直接返回）。"""

    DISCONNECTED = "disconnected"
    SCANNING = "scanning"
    CONNECTED = "connected"
    LOGGED_OUT = "logged_out"


# 合法迁移表（不含自迁移，任意状态 → disconnected 单独处理）
_TRANSITIONS: dict[ConnectionStatus, frozenset[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: frozenset({ConnectionStatus.SCANNING, ConnectionStatus.CONNECTED}),
    ConnectionStatus.SCANNING: frozenset({ConnectionStatus.CONNECTED}),
    ConnectionStatus.CONNECTED: frozenset({ConnectionStatus.LOGGED_OUT}),
    ConnectionStatus.LOGGED_OUT: frozenset(),
}


def is_legal_transition(current: ConnectionStatus, new: ConnectionStatus) -> bool:
    """判断 current → new 是否为合法迁移。"""
    if new is ConnectionStatus.DISCONNECTED or new is current:
        return True
    return new in _TRANSITIONS[current]


@dataclass(frozen=True)
class SessionSnapshot:
    """
    某一时刻 (status, pairing_artifact) 的一致性快照。

    属性:
        status: 连接状态
        pairing_artifact: 当前二维码的 data URI，仅 scanning 状态下可能非空
    """

    status: ConnectionStatus
    pairing_artifact: str | None = None

    @property
    def qr(self) -> str | None:
        """对外展示用的二维码：只有在 scanning 状态下才返回。"""
        if self.status is ConnectionStatus.SCANNING and self.pairing_artifact:
            return self.pairing_artifact
        return None


class SessionState:
    """
    会话状态机 - 由所有组件共享的连接状态记录。

    写入者：
    - EventDispatcher：协议层生命周期事件（connected/disconnected/logged_out）
    - PairingFlow：进入 scanning 状态、更新二维码
    - BotRuntime.reset：手动重置

    读取者：
    - ControlAPI 的各个 HTTP 接口（通过 snapshot() 获取一致性快照）
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = ConnectionStatus.DISCONNECTED
        self._artifact: str | None = None

    def set_status(self, new_status: ConnectionStatus) -> bool:
        """
        原子地迁移到新状态。

        非 scanning 状态会同时清空二维码。非法迁移不会修改状态，
        只记录警告。

        参数:
            new_status: 目标状态

        返回:
            True 表示迁移已生效，False 表示迁移被拒绝
        """
        new_status = ConnectionStatus(new_status)
        with self._lock:
            current = self._status
            if not is_legal_transition(current, new_status):
                accepted = False
            else:
                accepted = True
                self._status = new_status
                if new_status is not ConnectionStatus.SCANNING:
                    self._artifact = None

        if not accepted:
            logger.warning(f"Rejected status transition {current.value} -> {new_status.value}")
        return accepted

    def set_pairing_artifact(self, payload: str) -> bool:
        """
        原子地更新当前二维码。

        只在 scanning 状态下生效；其他状态下调用说明配对码与连接事件
        发生了竞争（例如扫码成功后旧码才渲染完成），此时忽略并记录警告。
        """
        with self._lock:
            status = self._status
            if status is ConnectionStatus.SCANNING:
                self._artifact = payload
                return True

        logger.warning(f"Ignoring pairing artifact while status is {status.value}")
        return False

    def snapshot(self) -> SessionSnapshot:
        """原子地读取 (status, pairing_artifact)。"""
        with self._lock:
            return SessionSnapshot(status=self._status, pairing_artifact=self._artifact)

    def reset(self) -> None:
        """手动重置：无论当前处于什么状态，都回到 disconnected 并清空二维码。"""
        with self._lock:
            self._status = ConnectionStatus.DISCONNECTED
            self._artifact = None

    @property
    def status(self) -> ConnectionStatus:
        return self.snapshot().status
