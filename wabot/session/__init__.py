"""
会话状态模块 - 连接状态机与日志缓冲区。

本模块中的两个对象是整个进程唯一跨执行上下文共享的可变状态：
- SessionState：连接状态 + 当前配对二维码（同一把锁保护，读写原子）
- LogBuffer：最近 100 条事件日志（新的在前）

二者在进程启动时各创建一次，以引用方式传给所有需要的组件，
不使用模块级全局变量。
"""

from wabot.session.logbuffer import LogBuffer, LogEntry
from wabot.session.state import ConnectionStatus, SessionSnapshot, SessionState

__all__ = ["ConnectionStatus", "SessionSnapshot", "SessionState", "LogBuffer", "LogEntry"]
