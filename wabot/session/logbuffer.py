"""
日志缓冲区实现 - 线程安全、定长、新的在前的事件历史。

每条日志在写入缓冲区的同时也通过 loguru 输出到进程日志，
缓冲区内容通过 /logs 接口对外展示，格式为 "<RFC3339 时间> - <消息>"。

【Java 开发者类比】
- deque(maxlen=N) 类似于 Apache Commons 的 CircularFifoQueue
- threading.Lock 类似于 ReentrantLock（但不可重入）
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from wabot.utils.helpers import rfc3339

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class LogEntry:
    """单条日志（创建后不可变）。"""

    timestamp: datetime
    message: str

    def format(self) -> str:
        return f"{rfc3339(self.timestamp)} - {self.message}"


class LogBuffer:
    """
    定长日志环形缓冲区。

    - append()：在头部插入新日志，超出容量时静默丢弃最旧的日志
    - read_all()：返回当前内容的副本（新的在前），读取期间不受并发写入影响

    多个写入者（事件分发、配对流程、HTTP 请求处理）按获取锁的顺序串行化。
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._lock = threading.Lock()
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def append(self, message: str) -> LogEntry:
        """
        记录一条日志。

        参数:
            message: 日志文本

        返回:
            新创建的日志条目
        """
        with self._lock:
            entry = LogEntry(timestamp=datetime.now().astimezone(), message=message)
            # appendleft + maxlen：头部插入，尾部（最旧）自动淘汰
            self._entries.appendleft(entry)
        logger.info(message)
        return entry

    def read_all(self) -> list[LogEntry]:
        """返回全部日志的快照（新的在前）。"""
        with self._lock:
            return list(self._entries)

    def formatted(self) -> list[str]:
        """返回格式化后的日志文本列表（新的在前）。"""
        return [entry.format() for entry in self.read_all()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
