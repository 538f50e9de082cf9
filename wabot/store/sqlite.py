"""
SQLite 设备身份存储。

存储格式：单表单行
    device(id=1, jid TEXT, paired_at TEXT)

数据库使用 WAL 日志模式，因此磁盘上除主文件外还可能有 -shm、-wal
两个辅助文件；wipe() 会把三个文件一起删除。
"""

import sqlite3
from datetime import datetime
from pathlib import Path

from loguru import logger

from wabot.errors import InitializationError
from wabot.utils.helpers import ensure_dir

_SCHEMA = """
CREATE TABLE IF NOT EXISTS device (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    jid TEXT NOT NULL,
    paired_at TEXT NOT NULL
)
"""

# WAL 模式下与主文件相关联的辅助文件后缀
AUX_SUFFIXES = ("-shm", "-wal")


class SessionStore:
    """
    设备身份存储。

    属性:
        path: 数据库文件路径
        _conn: SQLite 连接（open() 之后有效）
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._conn: sqlite3.Connection | None = None

    def open(self) -> "SessionStore":
        """
        打开（必要时创建）数据库。

        异常:
            InitializationError: 目录不可写、文件损坏等
        """
        if self._conn is not None:
            return self
        try:
            ensure_dir(self.path.parent)
            # 协议客户端在事件循环中写入，HTTP 线程池中的 /status 之类只读访问
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_SCHEMA)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise InitializationError(f"cannot open session store {self.path}: {e}") from e
        self._conn = conn
        return self

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise InitializationError("session store is not open")
        return self._conn

    def get_identity(self) -> str | None:
        """返回已保存的设备 jid，没有时返回 None。"""
        try:
            row = self._require().execute("SELECT jid FROM device WHERE id = 1").fetchone()
        except sqlite3.Error as e:
            raise InitializationError(f"cannot read device from {self.path}: {e}") from e
        return row[0] if row else None

    def has_identity(self) -> bool:
        return self.get_identity() is not None

    def save_identity(self, jid: str) -> None:
        """保存（覆盖）设备 jid。"""
        conn = self._require()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO device (id, jid, paired_at) VALUES (1, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET jid = excluded.jid, paired_at = excluded.paired_at",
                    (jid, datetime.now().isoformat()),
                )
        except sqlite3.Error as e:
            raise InitializationError(f"cannot save device to {self.path}: {e}") from e
        logger.info(f"Saved device identity {jid}")

    def clear_identity(self) -> None:
        """
        删除已保存的设备 jid（设备在手机端被移除后调用），下次启动走扫码配对流程。

        与 wipe() 不同，数据库文件保留，连接保持打开。
        """
        conn = self._require()
        try:
            with conn:
                conn.execute("DELETE FROM device WHERE id = 1")
        except sqlite3.Error as e:
            raise InitializationError(f"cannot clear device in {self.path}: {e}") from e
        logger.info("Cleared device identity")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def files(self) -> list[Path]:
        """主文件及 WAL 辅助文件的路径（不论是否存在）。"""
        return [self.path] + [self.path.with_name(self.path.name + suffix) for suffix in AUX_SUFFIXES]

    def wipe(self) -> list[Path]:
        """
        关闭连接并删除所有存储文件，强制下次启动走扫码配对流程。

        返回:
            实际删除的文件列表（不存在的文件被忽略）
        """
        self.close()
        removed = []
        for path in self.files():
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            removed.append(path)
        return removed
