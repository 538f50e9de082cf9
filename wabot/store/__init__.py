"""
设备身份存储模块 - 让协议客户端重启后无需重新扫码。

对核心而言身份是不透明的：只关心"是否存在已配对的身份"，
以及重置时能否把所有存储文件彻底删除。
"""

from wabot.store.sqlite import SessionStore

__all__ = ["SessionStore"]
