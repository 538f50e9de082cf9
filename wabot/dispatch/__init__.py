"""
事件分发模块 - 把协议事件翻译为状态变化与自动回复。

【消息流向】
  协议客户端 → events 队列 → EventDispatcher → SessionState / LogBuffer
                                            └→ Responder → ProtocolClient.send_text
"""

from wabot.dispatch.dispatcher import EventDispatcher
from wabot.dispatch.responder import Responder, echo_reply, get_responder, silent_reply

__all__ = ["EventDispatcher", "Responder", "echo_reply", "silent_reply", "get_responder"]
