"""
自动回复策略 - 根据入站文本计算回复文本。

策略就是一个纯函数 text -> reply_text，可以在不修改 EventDispatcher 的情况下替换
（转发、命令解析、静默等）。返回空字符串表示不回复。
"""

from typing import Callable

Responder = Callable[[str], str]

ECHO_TEMPLATE = 'Hello! I am an AI assistant. I received your message: "{text}"'


def echo_reply(text: str) -> str:
    """默认策略：固定模板的确认回复，内嵌原始文本。"""
    return ECHO_TEMPLATE.format(text=text)


def silent_reply(text: str) -> str:
    """静默策略：从不回复（只记录收到的消息）。"""
    return ""


RESPONDERS: dict[str, Responder] = {
    "echo": echo_reply,
    "silent": silent_reply,
}


def get_responder(name: str) -> Responder:
    """
    按名称查找回复策略。

    异常:
        ValueError: 未知的策略名称
    """
    try:
        return RESPONDERS[name]
    except KeyError:
        raise ValueError(f"Unknown responder {name!r}, expected one of: {', '.join(RESPONDERS)}") from None
