"""
运行时模块 - 启动、重置、停止等生命周期编排。
"""

from wabot.runtime.supervisor import BotRuntime, default_client_factory, default_store_factory

__all__ = ["BotRuntime", "default_client_factory", "default_store_factory"]
