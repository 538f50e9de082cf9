"""
wabot - WhatsApp 机器人控制面

模块概述：
    本文件是 wabot 包的入口文件（__init__.py），定义了包的元信息。
    wabot 负责管理与 WhatsApp 桥接服务之间的连接生命周期：

    - 首次登录时的扫码配对（二维码渲染为 data URI 供网页展示）
    - 设备身份的持久化与重启后恢复
    - 入站消息分发到自动回复策略
    - 提供少量 HTTP 接口用于观察与控制（状态、二维码、日志、重置、发送）
"""

# 版本号，遵循语义化版本规范
__version__ = "0.1.0"

# CLI 输出中使用的品牌标识
__logo__ = "🤖"
