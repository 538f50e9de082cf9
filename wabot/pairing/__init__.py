"""
扫码配对模块 - 把协议侧的配对码流转换为可展示的二维码。

- renderer：配对码 → PNG data URI
- flow：消费配对通道，驱动 scanning 状态与二维码更新
"""

from wabot.pairing.flow import PairingFlow
from wabot.pairing.renderer import CodeRenderer, QRCodeRenderer

__all__ = ["PairingFlow", "CodeRenderer", "QRCodeRenderer"]
