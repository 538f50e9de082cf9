"""
配对码渲染器 - 把配对码编码为二维码图片，以 data URI 形式返回。

返回值可以直接放进 <img src="..."> 展示：
    data:image/png;base64,iVBORw0KGgo...
"""

import base64
import io
from typing import Protocol

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from wabot.errors import RenderError

DATA_URI_PREFIX = "data:image/png;base64,"


class CodeRenderer(Protocol):
    """渲染策略接口：配对码 → 可展示的载荷。失败时抛出 RenderError。"""

    def render(self, code: str) -> str: ...


class QRCodeRenderer:
    """
    基于 qrcode 库的 PNG 渲染器。

    属性:
        size: 输出图片边长（像素）
    """

    def __init__(self, size: int = 256):
        self.size = size

    def render(self, code: str) -> str:
        if not code:
            raise RenderError("empty pairing code")
        try:
            png = self._build_png(code)
        except Exception as e:
            raise RenderError(str(e)) from e
        return DATA_URI_PREFIX + base64.b64encode(png).decode("ascii")

    def _build_png(self, code: str) -> bytes:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=4)
        qr.add_data(code)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
        img = img.resize((self.size, self.size), Image.Resampling.NEAREST)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
