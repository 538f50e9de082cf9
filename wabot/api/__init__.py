"""HTTP 控制接口模块。"""

from wabot.api.app import create_app

__all__ = ["create_app"]
