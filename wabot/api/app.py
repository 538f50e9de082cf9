"""
HTTP 控制接口 - 观察与控制连接生命周期。

接口列表（JSON，无认证）：
- GET  /        人类可读的状态页（HTML）
- GET  /qr      {"status", "qr"}，qr 仅在 scanning 状态下有值
- GET  /logs    {"logs": [...]}，新的在前，最多 100 条
- POST /send    {"to", "text"} → {"success": true} 或 {"error": "..."}
- GET  /reset   断开连接、删除身份、调度重启，立即返回确认
- GET  /health  {"status": "ok", "whatsapp": <连接状态>}

所有处理函数只在读写期间短暂持有共享状态的锁，
不会在持有锁时等待协议客户端的网络 I/O。
"""

from contextlib import asynccontextmanager
from html import escape
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger
from pydantic import BaseModel, ValidationError

from wabot import __version__
from wabot.errors import NotInitializedError
from wabot.runtime.supervisor import BotRuntime

RESET_MESSAGE = "Session reset. New QR will appear shortly."

STATUS_PAGE = """
<html>
<head><title>WhatsApp Bot</title></head>
<body style="font-family: Arial; padding: 20px;">
    <h1>WhatsApp Bot Server</h1>
    <p>Status: <strong>{status}</strong></p>
    {qr}
    <p><a href="/qr">Get QR Code API</a></p>
    <p><a href="/logs">View Logs</a></p>
    <p><a href="/reset">Reset Session</a></p>
</body>
</html>
"""


class SendRequest(BaseModel):
    to: str
    text: str


def _validation_message(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def create_app(runtime: BotRuntime, start_runtime: bool = True) -> FastAPI:
    """
    创建 FastAPI 应用。

    参数:
        runtime: 机器人运行时（共享状态与后台任务的持有者）
        start_runtime: 是否在应用启动时调度启动流程、在关闭时停止运行时

    返回:
        配置好的 FastAPI 实例
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_runtime:
            runtime.start()
        yield
        if start_runtime:
            await runtime.stop()
        logger.info("Control API stopped")

    app = FastAPI(
        title="wabot",
        description="WhatsApp bot control plane",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        snapshot = runtime.session.snapshot()
        qr = f'<p><img src="{snapshot.qr}" alt="QR code"/></p>' if snapshot.qr else ""
        return HTMLResponse(STATUS_PAGE.format(status=escape(snapshot.status.value), qr=qr))

    @app.get("/qr")
    async def qr() -> dict:
        snapshot = runtime.session.snapshot()
        return {"status": snapshot.status.value, "qr": snapshot.qr}

    @app.get("/logs")
    async def logs() -> dict:
        return {"logs": runtime.logs.formatted()}

    @app.post("/send")
    async def send(request: Request) -> JSONResponse:
        try:
            body = SendRequest.model_validate_json(await request.body())
        except ValidationError as e:
            return JSONResponse({"error": _validation_message(e)}, status_code=400)

        try:
            await runtime.send(body.to, body.text)
        except NotInitializedError as e:
            return JSONResponse({"error": str(e)}, status_code=503)
        return JSONResponse({"success": True})

    @app.get("/reset")
    async def reset() -> dict:
        await runtime.reset()
        return {"success": True, "message": RESET_MESSAGE}

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "whatsapp": runtime.session.status.value}

    return app
