"""
CLI 命令模块 - wabot 的所有命令行命令定义。

本模块使用 Typer 框架定义 wabot 的 CLI 命令体系：
- init：生成默认配置文件
- serve：启动 HTTP 控制接口与后台连接流程（核心启动命令）
- status：查看配置与设备身份状态
- reset-store：离线删除已保存的设备身份（下次启动重新扫码）

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出
- uvicorn：运行 FastAPI 应用
"""

import sys

import typer
from loguru import logger
from rich.console import Console

from wabot import __logo__, __version__

app = typer.Typer(
    name="wabot",
    help=f"{__logo__} wabot - WhatsApp bot control plane",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(verbose: bool) -> None:
    """重新配置 loguru 输出：默认 INFO，--verbose 时 DEBUG。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def version_callback(value: bool):
    """当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} wabot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """wabot CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
):
    """在 ~/.wabot/ 下生成默认配置文件 config.json。"""
    from wabot.config.loader import get_config_path, save_config
    from wabot.config.schema import Config

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(1)

    path = save_config(Config(), config_path)
    console.print(f"[green]✓[/green] Created config at {path}")


@app.command()
def serve(
    port: int = typer.Option(None, "--port", "-p", help="HTTP port (defaults to PORT or config)"),
    host: str = typer.Option(None, "--host", help="HTTP listen address"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    启动 wabot 服务。

    执行流程：
    1. 加载配置（配置文件 → WABOT_ 环境变量 → PORT 环境变量 → 命令行参数）
    2. 创建运行时（会话状态、日志缓冲区、回复策略）
    3. 创建 FastAPI 应用，应用启动时在后台运行连接流程
    4. 交给 uvicorn 运行直到进程被中断
    """
    import uvicorn

    from wabot.api.app import create_app
    from wabot.config.loader import load_config
    from wabot.runtime.supervisor import BotRuntime

    _setup_logging(verbose)

    config = load_config()
    if port is not None:
        config.server.port = port
    if host is not None:
        config.server.host = host

    try:
        runtime = BotRuntime(config)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    api = create_app(runtime)

    console.print(f"{__logo__} Starting wabot on {config.server.host}:{config.server.port}...")
    console.print(f"[green]✓[/green] Bridge: {config.bridge.url}")
    console.print(f"[green]✓[/green] Session store: {config.store.resolved_path}")
    runtime.logs.append(f"Server running on port {config.server.port}")

    uvicorn.run(
        api,
        host=config.server.host,
        port=config.server.port,
        log_level="debug" if verbose else "info",
    )


@app.command()
def status():
    """
    显示 wabot 状态。

    展示内容：
    - 配置文件路径和状态
    - 桥接服务地址
    - 设备身份存储路径，以及是否已有配对身份
    """
    from wabot.config.loader import get_config_path, load_config
    from wabot.errors import InitializationError
    from wabot.store.sqlite import SessionStore

    config_path = get_config_path()
    config = load_config()
    store_path = config.store.resolved_path

    console.print(f"{__logo__} wabot Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Bridge: {config.bridge.url}")
    console.print(f"HTTP: {config.server.host}:{config.server.port}")
    console.print(f"Responder: {config.runtime.responder}")

    if not store_path.exists():
        console.print(f"Session store: {store_path} [dim]not created[/dim]")
        return

    store = SessionStore(store_path)
    try:
        jid = store.open().get_identity()
    except InitializationError as e:
        console.print(f"Session store: {store_path} [red]{e}[/red]")
        return
    finally:
        store.close()

    if jid:
        console.print(f"Session store: {store_path} [green]✓ paired as {jid}[/green]")
    else:
        console.print(f"Session store: {store_path} [dim]not paired[/dim]")


@app.command("reset-store")
def reset_store(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """删除已保存的设备身份（包括 WAL 辅助文件），下次启动时重新扫码。"""
    from wabot.config.loader import load_config
    from wabot.store.sqlite import SessionStore

    config = load_config()
    store = SessionStore(config.store.resolved_path)

    if not yes and not typer.confirm(f"Delete session store at {store.path}?"):
        raise typer.Exit()

    try:
        removed = store.wipe()
    except OSError as e:
        console.print(f"[red]Failed to remove session files: {e}[/red]")
        raise typer.Exit(1)
    if not removed:
        console.print("[dim]Nothing to remove[/dim]")
    for path in removed:
        console.print(f"[green]✓[/green] Removed {path}")


if __name__ == "__main__":
    app()
