"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio

import pytest

from wabot.config.schema import Config
from wabot.errors import ConnectError, RenderError, SendError
from wabot.protocol.base import ProtocolClient
from wabot.runtime.supervisor import BotRuntime, default_store_factory
from wabot.session.logbuffer import LogBuffer
from wabot.session.state import SessionState
from wabot.store.sqlite import SessionStore


class FakeProtocolClient(ProtocolClient):
    """In-memory ProtocolClient that records commands and lets tests inject events."""

    name = "fake"

    def __init__(self, fail_connect: bool = False, fail_send: bool = False):
        super().__init__()
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.sent: list[tuple[str, str]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.pairing_requested = False
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def get_pairing_channel(self):
        self.pairing_requested = True
        return super().get_pairing_channel()

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect:
            self._close_pairing()
            raise ConnectError("bridge unreachable")
        self._connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False
        self._close_pairing()
        self._close_events()

    async def send_text(self, chat: str, text: str) -> None:
        if self.fail_send:
            raise SendError("socket closed")
        self.sent.append((chat, text))

    # Test helpers

    def emit(self, event) -> None:
        self._emit(event)

    def emit_pairing(self, event) -> bool:
        return self._emit_pairing(event)

    def close_pairing(self) -> None:
        self._close_pairing()


class BlockingFakeClient(FakeProtocolClient):
    """Fake client whose sends park until `release` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.release = asyncio.Event()
        self.sending = False

    async def send_text(self, chat: str, text: str) -> None:
        self.sending = True
        await self.release.wait()
        await super().send_text(chat, text)


class FakeRenderer:
    """Renders codes without touching qrcode; fails for codes listed in `broken`."""

    def __init__(self, broken: set[str] | None = None):
        self.broken = broken or set()
        self.rendered: list[str] = []

    def render(self, code: str) -> str:
        if code in self.broken:
            raise RenderError(f"cannot encode {code}")
        self.rendered.append(code)
        return f"data:image/png;base64,{code}"


@pytest.fixture
def session():
    return SessionState()


@pytest.fixture
def logs():
    return LogBuffer()


@pytest.fixture
def fake_client():
    return FakeProtocolClient()


@pytest.fixture
def failing_client():
    """Client whose sends always fail."""
    return FakeProtocolClient(fail_send=True)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def broken_renderer():
    """Renderer that fails for the code "bad"."""
    return FakeRenderer(broken={"bad"})


@pytest.fixture
def config(tmp_path):
    """Config pointing the session store into a temp dir with a tiny restart delay."""
    cfg = Config()
    cfg.store.path = str(tmp_path / "whatsapp.db")
    cfg.runtime.restart_delay_s = 0.01
    return cfg


@pytest.fixture
def make_runtime(config, renderer):
    """Build a BotRuntime whose client factory hands out FakeProtocolClient instances."""

    def _make(
        client_cls=FakeProtocolClient,
        store_factory=default_store_factory,
        **client_kwargs,
    ) -> tuple[BotRuntime, list[FakeProtocolClient]]:
        clients: list[FakeProtocolClient] = []

        def client_factory(cfg: Config, store: SessionStore) -> FakeProtocolClient:
            client = client_cls(**client_kwargs)
            clients.append(client)
            return client

        runtime = BotRuntime(
            config, renderer=renderer, client_factory=client_factory, store_factory=store_factory
        )
        return runtime, clients

    return _make


@pytest.fixture
def blocking_client_cls():
    return BlockingFakeClient
