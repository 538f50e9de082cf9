"""Unit tests for wabot.pairing: QR rendering and the pairing flow."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest
from PIL import Image

from wabot.errors import RenderError
from wabot.pairing.flow import PairingFlow
from wabot.pairing.renderer import DATA_URI_PREFIX, QRCodeRenderer
from wabot.protocol.events import Connected, OtherEvent, PairingCode
from wabot.session.state import ConnectionStatus

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestQRCodeRenderer:
    def test_renders_png_data_uri(self):
        payload = QRCodeRenderer().render("2@ABC123,xyz,abc")
        assert payload.startswith(DATA_URI_PREFIX)
        png = base64.b64decode(payload[len(DATA_URI_PREFIX):])
        assert png.startswith(PNG_SIGNATURE)

    def test_output_size(self):
        payload = QRCodeRenderer(size=128).render("ABC123")
        img = Image.open(io.BytesIO(base64.b64decode(payload[len(DATA_URI_PREFIX):])))
        assert img.size == (128, 128)

    def test_empty_code_fails(self):
        with pytest.raises(RenderError):
            QRCodeRenderer().render("")


def _run_flow(flow: PairingFlow, *events) -> int:
    async def _go() -> int:
        channel: asyncio.Queue = asyncio.Queue()
        for event in events:
            channel.put_nowait(event)
        channel.put_nowait(None)
        return await flow.run(channel)

    return asyncio.run(_go())


class TestPairingFlow:
    def test_code_enters_scanning_and_publishes_artifact(self, session, logs, renderer):
        flow = PairingFlow(session, logs, renderer)
        processed = _run_flow(flow, PairingCode(code="ABC123"))

        assert processed == 1
        snap = session.snapshot()
        assert snap.status is ConnectionStatus.SCANNING
        assert snap.qr == "data:image/png;base64,ABC123"
        assert "pairing code received" in logs.read_all()[0].message

    def test_rotating_codes_keep_latest(self, session, logs, renderer):
        flow = PairingFlow(session, logs, renderer)
        _run_flow(flow, PairingCode(code="first"), PairingCode(code="second"))
        assert session.snapshot().qr == "data:image/png;base64,second"
        assert renderer.rendered == ["first", "second"]

    def test_render_failure_skips_code(self, session, logs, broken_renderer):
        flow = PairingFlow(session, logs, broken_renderer)
        _run_flow(flow, PairingCode(code="bad"))

        snap = session.snapshot()
        assert snap.status is ConnectionStatus.SCANNING
        assert snap.pairing_artifact is None
        assert logs.read_all()[0].message.startswith("Failed to generate QR image")

    def test_render_failure_then_next_code_succeeds(self, session, logs, broken_renderer):
        flow = PairingFlow(session, logs, broken_renderer)
        _run_flow(flow, PairingCode(code="bad"), PairingCode(code="good"))
        assert session.snapshot().qr == "data:image/png;base64,good"

    def test_other_events_only_logged(self, session, logs, renderer):
        flow = PairingFlow(session, logs, renderer)
        _run_flow(flow, OtherEvent(name="timeout"))

        assert session.status is ConnectionStatus.DISCONNECTED
        assert logs.read_all()[0].message == "QR event: timeout"
        assert renderer.rendered == []

    def test_unexpected_lifecycle_event_is_ignored(self, session, logs, renderer):
        flow = PairingFlow(session, logs, renderer)
        _run_flow(flow, Connected())
        assert session.status is ConnectionStatus.DISCONNECTED
        assert len(logs) == 0

    def test_terminates_on_closed_channel(self, session, logs, renderer):
        assert _run_flow(PairingFlow(session, logs, renderer)) == 0
