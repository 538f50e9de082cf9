"""Unit tests for wabot.session.state: transitions and the status/artifact invariant."""

from __future__ import annotations

import itertools
import threading

import pytest

from wabot.session.state import ConnectionStatus, SessionSnapshot, SessionState, is_legal_transition

S = ConnectionStatus
ARTIFACT = "data:image/png;base64,AAAA"


def _invariant_holds(snapshot: SessionSnapshot) -> bool:
    if snapshot.pairing_artifact:
        return snapshot.status is S.SCANNING
    return True


class TestInitialState:
    def test_starts_disconnected_without_artifact(self):
        snap = SessionState().snapshot()
        assert snap.status is S.DISCONNECTED
        assert snap.pairing_artifact is None
        assert snap.qr is None

    def test_status_values(self):
        assert {s.value for s in S} == {"disconnected", "scanning", "connected", "logged_out"}


class TestTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            (S.DISCONNECTED, S.SCANNING),
            (S.DISCONNECTED, S.CONNECTED),
            (S.SCANNING, S.CONNECTED),
            (S.CONNECTED, S.LOGGED_OUT),
            (S.CONNECTED, S.DISCONNECTED),
            (S.SCANNING, S.DISCONNECTED),
            (S.LOGGED_OUT, S.DISCONNECTED),
            (S.SCANNING, S.SCANNING),
        ],
    )
    def test_legal(self, current, new):
        assert is_legal_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (S.LOGGED_OUT, S.CONNECTED),
            (S.LOGGED_OUT, S.SCANNING),
            (S.CONNECTED, S.SCANNING),
            (S.SCANNING, S.LOGGED_OUT),
            (S.DISCONNECTED, S.LOGGED_OUT),
        ],
    )
    def test_illegal_is_rejected(self, current, new):
        assert not is_legal_transition(current, new)

    def test_rejected_transition_leaves_state_untouched(self):
        state = SessionState()
        assert state.set_status(S.CONNECTED)
        assert state.set_status(S.LOGGED_OUT)
        assert not state.set_status(S.CONNECTED)
        assert state.status is S.LOGGED_OUT

    def test_accepts_plain_string(self):
        state = SessionState()
        assert state.set_status("scanning")
        assert state.status is S.SCANNING


class TestArtifact:
    def test_artifact_only_while_scanning(self):
        state = SessionState()
        assert not state.set_pairing_artifact(ARTIFACT)
        assert state.snapshot().pairing_artifact is None

        state.set_status(S.SCANNING)
        assert state.set_pairing_artifact(ARTIFACT)
        snap = state.snapshot()
        assert snap.status is S.SCANNING
        assert snap.qr == ARTIFACT

    @pytest.mark.parametrize("target", [S.CONNECTED, S.DISCONNECTED])
    def test_leaving_scanning_clears_artifact(self, target):
        state = SessionState()
        state.set_status(S.SCANNING)
        state.set_pairing_artifact(ARTIFACT)
        state.set_status(target)
        snap = state.snapshot()
        assert snap.status is target
        assert snap.pairing_artifact is None

    def test_rotating_codes_replace_artifact(self):
        state = SessionState()
        state.set_status(S.SCANNING)
        state.set_pairing_artifact("data:image/png;base64,one")
        state.set_status(S.SCANNING)
        state.set_pairing_artifact("data:image/png;base64,two")
        assert state.snapshot().qr == "data:image/png;base64,two"

    def test_invariant_over_all_operation_sequences(self):
        ops = [
            lambda s: s.set_status(S.DISCONNECTED),
            lambda s: s.set_status(S.SCANNING),
            lambda s: s.set_status(S.CONNECTED),
            lambda s: s.set_status(S.LOGGED_OUT),
            lambda s: s.set_pairing_artifact(ARTIFACT),
            lambda s: s.reset(),
        ]
        for sequence in itertools.product(ops, repeat=4):
            state = SessionState()
            for op in sequence:
                op(state)
                assert _invariant_holds(state.snapshot())


class TestReset:
    @pytest.mark.parametrize("path", [[], [S.SCANNING], [S.CONNECTED], [S.CONNECTED, S.LOGGED_OUT]])
    def test_reset_from_any_state(self, path):
        state = SessionState()
        for status in path:
            state.set_status(status)
        if state.status is S.SCANNING:
            state.set_pairing_artifact(ARTIFACT)
        state.reset()
        snap = state.snapshot()
        assert snap.status is S.DISCONNECTED
        assert snap.pairing_artifact is None


class TestConcurrentSnapshots:
    def test_snapshot_never_torn(self):
        state = SessionState()
        stop = threading.Event()
        torn: list[SessionSnapshot] = []

        def writer() -> None:
            while not stop.is_set():
                state.set_status(S.SCANNING)
                state.set_pairing_artifact(ARTIFACT)
                state.set_status(S.CONNECTED)
                state.set_status(S.DISCONNECTED)

        def reader() -> None:
            for _ in range(5000):
                snap = state.snapshot()
                if not _invariant_holds(snap):
                    torn.append(snap)

        threads = [threading.Thread(target=writer) for _ in range(2)]
        for t in threads:
            t.start()
        reader()
        stop.set()
        for t in threads:
            t.join()

        assert torn == []
