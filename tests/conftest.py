"""Shared test fixtures for probe_core tests."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

# Module-level loggers open their file under ~/.probe at import time.
os.environ["HOME"] = tempfile.mkdtemp(prefix="probe-test-home-")

import pytest  # noqa: E402

from probe_core import tmux as tmux_mod  # noqa: E402
from probe_core.tmux import CaptureError, CommandDeliveryError, SessionCreationError  # noqa: E402


@pytest.fixture(autouse=True)
def probe_home(tmp_path, monkeypatch):
    """Point ~/.probe at a temp dir and clear probe env vars."""
    monkeypatch.delenv("PROBE_TMUX_SOCKET", raising=False)
    monkeypatch.delenv("PROBE_DEBUG", raising=False)
    home = tmp_path / "home"
    home.mkdir()
    with patch.object(Path, "home", return_value=home):
        yield home


class FakeTmux:
    """In-memory stand-in for the tmux server, recording every call."""

    def __init__(self, pane_text: str = "~\n~\n"):
        self.sessions: set[str] = set()
        self.buffers: list[str] = []
        self.calls: list[tuple] = []
        self.sleeps: list[float] = []
        self.pane_text = pane_text
        self.fail_send_at: int | None = None
        self.fail_capture = False
        self._sends = 0

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]

    def create_session(self, name, cwd=None, cmd=None, socket_path=None):
        self.calls.append(("create-session", name))
        if name in self.sessions:
            raise SessionCreationError(f"session '{name}' already exists")
        self.sessions.add(name)

    def send_key_sequence(self, target, keys, step=None, socket_path=None):
        self.calls.append(("send-keys", target, tuple(keys)))
        self._sends += 1
        if target not in self.sessions or self._sends == self.fail_send_at:
            raise CommandDeliveryError(f"can't find session: {target}", step=step)

    def capture_pane(self, target, socket_path=None):
        self.calls.append(("capture-pane-print", target))
        return self.pane_text

    def capture_to_buffer(self, target, buffer_name=None, socket_path=None):
        self.calls.append(("capture-pane", target))
        if self.fail_capture or target not in self.sessions:
            raise CaptureError(f"capture-pane of '{target}' failed")
        self.buffers.append(self.pane_text)

    def show_buffer(self, buffer_name=None, socket_path=None):
        self.calls.append(("show-buffer",))
        if not self.buffers:
            raise CaptureError("no buffers")
        return self.buffers[-1]

    def delete_buffer(self, buffer_name=None, socket_path=None):
        self.calls.append(("delete-buffer",))
        if not self.buffers:
            raise CaptureError("no buffers")
        self.buffers.pop()

    def kill_session(self, name, socket_path=None):
        self.calls.append(("kill-session", name))
        if name in self.sessions:
            self.sessions.discard(name)
            return True
        return False


@pytest.fixture
def fake_tmux(monkeypatch):
    """Replace the tmux helpers with a FakeTmux and make sleeps instant."""
    fake = FakeTmux()
    for name in ("create_session", "send_key_sequence", "capture_pane",
                 "capture_to_buffer", "show_buffer", "delete_buffer",
                 "kill_session"):
        monkeypatch.setattr(tmux_mod, name, getattr(fake, name))
    monkeypatch.setattr("probe_core.readiness.time.sleep", fake.sleeps.append)
    return fake
