"""Wait for an editor pane to finish drawing.

The probe originally slept a fixed second after typing and hoped vim had
caught up.  ``wait_for_pane`` keeps that behavior for ``fixed`` mode and
adds a ``settle`` mode that polls the pane until its content stops
changing (or a marker string shows up), bounded by a maximum wait.
"""

import hashlib
import time
from dataclasses import dataclass, field

from probe_core import tmux as tmux_mod
from probe_core.paths import configure_logger

_log = configure_logger("probe.readiness")


@dataclass
class PaneSettleState:
    """Per-pane settle tracking state."""

    target: str
    last_content_hash: str = ""
    last_change_time: float = field(default_factory=time.monotonic)
    polls: int = 0
    settled: bool = False
    marker_seen: bool = False


class PaneSettleTracker:
    """Track one pane's content and report when it has settled.

    A pane is settled once its captured content hash has not changed for
    *settle_time* seconds, or as soon as *marker* appears in it.
    """

    def __init__(self, target: str, settle_time: float,
                 marker: str | None = None, socket_path: str | None = None) -> None:
        self.state = PaneSettleState(target=target)
        self._settle_time = settle_time
        self._marker = marker
        self._socket_path = socket_path

    def poll(self) -> bool:
        """Capture the pane once, update state, return *is_settled*."""
        state = self.state
        content = tmux_mod.capture_pane(state.target, socket_path=self._socket_path)
        content_hash = hashlib.md5(content.encode()).hexdigest()
        now = time.monotonic()
        state.polls += 1

        if self._marker and self._marker in content:
            state.marker_seen = True
            state.settled = True
            return True

        if state.polls == 1 or content_hash != state.last_content_hash:
            state.last_content_hash = content_hash
            state.last_change_time = now
            state.settled = False
        elif now - state.last_change_time >= self._settle_time:
            state.settled = True

        return state.settled


@dataclass
class WaitOutcome:
    """How a wait ended."""

    mode: str
    waited: float
    settled: bool
    timed_out: bool = False
    polls: int = 0


def wait_for_pane(target: str, mode: str = "fixed", delay: float = 1.0,
                  settle_time: float = 0.5, max_wait: float = 10.0,
                  marker: str | None = None, poll_interval: float = 0.1,
                  socket_path: str | None = None) -> WaitOutcome:
    """Block until the pane is ready to be captured.

    ``fixed`` sleeps *delay* seconds and reports settled regardless of
    what the editor is doing.  ``settle`` polls with a PaneSettleTracker
    every *poll_interval* seconds and gives up after *max_wait*; giving
    up is reported through ``timed_out``, never raised.
    """
    start = time.monotonic()
    if mode == "fixed":
        time.sleep(delay)
        return WaitOutcome(mode=mode, waited=time.monotonic() - start, settled=True)

    if mode != "settle":
        raise ValueError(f"unknown wait mode: {mode!r}")

    tracker = PaneSettleTracker(target, settle_time, marker=marker,
                                socket_path=socket_path)
    deadline = start + max_wait
    while True:
        if tracker.poll():
            _log.debug("pane %s settled after %d polls", target, tracker.state.polls)
            return WaitOutcome(mode=mode, waited=time.monotonic() - start,
                               settled=True, polls=tracker.state.polls)
        if time.monotonic() >= deadline:
            _log.warning("pane %s did not settle within %.1fs", target, max_wait)
            return WaitOutcome(mode=mode, waited=time.monotonic() - start,
                               settled=False, timed_out=True,
                               polls=tracker.state.polls)
        time.sleep(poll_interval)
