"""Drive an editor inside tmux and capture what it shows.

``run_probe`` issues the fixed sequence: create a detached session, start
the editor, send the setup commands, type the key sequence, wait, capture
the pane into the copy buffer, read the buffer and delete it.  Every step
is recorded with its timing so callers get a ProbeResult instead of
having to eyeball stdout.

Failure policy:
- session creation errors propagate immediately, nothing else is sent;
- a failed send-keys stops further key delivery but the pane is still
  captured, so whatever the editor shows is not lost;
- capture errors are recorded and the output stays empty.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from probe_core import tmux as tmux_mod
from probe_core.config import ProbeConfig
from probe_core.paths import configure_logger
from probe_core.readiness import WaitOutcome, wait_for_pane
from probe_core.tmux import CaptureError, CommandDeliveryError, TmuxError

_log = configure_logger("probe.run")


@dataclass
class StepRecord:
    """One issued (or skipped) step of a probe run."""

    name: str
    detail: str = ""
    duration: float = 0.0
    error: Optional[TmuxError] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class ProbeResult:
    """Outcome of a probe run: captured text plus per-step records."""

    session_name: str
    output: str = ""
    steps: list[StepRecord] = field(default_factory=list)
    error: Optional[TmuxError] = None
    wait: Optional[WaitOutcome] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.error is None else 1

    @property
    def failed_step(self) -> Optional[str]:
        for s in self.steps:
            if s.error is not None:
                return s.name
        return None

    @property
    def total_duration(self) -> float:
        return sum(s.duration for s in self.steps)

    def step_names(self) -> list[str]:
        return [s.name for s in self.steps if not s.skipped]

    def raise_for_error(self) -> None:
        """Re-raise the first error recorded during the run, if any."""
        if self.error is not None:
            raise self.error

    @contextmanager
    def step(self, name: str, detail: str = "") -> Iterator[StepRecord]:
        """Time a step and record any TmuxError it raises (then re-raise)."""
        record = StepRecord(name=name, detail=detail)
        self.steps.append(record)
        start = time.monotonic()
        try:
            yield record
        except TmuxError as e:
            record.error = e
            if self.error is None:
                self.error = e
            _log.warning("step %s failed: %s", name, e)
            raise
        finally:
            record.duration = time.monotonic() - start

    def skip(self, name: str, detail: str = "") -> None:
        self.steps.append(StepRecord(name=name, detail=detail, skipped=True))


def session_name_for(config: ProbeConfig) -> str:
    """The session name a run will use (unique per run when isolating)."""
    if config.isolate:
        return tmux_mod.unique_session_name(config.session_name)
    return config.session_name


@contextmanager
def probe_session(config: ProbeConfig,
                  result: Optional[ProbeResult] = None) -> Iterator[ProbeResult]:
    """Create the probe's tmux session and yield the ProbeResult for the run.

    SessionCreationError propagates before anything is yielded.  With
    ``config.teardown`` the session is killed on every exit path;
    otherwise it is left running for inspection.
    """
    if result is None:
        result = ProbeResult(session_name=session_name_for(config))
    name = result.session_name

    with result.step("create-session", name):
        tmux_mod.create_session(name, socket_path=config.socket_path)
    _log.info("created session %s", name)

    try:
        yield result
    finally:
        if config.teardown:
            with result.step("kill-session", name):
                killed = tmux_mod.kill_session(name, socket_path=config.socket_path)
            if not killed:
                _log.warning("session %s was already gone at teardown", name)


def _deliveries(config: ProbeConfig) -> list[tuple[str, list[str]]]:
    """(step name, keys) for every send-keys call, in order.

    Command lines are a single string followed by Enter; the final step
    is the raw key sequence.
    """
    out = [("start-editor", [config.editor_command, "Enter"])]
    for i, line in enumerate(config.setup_lines()):
        out.append((f"setup-{i + 1}", [line, "Enter"]))
    out.append(("keys", list(config.keys)))
    return out


def _send(config: ProbeConfig, target: str, name: str, keys: list[str]) -> None:
    if name == "keys":
        tmux_mod.send_key_sequence(target, keys, step=name, socket_path=config.socket_path)
    else:
        tmux_mod.send_keys(target, keys[0], step=name, socket_path=config.socket_path)


def _deliver(config: ProbeConfig, result: ProbeResult) -> bool:
    """Send every key step in order.  Returns False if one failed."""
    pending = _deliveries(config)
    for idx, (name, keys) in enumerate(pending):
        detail = " ".join(keys)
        try:
            with result.step(name, detail):
                _send(config, result.session_name, name, keys)
        except CommandDeliveryError:
            for later_name, later_keys in pending[idx + 1:]:
                result.skip(later_name, " ".join(later_keys))
            return False
    return True


def _wait(config: ProbeConfig, result: ProbeResult) -> None:
    with result.step("wait", config.wait_mode):
        result.wait = wait_for_pane(
            result.session_name,
            mode=config.wait_mode,
            delay=config.delay,
            settle_time=config.settle_time,
            max_wait=config.max_wait,
            marker=config.ready_marker,
            poll_interval=config.poll_interval,
            socket_path=config.socket_path,
        )


def _capture(config: ProbeConfig, result: ProbeResult) -> None:
    """capture-pane into the copy buffer, read it, then delete it."""
    sp = config.socket_path
    buf = config.buffer_name
    try:
        with result.step("capture-pane", result.session_name):
            tmux_mod.capture_to_buffer(result.session_name, buffer_name=buf, socket_path=sp)
    except CaptureError:
        # Without a fresh capture the top buffer belongs to someone else.
        result.skip("show-buffer")
        result.skip("delete-buffer")
        return

    try:
        with result.step("show-buffer", buf or ""):
            result.output = tmux_mod.show_buffer(buffer_name=buf, socket_path=sp)
    except CaptureError:
        pass  # recorded on the step; still try to clean the buffer up

    try:
        with result.step("delete-buffer", buf or ""):
            tmux_mod.delete_buffer(buffer_name=buf, socket_path=sp)
    except CaptureError:
        pass  # recorded on the step


def run_probe(config: Optional[ProbeConfig] = None) -> ProbeResult:
    """Run the whole probe and return its result.

    Raises SessionCreationError when the session can't be created.  Any
    later failure is recorded on the result (see ``raise_for_error``).
    """
    config = config or ProbeConfig()
    with probe_session(config) as result:
        _log.info("probing %s with %s", result.session_name, config.editor_command)
        if _deliver(config, result):
            _wait(config, result)
        else:
            result.skip("wait", config.wait_mode)
        _capture(config, result)
    _log.info("probe of %s finished in %.2fs (exit %d)",
              result.session_name, result.total_duration, result.exit_code)
    return result
