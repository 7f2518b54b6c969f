"""Tmux session, key delivery and copy-buffer helpers for probe."""

import os
import secrets
import subprocess

from probe_core.paths import log_shell_command


class TmuxError(Exception):
    """Base exception for all tmux operations."""


class SessionCreationError(TmuxError):
    """Raised when a session cannot be created (name taken or tmux missing)."""


class CommandDeliveryError(TmuxError):
    """Raised when send-keys cannot reach its target session."""

    def __init__(self, message: str, step: str | None = None) -> None:
        super().__init__(message)
        self.step = step


class CaptureError(TmuxError):
    """Raised when capture-pane, show-buffer or delete-buffer fails."""


def _tmux_cmd(*args: str, socket_path: str | None = None) -> list[str]:
    """Build a tmux command with optional custom socket.

    If socket_path is given, uses it.  Otherwise checks PROBE_TMUX_SOCKET,
    which lets the whole probe run against a private tmux server.
    """
    cmd = ["tmux"]
    sp = socket_path or os.environ.get("PROBE_TMUX_SOCKET")
    if sp:
        cmd.extend(["-S", sp])
    cmd.extend(args)
    return cmd


def _run(*args: str, socket_path: str | None = None) -> subprocess.CompletedProcess:
    """Run a tmux command, logging it and its failure code."""
    cmd = _tmux_cmd(*args, socket_path=socket_path)
    log_shell_command(cmd, "tmux")
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        log_shell_command(cmd, "tmux", result.returncode)
    return result


def _stderr(result: subprocess.CompletedProcess) -> str:
    return (result.stderr or "").strip() or f"exit status {result.returncode}"


def exact_session(name: str) -> str:
    """Session target that only matches *name* exactly.

    A bare name lets tmux fall back to prefix and pattern matching, so
    ``ferret-test`` would hit a running ``ferret-test-1a2b3c``.
    """
    return name if name.startswith("=") else f"={name}"


def exact_pane(target: str) -> str:
    """Pane target for the active pane of session *target*, matched exactly.

    Pane ids (``%3``) and targets that already name a window or pane are
    passed through unchanged.
    """
    if target.startswith("%") or ":" in target:
        return target
    return f"{exact_session(target)}:"


def has_tmux() -> bool:
    """Check if tmux is installed."""
    import shutil
    return shutil.which("tmux") is not None


def session_exists(name: str, socket_path: str | None = None) -> bool:
    """Check if a tmux session with the given name exists."""
    result = _run("has-session", "-t", exact_session(name), socket_path=socket_path)
    return result.returncode == 0


def unique_session_name(base: str) -> str:
    """Return *base* with a random per-run suffix, e.g. ``ferret-test-1a2b3c``."""
    return f"{base}-{secrets.token_hex(3)}"


def create_session(name: str, cwd: str | None = None, cmd: str | None = None,
                   socket_path: str | None = None) -> None:
    """Create a detached tmux session.

    Raises SessionCreationError if tmux is not installed, if a session
    called *name* already exists, or if ``new-session`` fails.
    """
    if not has_tmux():
        raise SessionCreationError("tmux is not installed")
    if session_exists(name, socket_path=socket_path):
        raise SessionCreationError(f"session '{name}' already exists")
    args = ["new-session", "-d", "-s", name]
    if cwd:
        args.extend(["-c", cwd])
    if cmd:
        args.append(cmd)
    result = _run(*args, socket_path=socket_path)
    if result.returncode != 0:
        raise SessionCreationError(
            f"could not create session '{name}': {_stderr(result)}")


def kill_session(name: str, socket_path: str | None = None) -> bool:
    """Kill a tmux session.  Returns True if tmux reported success."""
    result = _run("kill-session", "-t", exact_session(name), socket_path=socket_path)
    return result.returncode == 0


def send_key_sequence(target: str, keys: list[str], step: str | None = None,
                      socket_path: str | None = None) -> None:
    """Send several keys to *target* in one ``send-keys`` call.

    Each element is passed through as its own argument, so tmux key
    names (``Enter``, ``Space``, ``C-c``) are interpreted while other
    strings are typed as-is.
    """
    result = _run("send-keys", "-t", exact_pane(target), *keys, socket_path=socket_path)
    if result.returncode != 0:
        raise CommandDeliveryError(
            f"send-keys to '{target}' failed: {_stderr(result)}", step=step)


def send_keys(target: str, keys: str, step: str | None = None,
              socket_path: str | None = None) -> None:
    """Send keys to a tmux pane (followed by Enter)."""
    send_key_sequence(target, [keys, "Enter"], step=step, socket_path=socket_path)


def capture_pane(target: str, socket_path: str | None = None) -> str:
    """Capture the visible contents of a pane and return them.

    Returns the pane text, or empty string if the pane doesn't exist.
    Used for polling; leaves the copy buffer untouched.
    """
    result = _run("capture-pane", "-p", "-t", exact_pane(target), socket_path=socket_path)
    return result.stdout if result.returncode == 0 else ""


def capture_to_buffer(target: str, buffer_name: str | None = None,
                      socket_path: str | None = None) -> None:
    """Capture the pane into a tmux paste buffer instead of stdout."""
    args = ["capture-pane", "-t", exact_pane(target)]
    if buffer_name:
        args.extend(["-b", buffer_name])
    result = _run(*args, socket_path=socket_path)
    if result.returncode != 0:
        raise CaptureError(f"capture-pane of '{target}' failed: {_stderr(result)}")


def show_buffer(buffer_name: str | None = None, socket_path: str | None = None) -> str:
    """Return the contents of a paste buffer (the most recent one by default)."""
    args = ["show-buffer"]
    if buffer_name:
        args.extend(["-b", buffer_name])
    result = _run(*args, socket_path=socket_path)
    if result.returncode != 0:
        raise CaptureError(f"show-buffer failed: {_stderr(result)}")
    return result.stdout


def delete_buffer(buffer_name: str | None = None, socket_path: str | None = None) -> None:
    """Delete a paste buffer (the most recent one by default)."""
    args = ["delete-buffer"]
    if buffer_name:
        args.extend(["-b", buffer_name])
    result = _run(*args, socket_path=socket_path)
    if result.returncode != 0:
        raise CaptureError(f"delete-buffer failed: {_stderr(result)}")
