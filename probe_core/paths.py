"""Centralized path management for probe.

All probe-related files live under ~/.probe/:
- ~/.probe/debug/     - Rotating log file (probe.log)
- ~/.probe/settings/  - Global settings, one file per setting
"""

import logging
import os
import shlex
from pathlib import Path


def probe_home() -> Path:
    """Return the probe home directory (~/.probe/)."""
    d = Path.home() / ".probe"
    d.mkdir(parents=True, exist_ok=True)
    return d


def debug_dir() -> Path:
    """Return the debug/logs directory (~/.probe/debug/)."""
    d = probe_home() / "debug"
    d.mkdir(parents=True, exist_ok=True)
    return d


def command_log_file() -> Path:
    """Get the path to the command log file.

    Every tmux invocation made by probe is logged here.
    """
    return debug_dir() / "probe.log"


def get_global_setting(name: str) -> bool:
    """Check if a global probe setting is enabled.

    Settings are stored as files in ~/.probe/settings/.
    A setting is enabled if its file exists and contains 'true'.
    """
    f = probe_home() / "settings" / name
    if not f.exists():
        return False
    try:
        return f.read_text().strip() == "true"
    except OSError:
        return False


def set_global_setting(name: str, enabled: bool) -> None:
    """Enable or disable a global probe setting."""
    d = probe_home() / "settings"
    d.mkdir(parents=True, exist_ok=True)
    f = d / name
    if enabled:
        f.write_text("true\n")
    elif f.exists():
        f.unlink()


def debug_enabled() -> bool:
    """Debug logging is on when PROBE_DEBUG is set or the 'debug' setting is."""
    if os.environ.get("PROBE_DEBUG"):
        return True
    return get_global_setting("debug")


def configure_logger(name: str, max_bytes: int = 10_000_000) -> logging.Logger:
    """Configure a logger that always writes to file with rotation.

    Args:
        name: Logger name (e.g., "probe.tmux")
        max_bytes: Maximum log file size before rotation (default 10MB)

    Returns:
        Configured logger instance
    """
    from logging.handlers import RotatingFileHandler

    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    handler = RotatingFileHandler(
        command_log_file(),
        maxBytes=max_bytes,
        backupCount=1,
        delay=True,
    )
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(handler)
    logger.propagate = False

    if debug_enabled():
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    return logger


def log_shell_command(cmd: list[str] | str, prefix: str = "shell", returncode: int | None = None) -> None:
    """Log a shell command to the central command log.

    Args:
        cmd: Command list or string to log
        prefix: Prefix for the log entry (e.g., "tmux")
        returncode: If provided, logs as completion with return code
    """
    logger = configure_logger("probe.shell")
    cmd_str = shlex.join(cmd) if isinstance(cmd, list) else cmd

    if returncode is None:
        logger.info("%s: %s", prefix, cmd_str)
    elif returncode == 0:
        logger.info("%s done: %s", prefix, cmd_str)
    else:
        logger.warning("%s failed (rc=%d): %s", prefix, returncode, cmd_str)
