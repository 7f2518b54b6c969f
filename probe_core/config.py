"""Probe configuration: defaults, probe.yaml loading and validation."""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

CONFIG_FILENAME = "probe.yaml"
DEFAULT_SESSION = "ferret-test"
WAIT_MODES = ("fixed", "settle")


class ConfigError(Exception):
    """Raised when probe.yaml is malformed or holds invalid values."""


@dataclass
class ProbeConfig:
    """Everything the probe sends and waits for.

    Defaults reproduce the Ferret smoke check: start vim without user
    config, load the plugin from the working directory, trigger
    ``<Leader>a`` and search for ``usr/bin/env ruby``.
    """

    session_name: str = DEFAULT_SESSION
    editor_command: str = "vim -u NONE"
    setup_commands: list[str] = field(default_factory=lambda: [
        ":set nocompatible",
        ":set rtp+={rtp}",
        ":runtime! {plugin}",
    ])
    runtime_path: Optional[str] = None  # None means cwd at run time
    plugin: str = "plugin/ferret.vim"
    keys: list[str] = field(default_factory=lambda: [
        "\\", "a", "usr/bin/env\\", "Space", "ruby", "Enter",
    ])
    delay: float = 1.0
    wait_mode: str = "fixed"
    settle_time: float = 0.5
    max_wait: float = 10.0
    ready_marker: Optional[str] = None
    poll_interval: float = 0.1
    isolate: bool = False
    teardown: bool = False
    buffer_name: Optional[str] = None
    socket_path: Optional[str] = None

    def resolved_runtime_path(self) -> str:
        return self.runtime_path or os.getcwd()

    def setup_lines(self) -> list[str]:
        """Setup commands with ``{rtp}`` and ``{plugin}`` filled in.

        Other braces are vim syntax (dict literals, regex counts) and are
        left alone.
        """
        rtp = self.resolved_runtime_path()
        return [c.replace("{rtp}", rtp).replace("{plugin}", self.plugin)
                for c in self.setup_commands]

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


# Expected YAML types per field.  Optional fields also accept null.
_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "session_name": (str,),
    "editor_command": (str,),
    "setup_commands": (list,),
    "runtime_path": (str,),
    "plugin": (str,),
    "keys": (list,),
    "delay": (int, float),
    "wait_mode": (str,),
    "settle_time": (int, float),
    "max_wait": (int, float),
    "ready_marker": (str,),
    "poll_interval": (int, float),
    "isolate": (bool,),
    "teardown": (bool,),
    "buffer_name": (str,),
    "socket_path": (str,),
}
_NULLABLE = {"runtime_path", "ready_marker", "buffer_name", "socket_path"}


def _validate(data: dict) -> dict:
    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    for key, value in data.items():
        if value is None and key in _NULLABLE:
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass; don't let `delay: true` through
        if isinstance(value, bool) and bool not in expected:
            raise ConfigError(f"{key}: expected a number, got {value!r}")
        if not isinstance(value, expected):
            names = " or ".join(t.__name__ for t in expected)
            raise ConfigError(f"{key}: expected {names}, got {value!r}")
        if expected == (list,) and not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{key}: every entry must be a string")

    if data.get("wait_mode", "fixed") not in WAIT_MODES:
        raise ConfigError(
            f"wait_mode: must be one of {', '.join(WAIT_MODES)}, got {data['wait_mode']!r}")
    for key in ("delay", "settle_time", "max_wait", "poll_interval"):
        if key in data and data[key] < 0:
            raise ConfigError(f"{key}: must not be negative")
    return data


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from start (or cwd) to find a probe.yaml."""
    p = Path(start) if start else Path.cwd()
    for d in [p, *p.parents]:
        candidate = d / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Optional[Path] = None, **overrides) -> ProbeConfig:
    """Build a ProbeConfig from defaults, an optional YAML file and overrides.

    Args:
        path: probe.yaml to read.  When None, one is searched for with
            find_config() and silently skipped if absent.  An explicit
            path that doesn't exist raises ConfigError.
        overrides: Field values that win over the file (None values are
            ignored so unset CLI options don't clobber the file).
    """
    data: dict = {}
    if path is None:
        path = find_config()
    elif not Path(path).is_file():
        raise ConfigError(f"config file not found: {path}")

    if path is not None:
        try:
            with open(path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: invalid YAML: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        data.update(loaded)

    data.update({k: v for k, v in overrides.items() if v is not None})
    return ProbeConfig(**_validate(data))


def dump_config(config: ProbeConfig) -> str:
    """Render the effective configuration as YAML."""
    return yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False,
                     allow_unicode=True)
