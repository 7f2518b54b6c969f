"""Shared helpers for the probe CLI package.

Contains HelpGroup, the shared Click settings, config loading with CLI
overrides, and the rich step report.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from probe_core.config import ConfigError, ProbeConfig, load_config
from probe_core.paths import configure_logger
from probe_core.probe import ProbeResult

_log = configure_logger("probe.cli")

# Shared Click settings: make -h and --help both work everywhere
CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


class HelpGroup(click.Group):
    """Click Group that treats 'help' as an alias for --help everywhere.

    Handles two cases:
    - ``probe help``: 'help' as the command name on the group
    - ``probe run help``: 'help' as an arg to a leaf command
    """

    def resolve_command(self, ctx, args):
        if args and args[0] == "help":
            if super().get_command(ctx, "help") is not None:
                return super().resolve_command(ctx, args)
            args = ["--help"] + args[1:]
        cmd_name, cmd, remaining = super().resolve_command(ctx, args)
        if (remaining and remaining[0] == "help"
                and cmd is not None and not isinstance(cmd, click.Group)):
            remaining = ["--help"] + remaining[1:]
        return cmd_name, cmd, remaining


def fail(message: str) -> None:
    """Print a probe diagnostic to stderr and exit 1."""
    click.echo(f"probe: {message}", err=True)
    raise SystemExit(1)


def config_from_cli(config_path: str | None, **overrides) -> ProbeConfig:
    """Load the effective config, exiting with a diagnostic on bad input."""
    try:
        return load_config(Path(config_path) if config_path else None, **overrides)
    except ConfigError as e:
        _log.warning("config error: %s", e)
        fail(str(e))


def print_report(result: ProbeResult) -> None:
    """Render a per-step timing table on stderr."""
    table = Table(title=f"probe {result.session_name}")
    table.add_column("step")
    table.add_column("detail", overflow="fold")
    table.add_column("time", justify="right")
    table.add_column("status")
    for s in result.steps:
        if s.skipped:
            status = "[yellow]skipped[/]"
        elif s.error is not None:
            status = f"[red]failed: {escape(str(s.error))}[/]"
        else:
            status = "[green]ok[/]"
        table.add_row(s.name, escape(s.detail), f"{s.duration:.3f}s", status)
    if result.wait is not None and result.wait.timed_out:
        table.caption = "pane did not settle before max wait"
    Console(stderr=True).print(table)
