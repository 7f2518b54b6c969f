"""Click CLI definitions for probe.

The ``cli`` Click group, ``main`` entry point and all commands live
here.  Shared helpers (HelpGroup, config loading, the step report) are
in ``cli.helpers``.
"""

import click

from probe_core import tmux as tmux_mod
from probe_core.config import WAIT_MODES, dump_config
from probe_core.paths import set_global_setting
from probe_core.probe import run_probe
from probe_core.tmux import SessionCreationError
from probe_core.cli.helpers import (
    CONTEXT_SETTINGS,
    HelpGroup,
    _log,
    config_from_cli,
    fail,
    print_report,
)


@click.group(invoke_without_command=True, cls=HelpGroup, context_settings=CONTEXT_SETTINGS)
@click.pass_context
def cli(ctx):
    """probe: drive an editor plugin inside tmux and print what it shows."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(run_cmd)


@cli.command("run")
@click.option("-c", "--config", "config_path", default=None,
              help="probe.yaml to read (default: search upward from cwd)")
@click.option("--session", "session_name", default=None,
              help="tmux session name (default ferret-test)")
@click.option("--rtp", "runtime_path", default=None,
              help="Directory appended to vim's runtimepath (default: cwd)")
@click.option("--plugin", default=None, help="Plugin file loaded with :runtime!")
@click.option("--delay", type=float, default=None,
              help="Seconds to sleep before capturing in fixed mode")
@click.option("--wait", "wait_mode", type=click.Choice(WAIT_MODES), default=None,
              help="fixed: sleep --delay; settle: poll until the pane stops changing")
@click.option("--max-wait", type=float, default=None,
              help="Upper bound in seconds for settle mode")
@click.option("--isolate", is_flag=True, default=False,
              help="Use a unique session name for this run")
@click.option("--teardown", is_flag=True, default=False,
              help="Kill the session when the run ends")
@click.option("--report", is_flag=True, default=False,
              help="Print per-step timings to stderr")
def run_cmd(config_path, session_name, runtime_path, plugin, delay, wait_mode,
            max_wait, isolate, teardown, report):
    """Run the probe and print the captured pane.

    Creates the session, starts the editor, loads the plugin, types the
    key sequence, waits, then prints the copy buffer verbatim.  The
    session is left running unless --teardown is given, so a second run
    with the same session name fails until 'probe clean' is run.

    \b
    Examples:
      probe                         # defaults, same as 'probe run'
      probe run --wait settle --report
      probe run --isolate --teardown --rtp ~/code/ferret
    """
    config = config_from_cli(
        config_path,
        session_name=session_name,
        runtime_path=runtime_path,
        plugin=plugin,
        delay=delay,
        wait_mode=wait_mode,
        max_wait=max_wait,
        isolate=isolate or None,
        teardown=teardown or None,
    )

    try:
        result = run_probe(config)
    except SessionCreationError as e:
        _log.warning("create-session failed: %s", e)
        fail(f"create-session failed: {e}")

    click.echo(result.output, nl=False)
    if report:
        print_report(result)
    if result.error is not None:
        fail(f"{result.failed_step} failed: {result.error}")


@cli.command("clean")
@click.option("--session", "session_name", default=None,
              help="Session to kill (default from config)")
@click.option("-c", "--config", "config_path", default=None, help="probe.yaml to read")
def clean_cmd(session_name, config_path):
    """Kill a session left behind by an earlier run."""
    config = config_from_cli(config_path, session_name=session_name)
    name = config.session_name
    if not tmux_mod.session_exists(name, socket_path=config.socket_path):
        click.echo(f"No session '{name}'.")
        return
    tmux_mod.kill_session(name, socket_path=config.socket_path)
    _log.info("killed session %s", name)
    click.echo(f"Killed session '{name}'.")


@cli.command("config")
@click.option("-c", "--config", "config_path", default=None, help="probe.yaml to read")
def config_cmd(config_path):
    """Print the effective configuration as YAML."""
    config = config_from_cli(config_path)
    click.echo(dump_config(config), nl=False)


@cli.command("set")
@click.argument("setting", type=click.Choice(["debug"]))
@click.argument("value", type=click.Choice(["on", "off"]))
def set_cmd(setting, value):
    """Configure a global probe setting.

    \b
      debug   Log every tmux call at DEBUG level to ~/.probe/debug/probe.log
    """
    set_global_setting(setting, value == "on")
    click.echo(f"{setting} = {value}")


def main():
    cli()
