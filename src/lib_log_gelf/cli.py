"""Command-line interface: metadata banner, test sender, and debug listener.

Purpose
-------
Expose ``lib_log_gelf info``, ``lib_log_gelf send`` and ``lib_log_gelf
listen`` so operators can check a collector path end to end without writing
code.

Contents
--------
* :func:`cli` – click group holding the global ``--traceback`` and
  ``--use-dotenv`` flags.
* :func:`cli_info`, :func:`cli_send`, :func:`cli_listen` – subcommands.
* :func:`main` – entry point delegating to :mod:`lib_cli_exit_tools`.

System Role
-----------
Presentation layer. Configuration errors become click usage errors; delivery
results are rendered with :mod:`rich`.
"""

from __future__ import annotations

import os
import time
from collections.abc import Sequence
from typing import Any

import click
import lib_cli_exit_tools
from rich.console import Console
from rich.table import Table

from . import __init__conf__
from . import config as gelf_config
from .adapters.collector import GelfCollector
from .adapters.sinks import GelfAsyncSink
from .domain.events import LogEvent
from .domain.levels import Severity
from .domain.stats import DeliverySnapshot, DeliveryStats
from .lib_log_gelf import summary_info

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_SEVERITY_CHOICES = [level.value for level in Severity]
_COMPRESSION_CHOICES = ["gzip", "zlib", "none"]


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def _pairs(values: Sequence[str], option: str) -> tuple[tuple[str, str], ...]:
    try:
        return gelf_config.parse_pairs(values)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=option) from exc


def _render_stats(console: Console, snapshot: DeliverySnapshot, *, title: str) -> None:
    table = Table(title=title)
    table.add_column("counter")
    table.add_column("value", justify="right")
    for name, value in snapshot.as_dict().items():
        table.add_row(name, str(value))
    console.print(table)


@click.group(
    help="Ship log events as GELF over UDP",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=True,
)
@click.version_option(
    version=__init__conf__.version,
    prog_name=__init__conf__.shell_command,
    message=f"{__init__conf__.shell_command} version {__init__conf__.version}",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=None,
    help=f"Load GELF_* variables from the nearest .env (default: ${gelf_config.DOTENV_ENV_VAR})",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, use_dotenv: bool | None) -> None:
    """Root command storing global flags; runs ``info`` when no subcommand is given."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    if gelf_config.should_use_dotenv(explicit=use_dotenv, env_value=os.getenv(gelf_config.DOTENV_ENV_VAR)):
        gelf_config.enable_dotenv()
    if ctx.invoked_subcommand is None:
        ctx.invoke(cli_info)


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print resolved metadata so users can inspect installation details."""

    click.echo(summary_info(), nl=False)


@cli.command("send", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("message")
@click.option("--host", envvar="GELF_HOST", default="127.0.0.1", show_default=True, help="Collector host")
@click.option("--port", envvar="GELF_PORT", default="12201", show_default=True, help="Collector UDP port")
@click.option("--level", type=click.Choice(_SEVERITY_CHOICES, case_sensitive=False), default="info", show_default=True)
@click.option("--application", envvar="GELF_APPLICATION", default=None, help="Value of the _application field")
@click.option("--hostname", envvar="GELF_HOSTNAME", default=None, help="Override the GELF host field")
@click.option(
    "--compression",
    envvar="GELF_COMPRESSION",
    type=click.Choice(_COMPRESSION_CHOICES, case_sensitive=False),
    default="gzip",
    show_default=True,
)
@click.option("--format", "message_format", envvar="GELF_FORMAT", default=None, help="Message template, e.g. '[$level] $message'")
@click.option("--meta", multiple=True, metavar="KEY=VALUE", help="Event metadata (repeatable)")
@click.option("--tag", multiple=True, metavar="KEY=VALUE", help="Static tag added to every document (repeatable)")
@click.option("--pool-size", envvar="GELF_POOL_SIZE", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--repeat", type=click.IntRange(min=1), default=1, show_default=True, help="Number of events to send")
@click.option("--timeout", type=click.FloatRange(min=0), default=5.0, show_default=True, help="Seconds to wait for delivery")
def cli_send(
    message: str,
    host: str,
    port: str,
    level: str,
    application: str | None,
    hostname: str | None,
    compression: str,
    message_format: str | None,
    meta: tuple[str, ...],
    tag: tuple[str, ...],
    pool_size: int,
    repeat: int,
    timeout: float,
) -> None:
    """Send MESSAGE through a worker pool and print the delivery counters."""

    metadata = _pairs(meta, "--meta")
    options: dict[str, Any] = {
        "host": host,
        "port": port,
        "application": application,
        "hostname": hostname,
        "compression": compression,
        "metadata": "all",
        "tags": _pairs(tag, "--tag"),
        "format": message_format,
        "pool_size": pool_size,
    }
    try:
        settings = gelf_config.build_settings(options)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    stats = DeliveryStats()
    severity = Severity.from_name(level)
    sink = GelfAsyncSink(settings.config, settings.pool_size or 1, stats=stats, close_timeout=timeout)
    try:
        for _ in range(repeat):
            sink.submit(LogEvent.create(severity, message, metadata=metadata))
    finally:
        sink.close()

    console = _console()
    _render_stats(console, stats.snapshot(), title=f"GELF delivery to {host}:{settings.config.port}")


@cli.command("listen", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--host", default="127.0.0.1", show_default=True, help="Address to bind")
@click.option("--port", envvar="GELF_PORT", default="12201", show_default=True, help="UDP port to bind (0 picks a free one)")
@click.option("--count", type=click.IntRange(min=0), default=0, show_default=True, help="Stop after N documents (0 runs until interrupted)")
@click.option("--timeout", type=click.FloatRange(min=0), default=None, help="Stop after this many seconds")
def cli_listen(host: str, port: str, count: int, timeout: float | None) -> None:
    """Receive GELF datagrams, reassemble chunks, and print each document."""

    try:
        bind_port = gelf_config.parse_port(port)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--port") from exc

    console = _console()
    collector = GelfCollector(host, bind_port)
    address = collector.start()
    console.print(f"Listening for GELF on {address[0]}:{address[1]}")
    try:
        _stream_documents(console, collector, count, timeout)
    except KeyboardInterrupt:
        console.print("Interrupted")
    finally:
        collector.stop()


def _stream_documents(console: Console, collector: GelfCollector, count: int, timeout: float | None) -> None:
    shown = 0
    deadline = None if timeout is None else time.monotonic() + timeout
    while count == 0 or shown < count:
        if deadline is not None and time.monotonic() >= deadline:
            break
        documents = collector.wait_for(shown + 1, timeout=0.5)
        for document in documents[shown:]:
            console.print_json(data=document)
            shown += 1
            if count and shown >= count:
                break


def main(argv: Sequence[str] | None = None, *, restore_traceback: bool = True) -> int:
    """Run the CLI through :func:`lib_cli_exit_tools.run_cli`.

    Parameters
    ----------
    argv:
        Optional argument list; ``None`` uses ``sys.argv[1:]``.
    restore_traceback:
        Reset the global traceback flags after the run so embedding callers
        and tests see their previous values.

    Returns
    -------
    int
        Process exit code.
    """

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            argv=list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


__all__ = ["cli", "cli_info", "cli_listen", "cli_send", "main"]
