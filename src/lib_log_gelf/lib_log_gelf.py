"""Composition helpers wiring configuration into ready-to-use sinks.

Purpose
-------
Give host applications one call that turns an option mapping (or the
environment) into a :class:`LogSink`, choosing synchronous or pooled delivery
from ``pool_size``.

Contents
--------
* :func:`create_sink` – options to sink.
* :func:`create_sink_from_env` – ``GELF_*`` variables to sink.
* :func:`summary_info` – metadata banner used by the CLI.

System Role
-----------
Edge composition point; inner layers never read options or the environment.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .adapters.pool import TransportFactory, default_transport_factory
from .adapters.sinks import GelfAsyncSink, GelfSink
from .application.use_cases.ship_event import DiagnosticHook
from .config import build_settings, config_from_env
from .domain.stats import DeliveryStats


def create_sink(
    options: Mapping[str, Any] | None = None,
    /,
    *,
    diagnostic: DiagnosticHook | None = None,
    stats: DeliveryStats | None = None,
    transport_factory: TransportFactory = default_transport_factory,
    **overrides: Any,
) -> GelfSink | GelfAsyncSink:
    """Build a sink from ``options``; a ``pool_size`` selects pooled delivery.

    Raises
    ------
    ValueError
        When the options do not describe a valid configuration.

    Examples
    --------
    >>> sink = create_sink({"host": "127.0.0.1", "port": "12201"}, hostname="box")
    >>> type(sink).__name__, sink.config.port
    ('GelfSink', 12201)
    >>> sink.close()
    """

    settings = build_settings(options, **overrides)
    if settings.pool_size is None:
        return GelfSink(settings.config, transport_factory=transport_factory, stats=stats, diagnostic=diagnostic)
    return GelfAsyncSink(
        settings.config,
        settings.pool_size,
        transport_factory=transport_factory,
        stats=stats,
        diagnostic=diagnostic,
    )


def create_sink_from_env(
    environ: Mapping[str, str] | None = None,
    *,
    diagnostic: DiagnosticHook | None = None,
    **overrides: Any,
) -> GelfSink | GelfAsyncSink:
    """Build a sink from ``GELF_*`` variables; keyword overrides win."""
    return create_sink(config_from_env(environ), diagnostic=diagnostic, **overrides)


def summary_info() -> str:
    """Return the metadata banner printed by ``lib_log_gelf info``.

    Examples
    --------
    >>> summary_info().startswith("Info for lib_log_gelf")
    True
    """
    from . import __init__conf__

    lines: list[str] = []
    __init__conf__.print_info(writer=lines.append)
    return "".join(lines)


__all__ = ["create_sink", "create_sink_from_env", "summary_info"]
