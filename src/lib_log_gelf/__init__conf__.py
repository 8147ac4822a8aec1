"""Static package metadata surfaced to CLI commands and documentation.

Purpose
-------
Keep the values printed by ``lib_log_gelf info`` in one place so the CLI,
doctests, and packaging stay consistent with ``pyproject.toml``.
"""

from __future__ import annotations

from collections.abc import Callable

name = "lib_log_gelf"
title = "GELF over UDP shipping with chunking and a supervised worker pool"
version = "0.1.0"
shell_command = "lib_log_gelf"


def print_info(writer: Callable[[str], None] | None = None) -> None:
    """Emit the metadata banner line by line.

    Examples
    --------
    >>> print_info()  # doctest: +ELLIPSIS
    Info for lib_log_gelf:
    <BLANKLINE>
        GELF over UDP shipping ...
    <BLANKLINE>
        name          = lib_log_gelf
        version       = 0.1.0
        shell_command = lib_log_gelf
    """

    fields = (("name", name), ("version", version), ("shell_command", shell_command))
    width = max(len(label) for label, _ in fields)
    lines = [f"Info for {name}:\n", "\n", f"    {title}\n", "\n"]
    lines.extend(f"    {label.ljust(width)} = {value}\n" for label, value in fields)
    emit = writer if writer is not None else (lambda text: print(text, end=""))
    for line in lines:
        emit(line)
