"""Configuration coercion for option mappings, environment, and ``.env`` files.

Purpose
-------
Translate loosely typed user input into validated :class:`GelfConfig`
snapshots so sinks never see raw strings. Also own the optional ``.env``
loading used by the CLI.

Contents
--------
* :class:`GelfSettings` – a config snapshot plus the optional pool size.
* :func:`build_settings` / :func:`build_config` – option mapping coercion.
* :func:`config_from_env` – ``GELF_*`` environment variables to options.
* :func:`parse_port` / :func:`parse_pool_size` / :func:`parse_pairs` – field
  helpers shared with the CLI.
* :func:`enable_dotenv` / :func:`should_use_dotenv` – ``.env`` support.

System Role
-----------
Edge of the system: the only place configuration errors are raised
(``ValueError``). Everything it returns is immutable.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .adapters.formatting import resolve_formatter
from .adapters.json_encoder import coerce_encoder
from .domain.config import ALL_METADATA, DEFAULT_PORT, Compression, GelfConfig, MetadataSelection, OversizePolicy
from .domain.levels import Severity

logger = logging.getLogger(__name__)

DOTENV_ENV_VAR = "GELF_USE_DOTENV"

#: Option keys understood by :func:`build_settings`.
OPTION_KEYS = frozenset(
    {
        "host",
        "port",
        "application",
        "hostname",
        "compression",
        "metadata",
        "tags",
        "json_encoder",
        "format",
        "level",
        "pool_size",
        "oversize_policy",
    }
)

_ENV_OPTIONS = {
    "GELF_HOST": "host",
    "GELF_PORT": "port",
    "GELF_APPLICATION": "application",
    "GELF_HOSTNAME": "hostname",
    "GELF_COMPRESSION": "compression",
    "GELF_METADATA": "metadata",
    "GELF_TAGS": "tags",
    "GELF_LEVEL": "level",
    "GELF_POOL_SIZE": "pool_size",
    "GELF_FORMAT": "format",
    "GELF_OVERSIZE_POLICY": "oversize_policy",
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

_dotenv_loaded: Path | None = None


@dataclass(slots=True, frozen=True)
class GelfSettings:
    """Validated configuration plus the dispatch mode.

    ``pool_size`` is ``None`` for synchronous delivery.
    """

    config: GelfConfig
    pool_size: int | None = None


def parse_port(value: Any) -> int:
    """Return ``value`` as a port number.

    Examples
    --------
    >>> parse_port("12201"), parse_port(514)
    (12201, 514)
    >>> parse_port("12x")
    Traceback (most recent call last):
    ...
    ValueError: port must be an unsigned integer, got '12x'
    """

    if isinstance(value, bool):
        raise ValueError(f"port must be an unsigned integer, got {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"port must be an unsigned integer, got {value!r}")
    return int(text)


def parse_pool_size(value: Any) -> int | None:
    """Return a positive pool size, or ``None`` when ``value`` is empty."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"pool_size must be a positive integer, got {value!r}")
    try:
        size = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"pool_size must be a positive integer, got {value!r}") from exc
    if size < 1:
        raise ValueError(f"pool_size must be a positive integer, got {value!r}")
    return size


def parse_pairs(value: Any) -> tuple[tuple[str, str], ...]:
    """Parse ``k=v`` items from a comma separated string or an iterable.

    Examples
    --------
    >>> parse_pairs("env=prod, team = core")
    (('env', 'prod'), ('team', 'core'))
    """

    if value is None:
        return ()
    items: Iterable[str] = value.split(",") if isinstance(value, str) else value
    pairs: list[tuple[str, str]] = []
    for item in items:
        text = item.strip()
        if not text:
            continue
        key, separator, raw = text.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"expected key=value, got {item!r}")
        pairs.append((key.strip(), raw.strip()))
    return tuple(pairs)


def _coerce_metadata(value: Any) -> MetadataSelection:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        if value.strip().lower().lstrip(":") == ALL_METADATA:
            return ALL_METADATA
        return frozenset(part.strip() for part in value.split(",") if part.strip())
    return frozenset(str(key) for key in value)


def _coerce_tags(value: Any) -> tuple[tuple[str, Any], ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return parse_pairs(value)
    if isinstance(value, Mapping):
        return tuple((str(key), item) for key, item in value.items())
    return tuple((str(key), item) for key, item in value)


def _coerce_level(value: Any) -> Severity | None:
    if value is None or value == "":
        return None
    if isinstance(value, Severity):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Severity.from_python_level(value)
    return Severity.from_name(str(value).lstrip(":"))


def _coerce_policy(value: Any) -> OversizePolicy:
    if value is None:
        return OversizePolicy.DROP
    if isinstance(value, OversizePolicy):
        return value
    try:
        return OversizePolicy(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"oversize_policy must be 'drop' or 'raise', got {value!r}") from exc


def build_settings(options: Mapping[str, Any] | None = None, /, **overrides: Any) -> GelfSettings:
    """Coerce an option mapping into :class:`GelfSettings`.

    Unknown keys are logged and ignored. Keyword ``overrides`` win over
    ``options``.

    Raises
    ------
    ValueError
        For an invalid port, pool size, level, host, or oversize policy.

    Examples
    --------
    >>> settings = build_settings({"port": "12201", "compression": "zlib", "pool_size": "2"}, hostname="box")
    >>> settings.config.port, settings.config.compression.value, settings.pool_size
    (12201, 'zlib', 2)
    """

    merged: dict[str, Any] = {**(options or {}), **overrides}
    unknown = sorted(set(merged) - OPTION_KEYS)
    if unknown:
        logger.warning("Ignoring unknown GELF options: %s", ", ".join(unknown))

    fields: dict[str, Any] = {
        "host": str(merged.get("host") or "127.0.0.1"),
        "port": parse_port(merged["port"]) if merged.get("port") not in (None, "") else DEFAULT_PORT,
        "application": merged.get("application"),
        "compression": Compression.coerce(merged.get("compression", Compression.GZIP)),
        "metadata_keys": _coerce_metadata(merged.get("metadata")),
        "tags": _coerce_tags(merged.get("tags")),
        "encoder": coerce_encoder(merged.get("json_encoder")),
        "formatter": resolve_formatter(merged.get("format")),
        "min_level": _coerce_level(merged.get("level")),
        "oversize_policy": _coerce_policy(merged.get("oversize_policy")),
    }
    if merged.get("hostname"):
        fields["hostname"] = str(merged["hostname"])
    return GelfSettings(config=GelfConfig(**fields), pool_size=parse_pool_size(merged.get("pool_size")))


def build_config(options: Mapping[str, Any] | None = None, /, **overrides: Any) -> GelfConfig:
    """Return only the :class:`GelfConfig` part of :func:`build_settings`."""
    return build_settings(options, **overrides).config


def config_from_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect ``GELF_*`` variables as an option mapping for :func:`build_settings`.

    Examples
    --------
    >>> config_from_env({"GELF_HOST": "logs", "GELF_PORT": "12202", "HOME": "/root"})
    {'host': 'logs', 'port': '12202'}
    """

    source = os.environ if environ is None else environ
    return {option: source[name] for name, option in _ENV_OPTIONS.items() if source.get(name, "") != ""}


def should_use_dotenv(*, explicit: bool | None = None, env_value: str | None = None) -> bool:
    """Decide whether ``.env`` loading applies; an explicit flag wins."""
    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    normalized = env_value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized not in _FALSY and normalized:
        logger.warning("Ignoring unrecognised %s value %r", DOTENV_ENV_VAR, env_value)
    return False


def enable_dotenv(*, search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` without overriding existing variables.

    Returns the loaded file or ``None`` when none was found. Repeated calls
    return the first loaded file.
    """

    global _dotenv_loaded
    if _dotenv_loaded is not None:
        return _dotenv_loaded
    if search_from is None:
        candidate = find_dotenv(usecwd=True)
    else:
        candidate = _search_upwards(search_from)
    if not candidate:
        return None
    path = Path(candidate).resolve()
    load_dotenv(path, override=False)
    _dotenv_loaded = path
    logger.debug("Loaded environment from %s", path)
    return path


def _search_upwards(start: Path) -> str:
    for directory in (start.resolve(), *start.resolve().parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return str(candidate)
    return ""


def _reset_dotenv_state_for_testing() -> None:
    global _dotenv_loaded
    _dotenv_loaded = None


__all__ = [
    "DOTENV_ENV_VAR",
    "GelfSettings",
    "OPTION_KEYS",
    "build_config",
    "build_settings",
    "config_from_env",
    "enable_dotenv",
    "parse_pairs",
    "parse_pool_size",
    "parse_port",
    "should_use_dotenv",
]
