"""Shared CLI decorators: global options on leaf commands and connection options."""

from __future__ import annotations

import codecs
import functools
from typing import TYPE_CHECKING, Any

import click

from witslink.models.config import ProtocolVariant, TransportKind
from witslink.output.formatter import FORMATS

if TYPE_CHECKING:
    from witslink.cli.main import AppContext

_CONNECTION_KEYS = (
    "transport",
    "protocol",
    "host",
    "port",
    "serial_device",
    "baud_rate",
    "delimiter",
    "reconnect_interval",
    "max_reconnect_attempts",
)


def unescape(value: str | None) -> str | None:
    r"""Turn a shell-typed ``"\r\n"`` into a real CR LF."""
    if value is None:
        return None
    return codecs.decode(value, "unicode_escape")


def global_options(f: Any) -> Any:
    """Add global CLI options to a leaf command.

    Allows ``--format`` and ``--verbose`` to be specified **after** the
    subcommand name (e.g. ``witslink listen --format json``).  Command-level
    values override the root-group values stored in :class:`AppContext`.
    """

    @click.option(
        "--verbose",
        "local_verbose",
        is_flag=True,
        default=False,
        help="Enable verbose logging",
    )
    @click.option(
        "--format",
        "local_output_format",
        type=click.Choice(FORMATS),
        default=None,
        help="Output format (default: auto-detect)",
    )
    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        local_output_format: str | None = kwargs.pop("local_output_format", None)
        local_verbose: bool = kwargs.pop("local_verbose", False)

        if local_output_format is not None:
            app_ctx.output_format = local_output_format
            app_ctx._formatter = None  # reset cached formatter
        if local_verbose:
            app_ctx.set_verbose()

        return f(app_ctx, **kwargs)

    functools.update_wrapper(wrapper, f)
    return wrapper


def protocol_options(f: Any) -> Any:
    """Wire-format options shared by ``listen`` and ``parse``."""

    @click.option(
        "--protocol",
        type=click.Choice([p.value for p in ProtocolVariant]),
        default=None,
        help="Record format (default: WITSLINK_PROTOCOL or wits0)",
    )
    @click.option(
        "--delimiter",
        default=None,
        help=r"Record terminator, escapes allowed (default: \r\n for noralis, \n otherwise)",
    )
    @click.option(
        "--mappings",
        "mappings_file",
        type=click.Path(dir_okay=False),
        default=None,
        help="JSON mapping table (default: WITSLINK_MAPPINGS_FILE)",
    )
    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        kwargs["delimiter"] = unescape(kwargs.get("delimiter"))
        return f(*args, **kwargs)

    return wrapper


def connection_options(f: Any) -> Any:
    """Link options for ``listen``; collected into a single ``overrides`` dict."""

    @click.option("--transport", type=click.Choice([t.value for t in TransportKind]), default=None)
    @click.option("--host", default=None, help="Server host (TCP/WebSocket) or peer filter")
    @click.option("--port", type=int, default=None, help="Server port, or UDP listen port")
    @click.option("--device", "serial_device", default=None, help="Serial device path")
    @click.option("--baud", "baud_rate", type=int, default=None, help="Serial baud rate")
    @click.option("--reconnect-interval", type=float, default=None, help="Seconds between retries")
    @click.option("--max-attempts", "max_reconnect_attempts", type=int, default=None)
    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        overrides = {key: kwargs.pop(key, None) for key in _CONNECTION_KEYS if key in kwargs}
        return f(*args, overrides=overrides, **kwargs)

    return wrapper
