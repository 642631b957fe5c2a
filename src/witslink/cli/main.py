"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from witslink import __version__
from witslink.errors import ConfigError, WitsLinkError
from witslink.models.config import AppSettings
from witslink.output.formatter import FORMATS, OutputFormatter

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    output_format: str | None
    verbose: bool
    settings: AppSettings = dataclasses.field(default_factory=AppSettings)
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            self._formatter = OutputFormatter(force_format=self.output_format)
        return self._formatter

    def set_verbose(self) -> None:
        self.verbose = True
        configure_logging(verbose=True)


def configure_logging(*, verbose: bool) -> None:
    """Route ``witslink`` log records to stderr through Rich."""
    log = logging.getLogger("witslink")
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in log.handlers):
        log.addHandler(
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
                log_time_format="%H:%M:%S",
            )
        )


@click.group()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMATS),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.version_option(version=__version__, prog_name="witslink")
@click.pass_context
def cli(ctx: click.Context, output_format: str | None, verbose: bool) -> None:
    """Stream and decode WITS / Noralis drilling telemetry."""
    configure_logging(verbose=verbose)
    ctx.obj = AppContext(output_format=output_format, verbose=verbose)


def _register_commands() -> None:
    """Import and attach all subcommands to the root CLI."""
    from witslink.cli.listen import listen_cmd
    from witslink.cli.mappings import mappings_cmd
    from witslink.cli.parse import parse_cmd

    cli.add_command(listen_cmd)
    cli.add_command(mappings_cmd)
    cli.add_command(parse_cmd)


_register_commands()


def main(argv: list[str] | None = None) -> None:
    """Console-script entry: run :data:`cli` and map failures to exit codes."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except WitsLinkError as exc:
        _report_failure(exc, "config_error" if isinstance(exc, ConfigError) else "witslink_error")
        raise SystemExit(1) from exc
    except Exception as exc:
        logger.debug("Unhandled CLI failure", exc_info=True)
        _report_failure(exc, type(exc).__name__)
        raise SystemExit(1) from exc


def _report_failure(exc: Exception, code: str) -> None:
    """Print *exc* in the active output format (JSON envelope or red line)."""
    app_ctx: AppContext | None = None
    parts: list[str] = []
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if app_ctx is None and isinstance(ctx.obj, AppContext):
            app_ctx = ctx.obj
        if ctx.parent is not None and ctx.info_name:
            parts.append(ctx.info_name)
        ctx = ctx.parent
    formatter = app_ctx.formatter if app_ctx is not None else OutputFormatter()
    command = ".".join(reversed(parts)) or "witslink"
    formatter.output_error(code=code, message=str(exc), command=command)
