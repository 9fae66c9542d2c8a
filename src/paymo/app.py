"""Typer application and CLI entry point for paymo.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``cache``, ``sync``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the
Typer app. :class:`~paymo.exceptions.PaymoError` instances
exit with their mapped exit code; anything else is written to a crash log
under the data directory.

See Also:
    :mod:`paymo.config`: Configuration resolution used by every command.
    :mod:`paymo.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from paymo import __version__
from paymo.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="paymo",
    help="Command-line client for Paymo time tracking.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"paymo {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass the local cache for this command."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Paymo API base URL."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~paymo.output.OutputManager` from CLI
    flags and stores the flags that affect configuration (``no_cache``,
    ``base_url``) in ``ctx.obj`` for
    :func:`~paymo.commands.config_from_context`.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output, including cache
            hits and misses.
        no_cache: Talk to the API directly, neither reading nor writing
            the cache.
        base_url: Override the configured API base URL.
    """
    from paymo.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["no_cache"] = no_cache
    ctx.obj["base_url"] = base_url


# ------------------------------------------------------------------ #
# Built-in commands
# ------------------------------------------------------------------ #

from paymo.commands.cache import cache_app  # noqa: E402
from paymo.commands.sync import sync_command  # noqa: E402

app.add_typer(cache_app, name="cache", help="Local cache management.")
app.command("sync")(sync_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from paymo.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``paymo`` console script.

    Unhandled :class:`~paymo.exceptions.PaymoError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from paymo.exceptions import PaymoError
        from paymo.output import error

        if isinstance(exc, PaymoError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
