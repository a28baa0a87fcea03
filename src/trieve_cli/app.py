"""The ``trieve`` command.

Builds the root Typer application from the command modules and provides
:func:`main`, the console-script entry point. Global options are parsed once
by :func:`main_callback` into a
:class:`~trieve_cli.commands.common.GlobalOptions` stored on ``ctx.obj``.

Exit status: ``0`` on success or a declined confirmation, the error's
``exit_code`` for a :class:`~trieve_cli.exceptions.TrieveError`, ``130`` on
Ctrl-C, and ``1`` (with a crash log under the data directory) for anything
unexpected.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from trieve_cli import __version__
from trieve_cli.commands.auth import configure_command, login_command, whoami_command
from trieve_cli.commands.common import GlobalOptions
from trieve_cli.commands.organization import organization_app
from trieve_cli.commands.profile import profile_app
from trieve_cli.exceptions import TrieveError, UserCancelled
from trieve_cli.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from trieve_cli.output import OutputFormat, OutputManager, error, info, set_output

app = typer.Typer(
    name="trieve",
    help="Log in to Trieve and manage saved profiles and organizations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.command("login")(login_command)
app.command("configure")(configure_command)
app.command("whoami")(whoami_command)
app.add_typer(profile_app, name="profile", help="Manage saved profiles.")
app.add_typer(organization_app, name="organization", help="Manage the active organization.")


def _show_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"trieve {__version__}")
    raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Print the version."
    ),
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        "-p",
        envvar="TRIEVE_PROFILE",
        help="Run with this profile without making it the active one.",
    ),
    no_profile: bool = typer.Option(
        False,
        "--no-profile",
        help="Ignore saved profiles and read TRIEVE_API_KEY, "
        "TRIEVE_ORGANIZATION_ID and TRIEVE_API_URL.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print data as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Do not use colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data and problems."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug messages."),
    force: bool = typer.Option(False, "--force", "-f", help="Answer yes to every confirmation."),
    no_input: bool = typer.Option(False, "--no-input", help="Never prompt."),
) -> None:
    """Log in to Trieve and manage saved profiles and organizations."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )

    ctx.obj = GlobalOptions(
        profile=profile,
        no_profile=no_profile,
        force=force,
        no_input=no_input,
    )


def _crash_log(exc: BaseException) -> Path:
    """Write *exc*'s traceback under ``<data_dir>/logs`` and return the file."""
    from trieve_cli.config import get_data_dir

    directory = get_data_dir() / "logs"
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return path


def _interrupted(signum, frame) -> None:
    # SystemExit unwinds through the login flow, which closes its listener.
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def main() -> None:
    """Console-script entry point."""
    signal.signal(signal.SIGINT, _interrupted)
    try:
        app()
    except UserCancelled as exc:
        info(str(exc))
        sys.exit(exc.exit_code)
    except TrieveError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
