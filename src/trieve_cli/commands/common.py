"""Helpers shared by the command modules.

Commands read the :class:`GlobalOptions` that
:func:`~trieve_cli.app.main_callback` stores on ``ctx.obj`` through these
helpers, and report :class:`~trieve_cli.exceptions.TrieveError` failures
with :func:`reported_errors` so that each error exits with its own code.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from pydantic import BaseModel, ConfigDict

from trieve_cli.config import ENV_NO_PROFILE, ProfileStorage, env_flag, resolve_settings
from trieve_cli.exceptions import TrieveError, UserCancelled
from trieve_cli.models import Settings
from trieve_cli.output import error, info
from trieve_cli.profiles import ProfileStore
from trieve_cli.prompts import Prompter


class GlobalOptions(BaseModel):
    """Options given before the sub-command, shared by every command."""

    model_config = ConfigDict(frozen=True)

    profile: Optional[str] = None
    no_profile: bool = False
    force: bool = False
    no_input: bool = False


def global_options(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.find_object(GlobalOptions)
    return obj if obj is not None else GlobalOptions()


def get_prompter(ctx: typer.Context) -> Prompter:
    options = global_options(ctx)
    return Prompter(interactive=not options.no_input, assume_yes=options.force)


def open_store(ctx: typer.Context, prompter: Optional[Prompter] = None) -> ProfileStore:
    prompter = prompter or get_prompter(ctx)
    return ProfileStore(ProfileStorage(), confirm=prompter.confirm)


def active_settings(ctx: typer.Context, store: ProfileStore) -> Settings:
    """Settings for this invocation, honouring ``--profile`` and ``--no-profile``."""
    options = global_options(ctx)
    return resolve_settings(
        lambda: store.collection,
        cli_profile=options.profile,
        no_profile=options.no_profile,
    )


def store_bypassed(ctx: typer.Context) -> bool:
    return global_options(ctx).no_profile or env_flag(ENV_NO_PROFILE)


def mask_secret(value: str) -> str:
    if not value:
        return "-"
    if len(value) <= 8:
        return "*" * len(value)
    return value[:6] + "..." + value[-2:]


@contextmanager
def reported_errors() -> Iterator[None]:
    """Print a :class:`TrieveError` and exit with its code.

    A declined confirmation is reported as information and exits 0.
    """
    try:
        yield
    except UserCancelled as exc:
        info(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except TrieveError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
