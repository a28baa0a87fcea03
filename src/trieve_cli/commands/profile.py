"""Profile commands -- list, inspect, create, switch, and delete profiles.

Provides the ``trieve profile`` sub-command group on top of
:class:`~trieve_cli.profiles.ProfileStore`. Switching and deleting prompt
for a profile when no name is given.
"""

from __future__ import annotations

from typing import Optional

import typer

from trieve_cli.commands.common import get_prompter, mask_secret, open_store, reported_errors
from trieve_cli.exceptions import LastProfileError, ProfileNotFoundError, UserCancelled
from trieve_cli.models import DEFAULT_API_URL, Profile, Settings
from trieve_cli.output import info, print_record, print_table, success, suggest
from trieve_cli.profiles import ProfileStore
from trieve_cli.prompts import Prompter


profile_app = typer.Typer(no_args_is_help=True)


def _pick_profile(store: ProfileStore, prompter: Prompter, message: str) -> str:
    profiles = store.collection.profiles
    names = [p.name for p in profiles]
    default_index = next((i for i, p in enumerate(profiles) if p.selected), None)
    return names[prompter.select(message, names, default_index)]


@profile_app.command("list")
def profile_list(ctx: typer.Context) -> None:
    """List profiles, the active one first.

    Example::

        trieve profile list
        trieve profile list --json
    """
    with reported_errors():
        profiles = open_store(ctx).list()

    if not profiles:
        info("No profiles configured.")
        suggest("Create one: trieve login")
        return

    headers = ["Active", "Profile", "Organization", "API URL", "API Key"]
    rows = [
        [
            "*" if p.selected else "",
            p.name,
            p.settings.organization_id or "-",
            p.settings.api_url,
            mask_secret(p.settings.api_key),
        ]
        for p in profiles
    ]
    print_table(headers, rows, title="Profiles")


@profile_app.command("show")
def profile_show(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Argument(None, help="Profile to show (default: active)."),
) -> None:
    """Show one profile."""
    with reported_errors():
        store = open_store(ctx)
        profile: Optional[Profile]
        if profile_name is None:
            profile = store.active()
            if profile is None:
                info("No profiles configured.")
                suggest("Create one: trieve login")
                return
        else:
            profile = store.get(profile_name)
            if profile is None:
                raise ProfileNotFoundError(profile_name)

    print_record(
        {
            "Profile": profile.name,
            "Active": "yes" if profile.selected else "no",
            "Organization": profile.settings.organization_id or "-",
            "API URL": profile.settings.api_url,
            "API Key": mask_secret(profile.settings.api_key),
        },
        title="Profile",
    )


@profile_app.command("create")
def profile_create(
    ctx: typer.Context,
    profile_name: str = typer.Argument(help="Name of the new profile."),
    api_url: str = typer.Option(DEFAULT_API_URL, "--api-url", help="Trieve server URL."),
) -> None:
    """Create an empty profile and make it active.

    The profile holds no key until ``trieve login --profile-name NAME``
    fills it in, and that login will not ask before overwriting it.
    """
    with reported_errors():
        open_store(ctx).upsert(profile_name, Settings(api_url=api_url))

    success(f'Created profile "{profile_name}".')
    suggest(f"Log in to it: trieve login --profile-name {profile_name}")


@profile_app.command("switch")
def profile_switch(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Argument(None, help="Profile to switch to."),
) -> None:
    """Make another profile the active one.

    Example::

        trieve profile switch staging
        trieve profile switch          # choose from a list
    """
    with reported_errors():
        prompter = get_prompter(ctx)
        store = open_store(ctx, prompter)
        if profile_name is None:
            profile_name = _pick_profile(store, prompter, "Select a profile to switch to:")
        store.select(profile_name)

    success(f'Switched to profile "{profile_name}".')


@profile_app.command("delete")
def profile_delete(
    ctx: typer.Context,
    profile_name: Optional[str] = typer.Argument(None, help="Profile to delete."),
) -> None:
    """Delete a profile.

    Asks for confirmation unless ``--force`` is given. The last remaining
    profile cannot be deleted. If the active profile is deleted, the first
    remaining profile becomes active.

    Example::

        trieve profile delete old-staging
        trieve --force profile delete old-staging
    """
    with reported_errors():
        prompter = get_prompter(ctx)
        store = open_store(ctx, prompter)
        if profile_name is None:
            profile_name = _pick_profile(store, prompter, "Select a profile to delete:")
        if store.get(profile_name) is None:
            raise ProfileNotFoundError(profile_name)
        if len(store.collection) == 1:
            raise LastProfileError(profile_name)
        if not prompter.confirm(f'Delete profile "{profile_name}"?', False):
            raise UserCancelled()
        active = store.remove(profile_name)

    success(f'Deleted profile "{profile_name}".')
    if active is not None:
        info(f'Active profile: "{active.name}".')
