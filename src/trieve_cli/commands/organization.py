"""Organization commands -- list and switch the active organization.

Both commands resolve the organizations of the active settings through
``/api/auth/me``.
"""

from __future__ import annotations

from typing import Optional

import typer

from trieve_cli.commands.common import (
    active_settings,
    get_prompter,
    open_store,
    reported_errors,
    store_bypassed,
)
from trieve_cli.exceptions import InvalidUsageError
from trieve_cli.output import info, print_table, success


organization_app = typer.Typer(no_args_is_help=True)


@organization_app.command("list")
def organization_list(ctx: typer.Context) -> None:
    """List the organizations the active API key belongs to."""
    from trieve_cli.client import fetch_identity

    with reported_errors():
        settings = active_settings(ctx, open_store(ctx))
        identity = fetch_identity(settings)

    if not identity.orgs:
        info(f"{identity.display_name} does not belong to any organization.")
        return

    rows = [
        ["*" if org.id == settings.organization_id else "", org.id, org.name]
        for org in identity.orgs
    ]
    print_table(["Active", "ID", "Name"], rows, title="Organizations")


@organization_app.command("switch")
def organization_switch(
    ctx: typer.Context,
    organization_id: Optional[str] = typer.Argument(
        None, help="Organization to switch to (default: choose from a list)."
    ),
) -> None:
    """Switch the active profile to another organization.

    Example::

        trieve organization switch
        trieve organization switch 6f1c...
    """
    from trieve_cli.organizations import OrganizationSwitcher

    with reported_errors():
        if store_bypassed(ctx):
            raise InvalidUsageError(
                "Cannot switch organization while the profile store is bypassed."
            )
        prompter = get_prompter(ctx)
        store = open_store(ctx, prompter)
        settings = active_settings(ctx, store)
        new_settings = OrganizationSwitcher(store, prompter).switch(settings, organization_id)

    success(f"Switched to organization '{new_settings.organization_id}'.")
