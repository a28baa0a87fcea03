"""Login commands -- create profiles from a browser login or explicit values.

``trieve login`` runs the browser hand-off through
:class:`~trieve_cli.auth.flow.AuthFlowCoordinator` and stores the result
with :meth:`~trieve_cli.profiles.ProfileStore.upsert`. ``trieve configure``
stores settings typed in (or passed as flags) without a browser, and
``trieve whoami`` shows who the active settings belong to.

Typical workflow::

    trieve login                          # browser login into "default"
    trieve login --profile-name staging --api-url https://staging.example.com
    trieve whoami
"""

from __future__ import annotations

from typing import Optional

import typer

from trieve_cli.auth.callback import CallbackListener, CaptureStrategy
from trieve_cli.commands.common import (
    active_settings,
    get_prompter,
    mask_secret,
    open_store,
    reported_errors,
)
from trieve_cli.models import DEFAULT_API_URL, Settings
from trieve_cli.output import info, print_record, success, suggest
from trieve_cli.profiles import DEFAULT_PROFILE_NAME


def login_command(
    ctx: typer.Context,
    profile_name: str = typer.Option(
        DEFAULT_PROFILE_NAME, "--profile-name", "-n", help="Profile to store the login in."
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        "-k",
        envvar="TRIEVE_API_KEY",
        help="Use this API key instead of logging in through the browser.",
    ),
    organization_id: Optional[str] = typer.Option(
        None,
        "--organization-id",
        "-o",
        envvar="TRIEVE_ORGANIZATION_ID",
        help="Use this organization instead of choosing one.",
    ),
    api_url: str = typer.Option(
        DEFAULT_API_URL, "--api-url", envvar="TRIEVE_API_URL", help="Trieve server URL."
    ),
    timeout: float = typer.Option(
        300.0, "--timeout", min=1, help="Seconds to wait for the browser login."
    ),
    port: int = typer.Option(
        65535, "--port", min=0, max=65535, help="Local port for the login callback."
    ),
    capture: CaptureStrategy = typer.Option(
        CaptureStrategy.QUERY_PARAM,
        "--capture",
        case_sensitive=False,
        help="Where the dashboard puts the API key in its redirect.",
    ),
    cookie_name: Optional[str] = typer.Option(
        None, "--cookie-name", help="Cookie holding the key when capturing from headers."
    ),
) -> None:
    """Log in through the browser and save the result as a profile.

    Starts a listener on ``127.0.0.1:<port>``, opens the dashboard login
    page, and waits for it to redirect back with an API key. The key's
    organizations are then listed for selection. The resulting settings
    replace the profile (asking first if it already holds a key) and the
    profile becomes the active one.

    ``--capture header`` reads the key from the redirect's ``Cookie``
    header (the cookie named by ``--cookie-name``, or the first one)
    instead of its ``apiKey`` query parameter.

    Example::

        trieve login
        trieve login --capture header --cookie-name session
        trieve login --profile-name ci --api-key $KEY --organization-id $ORG
    """
    from trieve_cli.auth.flow import AuthFlowCoordinator

    with reported_errors():
        prompter = get_prompter(ctx)
        store = open_store(ctx, prompter)
        existing = store.get(profile_name)

        coordinator = AuthFlowCoordinator(
            prompter,
            listener=CallbackListener(port=port, strategy=capture, cookie_name=cookie_name),
            timeout=timeout,
        )
        settings = coordinator.login(
            api_url,
            api_key=api_key,
            organization_id=organization_id,
            current=existing.settings if existing is not None else None,
        )
        store.upsert(profile_name, settings)

    success(f'Logged in. Profile "{profile_name}" is now active.')
    suggest("See all profiles: trieve profile list")


def configure_command(
    ctx: typer.Context,
    profile_name: str = typer.Option(
        DEFAULT_PROFILE_NAME, "--profile-name", "-n", help="Profile to write."
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", "-k", envvar="TRIEVE_API_KEY", help="API key from the dashboard."
    ),
    organization_id: Optional[str] = typer.Option(
        None,
        "--organization-id",
        "-o",
        envvar="TRIEVE_ORGANIZATION_ID",
        help="Organization id from the dashboard.",
    ),
    api_url: str = typer.Option(
        DEFAULT_API_URL, "--api-url", envvar="TRIEVE_API_URL", help="Trieve server URL."
    ),
) -> None:
    """Save an API key and organization without a browser login.

    Values not passed as flags or environment variables are prompted for.
    The organization id must be a UUID. Nothing is checked against the server.

    Example::

        trieve configure --api-key tr-... --organization-id 6f1c...
    """
    from trieve_cli.organizations import parse_organization_id

    with reported_errors():
        prompter = get_prompter(ctx)
        if not api_key:
            info("An API key is required. Find yours in the Trieve dashboard.")
            api_key = prompter.text("API Key", hide_input=True)
        if not organization_id:
            info("An organization id is required. Find it in the Trieve dashboard.")
            organization_id = prompter.text("Organization ID")
        organization_id = parse_organization_id(organization_id)

        settings = Settings(api_key=api_key, organization_id=organization_id, api_url=api_url)
        open_store(ctx, prompter).upsert(profile_name, settings)

    success(f'Saved profile "{profile_name}".')


def whoami_command(ctx: typer.Context) -> None:
    """Show the user and organization behind the active settings.

    Example::

        trieve whoami
        trieve --profile staging whoami --json
    """
    from trieve_cli.client import fetch_identity

    with reported_errors():
        settings = active_settings(ctx, open_store(ctx))
        identity = fetch_identity(settings)

    org = next((o for o in identity.orgs if o.id == settings.organization_id), None)
    print_record(
        {
            "User": identity.display_name,
            "Email": identity.email or "-",
            "Organization": str(org) if org is not None else settings.organization_id or "-",
            "API URL": settings.api_url,
            "API Key": mask_secret(settings.api_key),
        },
        title="Current Identity",
    )
