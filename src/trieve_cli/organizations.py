"""Organization selection and switching for the active profile.

An API key can belong to several organizations. The organization a
profile talks to is part of its :class:`~trieve_cli.models.Settings`;
:class:`OrganizationSwitcher` changes it, either to an id given on the
command line or to one the user picks from ``/api/auth/me``.
"""

from __future__ import annotations

import uuid
from typing import Callable, Optional

from trieve_cli.client import fetch_identity
from trieve_cli.exceptions import AuthError, InvalidUsageError
from trieve_cli.models import Identity, Organization, Settings
from trieve_cli.output import debug
from trieve_cli.profiles import ProfileStore
from trieve_cli.prompts import Prompter

IdentityFetcher = Callable[[Settings], Identity]


def parse_organization_id(value: str) -> str:
    """Return *value* as a canonical organization UUID.

    Raises:
        InvalidUsageError: If *value* is not a UUID.
    """
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        raise InvalidUsageError(f"Invalid organization ID: '{value}'") from None


def choose_organization(
    prompter: Prompter,
    identity: Identity,
    current_id: Optional[str] = None,
) -> Organization:
    """Ask the user to pick one of *identity*'s organizations.

    The prompt defaults to *current_id* when it is one of the options. A user
    with a single organization is not prompted.

    Raises:
        AuthError: If the user belongs to no organization.
    """
    orgs = identity.orgs
    if not orgs:
        raise AuthError(f"{identity.display_name} does not belong to any organization.")
    if len(orgs) == 1:
        debug(f"Only one organization available: {orgs[0]}")
        return orgs[0]

    default_index = next((i for i, org in enumerate(orgs) if org.id == current_id), None)
    idx = prompter.select(
        "Select an organization to use:",
        [str(org) for org in orgs],
        default_index,
    )
    return orgs[idx]


class OrganizationSwitcher:
    """Point the active settings at another organization.

    Args:
        store: Profile store to write the new settings into.
        prompter: Used to pick an organization when none is given.
        identity_fetcher: Resolves settings to an
            :class:`~trieve_cli.models.Identity`.
    """

    def __init__(
        self,
        store: ProfileStore,
        prompter: Prompter,
        identity_fetcher: IdentityFetcher = fetch_identity,
    ) -> None:
        self._store = store
        self._prompter = prompter
        self._identity_fetcher = identity_fetcher

    def resolve_organization(self, active: Settings, organization_id: Optional[str]) -> str:
        if organization_id:
            return parse_organization_id(organization_id)
        identity = self._identity_fetcher(active)
        current = self._store.active()
        current_id = current.settings.organization_id if current else active.organization_id
        return choose_organization(self._prompter, identity, current_id).id

    def switch(self, active: Settings, organization_id: Optional[str] = None) -> Settings:
        """Switch *active* to another organization and persist it.

        Every stored profile whose settings equal *active* receives the new
        settings; see :meth:`~trieve_cli.profiles.ProfileStore.replace_settings`.

        Returns:
            The new settings.

        Raises:
            InvalidUsageError: If *organization_id* is not a UUID.
            IdentityFetchError: If the organization list cannot be fetched.
            ConfigError: If *active* is not held by any stored profile.
        """
        target = self.resolve_organization(active, organization_id)
        new_settings = active.with_organization(target)
        self._store.replace_settings(active, new_settings)
        return new_settings
