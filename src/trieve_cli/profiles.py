"""The profile store: named settings with exactly one selected entry.

:class:`ProfileStore` owns the :class:`~trieve_cli.models.ProfileCollection`
for the length of one command. Every mutation rebuilds the collection,
checks the invariants below, and persists it through
:class:`~trieve_cli.config.ProfileStorage` before returning:

1. profile names are unique;
2. a non-empty collection has exactly one selected profile.

A failed operation raises before anything is written, so the file on disk
is left exactly as it was.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from trieve_cli.config import ProfileStorage
from trieve_cli.exceptions import (
    ConfigError,
    LastProfileError,
    ProfileNotFoundError,
    UserCancelled,
)
from trieve_cli.models import Profile, ProfileCollection, Settings

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "default"

ConfirmFn = Callable[[str, bool], bool]


def _decline(message: str, default: bool) -> bool:
    return default


def check_invariants(collection: ProfileCollection) -> None:
    """Raise :class:`ConfigError` if *collection* breaks a store invariant."""
    names = collection.names()
    if len(names) != len(set(names)):
        raise ConfigError(f"Duplicate profile names: {names}")
    selected = [p.name for p in collection.profiles if p.selected]
    if collection.profiles and len(selected) != 1:
        raise ConfigError(
            f"Expected exactly one selected profile, found {len(selected)}: {selected}"
        )


class ProfileStore:
    """Persisted, ordered collection of named profiles.

    Args:
        storage: Persistence backend. Defaults to the user's config directory.
        confirm: ``confirm(message, default) -> bool`` used before
            overwriting a provisioned profile. Without one, overwrites are
            declined.

    Example::

        store = ProfileStore(ProfileStorage(), confirm=Prompter().confirm)
        store.upsert("work", Settings(api_key="tr-...", organization_id="..."))
        store.select("work")
    """

    def __init__(
        self,
        storage: Optional[ProfileStorage] = None,
        confirm: Optional[ConfirmFn] = None,
    ) -> None:
        self._storage = storage or ProfileStorage()
        self._confirm = confirm or _decline
        self._collection: Optional[ProfileCollection] = None

    @property
    def storage(self) -> ProfileStorage:
        return self._storage

    @property
    def collection(self) -> ProfileCollection:
        """The loaded collection, read from storage on first access.

        Missing or unreadable state becomes an empty collection. When only
        the legacy single-configuration file exists and it holds a key, it
        is presented as one selected profile named ``default``; nothing is
        written until the next mutation.
        """
        if self._collection is None:
            loaded = self._storage.load()
            if loaded is None:
                loaded = ProfileCollection()
                legacy = self._storage.load_legacy()
                if legacy is not None and legacy.is_provisioned:
                    logger.debug("Migrating legacy configuration to profile 'default'")
                    loaded.profiles.append(
                        Profile(name=DEFAULT_PROFILE_NAME, settings=legacy, selected=True)
                    )
            self._collection = loaded
        return self._collection

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get(self, name: str) -> Optional[Profile]:
        return self.collection.get(name)

    def active(self) -> Optional[Profile]:
        """Return the selected profile, or ``None`` if the store is empty."""
        return self.collection.selected()

    def list(self) -> list[Profile]:
        """Return profiles for display, selected first.

        The stored order is left untouched.
        """
        return sorted(self.collection.profiles, key=lambda p: not p.selected)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def upsert(self, name: str, settings: Settings) -> Profile:
        """Create or replace profile *name* and make it the selected one.

        Replacing a provisioned profile asks for confirmation first
        (default No).

        Raises:
            UserCancelled: If the overwrite is declined.
        """
        existing = self.collection.get(name)
        if existing is not None and existing.settings.is_provisioned:
            if not self._confirm("Profile already exists. Overwrite?", False):
                raise UserCancelled(f"Kept existing profile '{name}'.")

        remaining: list[Profile] = []
        seen: set[str] = set()
        for profile in self.collection.profiles:
            if profile.name == name or profile.name in seen:
                continue
            seen.add(profile.name)
            remaining.append(profile.model_copy(update={"selected": False}))

        created = Profile(name=name, settings=settings, selected=True)
        remaining.append(created)
        self._commit(ProfileCollection(profiles=remaining))
        logger.debug("Upserted profile '%s'", name)
        return created

    def select(self, name: str) -> Profile:
        """Make *name* the selected profile.

        Raises:
            ProfileNotFoundError: If no such profile exists.
        """
        if self.collection.get(name) is None:
            raise ProfileNotFoundError(name)
        profiles = [
            p.model_copy(update={"selected": p.name == name})
            for p in self.collection.profiles
        ]
        self._commit(ProfileCollection(profiles=profiles))
        return self.collection.get(name)  # type: ignore[return-value]

    def remove(self, name: str) -> Optional[Profile]:
        """Delete *name*. Returns the profile that is selected afterwards.

        If the deleted profile was selected, the first remaining profile in
        stored order takes over.

        Raises:
            ProfileNotFoundError: If no such profile exists.
            LastProfileError: If it is the only profile.
        """
        target = self.collection.get(name)
        if target is None:
            raise ProfileNotFoundError(name)
        if len(self.collection) == 1:
            raise LastProfileError(name)

        remaining = [p.model_copy() for p in self.collection.profiles if p.name != name]
        if target.selected:
            remaining[0] = remaining[0].model_copy(update={"selected": True})
        self._commit(ProfileCollection(profiles=remaining))
        return self.active()

    def replace_settings(self, old: Settings, new: Settings) -> list[Profile]:
        """Swap *old* for *new* on every profile whose settings equal *old*.

        Matching is by value, not by name: two profiles that share identical
        settings are both updated. One of them becomes the selected profile
        (the one already selected if it matches, else the first match in
        stored order) and every other profile is deselected. Returns the
        updated profiles.

        Raises:
            ConfigError: If no profile holds *old*.
        """
        matches = [p.name for p in self.collection.profiles if p.settings == old]
        if not matches:
            raise ConfigError("The active settings do not belong to any stored profile.")
        if len(matches) > 1:
            logger.warning(
                "Settings are shared by %d profiles (%s); updating all of them",
                len(matches),
                ", ".join(matches),
            )

        current = self.active()
        chosen = current.name if current is not None and current.name in matches else matches[0]

        updated: list[Profile] = []
        profiles: list[Profile] = []
        for profile in self.collection.profiles:
            if profile.name in matches:
                changed = profile.model_copy(
                    update={"settings": new, "selected": profile.name == chosen}
                )
                updated.append(changed)
                profiles.append(changed)
            else:
                profiles.append(profile.model_copy(update={"selected": False}))
        self._commit(ProfileCollection(profiles=profiles))
        return updated

    def save(self) -> None:
        """Write the current collection back unchanged."""
        self._commit(self.collection)

    def _commit(self, collection: ProfileCollection) -> None:
        check_invariants(collection)
        self._storage.save(collection)
        self._collection = collection
