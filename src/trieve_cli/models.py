"""Pydantic models shared across trieve_cli.

**Persisted models** -- serialised as JSON in the user's config directory:
    :class:`Settings`, :class:`Profile`, and :class:`ProfileCollection`.

**API models** -- decoded from the identity endpoint:
    :class:`Organization` and :class:`Identity`.

``Settings`` is frozen so that it behaves as a value: two profiles whose
settings compare equal are interchangeable as far as the API is concerned,
which :class:`~trieve_cli.organizations.OrganizationSwitcher` relies on.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_API_URL = "https://api.trieve.ai"


class Settings(BaseModel):
    """Credential, organization, and server URL for one profile.

    A ``Settings`` with neither an API key nor an organization id has never
    been through a successful login; see :attr:`is_provisioned`.

    Example::

        Settings(api_key="tr-abc", organization_id="6f1c...", api_url=DEFAULT_API_URL)
    """

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(
        default="", description="API key sent in the Authorization header"
    )
    organization_id: Optional[str] = Field(
        default="", description="Organization sent in the TR-Organization header"
    )
    api_url: str = Field(default=DEFAULT_API_URL, description="Base URL of the Trieve server")

    @field_validator("api_key", "organization_id", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        # A never-provisioned profile may store null for either field.
        return "" if value is None else value

    @property
    def is_provisioned(self) -> bool:
        """True unless both the API key and the organization id are empty."""
        return bool(self.api_key or self.organization_id)

    def with_organization(self, organization_id: str) -> Settings:
        """Return a copy with ``organization_id`` replaced."""
        return self.model_copy(update={"organization_id": organization_id})


class Profile(BaseModel):
    """A named :class:`Settings` entry in the profile store."""

    name: str = Field(description="Unique profile name")
    settings: Settings = Field(default_factory=Settings)
    selected: bool = Field(default=False, description="Whether this is the active profile")


class ProfileCollection(BaseModel):
    """Ordered list of profiles as stored on disk.

    Order is the display order and decides which profile is promoted when
    the selected one is deleted. It carries no other meaning.
    """

    profiles: list[Profile] = Field(default_factory=list)

    def get(self, name: str) -> Optional[Profile]:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None

    def selected(self) -> Optional[Profile]:
        for profile in self.profiles:
            if profile.selected:
                return profile
        return None

    def names(self) -> list[str]:
        return [p.name for p in self.profiles]

    def __len__(self) -> int:
        return len(self.profiles)


# --- Identity endpoint ---


class Organization(BaseModel):
    """An organization the authenticated user belongs to."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""

    def __str__(self) -> str:
        return f"{self.name} ({self.id})" if self.name else self.id


class Identity(BaseModel):
    """The user returned by ``GET /api/auth/me``."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: Optional[str] = None
    email: Optional[str] = None
    orgs: list[Organization] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id
