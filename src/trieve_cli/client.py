"""Identity lookup against the Trieve API.

:class:`IdentityClient` wraps :class:`httpx.Client` for the one remote call
the login and organization flows need: ``GET /api/auth/me``, which resolves
an API key to the user and the organizations they belong to.

Every failure (network error, non-2xx status, undecodable body) surfaces as
:class:`~trieve_cli.exceptions.IdentityFetchError` so that commands exit
with the auth failure code.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from trieve_cli import __version__
from trieve_cli.exceptions import IdentityFetchError
from trieve_cli.models import Identity, Settings
from trieve_cli.output import debug


class IdentityClient:
    """Synchronous client for the identity endpoint.

    Must be used as a context manager so that the underlying transport is
    opened and closed.

    Args:
        api_url: Base URL of the Trieve server.
        api_key: API key sent in the ``Authorization`` header.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.

    Example::

        with IdentityClient("https://api.trieve.ai", "tr-...") as client:
            identity = client.get_identity()
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> IdentityClient:
        return cls(settings.api_url, settings.api_key, **kwargs)

    def __enter__(self) -> IdentityClient:
        self._client = httpx.Client(
            base_url=self._api_url,
            headers={
                "Authorization": self._api_key,
                "Accept": "application/json",
                "User-Agent": f"trieve-cli/{__version__}",
            },
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: Any) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def get_identity(self) -> Identity:
        """Fetch the user behind the API key.

        Raises:
            IdentityFetchError: On any transport, status, or decoding failure.
        """
        assert self._client is not None, "IdentityClient must be used as a context manager"
        debug(f"GET {self._api_url}/api/auth/me")
        try:
            response = self._client.get("/api/auth/me")
            response.raise_for_status()
            return Identity.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise IdentityFetchError(
                f"Authentication failed with status {exc.response.status_code}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise IdentityFetchError(f"Cannot reach {self._api_url}: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise IdentityFetchError(f"Unexpected response from /api/auth/me: {exc}") from exc


def fetch_identity(settings: Settings, **kwargs: Any) -> Identity:
    """Resolve the identity for *settings* with a short-lived client."""
    with IdentityClient.from_settings(settings, **kwargs) as client:
        return client.get_identity()
