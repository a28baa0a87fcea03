"""Interactive login: browser hand-off, identity lookup, organization choice.

:class:`AuthFlowCoordinator` turns "I want to log in" into a finished
:class:`~trieve_cli.models.Settings` value:

1. If an API key was supplied out-of-band (``--api-key`` or
   ``TRIEVE_API_KEY``) it is used directly.
2. Otherwise a :class:`~trieve_cli.auth.callback.CallbackListener` is
   started, the user's browser is sent to the dashboard login page with a
   redirect back to the listener, and the coordinator blocks until the
   first key arrives or the timeout expires. The listener is cancelled as
   soon as the wait ends, whatever the outcome.
3. The key is resolved to an identity through ``/api/auth/me`` and the user
   picks an organization, unless one was supplied out-of-band.

States::

    NEED_CREDENTIAL -> LISTENER_ACTIVE -> TOKEN_RECEIVED
                                       -> TIMED_OUT
"""

from __future__ import annotations

import enum
import queue
import webbrowser
from typing import Callable, Optional
from urllib.parse import urlencode

from trieve_cli.auth.callback import CallbackListener
from trieve_cli.client import fetch_identity
from trieve_cli.exceptions import AuthTimeoutError
from trieve_cli.models import Identity, Settings
from trieve_cli.organizations import choose_organization
from trieve_cli.output import debug, info, success, warning
from trieve_cli.prompts import Prompter

DEFAULT_LOGIN_TIMEOUT = 300.0


class FlowState(str, enum.Enum):
    NEED_CREDENTIAL = "need_credential"
    LISTENER_ACTIVE = "listener_active"
    TOKEN_RECEIVED = "token_received"
    TIMED_OUT = "timed_out"


def build_login_url(api_url: str, callback_url: str) -> str:
    """Return the dashboard login URL that redirects back to *callback_url*.

    Example::

        >>> build_login_url("https://api.trieve.ai", "http://127.0.0.1:65535")
        'https://api.trieve.ai/api/auth?redirect_uri=https%3A%2F%2Fapi.trieve.ai%2Fauth%2Fcli%3Fhost%3Dhttp%253A%252F%252F127.0.0.1%253A65535'
    """
    base = api_url.rstrip("/")
    redirect_uri = f"{base}/auth/cli?{urlencode({'host': callback_url})}"
    return f"{base}/api/auth?{urlencode({'redirect_uri': redirect_uri})}"


class AuthFlowCoordinator:
    """Run one login attempt.

    Args:
        prompter: Used for the "press Enter" pause and the organization
            choice.
        identity_fetcher: Resolves settings to an identity. Failures are
            fatal to the login.
        listener: Callback listener to start. Defaults to the fixed
            localhost port the dashboard redirects to.
        timeout: Seconds to wait for the browser callback.
        open_browser: ``webbrowser.open`` compatible callable.
    """

    def __init__(
        self,
        prompter: Prompter,
        identity_fetcher: Callable[[Settings], Identity] = fetch_identity,
        listener: Optional[CallbackListener] = None,
        timeout: float = DEFAULT_LOGIN_TIMEOUT,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._prompter = prompter
        self._identity_fetcher = identity_fetcher
        self._listener = listener or CallbackListener()
        self._timeout = timeout
        self._open_browser = open_browser
        self.state: Optional[FlowState] = None

    def login(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        organization_id: Optional[str] = None,
        current: Optional[Settings] = None,
    ) -> Settings:
        """Authenticate and return the settings to store.

        Args:
            api_url: Base URL of the Trieve server.
            api_key: Key supplied out-of-band; skips the browser hand-off.
            organization_id: Organization supplied out-of-band; skips the
                identity lookup and the organization prompt.
            current: Settings of the profile being replaced, used to
                default the organization prompt.

        Raises:
            AuthTimeoutError: If the browser callback never arrives.
            IdentityFetchError: If the key cannot be resolved to a user.
            AuthError: If the user has no organization.
        """
        if api_key:
            debug("Using the API key supplied on the command line or environment")
            token = api_key
        else:
            token = self.wait_for_token(api_url)

        if organization_id:
            return Settings(api_key=token, organization_id=organization_id, api_url=api_url)

        identity = self._identity_fetcher(Settings(api_key=token, api_url=api_url))
        success(f"Authenticated as {identity.display_name}.")

        current_org = current.organization_id if current is not None else None
        org = choose_organization(self._prompter, identity, current_org)
        return Settings(api_key=token, organization_id=org.id, api_url=api_url)

    def wait_for_token(self, api_url: str) -> str:
        """Run the browser hand-off and return the first key received.

        Raises:
            AuthTimeoutError: If nothing arrives within the timeout.
        """
        self.state = FlowState.NEED_CREDENTIAL
        sink: queue.Queue[str] = queue.Queue()
        handle = self._listener.start(sink)
        self.state = FlowState.LISTENER_ACTIVE
        try:
            login_url = build_login_url(api_url, handle.callback_url)
            self._prompter.pause("Press Enter to log in with your browser...")
            self._launch_browser(login_url)
            info("Waiting for the browser to finish logging in...")
            try:
                token = sink.get(timeout=self._timeout)
            except queue.Empty:
                self.state = FlowState.TIMED_OUT
                raise AuthTimeoutError(
                    f"No login callback received within {self._timeout:g} seconds."
                ) from None
            self.state = FlowState.TOKEN_RECEIVED
            return token
        finally:
            handle.cancel()

    def _launch_browser(self, url: str) -> None:
        debug(f"Login URL: {url}")
        try:
            opened = self._open_browser(url)
        except webbrowser.Error as exc:
            debug(f"Could not open a browser: {exc}")
            opened = False
        if not opened:
            warning(f"Could not open a browser. Open this URL to log in:\n{url}")
