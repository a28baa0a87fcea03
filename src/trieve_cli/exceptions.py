"""Exception hierarchy for trieve_cli.

All exceptions inherit from :class:`TrieveError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`trieve_cli.exit_codes`.
The top-level handler in :func:`trieve_cli.app.main` catches ``TrieveError``
and exits with the matching code, while unexpected exceptions produce a crash
log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    TrieveError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- AuthError               (exit 3)
    |   +-- AuthTimeoutError
    |   +-- IdentityFetchError
    +-- NotFoundError           (exit 4)
    |   +-- ProfileNotFoundError
    +-- LastProfileError        (exit 1)
    +-- ConfigError             (exit 1)
    |   +-- PersistenceError
    +-- UserCancelled           (exit 0)

:class:`ExtractionFailure` is deliberately *not* a ``TrieveError``: it is
raised and caught inside a single callback connection and never reaches the
command layer.
"""

from trieve_cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
)


class TrieveError(Exception):
    """Base exception for all trieve_cli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TrieveError):
    """Raised for invalid CLI arguments or a prompt that cannot be shown."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(TrieveError):
    """Raised when the login hand-off or the API key itself fails."""

    exit_code = EXIT_AUTH_FAILURE


class AuthTimeoutError(AuthError):
    """Raised when no API key arrives on the callback listener in time."""


class IdentityFetchError(AuthError):
    """Raised when ``/api/auth/me`` cannot be called or returns an error."""


class NotFoundError(TrieveError):
    """Raised when a named resource does not exist."""

    exit_code = EXIT_NOT_FOUND


class ProfileNotFoundError(NotFoundError):
    """Raised when no profile with the requested name exists.

    Args:
        name: The profile name that was looked up.
    """

    def __init__(self, name: str):
        super().__init__(f"Profile '{name}' not found.")
        self.name = name


class LastProfileError(TrieveError):
    """Raised when deleting the only remaining profile."""

    def __init__(self, name: str):
        super().__init__(f"Cannot delete '{name}': it is the last profile.")
        self.name = name


class ConfigError(TrieveError):
    """Raised for configuration problems (bad environment, invariant breaks)."""


class PersistenceError(ConfigError):
    """Raised when the profile file cannot be serialised or written."""


class UserCancelled(TrieveError):
    """Raised when the user declines a confirmation. Not a failure."""

    exit_code = EXIT_SUCCESS

    def __init__(self, message: str = "Cancelled."):
        super().__init__(message)


class ExtractionFailure(Exception):
    """No API key could be found in an inbound callback request."""
