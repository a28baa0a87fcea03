"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the matching
:class:`~trieve_cli.exceptions.TrieveError` subclass, so shell scripts can
branch on ``$?`` without parsing stderr.

Example::

    $ trieve profile switch nope
    $ echo $?
    4   # EXIT_NOT_FOUND -- no profile with that name
"""

EXIT_SUCCESS = 0
"""The command completed successfully, or the user declined a confirmation."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed: the browser hand-off timed out or the key was rejected."""

EXIT_NOT_FOUND = 4
"""The requested profile was not found."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
