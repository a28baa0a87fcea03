"""trieve_cli -- command-line client for the Trieve search service.

Most commands are thin wrappers over the remote API. The package's own
state lives in two places:

* a local callback listener that receives the API key from the browser
  after the user signs in (:mod:`trieve_cli.auth`), and
* a persisted, ordered collection of named profiles, exactly one of which
  is selected at a time (:mod:`trieve_cli.profiles`).

Typical workflow::

    trieve login                     # browser hand-off, creates a profile
    trieve organization switch       # pick another organization
    trieve profile switch staging    # make another profile active

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for settings, profiles, and identities.
    config: XDG-aware paths, profile persistence, environment overrides.
    profiles: The profile store and its invariants.
    organizations: Organization switching for the active profile.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.4.0"
