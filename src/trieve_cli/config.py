"""Configuration paths, profile persistence, and environment overrides.

This module handles everything trieve_cli keeps on disk:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.trieve/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Profile storage** -- :class:`ProfileStorage` reads and writes the
  ``profiles.json`` slot (a :class:`~trieve_cli.models.ProfileCollection`)
  and the legacy ``config.json`` slot (a single
  :class:`~trieve_cli.models.Settings` written by older releases).
* **Settings resolution** -- :func:`resolve_settings` decides which settings
  a command runs with, honouring ``--profile``/``TRIEVE_PROFILE`` and
  ``--no-profile``/``TRIEVE_NO_PROFILE``.

There is no file lock. Two invocations that mutate the store at the same
time race, and the later write wins. Writes are atomic, so the file is never
left half-written.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from trieve_cli.exceptions import ConfigError, PersistenceError
from trieve_cli.models import DEFAULT_API_URL, Profile, ProfileCollection, Settings

logger = logging.getLogger(__name__)

_APP_NAME = "trieve"
_PROFILES_FILENAME = "profiles.json"
_LEGACY_FILENAME = "config.json"

ENV_API_KEY = "TRIEVE_API_KEY"
ENV_ORGANIZATION_ID = "TRIEVE_ORGANIZATION_ID"
ENV_API_URL = "TRIEVE_API_URL"
ENV_PROFILE = "TRIEVE_PROFILE"
ENV_NO_PROFILE = "TRIEVE_NO_PROFILE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/trieve/`` (default ``~/.config/trieve/``).
    On macOS/Windows: ``~/.trieve/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory used for crash logs, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/trieve/`` (default ``~/.local/share/trieve/``).
    On macOS/Windows: ``~/.trieve/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically with ``0o600`` permissions.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX. On any failure the temporary
    file is removed and the original exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        # The file holds API keys.
        os.chmod(tmp_path, 0o600)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Profile storage ---


class ProfileStorage:
    """Load and save the profile collection and the legacy settings slot.

    Unreadable state is never an error on load: a missing file, invalid JSON,
    or a document that fails validation all come back as ``None`` and the
    caller starts from an empty default. The damaged file is replaced the
    next time :meth:`save` runs.

    Args:
        config_dir: Directory holding ``profiles.json`` and ``config.json``.
            Defaults to :func:`get_config_dir`.
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        if self._config_dir is None:
            self._config_dir = get_config_dir()
        return self._config_dir

    @property
    def profiles_path(self) -> Path:
        return self.config_dir / _PROFILES_FILENAME

    @property
    def legacy_path(self) -> Path:
        return self.config_dir / _LEGACY_FILENAME

    def load(self) -> Optional[ProfileCollection]:
        """Return the stored profile collection, or ``None`` if absent or unreadable."""
        path = self.profiles_path
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ProfileCollection.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable profile file %s: %s", path, exc)
            return None

    def save(self, collection: ProfileCollection) -> None:
        """Persist *collection* atomically.

        Raises:
            PersistenceError: If the collection cannot be serialised or the
                file cannot be written.
        """
        try:
            text = json.dumps(collection.model_dump(mode="json"), indent=2) + "\n"
            _atomic_write(self.profiles_path, text)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Cannot save profiles to {self.profiles_path}: {exc}"
            ) from exc
        logger.debug("Saved %d profile(s) to %s", len(collection), self.profiles_path)

    def load_legacy(self) -> Optional[Settings]:
        """Return settings from the single-configuration slot, if any."""
        path = self.legacy_path
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Settings.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable legacy config %s: %s", path, exc)
            return None


# --- Settings resolution ---


def env_flag(name: str) -> bool:
    """Return True when environment variable *name* is set to a truthy value."""
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def settings_from_env() -> Settings:
    """Build settings purely from ``TRIEVE_*`` environment variables.

    Raises:
        ConfigError: If ``TRIEVE_API_KEY`` is not set.
    """
    api_key = os.environ.get(ENV_API_KEY, "")
    if not api_key:
        raise ConfigError(
            f"{ENV_NO_PROFILE} is set but {ENV_API_KEY} is empty."
        )
    return Settings(
        api_key=api_key,
        organization_id=os.environ.get(ENV_ORGANIZATION_ID, ""),
        api_url=os.environ.get(ENV_API_URL) or DEFAULT_API_URL,
    )


def resolve_profile(
    collection: ProfileCollection,
    cli_profile: Optional[str] = None,
) -> Optional[Profile]:
    """Pick the profile a command should use.

    Precedence (high to low):
        1. ``--profile`` flag (``cli_profile``)
        2. ``TRIEVE_PROFILE`` environment variable
        3. The selected profile in the store

    Naming a profile this way never changes which profile is selected.

    Raises:
        ConfigError: If a profile is named explicitly but does not exist.
    """
    name = cli_profile or os.environ.get(ENV_PROFILE) or None
    if name is None:
        return collection.selected()
    profile = collection.get(name)
    if profile is None:
        raise ConfigError(f"Profile '{name}' not found.")
    return profile


def resolve_settings(
    collection_loader,
    cli_profile: Optional[str] = None,
    no_profile: bool = False,
) -> Settings:
    """Resolve the settings a command runs with.

    Args:
        collection_loader: Zero-argument callable returning the
            :class:`~trieve_cli.models.ProfileCollection`. Not called when
            the profile store is bypassed.
        cli_profile: Value of ``--profile``.
        no_profile: Value of ``--no-profile``; ``TRIEVE_NO_PROFILE`` has the
            same effect.

    Raises:
        ConfigError: If nothing is configured yet.
    """
    if no_profile or env_flag(ENV_NO_PROFILE):
        return settings_from_env()

    profile = resolve_profile(collection_loader(), cli_profile)
    if profile is None or not profile.settings.is_provisioned:
        raise ConfigError("No profile configured. Run `trieve login` to get started.")
    return profile.settings
