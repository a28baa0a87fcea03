"""Shared test fixtures for trieve_cli.

Provides isolated config directories, ready-made settings and profile
stores, scripted prompters, and a CLI runner. These fixtures are
discovered by pytest and available to every test module.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import pytest

from trieve_cli.config import ProfileStorage
from trieve_cli.models import Identity, Organization, Settings
from trieve_cli.output import OutputFormat, OutputManager, reset_output, set_output
from trieve_cli.profiles import ProfileStore
from trieve_cli.prompts import Prompter


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager caches sys.stdout/sys.stderr at creation time, and
    CliRunner swaps those streams per invocation. The root logging handler
    installed by the CLI callback points at them too.
    """
    yield
    reset_output()
    logging.getLogger().handlers.clear()


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear TRIEVE_* variables.

    Returns:
        The config directory trieve_cli will use (``<tmp>/config/trieve``).
    """
    monkeypatch.setattr("trieve_cli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "TRIEVE_API_KEY",
        "TRIEVE_ORGANIZATION_ID",
        "TRIEVE_API_URL",
        "TRIEVE_PROFILE",
        "TRIEVE_NO_PROFILE",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "config" / "trieve"


@pytest.fixture
def storage(tmp_path: Path) -> ProfileStorage:
    return ProfileStorage(tmp_path / "trieve")


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def work_settings() -> Settings:
    return Settings(api_key="tr-work-key", organization_id="org-work", api_url="https://api.trieve.ai")


@pytest.fixture
def home_settings() -> Settings:
    return Settings(api_key="tr-home-key", organization_id="org-home", api_url="https://api.trieve.ai")


@pytest.fixture
def identity() -> Identity:
    return Identity(
        id="user-1",
        name="Ada Lovelace",
        email="ada@example.com",
        orgs=[
            Organization(id="org-work", name="Work"),
            Organization(id="org-home", name="Home"),
            Organization(id="org-lab", name="Lab"),
        ],
    )


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


class ScriptedPrompter(Prompter):
    """Prompter that answers from pre-set values and records what it was asked."""

    def __init__(
        self,
        confirm_answer: bool = False,
        select_answer: Optional[int] = None,
        text_answers: Sequence[str] = (),
    ) -> None:
        super().__init__(interactive=True)
        self.confirm_answer = confirm_answer
        self.select_answer = select_answer
        self.text_answers = list(text_answers)
        self.confirmations: list[tuple[str, bool]] = []
        self.selections: list[tuple[str, list[str], Optional[int]]] = []
        self.pauses: list[str] = []

    def confirm(self, message: str, default: bool = False) -> bool:
        self.confirmations.append((message, default))
        return self.confirm_answer

    def pause(self, message: str) -> None:
        self.pauses.append(message)

    def text(self, message: str, hide_input: bool = False) -> str:
        return self.text_answers.pop(0)

    def select(self, message, options, default_index=None) -> int:
        self.selections.append((message, list(options), default_index))
        if self.select_answer is None:
            return default_index or 0
        return self.select_answer


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def store(storage: ProfileStorage, prompter: ScriptedPrompter) -> ProfileStore:
    return ProfileStore(storage, confirm=prompter.confirm)


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_prompter():
    """Factory for :class:`ScriptedPrompter` with custom answers."""
    return ScriptedPrompter
