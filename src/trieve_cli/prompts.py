"""Interactive prompts injected into the login flow and the profile store.

Components never call ``typer.confirm`` directly. They receive a
:class:`Prompter` so that tests (and ``--no-input`` / ``--force``) can answer
prompts without a terminal.
"""

from __future__ import annotations

from typing import Optional, Sequence

import typer

from trieve_cli.exceptions import InvalidUsageError
from trieve_cli.output import info


class Prompter:
    """Interactive prompts backed by Typer.

    Args:
        interactive: When ``False`` (``--no-input``), confirmations resolve
            to their default, pauses return immediately, and selections fail.
        assume_yes: When ``True`` (``--force``), every confirmation is
            answered yes without asking.
    """

    def __init__(self, interactive: bool = True, assume_yes: bool = False) -> None:
        self.interactive = interactive
        self.assume_yes = assume_yes

    def confirm(self, message: str, default: bool = False) -> bool:
        if self.assume_yes:
            return True
        if not self.interactive:
            return default
        return typer.confirm(message, default=default)

    def text(self, message: str, hide_input: bool = False) -> str:
        """Ask for a free-text value.

        Raises:
            InvalidUsageError: If prompting is disabled.
        """
        if not self.interactive:
            raise InvalidUsageError(
                f"{message} -- cannot prompt with --no-input; pass the value explicitly."
            )
        return typer.prompt(message, hide_input=hide_input)

    def pause(self, message: str) -> None:
        """Block until the user presses Enter."""
        if not self.interactive:
            return
        typer.prompt(message, default="", show_default=False, prompt_suffix="")

    def select(
        self,
        message: str,
        options: Sequence[str],
        default_index: Optional[int] = None,
    ) -> int:
        """Show a numbered list and return the zero-based index of the choice.

        Args:
            message: Prompt headline.
            options: Labels to choose from.
            default_index: Index the prompt defaults to (the cursor position).

        Raises:
            InvalidUsageError: If *options* is empty, prompting is disabled,
                or the answer is out of range or not a number.
        """
        if not options:
            raise InvalidUsageError(f"{message} -- nothing to choose from.")
        if not self.interactive:
            raise InvalidUsageError(
                f"{message} -- cannot prompt with --no-input; pass the value explicitly."
            )

        info(message)
        for i, label in enumerate(options, 1):
            marker = ">" if default_index == i - 1 else " "
            info(f" {marker} {i}. {label}")

        default = str((default_index or 0) + 1)
        choice = typer.prompt("Select number", default=default)
        try:
            idx = int(choice) - 1
        except ValueError:
            raise InvalidUsageError(f"Invalid selection: {choice}") from None
        if idx < 0 or idx >= len(options):
            raise InvalidUsageError(f"Selection must be between 1 and {len(options)}.")
        return idx
