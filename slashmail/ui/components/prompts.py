"""User prompt components."""

from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from slashmail.utils.console import get_console


class ConfirmPrompt:
    """Confirmation prompt component.

    Callable, so an instance can be handed to operations as their
    ``confirm`` callback. Used by: delete, move, mark, export.
    """

    def __init__(self, console: Optional[Console] = None, default: bool = False):
        self.console = console or get_console()
        self.default = default

    def ask(self, message: str, default: Optional[bool] = None) -> bool:
        """Ask yes/no confirmation.

        Returns:
            True if confirmed, False otherwise (including Ctrl-D)
        """
        try:
            return Confirm.ask(
                message,
                default=self.default if default is None else default,
                console=self.console,
            )
        except EOFError:
            return False

    def __call__(self, message: str) -> bool:
        return self.ask(message)


class PasswordPrompt:
    """Hidden password input."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def ask(self, message: str = "IMAP password") -> Optional[str]:
        """Ask for a password; None when input is closed."""
        try:
            return Prompt.ask(message, password=True, console=self.console)
        except EOFError:
            return None
