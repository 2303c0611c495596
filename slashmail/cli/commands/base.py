"""Base command class for CLI commands."""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from rich.console import Console

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.models.message import SearchCriteria
from slashmail.core.search.aggregator import PartialFailure, SearchResult
from slashmail.ui.components import ConfirmPrompt, MessageTable
from slashmail.utils.config_manager import ConfigManager
from slashmail.utils.console import get_console, print_error, print_warning
from slashmail.utils.errors import SlashmailError, format_error_message
from slashmail.utils.logging import get_logger, log_call

logger = get_logger(__name__)


class BaseCommandHandler(ABC):
    """Base class for all command handlers."""

    # Commands that change the mailbox report whether anything was applied
    mutating = False

    def __init__(self, config_manager: ConfigManager, console: Optional[Console] = None):
        self.config_manager = config_manager
        self.config = config_manager.config
        self.console = console or get_console()
        self.logger = logger
        self._status = None


    ## Abstract Methods

    @abstractmethod
    def execute(self, session: IMAPSession, args) -> bool:
        """Run the command against an authenticated session."""
        pass


    ## Argument Helpers

    def criteria_from_args(self, args, limit: Optional[int] = None) -> SearchCriteria:
        """Build search criteria from the shared filter arguments."""

        return SearchCriteria(
            folder=args.folder or self.config.folders.default_folder,
            all_folders=args.all_folders,
            subject=args.subject,
            sender=args.sender,
            recipient=args.recipient,
            cc=args.cc,
            since=args.since,
            before=args.before,
            larger=args.larger,
            limit=limit,
        )

    def confirm_callback(self, args, progress_message: str) -> Callable[[str], bool]:
        """Confirmation callback for operations.

        Prompts unless --yes was given. Once confirmed, the spinner restarts
        with ``progress_message`` while the change is applied.
        """

        prompt = ConfirmPrompt(self.console)

        def confirm(message: str) -> bool:
            if not getattr(args, "yes", False) and not prompt(message):
                return False
            self.start_spinner(progress_message)
            return True

        return confirm


    ## Output Helpers

    def start_spinner(self, message: str) -> None:
        self.stop_spinner()
        self._status = self.console.status(message)
        self._status.start()

    def stop_spinner(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def show_results(self, result: SearchResult) -> None:
        """Display matches; also used as the operations' results callback."""
        self.stop_spinner()
        self.report_failures(result.failures)
        MessageTable(self.console).display(result.rows)

    def report_failures(self, failures: List[PartialFailure]) -> None:
        for failure in failures:
            print_warning(
                f"Warning: skipped folder '{failure.folder}': {failure.error.message}",
                self.console,
            )


    ## Error Handling Wrapper

    @log_call
    def safe_execute(self, session: IMAPSession, args) -> int:
        """Execute the command and map errors to an exit code."""

        self.logger.debug(f"Executing CLI command: {self.__class__.__name__}")

        try:
            return 0 if self.execute(session, args) else 1

        except SlashmailError as e:
            self.stop_spinner()
            self.logger.info(
                f"Command failed: {e.message}", extra={"error": e.to_dict()}, exc_info=True
            )
            print_error(f"Error: {format_error_message(e, self.mutating)}", self.console)
            return 1

        finally:
            self.stop_spinner()
