"""Delete command - move matching messages to the trash folder"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import MoveResult, delete
from slashmail.utils.console import print_success, print_warning

from .base import BaseCommandHandler


class DeleteCommandHandler(BaseCommandHandler):
    """Handler for the 'delete' command."""

    mutating = True

    def execute(self, session: IMAPSession, args) -> bool:
        criteria = self.criteria_from_args(args, args.limit)
        trash_folder = args.trash_folder or self.config.folders.trash_folder

        self.start_spinner("Searching...")
        result = delete(
            session,
            criteria,
            trash_folder,
            confirm=self.confirm_callback(args, f"Moving to {trash_folder}..."),
            dry_run=args.dry_run,
            on_results=self.show_results,
        )
        self.stop_spinner()

        report_move(self, result)
        return True


def report_move(handler: BaseCommandHandler, result: MoveResult) -> None:
    """Print the outcome of a move or delete."""

    console = handler.console
    if not result.matched:
        console.print("No messages match the criteria.")
    elif result.dry_run:
        console.print(
            f"Dry run: {result.matched} message(s) would be moved to {result.destination}.",
            markup=False,
        )
    elif result.aborted:
        print_warning("Aborted.", console)
    else:
        print_success(f"Moved {result.affected} message(s) to {result.destination}.", console)
        handler.logger.info(
            "Messages moved",
            extra={"count": result.affected, "destination": result.destination},
        )
