"""Move command - move matching messages to another folder"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import search_and_move

from .base import BaseCommandHandler
from .delete import report_move


class MoveCommandHandler(BaseCommandHandler):
    """Handler for the 'move' command."""

    mutating = True

    def execute(self, session: IMAPSession, args) -> bool:
        criteria = self.criteria_from_args(args, args.limit)

        self.start_spinner("Searching...")
        result = search_and_move(
            session,
            criteria,
            args.dest,
            confirm=self.confirm_callback(args, f"Moving to {args.dest}..."),
            dry_run=args.dry_run,
            on_results=self.show_results,
        )
        self.stop_spinner()

        report_move(self, result)
        return True
