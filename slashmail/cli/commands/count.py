"""Count command - count matching messages without fetching them"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import count

from .base import BaseCommandHandler


class CountCommandHandler(BaseCommandHandler):
    """Handler for the 'count' command."""

    def execute(self, session: IMAPSession, args) -> bool:
        criteria = self.criteria_from_args(args)

        with self.console.status("Counting..."):
            result = count(session, criteria)

        self.report_failures(result.failures)

        if not result.counts:
            self.console.print("0 message(s) match.")
            return True

        for folder, matches in result.counts:
            self.console.print(f"{matches} message(s) in {folder}", markup=False)
        if len(result.counts) > 1:
            self.console.print(f"{result.total} message(s) total")

        return True
