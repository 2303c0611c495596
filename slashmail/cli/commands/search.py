"""Search command - list messages matching the filters"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.search.aggregator import search

from .base import BaseCommandHandler


class SearchCommandHandler(BaseCommandHandler):
    """Handler for the 'search' command."""

    def execute(self, session: IMAPSession, args) -> bool:
        criteria = self.criteria_from_args(args, args.limit)

        with self.console.status("Searching..."):
            result = search(session, criteria)

        self.show_results(result)
        self.logger.info(
            f"Search matched {len(result.rows)} message(s)",
            extra={"all_folders": criteria.all_folders, "folder": criteria.folder},
        )
        return True
