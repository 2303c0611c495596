"""Status command - per-folder message statistics"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import folder_status
from slashmail.ui.components import StatusTable

from .base import BaseCommandHandler


class StatusCommandHandler(BaseCommandHandler):
    """Handler for the 'status' command."""

    def execute(self, session: IMAPSession, args) -> bool:
        with self.console.status("Fetching folder status..."):
            statuses = folder_status(session)

        StatusTable(self.console).display(statuses)
        return True
