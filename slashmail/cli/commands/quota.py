"""Quota command - mailbox quota usage"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import quota
from slashmail.ui.components import QuotaTable

from .base import BaseCommandHandler


class QuotaCommandHandler(BaseCommandHandler):
    """Handler for the 'quota' command."""

    def execute(self, session: IMAPSession, args) -> bool:
        with self.console.status("Fetching quota..."):
            resources = quota(session)

        QuotaTable(self.console).display(resources)
        return True
