"""Mark command - set or clear read and flagged state on matching messages"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.models.message import MarkFlags
from slashmail.core.operations import mark, validate_mark_flags
from slashmail.utils.console import print_success, print_warning

from .base import BaseCommandHandler


class MarkCommandHandler(BaseCommandHandler):
    """Handler for the 'mark' command."""

    mutating = True

    def execute(self, session: IMAPSession, args) -> bool:
        flags = MarkFlags(
            read=args.read,
            unread=args.unread,
            flagged=args.flagged,
            unflagged=args.unflagged,
        )
        # Reject bad flag combinations before touching the server
        validate_mark_flags(flags)
        criteria = self.criteria_from_args(args, args.limit)

        self.start_spinner("Searching...")
        result = mark(
            session,
            criteria,
            flags,
            confirm=self.confirm_callback(args, "Updating flags..."),
            dry_run=args.dry_run,
            on_results=self.show_results,
        )
        self.stop_spinner()

        action = flags.action_description()
        if not result.matched:
            self.console.print("No messages match the criteria.")
        elif result.dry_run:
            self.console.print(f"Dry run: would {action} {result.matched} message(s).")
        elif result.aborted:
            print_warning("Aborted.", self.console)
        else:
            print_success(f"Updated {result.affected} message(s).", self.console)
            self.logger.info(
                "Flags updated", extra={"count": result.affected, "action": action}
            )

        return True
