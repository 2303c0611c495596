"""Export command - save matching messages as .eml files"""

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.operations import export_messages
from slashmail.core.search.aggregator import search
from slashmail.utils.console import print_success, print_warning

from .base import BaseCommandHandler


class ExportCommandHandler(BaseCommandHandler):
    """Handler for the 'export' command."""

    def execute(self, session: IMAPSession, args) -> bool:
        criteria = self.criteria_from_args(args, args.limit)
        out_dir = args.output_dir

        self.start_spinner("Searching...")
        found = search(session, criteria)
        self.stop_spinner()

        if not found.rows:
            self.report_failures(found.failures)
            self.console.print("No messages found.")
            return True

        self.show_results(found)

        confirm = self.confirm_callback(args, "Exporting...")
        if not confirm(f"Export {len(found.rows)} message(s) to {out_dir}?"):
            print_warning("Aborted.", self.console)
            return True

        result = export_messages(session, found.rows, criteria.folder, out_dir, args.force)
        self.stop_spinner()

        message = f"Exported {result.exported} message(s) to {out_dir}"
        if result.skipped:
            message += f" ({result.skipped} skipped, already exist)"
        print_success(message, self.console)
        return True
