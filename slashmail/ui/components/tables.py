"""Table display components."""

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from slashmail.core.models.message import MessageRow
from slashmail.core.operations import FolderStatus, QuotaResource
from slashmail.utils.console import get_console


def format_size(size: int) -> str:
    """Human-readable size: ``999B``, ``2K``, ``1.5M``."""
    if size >= 1_048_576:
        return f"{size / 1_048_576:.1f}M"
    if size >= 1024:
        return f"{size / 1024:.0f}K"
    return f"{size}B"


class MessageTable:
    """Search result table.

    Used by: search, delete, move, mark, export.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def build(self, rows: List[MessageRow]) -> Table:
        show_folder = any(row.folder is not None for row in rows)

        table = Table()
        table.add_column("UID", style="cyan", justify="right", no_wrap=True)
        if show_folder:
            table.add_column("Folder", style="white")
        table.add_column("From", style="magenta", min_width=20)
        table.add_column("Subject", style="green", min_width=20)
        table.add_column("Date", style="yellow")
        table.add_column("Size", justify="right")

        for row in rows:
            # Header text is server-controlled, never treat it as markup
            cells = [str(row.uid)]
            if show_folder:
                cells.append(Text(row.folder or ""))
            cells += [Text(row.sender), Text(row.subject), Text(row.date), format_size(row.size)]
            table.add_row(*cells)

        return table

    def display(self, rows: List[MessageRow]) -> None:
        if not rows:
            self.console.print("No messages found.")
            return

        self.console.print(self.build(rows))
        self.console.print(f"{len(rows)} message(s)")


class StatusTable:
    """Per-folder message counters with a total row."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def build(self, statuses: List[FolderStatus]) -> Table:
        table = Table()
        table.add_column("Folder", style="white")
        table.add_column("Messages", justify="right")
        table.add_column("Unseen", justify="right")
        table.add_column("Recent", justify="right")

        totals = [0, 0, 0]
        for status in statuses:
            if not status.known:
                table.add_row(Text(status.name), "?", "?", "?")
                continue
            counters = [status.messages, status.unseen, status.recent]
            totals = [total + value for total, value in zip(totals, counters)]
            table.add_row(Text(status.name), *(str(value) for value in counters))

        table.add_row("Total", *(str(total) for total in totals), style="cyan")
        return table

    def display(self, statuses: List[FolderStatus]) -> None:
        self.console.print(self.build(statuses))


class QuotaTable:
    """Quota usage; STORAGE values are reported by servers in KiB."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    @staticmethod
    def _usage_style(percent: float) -> str:
        if percent >= 90.0:
            return "red"
        if percent >= 75.0:
            return "yellow"
        return ""

    def build(self, resources: List[QuotaResource]) -> Table:
        table = Table()
        table.add_column("Resource")
        table.add_column("Used", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Usage", justify="right")

        for resource in resources:
            if resource.name.upper() == "STORAGE":
                used = format_size(resource.used * 1024)
                limit = format_size(resource.limit * 1024)
            else:
                used, limit = str(resource.used), str(resource.limit)

            percent = resource.usage_percent
            usage = Text(f"{percent:.1f}%", style=self._usage_style(percent))
            table.add_row(resource.name, used, limit, usage)

        return table

    def display(self, resources: List[QuotaResource]) -> None:
        if not resources:
            self.console.print("No quota information available.")
            return

        self.console.print(self.build(resources))
