"""Search and message domain models"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class SearchCriteria:
    """User-level search filters for one invocation.

    With ``all_folders`` set, ``folder`` is not selected but still serves as
    the default label for rows that carry no folder of their own.
    """

    folder: str = "INBOX"
    all_folders: bool = False
    subject: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    cc: Optional[str] = None
    since: Optional[str] = None
    before: Optional[str] = None
    larger: Optional[str] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class MessageRow:
    """One matched message, ready for display."""

    uid: int
    folder: Optional[str]
    sender: str
    subject: str
    date: str
    timestamp: int
    size: int

    def owner(self, default_folder: str) -> str:
        """Folder the message lives in."""
        return self.folder or default_folder


@dataclass(frozen=True)
class MarkFlags:
    """Flag changes requested by the mark command."""

    read: bool = False
    unread: bool = False
    flagged: bool = False
    unflagged: bool = False

    def store_operations(self) -> List[str]:
        """STORE expressions, one per requested change."""
        operations = []
        if self.read:
            operations.append("+FLAGS (\\Seen)")
        if self.unread:
            operations.append("-FLAGS (\\Seen)")
        if self.flagged:
            operations.append("+FLAGS (\\Flagged)")
        if self.unflagged:
            operations.append("-FLAGS (\\Flagged)")
        return operations

    def action_description(self) -> str:
        """Human-readable summary, e.g. ``mark read + flag``."""
        parts = []
        if self.read:
            parts.append("mark read")
        if self.unread:
            parts.append("mark unread")
        if self.flagged:
            parts.append("flag")
        if self.unflagged:
            parts.append("unflag")
        return " + ".join(parts)
