"""IMAP constants and protocol values."""


class IMAPResponse:
    """Standard IMAP response codes."""

    OK = "OK"
    NO = "NO"
    BAD = "BAD"


class Capabilities:
    """Extension tokens this package checks for."""

    MOVE = "MOVE"  # RFC 6851
    SORT = "SORT"  # RFC 5256
    QUOTA = "QUOTA"  # RFC 2087


class IMAPFlags:
    """Standard IMAP flags."""

    DELETED = "\\Deleted"  # Marked for deletion


class Limits:
    """Command size limits."""

    # RFC 9051 asks clients to stay under 8000 octets per command line
    UID_SET_MAX_LEN = 4000
    SENDER_DISPLAY_WIDTH = 40
    SUBJECT_DISPLAY_WIDTH = 60


class FetchItems:
    """FETCH data item lists."""

    SUMMARY = "(UID FLAGS RFC822.SIZE BODY.PEEK[HEADER.FIELDS (Subject From Date)])"
    FULL_BODY = "(UID BODY.PEEK[])"


# Folder names skipped by cross-folder operations (compared lowercased)
SKIPPED_FOLDERS = frozenset(
    {
        "trash",
        "spam",
        "junk",
        "[gmail]/all mail",
        "[gmail]/spam",
        "[gmail]/trash",
    }
)
SKIPPED_FOLDER_SUBSTRINGS = ("all mail",)
