"""Per-folder search execution - select, order, fetch, assemble.

Server-side ``UID SORT`` is used when advertised so a result limit can be
applied before any FETCH. Servers without SORT, or that reject the command,
get a plain ``UID SEARCH`` and the rows are ordered client-side by date.
"""

import re
from dataclasses import dataclass, field
from email.errors import HeaderParseError
from email.headerregistry import HeaderRegistry, UnstructuredHeader
from email.parser import BytesHeaderParser
from email.policy import default as default_policy
from email.utils import mktime_tz, parsedate_tz
from enum import Enum
from typing import Dict, List, Optional, Tuple

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.imap.constants import Capabilities, FetchItems, IMAPResponse, Limits
from slashmail.core.models.message import MessageRow
from slashmail.core.search.query import sanitize
from slashmail.core.search.uid_set import build_uid_set
from slashmail.utils.errors import CapabilityUnsupportedError, CommandRejectedError, ProtocolError
from slashmail.utils.logging import get_logger, log_call

logger = get_logger(__name__)

SORT_COMMAND = "UID SORT (REVERSE DATE) UTF-8 {query}"

_HEADER_FIELDS = ("subject", "from", "date")


def _display_policy():
    """Default policy with every display field parsed as free text.

    Dates and addresses are shown as sent rather than reformatted.
    """
    registry = HeaderRegistry()
    for name in _HEADER_FIELDS:
        registry.map_to_type(name, UnstructuredHeader)
    return default_policy.clone(header_factory=registry)


HEADER_POLICY = _display_policy()


## Sort outcome


class SortStatus(Enum):
    SORTED = "sorted"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class SortOutcome:
    """Result of a UID SORT attempt.

    Hard failures are raised as ``ProtocolError``, so an outcome is either a
    server-ordered UID list or a signal to fall back to SEARCH.
    """

    status: SortStatus
    uids: List[int] = field(default_factory=list)

    @classmethod
    def sorted(cls, uids: List[int]) -> "SortOutcome":
        return cls(SortStatus.SORTED, uids)

    @classmethod
    def unsupported(cls) -> "SortOutcome":
        return cls(SortStatus.UNSUPPORTED)

    @property
    def is_sorted(self) -> bool:
        return self.status is SortStatus.SORTED


## Response and header parsing


def parse_sort_response(data: bytes) -> List[int]:
    """Parse a raw UID SORT response, preserving server order.

    A response without any ``* SORT`` line means no matches.

    Raises:
        ProtocolError: On a tagged NO/BAD line or a non-numeric UID
    """
    uids: List[int] = []
    text = data.decode("utf-8", errors="replace")

    for line in text.splitlines():
        tokens = line.split()
        if not tokens:
            continue

        if tokens[0] == "*":
            if len(tokens) > 1 and tokens[1].upper() == "SORT":
                for token in tokens[2:]:
                    if not token.isascii() or not token.isdigit():
                        raise ProtocolError(
                            f"Unexpected SORT response format: {line.strip()}",
                            details={"line": line.strip()},
                        )
                    uids.append(int(token))
            continue

        if len(tokens) > 1 and tokens[1].upper() in (IMAPResponse.NO, IMAPResponse.BAD):
            raise ProtocolError(
                f"SORT command rejected by server: {line.strip()}",
                details={"line": line.strip()},
            )

    return uids


def truncate_str(value: str, max_len: int) -> str:
    """Cut ``value`` to ``max_len`` characters, ending in ``...`` when cut."""
    if len(value) <= max_len:
        return value
    return value[: max(max_len - 3, 0)] + "..."


def _unfold(value: str) -> str:
    return re.sub(r"\r?\n", "", value).strip()


def _scan_headers(data: bytes) -> Dict[str, str]:
    """Line-oriented header scan, used when structured parsing fails."""
    headers: Dict[str, str] = {}
    for line in data.decode("utf-8", errors="replace").splitlines():
        for name in ("Subject", "From", "Date"):
            prefix = f"{name}: "
            if line.startswith(prefix):
                headers[name.lower()] = line[len(prefix):]
    return headers


def parse_headers(data: bytes) -> Tuple[str, str, str]:
    """Extract (subject, sender, date) from a header block.

    Both RFC 2047 encoded words and raw UTF-8 header bytes are decoded.
    """
    try:
        message = BytesHeaderParser(policy=HEADER_POLICY).parsebytes(data)
        headers = {
            name: _unfold(str(message[name]))
            for name in _HEADER_FIELDS
            if message[name] is not None
        }
    except (HeaderParseError, UnicodeError, LookupError, ValueError, TypeError, IndexError) as e:
        logger.debug(f"Structured header parse failed, scanning lines: {e}")
        headers = _scan_headers(data)

    return (
        headers.get("subject", ""),
        headers.get("from", ""),
        headers.get("date", ""),
    )


def date_timestamp(date: str) -> int:
    """Epoch seconds for an RFC 5322 date, or 0 when unparsable."""
    try:
        parsed = parsedate_tz(date)
        return mktime_tz(parsed) if parsed else 0
    except (TypeError, ValueError, OverflowError):
        return 0


def display_date(date: str) -> str:
    """Drop the trailing UTC offset (`` +0000``) from a date header."""
    position = date.find(" +")
    if position < 0:
        position = date.find(" -")
    return date[:position] if position >= 0 else date


## Executor


class SearchExecutor:
    """Runs one compiled query against folders of a single session."""

    def __init__(self, session: IMAPSession):
        self.session = session

    def try_uid_sort(self, query: str) -> SortOutcome:
        """Attempt server-side reverse-date ordering.

        Raises:
            ProtocolError: If the SORT response is malformed or tagged NO/BAD
        """
        if not self.session.has_capability(Capabilities.SORT):
            return SortOutcome.unsupported()

        command = SORT_COMMAND.format(query=query)
        try:
            response = self.session.run_command(command)
        except (CommandRejectedError, CapabilityUnsupportedError) as e:
            logger.warning(f"SORT failed, falling back to SEARCH: {e.message}")
            return SortOutcome.unsupported()

        return SortOutcome.sorted(parse_sort_response(response))

    @log_call
    def fetch_messages(
        self,
        folder: str,
        query: str,
        include_folder: bool = False,
        limit: Optional[int] = None,
    ) -> List[MessageRow]:
        """Search ``folder`` and return display rows, newest first.

        Raises:
            ProtocolError: If the folder cannot be selected or a command fails
        """
        clean_folder = sanitize(folder)
        try:
            self.session.select(clean_folder)
        except ProtocolError as e:
            raise ProtocolError(
                f"Failed to select folder '{clean_folder}': {e.message}",
                details={"folder": clean_folder},
            ) from e

        outcome = self.try_uid_sort(query)
        if outcome.is_sorted:
            ordered_uids = outcome.uids
            if limit is not None:
                ordered_uids = ordered_uids[:limit]
        else:
            ordered_uids = sorted(self.session.uid_search(query))

        if not ordered_uids:
            return []

        label = clean_folder if include_folder else None
        rows = self._fetch_rows(clean_folder, ordered_uids, label)

        if outcome.is_sorted:
            return [rows[(clean_folder, uid)] for uid in ordered_uids if (clean_folder, uid) in rows]

        messages = sorted(rows.values(), key=lambda row: row.timestamp, reverse=True)
        if limit is not None:
            messages = messages[:limit]
        return messages

    def _fetch_rows(
        self, folder: str, uids: List[int], label: Optional[str]
    ) -> Dict[Tuple[str, int], MessageRow]:
        """FETCH summaries for ``uids`` keyed by (folder, uid)."""
        rows: Dict[Tuple[str, int], MessageRow] = {}
        warned = False

        for chunk in build_uid_set(uids):
            for record in self.session.uid_fetch(chunk, FetchItems.SUMMARY):
                if record.uid is None or record.uid <= 0:
                    if not warned:
                        logger.warning(
                            f"Skipping messages with missing or invalid UID in '{folder}'"
                        )
                        warned = True
                    continue

                subject, sender, date = parse_headers(record.data)
                rows[(folder, record.uid)] = MessageRow(
                    uid=record.uid,
                    folder=label,
                    sender=truncate_str(sender, Limits.SENDER_DISPLAY_WIDTH),
                    subject=truncate_str(subject, Limits.SUBJECT_DISPLAY_WIDTH),
                    date=display_date(date),
                    timestamp=date_timestamp(date),
                    size=record.size or 0,
                )

        return rows
