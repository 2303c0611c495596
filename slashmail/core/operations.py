"""Mailbox operations built on search results.

Each mutating operation follows the same flow: search, report the matches,
stop on a dry run, confirm, then act folder by folder in UID set chunks.
Delete is a move to the trash folder and shares the move path.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.imap.constants import Capabilities, FetchItems
from slashmail.core.imap.protocol import IMAPProtocol
from slashmail.core.models.message import MarkFlags, MessageRow, SearchCriteria
from slashmail.core.search.aggregator import (
    PartialFailure,
    SearchResult,
    search,
    searchable_folders,
)
from slashmail.core.search.query import build_query, imap_quote
from slashmail.core.search.uid_set import build_uid_set
from slashmail.utils.errors import (
    CapabilityUnsupportedError,
    ExportError,
    NetworkError,
    PartialMutationError,
    ProtocolError,
    SlashmailError,
    ValidationError,
)
from slashmail.utils.logging import get_logger, log_call

logger = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]
ResultsCallback = Callable[[SearchResult], None]

_STATUS_RE = re.compile(r"^\*\s+STATUS\s+.*\(([^)]*)\)\s*$", re.IGNORECASE)
_QUOTA_RE = re.compile(r"^\*\s+QUOTA\s+.*?\(([^)]*)\)", re.IGNORECASE)
_QUOTA_RESOURCE_RE = re.compile(r"([\w-]+)\s+(\d+)\s+(\d+)")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


## Results


@dataclass
class OperationResult:
    """Outcome of a search-then-mutate operation."""

    found: SearchResult
    affected: int = 0
    dry_run: bool = False
    aborted: bool = False

    @property
    def matched(self) -> int:
        return len(self.found.rows)


@dataclass
class MoveResult(OperationResult):
    destination: str = ""


@dataclass
class MarkResult(OperationResult):
    flags: MarkFlags = field(default_factory=MarkFlags)


@dataclass
class CountResult:
    counts: List[Tuple[str, int]] = field(default_factory=list)
    failures: List[PartialFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(count for _, count in self.counts)


@dataclass
class ExportResult:
    exported: int = 0
    skipped: int = 0
    paths: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class FolderStatus:
    """Message counters for one folder; None when STATUS failed."""

    name: str
    messages: Optional[int] = None
    unseen: Optional[int] = None
    recent: Optional[int] = None

    @property
    def known(self) -> bool:
        return self.messages is not None


@dataclass(frozen=True)
class QuotaResource:
    name: str
    used: int
    limit: int

    @property
    def usage_percent(self) -> float:
        return self.used / self.limit * 100.0 if self.limit > 0 else 0.0


## Helpers


def group_by_folder(rows: List[MessageRow], default_folder: str) -> Dict[str, List[int]]:
    """Group row UIDs by owning folder, in first-seen order."""
    grouped: Dict[str, List[int]] = {}
    for row in rows:
        grouped.setdefault(row.owner(default_folder), []).append(row.uid)
    return grouped


def ensure_folder_exists(session: IMAPSession, folder: str) -> None:
    """Raise ValidationError unless ``folder`` is listed by the server."""
    if folder not in session.list_folders("", "*"):
        raise ValidationError(
            f"Folder '{folder}' does not exist. Use `slashmail status` to list available folders.",
            details={"folder": folder},
        )


def validate_mark_flags(flags: MarkFlags) -> None:
    if not (flags.read or flags.unread or flags.flagged or flags.unflagged):
        raise ValidationError(
            "Specify at least one flag: --read, --unread, --flagged, --unflagged"
        )
    if flags.read and flags.unread:
        raise ValidationError("Cannot use --read and --unread together")
    if flags.flagged and flags.unflagged:
        raise ValidationError("Cannot use --flagged and --unflagged together")


def export_filename(row: MessageRow) -> str:
    """``<uid>.eml``, prefixed with the folder for cross-folder rows."""
    if row.folder is None:
        return f"{row.uid}.eml"
    return f"{_UNSAFE_FILENAME_RE.sub('_', row.folder)}_{row.uid}.eml"


## Move / delete


def _partial(error: SlashmailError, action: str) -> SlashmailError:
    """Promote ``error`` to a partial mutation once earlier batches succeeded."""
    if error.mutations_applied:
        return error
    return PartialMutationError(
        f"{action} stopped part-way: {error.message}", details=error.details
    )


def move_messages(
    session: IMAPSession, rows: List[MessageRow], default_folder: str, dest: str
) -> int:
    """Move ``rows`` to ``dest``; returns the number of messages moved.

    Raises:
        PartialMutationError: If a batch fails after earlier batches moved
    """
    protocol = IMAPProtocol(session)
    total = 0
    applied = False

    try:
        for folder, uids in group_by_folder(rows, default_folder).items():
            protocol.select_folder(folder)
            for chunk in build_uid_set(uids):
                protocol.move_or_fallback(chunk, dest)
                applied = True
            total += len(uids)
            logger.info(f"Moved {len(uids)} message(s) from '{folder}' to '{dest}'")

    except (ProtocolError, NetworkError) as e:
        if applied:
            raise _partial(e, "Move") from e
        raise

    return total


@log_call
def search_and_move(
    session: IMAPSession,
    criteria: SearchCriteria,
    dest: str,
    confirm: Optional[ConfirmCallback] = None,
    dry_run: bool = False,
    on_results: Optional[ResultsCallback] = None,
) -> MoveResult:
    """Search, then move every match to ``dest``.

    ``confirm`` receives a prompt and returns whether to proceed; None means
    no confirmation. ``on_results`` is called with the matches before any
    change is made.
    """
    found = search(session, criteria)
    result = MoveResult(found=found, dry_run=dry_run, destination=dest)

    if not found.rows:
        return result
    if on_results:
        on_results(found)
    if dry_run:
        return result

    ensure_folder_exists(session, dest)

    if confirm and not confirm(f"Move {len(found.rows)} message(s) to {dest}?"):
        result.aborted = True
        return result

    result.affected = move_messages(session, found.rows, criteria.folder, dest)
    return result


def delete(
    session: IMAPSession,
    criteria: SearchCriteria,
    trash_folder: str,
    confirm: Optional[ConfirmCallback] = None,
    dry_run: bool = False,
    on_results: Optional[ResultsCallback] = None,
) -> MoveResult:
    """Delete matches by moving them to ``trash_folder``."""
    return search_and_move(session, criteria, trash_folder, confirm, dry_run, on_results)


## Mark


def mark_messages(
    session: IMAPSession, rows: List[MessageRow], default_folder: str, flags: MarkFlags
) -> int:
    """Apply ``flags`` to ``rows``; one STORE per flag operation per chunk."""
    protocol = IMAPProtocol(session)
    operations = flags.store_operations()
    total = 0
    applied = False

    try:
        for folder, uids in group_by_folder(rows, default_folder).items():
            protocol.select_folder(folder)
            for chunk in build_uid_set(uids):
                for operation in operations:
                    protocol.store_flags(chunk, operation)
                    applied = True
            total += len(uids)

    except (ProtocolError, NetworkError) as e:
        if applied:
            raise _partial(e, "Flag update") from e
        raise

    return total


@log_call
def mark(
    session: IMAPSession,
    criteria: SearchCriteria,
    flags: MarkFlags,
    confirm: Optional[ConfirmCallback] = None,
    dry_run: bool = False,
    on_results: Optional[ResultsCallback] = None,
) -> MarkResult:
    """Search, then set or clear flags on every match."""
    validate_mark_flags(flags)

    found = search(session, criteria)
    result = MarkResult(found=found, dry_run=dry_run, flags=flags)

    if not found.rows:
        return result
    if on_results:
        on_results(found)
    if dry_run:
        return result

    if confirm and not confirm(f"{flags.action_description()} {len(found.rows)} message(s)?"):
        result.aborted = True
        return result

    result.affected = mark_messages(session, found.rows, criteria.folder, flags)
    return result


## Count


@log_call
def count(session: IMAPSession, criteria: SearchCriteria) -> CountResult:
    """Count matches with UID SEARCH only, never fetching.

    In cross-folder mode, folders that fail are skipped with a warning and
    only folders with matches are listed.
    """
    query = build_query(criteria)
    result = CountResult()

    if not criteria.all_folders:
        try:
            session.select(criteria.folder)
        except ProtocolError as e:
            raise ProtocolError(
                f"Failed to select '{criteria.folder}': {e.message}",
                details={"folder": criteria.folder},
            ) from e
        result.counts.append((criteria.folder, len(session.uid_search(query))))
        return result

    for folder in searchable_folders(session):
        try:
            session.select(folder)
            matches = len(session.uid_search(query))
        except (ProtocolError, NetworkError) as e:
            logger.warning(f"Skipping folder '{folder}': {e.message}")
            result.failures.append(PartialFailure(folder, e))
            continue
        if matches > 0:
            result.counts.append((folder, matches))

    return result


## Export


@log_call
def export_messages(
    session: IMAPSession,
    rows: List[MessageRow],
    default_folder: str,
    out_dir: Path,
    force: bool = False,
) -> ExportResult:
    """Write each row's full message to ``out_dir`` as an ``.eml`` file.

    Existing files are left alone unless ``force`` is set.
    """
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(
            f"Failed to create directory '{out_dir}': {e}",
            details={"path": str(out_dir)},
        ) from e

    protocol = IMAPProtocol(session)
    result = ExportResult()
    rows_by_key = {(row.owner(default_folder), row.uid): row for row in rows}

    for folder, uids in group_by_folder(rows, default_folder).items():
        protocol.select_folder(folder)

        for chunk in build_uid_set(uids):
            for record in session.uid_fetch(chunk, FetchItems.FULL_BODY):
                row = rows_by_key.get((folder, record.uid))
                if row is None or not record.data:
                    continue

                path = out_dir / export_filename(row)
                if path.exists() and not force:
                    result.skipped += 1
                    continue

                try:
                    path.write_bytes(record.data)
                except OSError as e:
                    raise ExportError(
                        f"Failed to write '{path}': {e}", details={"path": str(path)}
                    ) from e

                result.exported += 1
                result.paths.append(path)

    logger.info(
        "Export finished",
        extra={"exported": result.exported, "skipped": result.skipped},
    )
    return result


## Status / quota


def parse_status_response(data: bytes) -> Dict[str, int]:
    """Parse ``* STATUS name (MESSAGES n UNSEEN n ...)`` into a dict."""
    values: Dict[str, int] = {}
    for line in data.decode("utf-8", errors="replace").splitlines():
        match = _STATUS_RE.match(line.strip())
        if not match:
            continue
        tokens = match.group(1).split()
        for key, value in zip(tokens[::2], tokens[1::2]):
            if value.isdigit():
                values[key.upper()] = int(value)
    return values


@log_call
def folder_status(session: IMAPSession) -> List[FolderStatus]:
    """Per-folder MESSAGES/UNSEEN/RECENT counters for every folder."""
    statuses = []

    for name in session.list_folders("", "*"):
        command = f"STATUS {imap_quote(name)} (MESSAGES UNSEEN RECENT)"
        try:
            values = parse_status_response(session.run_command(command))
        except ProtocolError as e:
            logger.warning(f"STATUS failed for '{name}': {e.message}")
            statuses.append(FolderStatus(name))
            continue

        statuses.append(
            FolderStatus(
                name,
                messages=values.get("MESSAGES", 0),
                unseen=values.get("UNSEEN", 0),
                recent=values.get("RECENT", 0),
            )
        )

    return statuses


def parse_quota_response(data: bytes) -> List[QuotaResource]:
    """Parse every ``(RESOURCE used limit ...)`` list in QUOTA responses."""
    resources = []
    for line in data.decode("utf-8", errors="replace").splitlines():
        match = _QUOTA_RE.match(line.strip())
        if not match:
            continue
        for name, used, limit in _QUOTA_RESOURCE_RE.findall(match.group(1)):
            resources.append(QuotaResource(name, int(used), int(limit)))
    return resources


def quota(session: IMAPSession) -> List[QuotaResource]:
    """Quota usage for the INBOX quota root.

    Raises:
        CapabilityUnsupportedError: If the server lacks the QUOTA extension
    """
    if not session.has_capability(Capabilities.QUOTA):
        raise CapabilityUnsupportedError(
            "Server does not support QUOTA extension (RFC 2087)",
            details={"capability": Capabilities.QUOTA},
        )

    return parse_quota_response(session.run_command("GETQUOTAROOT INBOX"))
