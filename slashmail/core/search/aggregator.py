"""Multi-folder search aggregation."""

from dataclasses import dataclass, field
from typing import List

from slashmail.core.imap.connection import IMAPSession
from slashmail.core.imap.constants import SKIPPED_FOLDER_SUBSTRINGS, SKIPPED_FOLDERS
from slashmail.core.models.message import MessageRow, SearchCriteria
from slashmail.core.search.executor import SearchExecutor
from slashmail.core.search.query import build_query
from slashmail.utils.errors import NetworkError, ProtocolError, SlashmailError
from slashmail.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PartialFailure:
    """A folder that could not be processed in a cross-folder operation."""

    folder: str
    error: SlashmailError


@dataclass
class SearchResult:
    rows: List[MessageRow] = field(default_factory=list)
    failures: List[PartialFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)


def folders_to_skip(name: str) -> bool:
    """Whether cross-folder operations ignore ``name`` (trash, spam, All Mail)."""
    lower = name.lower()
    return lower in SKIPPED_FOLDERS or any(s in lower for s in SKIPPED_FOLDER_SUBSTRINGS)


def searchable_folders(session: IMAPSession) -> List[str]:
    """All folders on the server minus the skip list."""
    try:
        folders = session.list_folders("", "*")
    except ProtocolError as e:
        raise ProtocolError(f"Failed to list folders: {e.message}") from e

    return [name for name in folders if not folders_to_skip(name)]


def search(session: IMAPSession, criteria: SearchCriteria) -> SearchResult:
    """Run ``criteria`` against one folder, or every searchable folder.

    In cross-folder mode a failing folder is logged and recorded in
    ``SearchResult.failures``; the remaining folders are still searched.
    The limit applies once to the merged, date-sorted rows.
    """
    query = build_query(criteria)
    executor = SearchExecutor(session)

    if not criteria.all_folders:
        rows = executor.fetch_messages(criteria.folder, query, False, criteria.limit)
        return SearchResult(rows=rows)

    result = SearchResult()
    for folder in searchable_folders(session):
        try:
            result.rows.extend(executor.fetch_messages(folder, query, True, None))
        except (ProtocolError, NetworkError) as e:
            logger.warning(f"Skipping folder '{folder}': {e.message}")
            result.failures.append(PartialFailure(folder, e))

    result.rows.sort(key=lambda row: row.timestamp, reverse=True)
    if criteria.limit is not None:
        del result.rows[criteria.limit:]

    return result
