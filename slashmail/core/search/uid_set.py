"""UID set encoding for batched UID commands."""

from typing import Iterable, List, Tuple

from slashmail.core.imap.constants import Limits
from slashmail.utils.errors import ValidationError


def _runs(uids: Iterable[int]) -> List[Tuple[int, int]]:
    """Collapse UIDs into maximal inclusive (start, end) runs."""
    runs: List[Tuple[int, int]] = []
    for uid in sorted(set(uids)):
        if runs and uid == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], uid)
        else:
            runs.append((uid, uid))
    return runs


def build_uid_set(uids: Iterable[int], max_len: int = Limits.UID_SET_MAX_LEN) -> List[str]:
    """Encode ``uids`` as one or more UID set strings like ``1:3,5,7:9``.

    Input order and duplicates do not matter. Consecutive UIDs always become
    ranges, and ranges are packed greedily into chunks no longer than
    ``max_len`` characters. No UIDs yields an empty list.
    """
    chunks: List[str] = []
    current = ""

    for start, end in _runs(uids):
        part = str(start) if start == end else f"{start}:{end}"
        if current and len(current) + 1 + len(part) > max_len:
            chunks.append(current)
            current = ""
        current = f"{current},{part}" if current else part

    if current:
        chunks.append(current)

    return chunks


def parse_uid_set(chunk: str) -> List[int]:
    """Decode a UID set string back into an ascending list of UIDs."""
    uids: List[int] = []
    for part in chunk.split(","):
        start, sep, end = part.partition(":")
        if not start.isdigit() or (sep and not end.isdigit()):
            raise ValidationError(
                f"Invalid UID set '{chunk}'", details={"part": part}
            )
        low, high = int(start), int(end) if sep else int(start)
        if low > high:
            low, high = high, low
        uids.extend(range(low, high + 1))
    return uids
